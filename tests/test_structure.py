"""
Tests for page-structure operations.
"""
import io
import random
from datetime import datetime, timedelta, timezone

import fitz
import pytest
from PIL import Image

from pdfdesk.core.errors import DocumentError
from pdfdesk.core.structure import (
    CompressionLevel,
    PageNumberPosition,
    PageOperationState,
    WatermarkPosition,
    add_page_numbers,
    add_watermark,
    compress,
    delete_pages,
    extract_pages,
    get_info,
    images_to_pdf,
    merge,
    organize,
    reorder,
    rotate,
    run_batch,
    split,
)
from pdfdesk.core.structure.page_operations import parse_pdf_date


def rotations(data):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return [page.rotation for page in doc]
    finally:
        doc.close()


@pytest.fixture
def four_pages(make_pdf):
    return make_pdf("p1", "p2", "p3", "p4")


# ═══════════════════════════════════════════════════════════════════════════════
# ASSEMBLY
# ═══════════════════════════════════════════════════════════════════════════════


class TestMerge:

    def test_pages_in_input_order(self, make_pdf, pages_of):
        merged = merge([make_pdf("a1"), make_pdf("b1", "b2")])
        assert pages_of(merged) == ["a1", "b1", "b2"]

    def test_page_count_is_sum(self, make_pdf, pages_of):
        merged = merge([make_pdf("x1", "x2", "x3"), make_pdf("y1", "y2")])
        assert pages_of(merged) == ["x1", "x2", "x3", "y1", "y2"]

    def test_inputs_untouched(self, make_pdf):
        first = make_pdf("a1")
        copy = bytes(first)
        merge([first, make_pdf("b1")])
        assert first == copy

    def test_no_sources(self):
        with pytest.raises(DocumentError):
            merge([])

    def test_bad_source_is_named(self, make_pdf):
        with pytest.raises(DocumentError, match="document 2"):
            merge([make_pdf("a1"), b"junk"])

    def test_failed_merge_closes_documents(self, make_pdf, opened_documents):
        with pytest.raises(DocumentError):
            merge([make_pdf("a1"), b"junk"])
        assert opened_documents
        assert all(doc.is_closed for doc in opened_documents)


class TestSplit:

    def test_one_file_per_page(self, four_pages, pages_of):
        parts = split(four_pages)
        assert [pages_of(p) for p in parts] == [["p1"], ["p2"], ["p3"], ["p4"]]

    def test_split_then_merge_round_trip(self, four_pages, pages_of):
        assert pages_of(merge(split(four_pages))) == pages_of(four_pages)


class TestSelection:

    def test_extract_in_given_order(self, four_pages, pages_of):
        assert pages_of(extract_pages(four_pages, [2, 0])) == ["p3", "p1"]

    def test_extract_rejects_bad_index(self, four_pages):
        with pytest.raises(DocumentError, match="Invalid page number"):
            extract_pages(four_pages, [0, 4])
        with pytest.raises(DocumentError):
            extract_pages(four_pages, [])

    def test_failed_extract_closes_documents(self, four_pages, opened_documents,
                                             monkeypatch):
        def failing_insert(*args, **kwargs):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(fitz.Document, "insert_pdf", failing_insert)
        with pytest.raises(RuntimeError):
            extract_pages(four_pages, [0])
        assert opened_documents
        assert all(doc.is_closed for doc in opened_documents)

    def test_reorder(self, four_pages, pages_of):
        assert pages_of(reorder(four_pages, [3, 2, 1, 0])) == ["p4", "p3", "p2", "p1"]

    def test_reorder_needs_permutation(self, four_pages):
        with pytest.raises(DocumentError):
            reorder(four_pages, [0, 0, 1, 2])
        with pytest.raises(DocumentError):
            reorder(four_pages, [0, 1, 2])

    def test_delete_pages(self, four_pages, pages_of):
        assert pages_of(delete_pages(four_pages, [1, 3])) == ["p1", "p3"]

    def test_cannot_delete_everything(self, four_pages):
        with pytest.raises(DocumentError, match="Cannot delete all pages"):
            delete_pages(four_pages, [0, 1, 2, 3])


class TestRotate:

    def test_all_pages(self, make_pdf):
        assert rotations(rotate(make_pdf("a", "b"), 90)) == [90, 90]

    def test_rotation_accumulates(self, make_pdf):
        data = rotate(rotate(make_pdf("a"), 270), 180)
        assert rotations(data) == [90]

    def test_selected_pages(self, four_pages):
        assert rotations(rotate(four_pages, -90, [1])) == [0, 270, 0, 0]

    @pytest.mark.parametrize("angle", [0, 45, 360])
    def test_invalid_angle(self, make_pdf, angle):
        with pytest.raises(DocumentError):
            rotate(make_pdf("a"), angle)


class TestOrganize:

    def test_per_page_rotation_delete_and_order(self, make_pdf, pages_of):
        data = make_pdf("p1", "p2", "p3")
        result = organize(data, [
            PageOperationState(0, rotation_delta=90, new_order=1),
            PageOperationState(1, new_order=0),
            PageOperationState(2, deleted=True),
        ])
        assert pages_of(result) == ["p2", "p1"]
        assert rotations(result) == [0, 90]

    def test_missing_states_keep_pages(self, four_pages, pages_of):
        result = organize(four_pages, [PageOperationState(1, deleted=True)])
        assert pages_of(result) == ["p1", "p3", "p4"]

    def test_all_deleted_rejected(self, make_pdf):
        data = make_pdf("p1", "p2")
        with pytest.raises(DocumentError, match="Cannot delete all pages"):
            organize(data, [PageOperationState(0, deleted=True),
                            PageOperationState(1, deleted=True)])

    def test_duplicate_state_rejected(self, make_pdf):
        with pytest.raises(DocumentError):
            organize(make_pdf("p1", "p2"), [PageOperationState(0), PageOperationState(0)])

    def test_bad_rotation_rejected(self, make_pdf):
        with pytest.raises(DocumentError):
            organize(make_pdf("p1"), [PageOperationState(0, rotation_delta=30)])


# ═══════════════════════════════════════════════════════════════════════════════
# STAMPING
# ═══════════════════════════════════════════════════════════════════════════════


class TestWatermark:

    @pytest.mark.parametrize("position", list(WatermarkPosition))
    def test_text_is_extractable(self, make_pdf, pages_of, position):
        result = add_watermark(make_pdf("body", "more"), "CONFIDENTIAL", position)
        for page in pages_of(result):
            assert "CONFIDENTIAL" in page

    def test_position_accepts_strings(self, make_pdf, pages_of):
        result = add_watermark(make_pdf("body"), "DRAFT", "diagonal")
        assert "DRAFT" in pages_of(result)[0]

    def test_selected_pages_only(self, make_pdf, pages_of):
        result = add_watermark(make_pdf("one", "two"), "COPY", page_indices=[1])
        pages = pages_of(result)
        assert "COPY" not in pages[0]
        assert "COPY" in pages[1]

    def test_empty_text(self, make_pdf):
        with pytest.raises(DocumentError):
            add_watermark(make_pdf("body"), "  ")


class TestPageNumbers:

    def test_default_format(self, make_pdf, pages_of):
        pages = pages_of(add_page_numbers(make_pdf("a", "b")))
        assert "Page 1 of 2" in pages[0]
        assert "Page 2 of 2" in pages[1]

    def test_custom_format_and_start(self, make_pdf, pages_of):
        pages = pages_of(add_page_numbers(make_pdf("a", "b"), fmt="- {n} -", start=5))
        assert "- 5 -" in pages[0]
        assert "- 6 -" in pages[1]

    @pytest.mark.parametrize("position,top", [
        (PageNumberPosition.BOTTOM_RIGHT, False),
        (PageNumberPosition.TOP_LEFT, True),
    ])
    def test_vertical_placement(self, make_pdf, position, top):
        result = add_page_numbers(make_pdf(None), position)
        doc = fitz.open(stream=result, filetype="pdf")
        words = doc[0].get_text("words")
        doc.close()
        y = min(w[1] for w in words)
        assert (y < 100) == top


# ═══════════════════════════════════════════════════════════════════════════════
# SIZE AND CONVERSION
# ═══════════════════════════════════════════════════════════════════════════════


def noisy_pdf() -> bytes:
    rng = random.Random(0)
    img = Image.frombytes("RGB", (400, 400), bytes(rng.getrandbits(8) for _ in range(400 * 400 * 3)))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    doc = fitz.open()
    page = doc.new_page()
    page.insert_image(fitz.Rect(50, 50, 450, 450), stream=buf.getvalue())
    data = doc.tobytes(deflate=True)
    doc.close()
    return data


class TestCompress:

    @pytest.mark.parametrize("level", list(CompressionLevel))
    def test_output_is_smaller(self, level):
        source = noisy_pdf()
        result = compress(source, level)
        assert len(result) < len(source)
        doc = fitz.open(stream=result, filetype="pdf")
        assert doc.page_count == 1
        assert len(doc[0].get_images()) == 1
        doc.close()

    def test_level_settings(self):
        assert CompressionLevel("high").jpeg_quality < CompressionLevel("low").jpeg_quality
        assert CompressionLevel.HIGH.scale == 0.5

    def test_text_only_document(self, make_pdf, pages_of):
        assert pages_of(compress(make_pdf("plain"))) == ["plain"]


class TestImagesToPdf:

    def test_page_per_image_sized_to_image(self, make_image):
        result = images_to_pdf([make_image(400, 100), make_image(120, 300, fmt="JPEG")])
        doc = fitz.open(stream=result, filetype="pdf")
        sizes = [(p.rect.width, p.rect.height) for p in doc]
        doc.close()
        assert sizes == [(400, 100), (120, 300)]

    def test_bad_images_skipped(self, make_image):
        result = images_to_pdf([b"junk", make_image(50, 50)])
        doc = fitz.open(stream=result, filetype="pdf")
        assert doc.page_count == 1
        doc.close()

    def test_nothing_usable(self):
        with pytest.raises(DocumentError):
            images_to_pdf([b"junk"])


class TestInfo:

    def test_metadata(self, make_pdf):
        data = make_pdf("a", "b", metadata={"title": "Quarterly report", "author": "Finance"})
        info = get_info(data)
        assert info.page_count == 2
        assert info.title == "Quarterly report"
        assert info.author == "Finance"
        assert not info.encrypted
        assert info.to_dict()["page_count"] == 2

    def test_encrypted(self, make_pdf):
        data = make_pdf("a", encrypt_with="pass1234")
        assert get_info(data, "pass1234").encrypted
        with pytest.raises(DocumentError):
            get_info(data)

    def test_parse_pdf_date(self):
        assert parse_pdf_date("D:20240131120000+01'00'") == datetime(
            2024, 1, 31, 12, 0, 0, tzinfo=timezone(timedelta(hours=1)))
        assert parse_pdf_date("D:2023") == datetime(2023, 1, 1)
        assert parse_pdf_date("yesterday") is None
        assert parse_pdf_date(None) is None


class TestBatch:

    def test_failures_are_isolated(self, make_pdf):
        report = run_batch([("a.pdf", make_pdf("a")), ("b.pdf", b"junk"),
                            ("c.pdf", make_pdf("c"))],
                           lambda data: rotate(data, 90))
        assert [r.name for r in report.succeeded] == ["a.pdf", "c.pdf"]
        assert report.summary == "2 succeeded, 1 failed: b.pdf"
        assert rotations(report.succeeded[0].output) == [90]

    def test_all_succeed(self, make_pdf):
        report = run_batch([("a.pdf", make_pdf("a"))], split)
        assert report.summary == "1 succeeded"
        assert len(report.results[0].output) == 1

    def test_other_errors_propagate(self, make_pdf):
        def explode(data):
            raise KeyError("bug")

        with pytest.raises(KeyError):
            run_batch([("a.pdf", make_pdf("a"))], explode)
