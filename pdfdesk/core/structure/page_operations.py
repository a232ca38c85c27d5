"""
Page-structure operations on raw PDF bytes.

Every function parses its input afresh and returns new bytes; the
caller's buffers are never touched. Page indices are 0-based.
"""
import io
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from ..document import open_pdf
from ..errors import DocumentError
from ..geometry import from_user_space
from .models import (
    VALID_ROTATIONS,
    CompressionLevel,
    DocumentInfo,
    PageNumberPosition,
    PageOperationState,
    WatermarkPosition,
)

logger = logging.getLogger(__name__)

PAGE_NUMBER_FORMAT = "Page {n} of {total}"


def _open(data: bytes, label: str = "document") -> fitz.Document:
    try:
        return open_pdf(data, error_cls=DocumentError)
    except DocumentError as e:
        raise DocumentError(f"Cannot read {label}: {e}") from e


def _save(doc: fitz.Document) -> bytes:
    try:
        return doc.tobytes(garbage=4, deflate=True)
    finally:
        doc.close()


def _check_indices(indices: Iterable[int], page_count: int) -> List[int]:
    indices = list(indices)
    invalid = [i for i in indices if not 0 <= i < page_count]
    if invalid:
        pages = ", ".join(str(i + 1) for i in invalid)
        raise DocumentError(
            f"Invalid page number(s) {pages}: document has {page_count} pages"
        )
    return indices


def _check_angle(angle: int) -> int:
    if angle % 360 not in VALID_ROTATIONS or angle % 90:
        raise DocumentError(f"Rotation must be a multiple of 90 degrees, got {angle}")
    return angle % 360


# ----------------------------------------------------------------------
# Assembling documents
# ----------------------------------------------------------------------

def merge(sources: Sequence[bytes]) -> bytes:
    """
    Concatenate documents, pages in input order.

    Raises:
        DocumentError: If fewer than one source is given or one cannot be read
    """
    if not sources:
        raise DocumentError("Nothing to merge: no documents given")

    merged = fitz.open()
    try:
        for number, data in enumerate(sources, start=1):
            src = _open(data, f"document {number}")
            try:
                merged.insert_pdf(src)
            finally:
                src.close()
    except Exception:
        merged.close()
        raise
    logger.info("Merged %d documents into %d pages", len(sources), merged.page_count)
    return _save(merged)


def split(data: bytes) -> List[bytes]:
    """Split a document into one single-page document per page."""
    src = _open(data)
    outputs = []
    try:
        for index in range(src.page_count):
            single = fitz.open()
            try:
                single.insert_pdf(src, from_page=index, to_page=index)
            except Exception:
                single.close()
                raise
            outputs.append(_save(single))
    finally:
        src.close()
    logger.info("Split document into %d files", len(outputs))
    return outputs


def extract_pages(data: bytes, indices: Sequence[int]) -> bytes:
    """
    Build a document from the given pages, in the given order.

    Raises:
        DocumentError: If no pages are given or an index is out of range
    """
    doc = _open(data)
    try:
        if not indices:
            raise DocumentError("No pages selected for extraction")
        indices = _check_indices(indices, doc.page_count)
        extracted = fitz.open()
        try:
            for index in indices:
                extracted.insert_pdf(doc, from_page=index, to_page=index)
        except Exception:
            extracted.close()
            raise
    finally:
        doc.close()
    return _save(extracted)


def reorder(data: bytes, new_order: Sequence[int]) -> bytes:
    """
    Rearrange pages; ``new_order[i]`` is the source page shown at position i.

    Raises:
        DocumentError: If new_order is not a permutation of the pages
    """
    doc = _open(data)
    if sorted(new_order) != list(range(doc.page_count)):
        count = doc.page_count
        doc.close()
        raise DocumentError(
            f"New order must list every page exactly once (pages 1-{count})"
        )
    doc.select(list(new_order))
    return _save(doc)


def delete_pages(data: bytes, indices: Sequence[int]) -> bytes:
    """
    Remove pages from a document.

    Raises:
        DocumentError: If an index is invalid or every page would be removed
    """
    doc = _open(data)
    try:
        doomed = set(_check_indices(indices, doc.page_count))
        if len(doomed) >= doc.page_count:
            raise DocumentError("Cannot delete all pages")
    except DocumentError:
        doc.close()
        raise
    doc.select([i for i in range(doc.page_count) if i not in doomed])
    return _save(doc)


def rotate(data: bytes, angle: int, page_indices: Optional[Sequence[int]] = None) -> bytes:
    """
    Add ``angle`` degrees to the rotation of pages (all pages by default).

    Only the page /Rotate property changes; content is not resampled.
    """
    angle = _check_angle(angle)
    if angle == 0:
        raise DocumentError("Rotation angle must be 90, 180 or 270")
    doc = _open(data)
    try:
        if page_indices is None:
            targets = range(doc.page_count)
        else:
            targets = _check_indices(page_indices, doc.page_count)
    except DocumentError:
        doc.close()
        raise
    for index in set(targets):
        page = doc.load_page(index)
        page.set_rotation((page.rotation + angle) % 360)
    return _save(doc)


def organize(data: bytes, states: Sequence[PageOperationState]) -> bytes:
    """
    Apply per-page rotation, deletion and reordering in one pass.

    Each page keeps its own rotation delta. Pages without a state are kept
    unchanged at their original position.

    Raises:
        DocumentError: If states are invalid or every page is deleted
    """
    doc = _open(data)
    try:
        by_index = {}
        for state in states:
            _check_indices([state.original_index], doc.page_count)
            if state.original_index in by_index:
                raise DocumentError(
                    f"Page {state.original_index + 1} appears more than once"
                )
            _check_angle(state.rotation_delta)
            by_index[state.original_index] = state

        full = [by_index.get(i, PageOperationState(original_index=i))
                for i in range(doc.page_count)]
        kept = sorted((s for s in full if not s.deleted), key=lambda s: s.sort_key)
        if not kept:
            raise DocumentError("Cannot delete all pages")
    except DocumentError:
        doc.close()
        raise

    for state in kept:
        if state.rotation_delta % 360:
            page = doc.load_page(state.original_index)
            page.set_rotation((page.rotation + state.rotation_delta) % 360)

    doc.select([s.original_index for s in kept])
    logger.info("Organized document: %d pages kept of %d", len(kept), len(full))
    return _save(doc)


# ----------------------------------------------------------------------
# Stamping content
# ----------------------------------------------------------------------

def add_watermark(data: bytes, text: str,
                  position: Union[WatermarkPosition, str] = WatermarkPosition.CENTER,
                  font_size: float = 50, opacity: float = 0.3,
                  color: Tuple[float, float, float] = (0.5, 0.5, 0.5),
                  rotation: float = -45,
                  page_indices: Optional[Sequence[int]] = None) -> bytes:
    """
    Burn a text watermark into pages.

    Args:
        data: Source PDF bytes
        text: Watermark text
        position: center (horizontal), diagonal (rotated) or tiled (rotated grid)
        font_size: Font size in points
        opacity: Text opacity, 0-1
        color: RGB colour, 0-1 per channel
        rotation: Angle used by the diagonal and tiled layouts
        page_indices: Pages to stamp, all by default
    """
    position = WatermarkPosition(position)
    if not text or not text.strip():
        raise DocumentError("Watermark text is empty")

    doc = _open(data)
    try:
        targets = (range(doc.page_count) if page_indices is None
                   else _check_indices(page_indices, doc.page_count))
    except DocumentError:
        doc.close()
        raise

    font = fitz.Font("hebo")
    text_length = font.text_length(text, fontsize=font_size)

    for index in targets:
        page = doc.load_page(index)
        rect = page.rect
        w, h = rect.width, rect.height

        if position == WatermarkPosition.TILED:
            step_x = text_length + font_size * 2
            step_y = font_size * 4
            centers = [(cx, cy)
                       for cy in _frange(step_y / 2, h, step_y)
                       for cx in _frange(step_x / 2, w, step_x)]
        else:
            centers = [(w / 2, h / 2)]

        for cx, cy in centers:
            tw = fitz.TextWriter(rect)
            tw.append((cx - text_length / 2, cy + font_size / 3), text,
                      font=font, fontsize=font_size)
            if position == WatermarkPosition.CENTER:
                tw.write_text(page, color=color, opacity=opacity)
            else:
                tw.write_text(page, color=color, opacity=opacity,
                              morph=(fitz.Point(cx, cy),
                                     fitz.Matrix(1, 0, 0, 1, 0, 0).prerotate(rotation)))

    logger.info("Watermark %r (%s) added to %d page(s)", text, position.value, len(targets))
    return _save(doc)


def _frange(start: float, stop: float, step: float):
    value = start
    while value < stop:
        yield value
        value += step


def add_page_numbers(data: bytes,
                     position: Union[PageNumberPosition, str] = PageNumberPosition.BOTTOM_CENTER,
                     fmt: str = PAGE_NUMBER_FORMAT, font_size: float = 10,
                     margin: float = 40, baseline_offset: float = 30,
                     start: int = 1) -> bytes:
    """
    Stamp ``fmt`` on every page, with {n} and {total} substituted.

    ``baseline_offset`` is measured from the bottom edge (or the top edge
    for top positions).
    """
    position = PageNumberPosition(position)
    doc = _open(data)
    total = doc.page_count + start - 1
    font = fitz.Font("helv")

    for index in range(doc.page_count):
        page = doc.load_page(index)
        w, h = page.rect.width, page.rect.height
        text = fmt.replace("{n}", str(start + index)).replace("{total}", str(total))
        text_len = font.text_length(text, fontsize=font_size)

        if position.horizontal == "left":
            x = margin
        elif position.horizontal == "right":
            x = w - text_len - margin
        else:
            x = (w - text_len) / 2

        if position.is_top:
            y = baseline_offset + font_size
        else:
            _, y = from_user_space(x, baseline_offset, h)

        tw = fitz.TextWriter(page.rect)
        tw.append((x, y), text, font=font, fontsize=font_size)
        tw.write_text(page, color=(0, 0, 0))

    logger.info("Page numbers added to %d page(s)", doc.page_count)
    return _save(doc)


# ----------------------------------------------------------------------
# Size and conversion
# ----------------------------------------------------------------------

def compress(data: bytes, level: Union[CompressionLevel, str] = CompressionLevel.MEDIUM) -> bytes:
    """
    Re-encode embedded images and rewrite the file compactly.

    Higher levels lower the JPEG quality and downsample more. Images with
    transparency masks are left alone, as is any image the re-encode would
    make larger.
    """
    level = CompressionLevel(level)
    doc = _open(data)
    seen = set()
    replaced = 0

    for page in doc:
        for img in page.get_images(full=True):
            xref, smask = img[0], img[1]
            if xref in seen:
                continue
            seen.add(xref)
            if smask:
                continue
            new_data = _recompress_image(doc.extract_image(xref), level, xref)
            if new_data is not None:
                page.replace_image(xref, stream=new_data)
                replaced += 1

    try:
        output = doc.tobytes(garbage=4, deflate=True, deflate_images=True,
                             deflate_fonts=True, clean=True)
    finally:
        doc.close()

    logger.info("Compressed (%s): %d -> %d bytes, %d image(s) re-encoded",
                level.value, len(data), len(output), replaced)
    return output


def _recompress_image(info: dict, level: CompressionLevel, xref: int) -> Optional[bytes]:
    original = info.get("image") if info else None
    if not original:
        return None
    try:
        with Image.open(io.BytesIO(original)) as img:
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            if level.scale < 1:
                new_size = (max(1, int(img.width * level.scale)),
                            max(1, int(img.height * level.scale)))
                img = img.resize(new_size, Image.LANCZOS)
            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=level.jpeg_quality, optimize=True)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Skipping image xref %d: %s", xref, e)
        return None

    new_data = buf.getvalue()
    if len(new_data) >= len(original):
        return None
    return new_data


def images_to_pdf(images: Sequence[bytes]) -> bytes:
    """
    Build a document with one page per image, each page the size of its image.

    JPEG and PNG are embedded as-is, other formats Pillow can read
    (e.g. WebP) are converted to PNG. Undecodable images are skipped.

    Raises:
        DocumentError: If no image could be used
    """
    doc = fitz.open()
    try:
        for number, data in enumerate(images, start=1):
            try:
                with Image.open(io.BytesIO(data)) as img:
                    width, height = img.size
                    fmt = img.format
                    if fmt not in ("JPEG", "PNG"):
                        buf = io.BytesIO()
                        img.save(buf, format="PNG")
                        data = buf.getvalue()
            except (UnidentifiedImageError, OSError) as e:
                logger.warning("Skipping image %d: %s", number, e)
                continue

            page = doc.new_page(width=width, height=height)
            page.insert_image(page.rect, stream=data)
    except Exception:
        doc.close()
        raise

    if doc.page_count == 0:
        doc.close()
        raise DocumentError("None of the images could be read (supported: JPEG, PNG, WebP)")
    return _save(doc)


def get_info(data: bytes, password: Optional[str] = None) -> DocumentInfo:
    """Read page count and the main metadata fields."""
    try:
        doc = open_pdf(data, password, error_cls=DocumentError)
    except DocumentError as e:
        raise DocumentError(f"Cannot read document: {e}") from e
    try:
        metadata = doc.metadata or {}
        return DocumentInfo(
            page_count=doc.page_count,
            title=metadata.get("title") or None,
            author=metadata.get("author") or None,
            creation_date=parse_pdf_date(metadata.get("creationDate")),
            encrypted=bool(doc.is_encrypted or metadata.get("encryption")),
        )
    finally:
        doc.close()


_PDF_DATE = re.compile(
    r"D:(?P<year>\d{4})(?P<month>\d{2})?(?P<day>\d{2})?(?P<hour>\d{2})?"
    r"(?P<minute>\d{2})?(?P<second>\d{2})?(?P<tz>[Zz+\-])?(?P<tzh>\d{2})?'?(?P<tzm>\d{2})?"
)


def parse_pdf_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a PDF date string such as ``D:20240131120000+01'00'``."""
    if not value:
        return None
    match = _PDF_DATE.match(value)
    if not match:
        return None
    parts = match.groupdict()
    tzinfo = None
    if parts["tz"] in ("Z", "z"):
        tzinfo = timezone.utc
    elif parts["tz"] in ("+", "-"):
        offset = timedelta(hours=int(parts["tzh"] or 0), minutes=int(parts["tzm"] or 0))
        tzinfo = timezone(offset if parts["tz"] == "+" else -offset)
    try:
        return datetime(
            int(parts["year"]), int(parts["month"] or 1), int(parts["day"] or 1),
            int(parts["hour"] or 0), int(parts["minute"] or 0), int(parts["second"] or 0),
            tzinfo=tzinfo,
        )
    except ValueError:
        return None
