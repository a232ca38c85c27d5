"""
Commits pending annotations into a new PDF.
"""
import io
import logging
from typing import Dict, List, Mapping, Optional, Sequence

import fitz  # PyMuPDF
from PIL import Image, ImageFont, UnidentifiedImageError
from PyQt5.QtCore import QObject, pyqtSignal

from ...utils.colors import rgb_to_unit
from ..annotations import (
    Annotation,
    DrawAnnotation,
    ImageAnnotation,
    StrokeKind,
    TextAnnotation,
)
from ..document import open_pdf
from ..errors import ExportError
from .fonts import FontRegistry

logger = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"


def sniff_image_format(data: bytes) -> Optional[str]:
    """Detect 'png', 'jpeg' or 'webp' from the leading bytes."""
    if data.startswith(PNG_MAGIC):
        return "png"
    if data.startswith(JPEG_MAGIC):
        return "jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    return None


class PDFExporter(QObject):
    """Handles turning annotations into PDF page content."""

    # Signal for progress updates
    progress_signal = pyqtSignal(int, int)  # current, total

    def __init__(self, font_registry: Optional[FontRegistry] = None,
                 highlight_opacity: float = 0.3):
        super().__init__()
        self.font_registry = font_registry or FontRegistry()
        self.highlight_opacity = highlight_opacity

    def commit(self, source_bytes: bytes,
               annotations_by_page: Mapping[int, Sequence[Annotation]],
               password: Optional[str] = None) -> bytes:
        """
        Draw annotations into a fresh copy of the source document.

        Args:
            source_bytes: Original PDF bytes, never modified
            annotations_by_page: Annotations grouped by 0-based page index,
                bottom-most first
            password: Password when the source is encrypted

        Returns:
            Bytes of the new PDF

        Raises:
            ExportError: If the source cannot be parsed, an annotation
                targets a missing page or its font/image cannot be embedded
        """
        doc = open_pdf(source_bytes, password, error_cls=ExportError)

        try:
            self._check_pages(doc, annotations_by_page)

            pages = sorted(annotations_by_page)
            total_pages = len(pages)
            for current, page_index in enumerate(pages):
                self.progress_signal.emit(current, total_pages)
                page = doc.load_page(page_index)
                for ann in annotations_by_page[page_index]:
                    self._add_annotation_to_page(page, ann)
            self.progress_signal.emit(total_pages, total_pages)

            output = doc.tobytes(garbage=4, deflate=True)
        finally:
            doc.close()

        logger.info("Exported %d annotation(s) on %d page(s)",
                    sum(len(v) for v in annotations_by_page.values()), len(annotations_by_page))
        return output

    def _check_pages(self, doc: fitz.Document,
                     annotations_by_page: Mapping[int, Sequence[Annotation]]) -> None:
        for page_index, annotations in annotations_by_page.items():
            if 0 <= page_index < doc.page_count:
                continue
            first = annotations[0].id if annotations else None
            raise ExportError(
                f"Page {page_index + 1} does not exist (document has {doc.page_count} pages)",
                annotation_id=first,
            )

    def _add_annotation_to_page(self, page: fitz.Page, annotation: Annotation) -> None:
        """Add a single annotation to a PDF page."""
        if isinstance(annotation, TextAnnotation):
            self._add_text(page, annotation)
        elif isinstance(annotation, DrawAnnotation):
            self._add_stroke(page, annotation)
        elif isinstance(annotation, ImageAnnotation):
            self._add_image(page, annotation)
        else:
            raise ExportError(f"Unsupported annotation type {type(annotation).__name__}",
                              annotation_id=getattr(annotation, "id", None))

    def _add_text(self, page: fitz.Page, ann: TextAnnotation) -> None:
        font = self.font_registry.resolve(ann.font_family, ann.font_weight)
        if font.is_embedded:
            _check_font(font.fontbuffer, ann)
        try:
            if font.is_embedded:
                page.insert_font(fontname=font.fontname, fontbuffer=font.fontbuffer)
            # Text is anchored at its baseline, font_size below the box top
            baseline = _page_point(page, ann.x, ann.y, ann.font_size)
            page.insert_text(
                baseline,
                ann.text,
                fontsize=ann.font_size,
                fontname=font.fontname,
                color=rgb_to_unit(ann.color),
                rotate=page.rotation,
            )
        except (RuntimeError, ValueError) as e:
            raise ExportError(f"Cannot embed font {ann.font_family!r}: {e}",
                              annotation_id=ann.id) from e

    def _add_stroke(self, page: fitz.Page, ann: DrawAnnotation) -> None:
        if len(ann.points) < 2:
            logger.warning("Skipping stroke %s with fewer than 2 points", ann.id)
            return
        opacity = self.highlight_opacity if ann.stroke_kind == StrokeKind.HIGHLIGHT else 1.0
        points = [_page_point(page, x, y) for x, y in ann.points]

        shape = page.new_shape()
        shape.draw_polyline(points)
        shape.finish(
            color=rgb_to_unit(ann.color),
            width=ann.stroke_width,
            lineCap=1,
            lineJoin=1,
            closePath=False,
            stroke_opacity=opacity,
        )
        shape.commit()

    def _add_image(self, page: fitz.Page, ann: ImageAnnotation) -> None:
        data = _embeddable_image(ann)
        bottom_left = _page_point(page, ann.x, ann.y, ann.height)
        top_right = _page_point(page, ann.x + ann.width, ann.y)
        rect = fitz.Rect(bottom_left, top_right).normalize()
        try:
            page.insert_image(rect, stream=data, keep_proportion=False, overlay=True)
        except (RuntimeError, ValueError) as e:
            raise ExportError(f"Cannot embed image: {e}", annotation_id=ann.id) from e


def _page_point(page: fitz.Page, x: float, y: float,
                element_height: float = 0.0) -> fitz.Point:
    """
    Map a top-left anchored position to the point PyMuPDF draws at.

    Returns the element's bottom-left corner. Page coordinates are already
    top-left and relative to the visible page, whatever the MediaBox origin,
    so only the rotation has to be undone.
    """
    return fitz.Point(x, y + element_height) * page.derotation_matrix


def _check_font(font_data: bytes, ann: TextAnnotation) -> None:
    """Reject font data FreeType cannot load before it reaches the page."""
    try:
        ImageFont.truetype(io.BytesIO(font_data), size=12)
    except OSError as e:
        raise ExportError(f"Cannot embed font {ann.font_family!r}: invalid font data",
                          annotation_id=ann.id) from e


def _embeddable_image(ann: ImageAnnotation) -> bytes:
    """Return PNG or JPEG bytes for an image annotation."""
    fmt = sniff_image_format(ann.image_data)
    if fmt in ("png", "jpeg"):
        return ann.image_data
    if fmt == "webp":
        try:
            with Image.open(io.BytesIO(ann.image_data)) as img:
                buffer = io.BytesIO()
                img.save(buffer, format="PNG")
                return buffer.getvalue()
        except (UnidentifiedImageError, OSError) as e:
            raise ExportError(f"Cannot decode WebP image: {e}", annotation_id=ann.id) from e
    raise ExportError("Unsupported image format (expected PNG, JPEG or WebP)",
                      annotation_id=ann.id)


def group_by_page(annotations: Sequence[Annotation]) -> Dict[int, List[Annotation]]:
    """Group annotations by page, keeping their order."""
    grouped: Dict[int, List[Annotation]] = {}
    for ann in annotations:
        grouped.setdefault(ann.page_index, []).append(ann)
    return grouped
