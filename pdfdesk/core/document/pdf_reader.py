"""
PDF document loading and rendering.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple, Type

import fitz  # PyMuPDF
from PyQt5.QtGui import QImage

from ..errors import DocumentError, ParseError, PDFDeskError
from .models import PageDescriptor

logger = logging.getLogger(__name__)


def open_pdf(data: bytes, password: Optional[str] = None,
             error_cls: Type[PDFDeskError] = ParseError) -> fitz.Document:
    """
    Parse PDF bytes into a fresh fitz document.

    The caller's buffer is copied so nothing done to the returned
    document can reach it.

    Args:
        data: Raw PDF bytes
        password: Password for encrypted documents
        error_cls: Error type raised when the bytes cannot be used

    Returns:
        Open fitz.Document, owned by the caller
    """
    if not data:
        raise error_cls("Failed to load PDF: the file is empty")

    try:
        doc = fitz.open(stream=bytes(data), filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise error_cls(f"Failed to load PDF: {e}") from e

    if not doc.is_pdf or doc.page_count == 0:
        doc.close()
        raise error_cls("Failed to load PDF: the file contains no pages")

    if doc.needs_pass:
        if password is None:
            doc.close()
            raise error_cls("Failed to load PDF: the document is password protected")
        if not doc.authenticate(password):
            doc.close()
            raise error_cls("Failed to load PDF: incorrect password")

    return doc


class PDFDocumentModel:
    """Handles PDF document loading, page lookup and rasterised previews."""

    def __init__(self, doc: fitz.Document, source_bytes: bytes, max_cache_size: int = 12,
                 scales_per_page: int = 3):
        self.doc = doc
        self._source_bytes = source_bytes
        self._pages: List[PageDescriptor] = [
            self._describe(index) for index in range(doc.page_count)
        ]

        # Rendering cache, keyed by (page index, scale)
        self._raster_cache: "OrderedDict[Tuple[int, float], QImage]" = OrderedDict()
        self._max_cache_size = max_cache_size
        self._scales_per_page = scales_per_page

    @classmethod
    def load(cls, data: bytes, password: Optional[str] = None) -> "PDFDocumentModel":
        """
        Load a document from bytes.

        Args:
            data: Raw PDF bytes
            password: Password when the document is encrypted

        Returns:
            Loaded document model

        Raises:
            ParseError: If the bytes are not a usable PDF
        """
        source = bytes(data) if data else b""
        doc = open_pdf(source, password)
        model = cls(doc, source)
        logger.info("Loaded PDF with %d pages", model.page_count())
        return model

    @property
    def source_bytes(self) -> bytes:
        """The original, unmodified document bytes."""
        return self._source_bytes

    def _describe(self, index: int) -> PageDescriptor:
        page = self.doc.load_page(index)
        rect = page.rect
        return PageDescriptor(index=index, width_pt=rect.width,
                              height_pt=rect.height, rotation=page.rotation)

    def page_count(self) -> int:
        """Get the total number of pages."""
        return len(self._pages)

    def get_page(self, page_index: int) -> PageDescriptor:
        """
        Get the descriptor of a page.

        Raises:
            DocumentError: If the index is out of range
        """
        if not 0 <= page_index < len(self._pages):
            raise DocumentError(
                f"Page {page_index + 1} does not exist (document has {len(self._pages)} pages)"
            )
        return self._pages[page_index]

    def pages(self) -> List[PageDescriptor]:
        return list(self._pages)

    def render_page_to_raster(self, page_index: int, scale: float,
                              use_cache: bool = True) -> QImage:
        """
        Render a page to a QImage.

        Args:
            page_index: 0-based index of the page
            scale: Pixels per point (zoom times render scale)
            use_cache: Whether to use/store in cache

        Returns:
            RGB QImage of the page
        """
        self.get_page(page_index)
        cache_key = (page_index, round(scale, 4))

        if use_cache and cache_key in self._raster_cache:
            self._raster_cache.move_to_end(cache_key)
            return self._raster_cache[cache_key]

        page = self.doc.load_page(page_index)
        mat = fitz.Matrix(scale, scale)
        pix = page.get_pixmap(matrix=mat, alpha=False)

        # Copy so the image outlives the pixmap's sample buffer
        img = QImage(
            pix.samples, pix.width, pix.height, pix.stride, QImage.Format_RGB888
        ).copy()
        logger.debug("Rendered page %d at scale %.2f (%dx%d)",
                     page_index, scale, pix.width, pix.height)

        if use_cache:
            self._store_raster(cache_key, img)

        return img

    def _store_raster(self, cache_key: Tuple[int, float], img: QImage) -> None:
        self._raster_cache[cache_key] = img
        # Least recently used entries come first
        same_page = [key for key in self._raster_cache if key[0] == cache_key[0]]
        for key in same_page[:-self._scales_per_page]:
            del self._raster_cache[key]
        while len(self._raster_cache) > self._max_cache_size:
            self._raster_cache.popitem(last=False)

    def extract_text(self, page_index: int) -> str:
        """Extract plain text from a page."""
        self.get_page(page_index)
        return self.doc.load_page(page_index).get_text()

    def extract_words(self, page_index: int) -> List[Tuple]:
        """Extract (x0, y0, x1, y1, word, block, line, word_no) tuples."""
        self.get_page(page_index)
        return self.doc.load_page(page_index).get_text("words", sort=True)

    def metadata(self) -> Dict[str, str]:
        return dict(self.doc.metadata or {})

    def clear_cache(self) -> None:
        self._raster_cache.clear()

    def close(self) -> None:
        """Close the document and drop cached rasters."""
        self._raster_cache.clear()
        if self.doc is not None:
            self.doc.close()
            self.doc = None
