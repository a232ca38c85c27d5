"""
Editing session context.

Everything that used to be ambient editor state (document, zoom, current
page, active tool, text being edited) lives on one object that is handed
to the interaction controller and the compositor.
"""
import logging
from enum import Enum
from typing import Optional, Tuple

from PyQt5.QtCore import QObject, pyqtSignal

from ..utils.config import EditorSettings
from .annotations import AnnotationStore, TextAnnotation
from .document import PDFDocumentModel
from .geometry import CoordinateTransform

logger = logging.getLogger(__name__)


class Tool(Enum):
    SELECT = "select"
    TEXT = "text"
    DRAW = "draw"
    HIGHLIGHT = "highlight"
    IMAGE = "image"
    ERASE = "erase"


class EditorSession(QObject):
    """State of one editing session over one document."""

    # Signals
    viewport_changed = pyqtSignal()  # zoom or current page changed
    tool_changed = pyqtSignal(object)  # new Tool
    editing_changed = pyqtSignal(object)  # id of text being edited, or None
    session_reset = pyqtSignal()

    def __init__(self, settings: Optional[EditorSettings] = None, parent: QObject = None):
        super().__init__(parent)
        self.settings = settings or EditorSettings()
        self.document: Optional[PDFDocumentModel] = None
        self.store = AnnotationStore(history_size=self.settings.history_size)

        self._zoom = self.settings.clamp_zoom(self.settings.zoom)
        self._current_page = 0
        self._active_tool = Tool.SELECT
        self._editing_id: Optional[str] = None

        # Tool settings
        self.color: Tuple[int, int, int] = tuple(self.settings.default_color)
        self.brush_size: float = self.settings.brush_size
        self.font_size: float = self.settings.font_size
        self.font_family: str = self.settings.font_family

        # Bumped on every reset so stale async results can be recognised
        self.generation = 0

        self.store.annotations_changed.connect(self._drop_stale_editing)

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def open_document(self, data: bytes, password: Optional[str] = None) -> PDFDocumentModel:
        """
        Load a document, replacing the current one.

        On failure the previous document and annotations are left untouched.

        Raises:
            ParseError: If the bytes are not a usable PDF
        """
        document = PDFDocumentModel.load(data, password)
        self.reset()
        self.document = document
        self.viewport_changed.emit()
        return document

    def reset(self) -> None:
        """Discard the document and all pending annotations."""
        if self.document is not None:
            self.document.close()
            self.document = None
        self.store.clear()
        self._editing_id = None
        self._current_page = 0
        self._active_tool = Tool.SELECT
        self.generation += 1
        logger.debug("Session reset (generation %d)", self.generation)
        self.session_reset.emit()

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    @property
    def zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float) -> float:
        """
        Set the zoom factor, clamped to the configured range.

        Returns:
            The zoom actually applied
        """
        zoom = self.settings.clamp_zoom(zoom)
        if zoom != self._zoom:
            self._zoom = zoom
            self.viewport_changed.emit()
        return zoom

    def zoom_in(self) -> float:
        return self.set_zoom(self._zoom + self.settings.zoom_step)

    def zoom_out(self) -> float:
        return self.set_zoom(self._zoom - self.settings.zoom_step)

    @property
    def current_page(self) -> int:
        return self._current_page

    def set_current_page(self, page_index: int) -> None:
        if self.document is not None:
            page_index = max(0, min(page_index, self.document.page_count() - 1))
        if page_index != self._current_page:
            self._current_page = page_index
            self.stop_editing()
            self.viewport_changed.emit()

    def transform(self) -> CoordinateTransform:
        """Transform for the current zoom level."""
        return CoordinateTransform(self._zoom, self.settings.render_scale)

    # ------------------------------------------------------------------
    # Tools and edit mode
    # ------------------------------------------------------------------

    @property
    def active_tool(self) -> Tool:
        return self._active_tool

    def set_tool(self, tool: Tool) -> None:
        if not isinstance(tool, Tool):
            tool = Tool(tool)
        if tool != self._active_tool:
            self._active_tool = tool
            self.tool_changed.emit(tool)

    @property
    def editing_id(self) -> Optional[str]:
        return self._editing_id

    def start_editing(self, annotation_id: str) -> None:
        """
        Put a text annotation into edit mode.

        Any other annotation being edited leaves edit mode.
        """
        annotation = self.store.get(annotation_id)
        if not isinstance(annotation, TextAnnotation):
            raise ValueError(f"Only text annotations can be edited: {annotation_id}")
        if annotation_id != self._editing_id:
            self._editing_id = annotation_id
            self.editing_changed.emit(annotation_id)

    def stop_editing(self) -> None:
        if self._editing_id is not None:
            self._editing_id = None
            self.editing_changed.emit(None)

    def is_current(self, generation: int) -> bool:
        """Check whether a result produced for ``generation`` is still wanted."""
        return generation == self.generation

    def _drop_stale_editing(self) -> None:
        if self._editing_id is not None and self.store.get(self._editing_id) is None:
            self.stop_editing()
