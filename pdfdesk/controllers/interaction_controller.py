"""
Controller mapping pointer input to annotation store changes.

Each tool has its own handler class; the controller only routes events to
the handler of the active tool.
"""
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Type

from PIL import Image, UnidentifiedImageError
from PyQt5.QtCore import QObject, pyqtSignal

from ..core.annotations import (
    Annotation,
    AnnotationKind,
    DrawAnnotation,
    StrokeKind,
    TextAnnotation,
)
from ..core.errors import ParseError
from ..core.geometry import CanvasOrigin
from ..core.session import EditorSession, Tool

logger = logging.getLogger(__name__)


@dataclass
class PendingStroke:
    """A stroke that is still being drawn."""

    stroke_kind: StrokeKind
    color: Tuple[int, int, int]
    stroke_width: float
    points: List[Tuple[float, float]] = field(default_factory=list)


class ToolHandler:
    """Base handler; every pointer event is ignored unless overridden."""

    tool: Tool = None

    def __init__(self, controller: "InteractionController"):
        self.controller = controller
        self.session = controller.session
        self.store = controller.session.store

    def pointer_down(self, x: float, y: float) -> None:
        pass

    def pointer_move(self, x: float, y: float) -> None:
        pass

    def pointer_up(self, x: float, y: float) -> None:
        pass

    def cancel(self) -> None:
        """Drop any gesture in progress, e.g. when switching tools."""


class SelectHandler(ToolHandler):
    """Drags text and image annotations."""

    tool = Tool.SELECT

    def __init__(self, controller):
        super().__init__(controller)
        self.dragging_id: Optional[str] = None
        self.drag_offset: Tuple[float, float] = (0.0, 0.0)
        self._batch_open = False

    def pointer_down(self, x, y):
        target = self.controller.overlay_annotation_at(x, y)
        if target is None or target.id != self.session.editing_id:
            self.session.stop_editing()
        if target is None:
            return
        self.dragging_id = target.id
        self.drag_offset = (x - target.x, y - target.y)

    def pointer_move(self, x, y):
        if self.dragging_id is None:
            return
        # One drag is one undo step
        if not self._batch_open:
            self.store.begin_batch()
            self._batch_open = True
        self.store.update(self.dragging_id,
                          x=x - self.drag_offset[0],
                          y=y - self.drag_offset[1])

    def pointer_up(self, x, y):
        self.cancel()

    def cancel(self):
        if self._batch_open:
            self.store.end_batch()
            self._batch_open = False
        self.dragging_id = None


class TextHandler(ToolHandler):
    """Places a new text box and switches back to select."""

    tool = Tool.TEXT

    def pointer_down(self, x, y):
        # Clicking an existing text box opens it instead of stacking a new one
        existing = self.controller.text_annotation_at(x, y)
        if existing is not None:
            self.session.start_editing(existing.id)
            self.session.set_tool(Tool.SELECT)
            return

        settings = self.session.settings
        annotation_id = self.store.add_text(
            self.session.current_page, x, y, settings.placeholder_text,
            font_size=self.session.font_size,
            color=self.session.color,
            font_family=self.session.font_family,
        )
        self.session.start_editing(annotation_id)
        self.session.set_tool(Tool.SELECT)


class StrokeHandler(ToolHandler):
    """Accumulates pointer positions into a pen stroke."""

    tool = Tool.DRAW
    stroke_kind = StrokeKind.PEN

    def pointer_down(self, x, y):
        self.controller.pending_stroke = PendingStroke(
            stroke_kind=self.stroke_kind,
            color=self.session.color,
            stroke_width=self.session.brush_size,
            points=[(x, y)],
        )
        self.controller.pending_stroke_changed.emit()

    def pointer_move(self, x, y):
        stroke = self.controller.pending_stroke
        if stroke is None:
            return
        stroke.points.append((x, y))
        self.controller.pending_stroke_changed.emit()

    def pointer_up(self, x, y):
        stroke = self.controller.pending_stroke
        self.controller.pending_stroke = None
        if stroke is None:
            return
        # A single click leaves no mark
        if len(stroke.points) >= 2:
            self.store.add_drawing(
                self.session.current_page, stroke.points,
                color=stroke.color, stroke_width=stroke.stroke_width,
                stroke_kind=stroke.stroke_kind,
            )
        else:
            logger.debug("Discarded stroke with %d point(s)", len(stroke.points))
        self.controller.pending_stroke_changed.emit()

    def cancel(self):
        if self.controller.pending_stroke is not None:
            self.controller.pending_stroke = None
            self.controller.pending_stroke_changed.emit()


class HighlightHandler(StrokeHandler):
    tool = Tool.HIGHLIGHT
    stroke_kind = StrokeKind.HIGHLIGHT


class ImageHandler(ToolHandler):
    """Images are placed through the upload flow, never by clicking."""

    tool = Tool.IMAGE


class EraseHandler(ToolHandler):
    """Deletes the topmost stroke that has a point near the click."""

    tool = Tool.ERASE

    def pointer_down(self, x, y):
        threshold = self.session.settings.erase_threshold
        for ann in reversed(self.store.list_for_page(self.session.current_page)):
            if isinstance(ann, DrawAnnotation) and ann.is_near(x, y, threshold):
                self.store.remove(ann.id)
                return


HANDLERS: Tuple[Type[ToolHandler], ...] = (
    SelectHandler,
    TextHandler,
    StrokeHandler,
    HighlightHandler,
    ImageHandler,
    EraseHandler,
)


class InteractionController(QObject):
    """Routes pointer events of one session to the active tool's handler."""

    # Signals
    pending_stroke_changed = pyqtSignal()

    def __init__(self, session: EditorSession, parent: QObject = None,
                 handlers: Tuple[Type[ToolHandler], ...] = HANDLERS):
        super().__init__(parent)
        self.session = session
        self.pending_stroke: Optional[PendingStroke] = None

        self._handlers: Dict[Tool, ToolHandler] = {
            handler_cls.tool: handler_cls(self) for handler_cls in handlers
        }
        missing = [tool.value for tool in Tool if tool not in self._handlers]
        if missing:
            raise TypeError(f"No handler registered for tools: {', '.join(missing)}")

        self._current = self._handlers[session.active_tool]
        session.tool_changed.connect(self._on_tool_changed)
        session.session_reset.connect(self._on_session_reset)

    # ------------------------------------------------------------------
    # Pointer events (client coordinates)
    # ------------------------------------------------------------------

    def pointer_down(self, client_x: float, client_y: float,
                     origin: CanvasOrigin = CanvasOrigin()) -> None:
        if self.session.document is None:
            return
        self._current.pointer_down(*self.to_page(client_x, client_y, origin))

    def pointer_move(self, client_x: float, client_y: float,
                     origin: CanvasOrigin = CanvasOrigin()) -> None:
        if self.session.document is None:
            return
        self._current.pointer_move(*self.to_page(client_x, client_y, origin))

    def pointer_up(self, client_x: float, client_y: float,
                   origin: CanvasOrigin = CanvasOrigin()) -> None:
        if self.session.document is None:
            return
        self._current.pointer_up(*self.to_page(client_x, client_y, origin))

    def pointer_leave(self) -> None:
        """Treat leaving the canvas like releasing the button at the last point."""
        if self.pending_stroke is not None and self.pending_stroke.points:
            self._current.pointer_up(*self.pending_stroke.points[-1])
        else:
            self._current.cancel()

    def double_click(self, client_x: float, client_y: float,
                     origin: CanvasOrigin = CanvasOrigin()) -> Optional[str]:
        """
        Open the text annotation under the pointer for editing.

        Never creates an annotation, whatever tool is active.

        Returns:
            Id of the annotation now being edited, or None
        """
        if self.session.document is None:
            return None
        x, y = self.to_page(client_x, client_y, origin)
        target = self.text_annotation_at(x, y)
        if target is None:
            return None
        self.session.start_editing(target.id)
        return target.id

    def to_page(self, client_x: float, client_y: float,
                origin: CanvasOrigin) -> Tuple[float, float]:
        return self.session.transform().screen_to_pdf(client_x, client_y, origin)

    # ------------------------------------------------------------------
    # Editing and upload flows
    # ------------------------------------------------------------------

    def set_tool(self, tool: Tool) -> None:
        self.session.set_tool(tool)

    def finish_editing(self, text: Optional[str] = None) -> None:
        """
        Leave text edit mode, optionally storing the new text.

        Empty text removes the annotation.
        """
        annotation_id = self.session.editing_id
        if annotation_id is None:
            return
        self.session.stop_editing()
        if text is None:
            return
        if text.strip():
            self.session.store.update(annotation_id, text=text)
        else:
            self.session.store.remove(annotation_id)

    def place_image(self, image_data: bytes) -> str:
        """
        Insert an uploaded image at the default anchor of the current page.

        Raises:
            ParseError: If the image cannot be decoded
        """
        width, height = _image_size(image_data)
        limit = self.session.settings.max_image_size
        width, height = _fit_within(width, height, limit, limit)
        x, y = self.session.settings.image_anchor
        return self.session.store.add_image(
            self.session.current_page, x, y, width, height, image_data
        )

    def place_signature(self, image_data: bytes) -> str:
        """Insert a signature image, sized to the default signature box."""
        width, height = _image_size(image_data)
        box_w, box_h = self.session.settings.signature_size
        width, height = _fit_within(width, height, box_w, box_h, upscale=True)
        x, y = self.session.settings.image_anchor
        return self.session.store.add_signature(
            self.session.current_page, x, y, width, height, image_data
        )

    def delete_annotation(self, annotation_id: str) -> bool:
        return self.session.store.remove(annotation_id)

    # ------------------------------------------------------------------
    # Hit-testing
    # ------------------------------------------------------------------

    def overlay_annotation_at(self, x: float, y: float) -> Optional[Annotation]:
        """
        Find the topmost text, image or signature annotation at a page point.

        All overlay kinds share one z-order (insertion order), so the most
        recently added one wins regardless of kind.
        """
        for ann in reversed(self.session.store.list_for_page(self.session.current_page)):
            if ann.kind is AnnotationKind.DRAWING:
                continue
            if ann.contains(x, y):
                return ann
        return None

    def text_annotation_at(self, x: float, y: float) -> Optional[TextAnnotation]:
        for ann in reversed(self.session.store.list_for_page(self.session.current_page)):
            if isinstance(ann, TextAnnotation) and ann.contains(x, y):
                return ann
        return None

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def _on_tool_changed(self, tool: Tool) -> None:
        self._current.cancel()
        self._current = self._handlers[tool]

    def _on_session_reset(self) -> None:
        self._current.cancel()
        self._current = self._handlers[self.session.active_tool]


def _image_size(image_data: bytes) -> Tuple[int, int]:
    try:
        with Image.open(io.BytesIO(image_data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        raise ParseError(f"Could not decode image: {e}") from e


def _fit_within(width: float, height: float, max_width: float, max_height: float,
                upscale: bool = False) -> Tuple[float, float]:
    """Scale (width, height) to fit the box, keeping the aspect ratio."""
    scale = min(max_width / width, max_height / height)
    if scale >= 1 and not upscale:
        return float(width), float(height)
    return width * scale, height * scale
