"""
Builds the three layers shown for a page.

1. the rasterised PDF page at ``zoom * render_scale``
2. one transparent stroke layer, repainted from scratch every time
3. overlay items for text and image annotations, positioned in canvas pixels
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from PyQt5.QtCore import QObject, QPointF, QRectF, Qt, QTimer, pyqtSignal
from PyQt5.QtGui import QColor, QFont, QImage, QPainter, QPainterPath, QPen

from ..annotations import (
    Annotation,
    AnnotationKind,
    DrawAnnotation,
    FontWeight,
    StrokeKind,
    TextAnnotation,
)
from ..geometry import CoordinateTransform
from ..session import EditorSession

logger = logging.getLogger(__name__)

# Logical font families mapped to families Qt can resolve on any platform
QT_FONT_FAMILIES = {
    "Helvetica": "Helvetica",
    "Arial": "Arial",
    "Verdana": "Verdana",
    "Times-Roman": "Times",
    "Georgia": "Georgia",
    "Courier": "Courier",
}


@dataclass
class OverlayItem:
    """A text or image annotation placed on the canvas."""

    annotation_id: str
    kind: AnnotationKind
    rect: Tuple[float, float, float, float]  # x, y, width, height in canvas pixels
    text: Optional[str] = None
    font_size: float = 0.0  # canvas pixels
    font_family: str = "Helvetica"
    bold: bool = False
    color: Tuple[int, int, int] = (0, 0, 0)
    editing: bool = False
    image_data: bytes = field(default=b"", repr=False)

    def contains(self, x: float, y: float) -> bool:
        rx, ry, rw, rh = self.rect
        return rx <= x <= rx + rw and ry <= y <= ry + rh


@dataclass
class PageComposition:
    """Everything needed to show one page."""

    page_index: int
    transform: CoordinateTransform
    base: QImage
    strokes: QImage
    overlay: List[OverlayItem]

    @property
    def size(self) -> Tuple[int, int]:
        return self.base.width(), self.base.height()

    def overlay_item_at(self, x: float, y: float) -> Optional[OverlayItem]:
        """Topmost overlay item at a canvas pixel position."""
        for item in reversed(self.overlay):
            if item.contains(x, y):
                return item
        return None

    def flatten(self) -> QImage:
        """Paint all three layers into a single image."""
        result = self.base.convertToFormat(QImage.Format_ARGB32_Premultiplied)
        painter = QPainter(result)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.setRenderHint(QPainter.TextAntialiasing)
        painter.drawImage(0, 0, self.strokes)
        for item in self.overlay:
            _paint_overlay_item(painter, item)
        painter.end()
        return result


class RenderCompositor:
    """Composes pages of a session; holds no state of its own."""

    def __init__(self, session: EditorSession):
        self.session = session

    def compose(self, page_index: Optional[int] = None,
                pending_stroke=None) -> PageComposition:
        """
        Compose a page at the session's current zoom.

        Args:
            page_index: Page to compose, defaults to the current page
            pending_stroke: Stroke still being drawn, painted on top

        Returns:
            PageComposition with base raster, stroke layer and overlay
        """
        document = self.session.document
        if document is None:
            raise RuntimeError("No document is loaded")
        if page_index is None:
            page_index = self.session.current_page

        transform = self.session.transform()
        base = document.render_page_to_raster(page_index, transform.factor)
        annotations = self.session.store.list_for_page(page_index)

        strokes = self.render_strokes(
            base.width(), base.height(), transform,
            [a for a in annotations if isinstance(a, DrawAnnotation)],
            pending_stroke,
        )
        overlay = self.build_overlay(annotations, transform)
        return PageComposition(page_index, transform, base, strokes, overlay)

    def render_strokes(self, width: int, height: int, transform: CoordinateTransform,
                       strokes: Sequence[DrawAnnotation], pending_stroke=None) -> QImage:
        """Paint every stroke of a page onto a fresh transparent image."""
        image = QImage(width, height, QImage.Format_ARGB32_Premultiplied)
        image.fill(Qt.transparent)

        painter = QPainter(image)
        painter.setRenderHint(QPainter.Antialiasing)
        for stroke in strokes:
            self._paint_stroke(painter, transform, stroke.points, stroke.color,
                               stroke.stroke_width, stroke.stroke_kind)
        if pending_stroke is not None:
            self._paint_stroke(painter, transform, pending_stroke.points,
                               pending_stroke.color, pending_stroke.stroke_width,
                               pending_stroke.stroke_kind)
        painter.end()
        return image

    def _paint_stroke(self, painter: QPainter, transform: CoordinateTransform,
                      points, color, stroke_width: float, stroke_kind: StrokeKind):
        if len(points) < 2:
            return

        opacity = 1.0
        if stroke_kind == StrokeKind.HIGHLIGHT:
            opacity = self.session.settings.highlight_opacity
        painter.setOpacity(opacity)

        pen = QPen(QColor(*color), transform.scale_length(stroke_width))
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
        painter.setPen(pen)
        painter.setBrush(Qt.NoBrush)

        factor = transform.factor
        path = QPainterPath()
        first = points[0]
        path.moveTo(first[0] * factor, first[1] * factor)
        for point in points[1:]:
            path.lineTo(point[0] * factor, point[1] * factor)
        painter.drawPath(path)
        painter.setOpacity(1.0)

    def build_overlay(self, annotations: Sequence[Annotation],
                      transform: CoordinateTransform) -> List[OverlayItem]:
        """Position text and image annotations in canvas pixels, in z-order."""
        items = []
        for ann in annotations:
            if ann.kind is AnnotationKind.DRAWING:
                continue
            x, y = transform.pdf_to_screen(ann.x, ann.y)
            width = transform.scale_length(ann.width)
            height = transform.scale_length(ann.height)
            if isinstance(ann, TextAnnotation):
                items.append(OverlayItem(
                    annotation_id=ann.id,
                    kind=ann.kind,
                    rect=(x, y, width, height),
                    text=ann.text,
                    font_size=transform.scale_length(ann.font_size),
                    font_family=ann.font_family,
                    bold=ann.font_weight == FontWeight.BOLD,
                    color=ann.color,
                    editing=ann.id == self.session.editing_id,
                ))
            else:
                items.append(OverlayItem(
                    annotation_id=ann.id,
                    kind=ann.kind,
                    rect=(x, y, width, height),
                    image_data=ann.image_data,
                ))
        return items


def _paint_overlay_item(painter: QPainter, item: OverlayItem) -> None:
    x, y, width, height = item.rect
    if item.kind is AnnotationKind.TEXT:
        font = QFont(QT_FONT_FAMILIES.get(item.font_family, "Helvetica"))
        font.setPixelSize(max(1, int(round(item.font_size))))
        font.setBold(item.bold)
        painter.setFont(font)
        painter.setPen(QColor(*item.color))
        # drawText anchors at the baseline
        painter.drawText(QPointF(x, y + item.font_size), item.text or "")
        if item.editing:
            painter.setPen(QPen(QColor(59, 130, 246), 1, Qt.DashLine))
            painter.setBrush(Qt.NoBrush)
            painter.drawRect(QRectF(x, y, width, height))
        return

    image = QImage.fromData(item.image_data)
    if image.isNull():
        logger.warning("Skipping overlay image %s: cannot decode", item.annotation_id)
        return
    painter.drawImage(QRectF(x, y, width, height), image)


class FrameThrottle(QObject):
    """
    Coalesces redraw requests to at most ``max_fps`` frames per second.

    Requests arriving while a frame is already scheduled are folded into it.
    """

    frame = pyqtSignal()

    def __init__(self, max_fps: int = 60, parent: QObject = None):
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(1, int(1000 / max_fps)))
        self._timer.timeout.connect(self.frame.emit)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    @property
    def pending(self) -> bool:
        return self._timer.isActive()

    def request(self) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def flush(self) -> None:
        """Emit a scheduled frame immediately."""
        if self._timer.isActive():
            self._timer.stop()
            self.frame.emit()
