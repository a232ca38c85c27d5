from PyQt5.QtCore import QPoint, Qt, QTimer
from PyQt5.QtGui import QPixmap
from PyQt5.QtWidgets import QInputDialog, QLabel, QWidget

from ...controllers import InteractionController
from ...core.geometry import CanvasOrigin
from ...core.render import FrameThrottle, RenderCompositor
from ...core.session import EditorSession, Tool

CURSORS = {
    Tool.SELECT: Qt.ArrowCursor,
    Tool.TEXT: Qt.IBeamCursor,
    Tool.DRAW: Qt.CrossCursor,
    Tool.HIGHLIGHT: Qt.CrossCursor,
    Tool.IMAGE: Qt.DragCopyCursor,
    Tool.ERASE: Qt.PointingHandCursor,
}


class PageCanvas(QLabel):
    """Shows the current page of a session and forwards mouse input."""

    def __init__(self, session: EditorSession, controller: InteractionController,
                 parent: QWidget = None):
        super().__init__(parent)
        self.session = session
        self.controller = controller
        self.compositor = RenderCompositor(session)
        self.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        self.setMouseTracking(False)

        # Pointer moves only schedule a frame; bursts fold into one redraw
        self.throttle = FrameThrottle(session.settings.max_redraw_fps, self)
        self.throttle.frame.connect(self.refresh)

        session.store.annotations_changed.connect(self.throttle.request)
        session.viewport_changed.connect(self.refresh)
        session.editing_changed.connect(self._on_editing_changed)
        session.tool_changed.connect(self._update_cursor)
        session.session_reset.connect(self._on_session_reset)
        controller.pending_stroke_changed.connect(self.throttle.request)

        self._update_cursor(session.active_tool)

    def refresh(self):
        """Recompose and show the current page."""
        if self.session.document is None:
            self.clear()
            return
        composition = self.compositor.compose(pending_stroke=self.controller.pending_stroke)
        self.setPixmap(QPixmap.fromImage(composition.flatten()))
        self.setFixedSize(*composition.size)

    def _origin(self) -> CanvasOrigin:
        top_left = self.mapToGlobal(QPoint(0, 0))
        return CanvasOrigin(top_left.x(), top_left.y())

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            pos = event.globalPos()
            self.controller.pointer_down(pos.x(), pos.y(), self._origin())
            self.throttle.flush()

    def mouseMoveEvent(self, event):
        if event.buttons() & Qt.LeftButton:
            pos = event.globalPos()
            self.controller.pointer_move(pos.x(), pos.y(), self._origin())

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            pos = event.globalPos()
            self.controller.pointer_up(pos.x(), pos.y(), self._origin())
            self.throttle.flush()

    def mouseDoubleClickEvent(self, event):
        if event.button() != Qt.LeftButton:
            return
        pos = event.globalPos()
        self.controller.double_click(pos.x(), pos.y(), self._origin())

    def leaveEvent(self, event):
        self.controller.pointer_leave()
        super().leaveEvent(event)

    def _on_editing_changed(self, annotation_id):
        self.refresh()
        if annotation_id is not None:
            # Let the click that started editing finish before the dialog runs
            QTimer.singleShot(0, self._prompt_for_text)

    def _prompt_for_text(self):
        annotation_id = self.session.editing_id
        if annotation_id is None:
            return
        annotation = self.session.store.get(annotation_id)
        text, accepted = QInputDialog.getText(self, "Edit Text", "Text:", text=annotation.text)
        self.controller.finish_editing(text if accepted else None)

    def _on_session_reset(self):
        self._update_cursor(self.session.active_tool)
        self.refresh()

    def _update_cursor(self, tool):
        self.setCursor(CURSORS.get(tool, Qt.ArrowCursor))
