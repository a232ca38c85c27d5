from pathlib import Path
from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QAction,
    QActionGroup,
    QColorDialog,
    QFileDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QProgressDialog,
    QScrollArea,
    QToolBar,
)

from ...controllers import InteractionController
from ...core.errors import PDFDeskError
from ...core.export import ExportWorker
from ...core.session import EditorSession, Tool
from ...utils.config import EditorSettings
from ..widgets import PageCanvas

TOOL_LABELS = {
    Tool.SELECT: "Select",
    Tool.TEXT: "Text",
    Tool.DRAW: "Draw",
    Tool.HIGHLIGHT: "Highlight",
    Tool.IMAGE: "Image",
    Tool.ERASE: "Erase",
}


class EditorWindow(QMainWindow):
    """Main window: one editing session over one document."""

    def __init__(self, settings: Optional[EditorSettings] = None, file_path: Optional[str] = None):
        super().__init__()
        self.setWindowTitle("PDFDesk")

        self.session = EditorSession(settings)
        self.controller = InteractionController(self.session, self)
        self.canvas = PageCanvas(self.session, self.controller)
        self.export_worker: Optional[ExportWorker] = None
        self.file_path: Optional[str] = None

        scroll = QScrollArea()
        scroll.setWidget(self.canvas)
        scroll.setAlignment(Qt.AlignHCenter)
        self.setCentralWidget(scroll)

        self.page_label = QLabel()
        self.statusBar().addPermanentWidget(self.page_label)

        self._create_toolbar()
        self.session.viewport_changed.connect(self._update_status)
        self.session.tool_changed.connect(self._sync_tool_actions)
        self.session.session_reset.connect(self._on_session_reset)

        if file_path:
            self.load_pdf(file_path)

    def _create_toolbar(self):
        toolbar = QToolBar("Editor")
        self.addToolBar(toolbar)

        self._add_action(toolbar, "Open", self.open_pdf, "Ctrl+O")
        self._add_action(toolbar, "Save", self.save_pdf, "Ctrl+S")
        toolbar.addSeparator()

        self.tool_actions = {}
        group = QActionGroup(self)
        for tool, label in TOOL_LABELS.items():
            action = QAction(label, self, checkable=True)
            action.triggered.connect(lambda _, t=tool: self.controller.set_tool(t))
            group.addAction(action)
            toolbar.addAction(action)
            self.tool_actions[tool] = action
        self.tool_actions[Tool.SELECT].setChecked(True)

        toolbar.addSeparator()
        self._add_action(toolbar, "Add Image", self.add_image)
        self._add_action(toolbar, "Add Signature", self.add_signature)
        self._add_action(toolbar, "Colour", self.choose_color)
        toolbar.addSeparator()
        self._add_action(toolbar, "Undo", self.session.store.undo, "Ctrl+Z")
        self._add_action(toolbar, "Redo", self.session.store.redo, "Ctrl+Y")
        toolbar.addSeparator()
        self._add_action(toolbar, "Zoom Out", self.session.zoom_out, "Ctrl+-")
        self._add_action(toolbar, "Zoom In", self.session.zoom_in, "Ctrl++")
        self._add_action(toolbar, "Previous", lambda: self._go(-1), "PgUp")
        self._add_action(toolbar, "Next", lambda: self._go(1), "PgDown")

    def _add_action(self, toolbar, label, slot, shortcut=None):
        action = QAction(label, self)
        if shortcut:
            action.setShortcut(shortcut)
        action.triggered.connect(lambda _=False: slot())
        toolbar.addAction(action)
        return action

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def open_pdf(self):
        file_path, _ = QFileDialog.getOpenFileName(self, "Open PDF", "", "PDF Files (*.pdf)")
        if file_path:
            self.load_pdf(file_path)

    def load_pdf(self, file_path: str) -> bool:
        try:
            data = Path(file_path).read_bytes()
            self.session.open_document(data)
        except (OSError, PDFDeskError) as e:
            QMessageBox.critical(self, "Failed to load", f"Could not open {file_path}:\n{e}")
            return False
        self.file_path = file_path
        self.setWindowTitle(f"PDFDesk - {Path(file_path).name}")
        self.canvas.refresh()
        return True

    def save_pdf(self):
        """Export annotations to a new PDF using a background thread."""
        if self.session.document is None:
            QMessageBox.warning(self, "No PDF", "No PDF document is currently loaded.")
            return
        if self.session.store.count() == 0:
            QMessageBox.information(self, "No Annotations", "There are no annotations to save.")
            return

        default_path = str(Path(self.file_path).with_name(Path(self.file_path).stem + "-edited.pdf"))
        output_path, _ = QFileDialog.getSaveFileName(self, "Save Edited PDF", default_path,
                                                     "PDF Files (*.pdf)")
        if not output_path:
            return

        progress = QProgressDialog("Preparing to export annotations...", None, 0, 100, self)
        progress.setWindowTitle("Saving PDF")
        progress.setWindowModality(Qt.WindowModal)
        progress.setMinimumDuration(0)
        progress.setAutoClose(False)
        progress.show()

        self.export_worker = ExportWorker(self.session)

        def on_page_progress(current, total):
            if total > 0:
                progress.setValue(int(current / total * 100))
                progress.setLabelText(f"Processing annotations: {current}/{total} pages")

        def on_exported(data):
            try:
                Path(output_path).write_bytes(data)
            except OSError as e:
                QMessageBox.critical(self, "Save Failed", f"Could not write {output_path}:\n{e}")

        def on_finished(success, message):
            progress.close()
            if success:
                self.statusBar().showMessage(message, 5000)
            else:
                QMessageBox.critical(self, "Save Failed", message)
            self.export_worker.deleteLater()
            self.export_worker = None

        self.export_worker.page_progress.connect(on_page_progress)
        self.export_worker.exported.connect(on_exported)
        self.export_worker.finished.connect(on_finished)
        self.statusBar().showMessage("Exporting annotations...")
        self.export_worker.start()

    # ------------------------------------------------------------------
    # Upload flows
    # ------------------------------------------------------------------

    def _pick_image(self, title: str) -> Optional[bytes]:
        file_path, _ = QFileDialog.getOpenFileName(
            self, title, "", "Images (*.png *.jpg *.jpeg *.webp)")
        if not file_path:
            return None
        try:
            return Path(file_path).read_bytes()
        except OSError as e:
            QMessageBox.critical(self, title, f"Could not read {file_path}:\n{e}")
            return None

    def add_image(self):
        if self.session.document is None:
            return
        data = self._pick_image("Add Image")
        if data is None:
            return
        try:
            self.controller.place_image(data)
        except PDFDeskError as e:
            QMessageBox.critical(self, "Add Image", str(e))

    def add_signature(self):
        if self.session.document is None:
            return
        data = self._pick_image("Add Signature")
        if data is None:
            return
        try:
            self.controller.place_signature(data)
        except PDFDeskError as e:
            QMessageBox.critical(self, "Add Signature", str(e))

    def choose_color(self):
        color = QColorDialog.getColor(parent=self)
        if color.isValid():
            self.session.color = (color.red(), color.green(), color.blue())

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def _go(self, delta: int):
        self.session.set_current_page(self.session.current_page + delta)

    def _update_status(self):
        document = self.session.document
        if document is None:
            self.page_label.clear()
            return
        self.page_label.setText(
            f"Page {self.session.current_page + 1} of {document.page_count()}"
            f"  |  {int(self.session.zoom * 100)}%"
        )

    def _on_session_reset(self):
        self._sync_tool_actions(self.session.active_tool)
        self._update_status()

    def _sync_tool_actions(self, tool):
        self.tool_actions[tool].setChecked(True)

    def closeEvent(self, event):
        if self.session.store.count() == 0:
            event.accept()
            return
        # Edits are never saved implicitly
        reply = QMessageBox.question(
            self, "Discard Edits",
            "Unsaved edits will be lost. Close anyway?",
            QMessageBox.Yes | QMessageBox.No, QMessageBox.No,
        )
        if reply == QMessageBox.Yes:
            self.session.reset()
            event.accept()
        else:
            event.ignore()
