"""
Background export so large documents do not freeze the UI.
"""
import logging
from typing import Optional

from PyQt5.QtCore import QThread, pyqtSignal

from ..errors import PDFDeskError
from ..session import EditorSession
from .fonts import FontRegistry
from .pdf_exporter import PDFExporter

logger = logging.getLogger(__name__)


class ExportWorker(QThread):
    """
    Worker thread committing a snapshot of the session's annotations.

    The result is dropped if the session was reset (new document or
    navigation away) while the export was running.
    """

    # Signals
    finished = pyqtSignal(bool, str)  # success, message
    exported = pyqtSignal(object)  # output bytes
    page_progress = pyqtSignal(int, int)  # current, total pages

    def __init__(self, session: EditorSession, font_registry: Optional[FontRegistry] = None):
        super().__init__()
        if session.document is None:
            raise ValueError("No document is loaded")
        self.session = session
        self.generation = session.generation
        self.source_bytes = session.document.source_bytes
        # Store updates replace annotation objects, so these lists are a stable snapshot
        self.annotations_by_page = session.store.by_page()
        self.exporter = PDFExporter(font_registry, session.settings.highlight_opacity)
        self.result: Optional[bytes] = None

    def run(self):
        """Execute the export in a background thread."""
        self.exporter.progress_signal.connect(self.page_progress.emit)
        try:
            output = self.exporter.commit(self.source_bytes, self.annotations_by_page)
        except PDFDeskError as e:
            logger.error("Export failed: %s", e)
            self.finished.emit(False, f"Export failed: {e}")
            return

        if not self.session.is_current(self.generation):
            logger.info("Discarding export for a session that was reset")
            self.finished.emit(False, "Export discarded: the document was closed")
            return

        self.result = output
        self.exported.emit(output)
        self.finished.emit(True, "Annotations saved successfully to PDF!")
