"""
Desktop UI for the PDFDesk editor.
"""
from .windows.editor_window import EditorWindow

__all__ = ["EditorWindow"]
