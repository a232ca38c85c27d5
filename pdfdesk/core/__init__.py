"""
Core engines of PDFDesk.
"""
from .errors import DocumentError, ExportError, ParseError, PDFDeskError, RemoteServiceError
from .session import EditorSession, Tool

__all__ = [
    "DocumentError",
    "EditorSession",
    "ExportError",
    "ParseError",
    "PDFDeskError",
    "RemoteServiceError",
    "Tool",
]
