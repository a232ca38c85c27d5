"""
Read-only document model used for navigation, preview and hit-testing.
"""
from .models import PageDescriptor
from .pdf_reader import PDFDocumentModel, open_pdf

__all__ = ["PageDescriptor", "PDFDocumentModel", "open_pdf"]
