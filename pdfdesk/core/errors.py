"""
Error taxonomy shared by every engine.
"""
from typing import Optional


class PDFDeskError(Exception):
    """Base class for all toolkit errors."""


class ParseError(PDFDeskError):
    """Source bytes are not a loadable PDF (malformed, empty or locked)."""


class DocumentError(PDFDeskError):
    """A page-structure operation was given invalid input."""


class ExportError(PDFDeskError):
    """Committing the annotation store into a PDF failed."""

    def __init__(self, message: str, annotation_id: Optional[str] = None):
        if annotation_id:
            message = f"{message} (annotation {annotation_id})"
        super().__init__(message)
        self.annotation_id = annotation_id


class RemoteServiceError(PDFDeskError):
    """A remote collaborator service could not complete a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
