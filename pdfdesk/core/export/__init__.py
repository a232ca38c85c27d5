"""
Commit/export of pending annotations.
"""
from .export_worker import ExportWorker
from .fonts import STANDARD_FONTS, FontChoice, FontRegistry
from .pdf_exporter import PDFExporter, group_by_page, sniff_image_format

__all__ = [
    "ExportWorker",
    "FontChoice",
    "FontRegistry",
    "PDFExporter",
    "STANDARD_FONTS",
    "group_by_page",
    "sniff_image_format",
]
