"""
PDFDesk - in-memory PDF editing and page-structure toolkit.
"""

__version__ = "0.1.0"
