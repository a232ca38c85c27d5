"""
Utility modules for PDFDesk.
"""
from .colors import hex_to_rgb, rgb_to_unit
from .config import EditorSettings
from .logging_setup import setup_logging

__all__ = ["EditorSettings", "hex_to_rgb", "rgb_to_unit", "setup_logging"]
