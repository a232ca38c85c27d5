"""
Top-level windows.
"""
from .editor_window import EditorWindow

__all__ = ["EditorWindow"]
