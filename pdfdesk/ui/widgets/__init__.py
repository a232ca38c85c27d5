"""
Reusable widgets.
"""
from .page_canvas import PageCanvas

__all__ = ["PageCanvas"]
