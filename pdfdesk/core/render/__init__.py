"""
Page composition: base raster, stroke layer and interactive overlay.
"""
from .compositor import FrameThrottle, OverlayItem, PageComposition, RenderCompositor

__all__ = ["FrameThrottle", "OverlayItem", "PageComposition", "RenderCompositor"]
