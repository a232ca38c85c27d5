"""
Coordinate transforms.

Three spaces are involved:

* pointer space - raw client coordinates of mouse events
* canvas space  - pixels of the rendered page, origin top-left, scaled by
  ``zoom * render_scale``
* page space    - unscaled PDF points. Stored annotations use the top-left
  origin that PyMuPDF pages expose; :func:`to_user_space` flips into the
  bottom-left PDF user space where a caller needs it.
"""
from dataclasses import dataclass
from typing import Tuple

DEFAULT_RENDER_SCALE = 1.5


@dataclass(frozen=True)
class CanvasOrigin:
    """Top-left corner of the page canvas in pointer coordinates."""

    left: float = 0.0
    top: float = 0.0


class CoordinateTransform:
    """Converts between pointer coordinates and page points for one zoom level."""

    def __init__(self, zoom: float = 1.0, render_scale: float = DEFAULT_RENDER_SCALE):
        if zoom <= 0 or render_scale <= 0:
            raise ValueError("zoom and render_scale must be positive")
        self.zoom = zoom
        self.render_scale = render_scale

    @property
    def factor(self) -> float:
        """Pixels per page point on the canvas."""
        return self.zoom * self.render_scale

    def screen_to_pdf(self, client_x: float, client_y: float,
                      origin: CanvasOrigin = CanvasOrigin()) -> Tuple[float, float]:
        """
        Convert a pointer position to page points.

        Args:
            client_x: Pointer x in client coordinates
            client_y: Pointer y in client coordinates
            origin: Canvas bounding-rect origin in client coordinates

        Returns:
            (x, y) in page points, top-left origin
        """
        return ((client_x - origin.left) / self.factor,
                (client_y - origin.top) / self.factor)

    def pdf_to_screen(self, x: float, y: float,
                      origin: CanvasOrigin = CanvasOrigin()) -> Tuple[float, float]:
        """Inverse of :meth:`screen_to_pdf`."""
        return (x * self.factor + origin.left,
                y * self.factor + origin.top)

    def scale_length(self, length: float) -> float:
        """Convert a length in points to canvas pixels."""
        return length * self.factor

    def unscale_length(self, length: float) -> float:
        """Convert a length in canvas pixels to points."""
        return length / self.factor

    def __repr__(self):
        return f"CoordinateTransform(zoom={self.zoom}, render_scale={self.render_scale})"


def to_user_space(x: float, y: float, page_height: float,
                  element_height: float = 0.0) -> Tuple[float, float]:
    """
    Flip a top-left anchored position into PDF user space.

    The element's top-left corner at ``y`` becomes its bottom edge at
    ``page_height - y - element_height``.
    """
    return x, page_height - y - element_height


def from_user_space(x: float, y: float, page_height: float,
                    element_height: float = 0.0) -> Tuple[float, float]:
    """Inverse of :func:`to_user_space`."""
    return x, page_height - y - element_height


def fraction_to_points(fx: float, fy: float, page_width: float,
                       page_height: float) -> Tuple[float, float]:
    """Convert a 0-1 fractional page position to points."""
    return fx * page_width, fy * page_height


def points_to_fraction(x: float, y: float, page_width: float,
                       page_height: float) -> Tuple[float, float]:
    """Convert a position in points to 0-1 page fractions."""
    if page_width <= 0 or page_height <= 0:
        raise ValueError("page dimensions must be positive")
    return x / page_width, y / page_height
