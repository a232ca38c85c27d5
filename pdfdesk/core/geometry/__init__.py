"""
Coordinate conversion between pointer, canvas and PDF spaces.
"""
from .transform import (
    CanvasOrigin,
    CoordinateTransform,
    fraction_to_points,
    from_user_space,
    points_to_fraction,
    to_user_space,
)

__all__ = [
    "CanvasOrigin",
    "CoordinateTransform",
    "fraction_to_points",
    "from_user_space",
    "points_to_fraction",
    "to_user_space",
]
