"""
Colour conversion helpers.
"""
from typing import Tuple


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    """
    Convert a ``#rrggbb`` (or ``#rgb``) string to an RGB tuple.

    Args:
        value: Hex colour string, leading '#' optional

    Returns:
        Tuple of 0-255 channel values
    """
    value = value.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex colour: {value!r}")
    return tuple(int(value[i:i + 2], 16) for i in (0, 2, 4))


def rgb_to_unit(color: Tuple[int, int, int]) -> Tuple[float, float, float]:
    """Convert a 0-255 RGB tuple to the 0-1 range PyMuPDF expects."""
    return tuple(c / 255.0 for c in color)
