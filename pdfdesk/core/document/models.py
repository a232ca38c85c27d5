from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PageDescriptor:
    """Dimensions of a loaded page, in points as displayed."""

    index: int  # 0-based page index
    width_pt: float
    height_pt: float
    rotation: int = 0  # /Rotate value, informational

    @property
    def size(self) -> Tuple[float, float]:
        return self.width_pt, self.height_pt

    def contains(self, x: float, y: float) -> bool:
        """Check if a point in page points lies on the page."""
        return 0 <= x <= self.width_pt and 0 <= y <= self.height_pt
