from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

VALID_ROTATIONS = (0, 90, 180, 270)


class WatermarkPosition(Enum):
    CENTER = "center"
    DIAGONAL = "diagonal"
    TILED = "tiled"


class PageNumberPosition(Enum):
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"

    @property
    def is_top(self) -> bool:
        return self.value.startswith("top")

    @property
    def horizontal(self) -> str:
        return self.value.split("-")[1]


class CompressionLevel(Enum):
    """How aggressively embedded images are re-encoded."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def jpeg_quality(self) -> int:
        return {"low": 85, "medium": 65, "high": 40}[self.value]

    @property
    def scale(self) -> float:
        """Factor applied to image dimensions."""
        return {"low": 1.0, "medium": 0.75, "high": 0.5}[self.value]


@dataclass
class PageOperationState:
    """What happens to one source page when a document is organized."""

    original_index: int  # 0-based index in the source document
    rotation_delta: int = 0  # degrees added to the page's own rotation
    deleted: bool = False
    new_order: Optional[int] = None  # position in the output, defaults to original_index

    @property
    def sort_key(self):
        order = self.original_index if self.new_order is None else self.new_order
        return order, self.original_index


@dataclass
class DocumentInfo:
    """Basic facts about a PDF."""

    page_count: int
    title: Optional[str] = None
    author: Optional[str] = None
    creation_date: Optional[datetime] = None
    encrypted: bool = False

    def to_dict(self):
        return {
            "page_count": self.page_count,
            "title": self.title,
            "author": self.author,
            "creation_date": self.creation_date.isoformat() if self.creation_date else None,
            "encrypted": self.encrypted,
        }
