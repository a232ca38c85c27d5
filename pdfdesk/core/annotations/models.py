from dataclasses import asdict, dataclass, field
from enum import Enum
from math import hypot
from typing import Optional, Tuple, Union

from ..geometry import fraction_to_points

# Width of one glyph relative to the font size, used to estimate text boxes
CHAR_WIDTH_RATIO = 0.6


class AnnotationKind(Enum):
    TEXT = "text"
    DRAWING = "drawing"
    IMAGE = "image"
    SIGNATURE = "signature"


class FontWeight(Enum):
    NORMAL = "normal"
    BOLD = "bold"


class StrokeKind(Enum):
    PEN = "pen"
    HIGHLIGHT = "highlight"


@dataclass
class TextAnnotation:
    """A text box anchored at its top-left corner, in page points."""

    id: str
    page_index: int  # 0-based page index
    x: float
    y: float
    text: str
    font_size: float = 16.0
    color: Tuple[int, int, int] = (0, 0, 0)  # RGB tuple (0-255)
    font_weight: FontWeight = FontWeight.NORMAL
    font_family: str = "Helvetica"

    kind = AnnotationKind.TEXT

    @property
    def width(self) -> float:
        """Estimated box width."""
        return len(self.text) * self.font_size * CHAR_WIDTH_RATIO

    @property
    def height(self) -> float:
        return self.font_size

    def bounds(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        x0, y0, x1, y1 = self.bounds()
        return x0 <= x <= x1 and y0 <= y <= y1

    def to_dict(self):
        data = asdict(self)
        data["font_weight"] = self.font_weight.value
        data["color"] = list(self.color)
        data["type"] = self.kind.value
        return data


@dataclass
class DrawAnnotation:
    """A finished freehand pen or highlighter stroke."""

    id: str
    page_index: int
    points: Tuple[Tuple[float, float], ...]
    color: Tuple[int, int, int] = (0, 0, 0)
    stroke_width: float = 3.0
    stroke_kind: StrokeKind = StrokeKind.PEN

    kind = AnnotationKind.DRAWING

    def __post_init__(self):
        self.points = tuple((float(x), float(y)) for x, y in self.points)

    def is_near(self, x: float, y: float, threshold: float) -> bool:
        """Check if any point of the stroke lies within ``threshold`` of (x, y)."""
        return any(hypot(px - x, py - y) <= threshold for px, py in self.points)

    def bounds(self) -> Tuple[float, float, float, float]:
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.kind.value,
            "page_index": self.page_index,
            "points": [[x, y] for x, y in self.points],
            "color": list(self.color),
            "stroke_width": self.stroke_width,
            "stroke_kind": self.stroke_kind.value,
        }


@dataclass
class ImageAnnotation:
    """A raster image placed on a page; the encoded bytes never change."""

    id: str
    page_index: int
    x: float
    y: float
    width: float
    height: float
    image_data: bytes = field(repr=False, default=b"")

    kind = AnnotationKind.IMAGE

    def bounds(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height

    def contains(self, x: float, y: float) -> bool:
        x0, y0, x1, y1 = self.bounds()
        return x0 <= x <= x1 and y0 <= y <= y1

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.kind.value,
            "page_index": self.page_index,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "image_size": len(self.image_data),
        }


@dataclass
class SignaturePlacement(ImageAnnotation):
    """A signature image. Stored in page points like every other annotation."""

    kind = AnnotationKind.SIGNATURE

    @classmethod
    def from_fractions(cls, id: str, page_index: int, fx: float, fy: float,
                       fwidth: float, fheight: float, page_width: float,
                       page_height: float, image_data: bytes) -> "SignaturePlacement":
        """
        Build a placement from 0-1 page fractions.

        Args:
            fx, fy: Top-left corner as fractions of the page size
            fwidth, fheight: Size as fractions of the page size
            page_width, page_height: Page size in points
        """
        x, y = fraction_to_points(fx, fy, page_width, page_height)
        width, height = fraction_to_points(fwidth, fheight, page_width, page_height)
        return cls(id=id, page_index=page_index, x=x, y=y, width=width,
                   height=height, image_data=image_data)


Annotation = Union[TextAnnotation, DrawAnnotation, ImageAnnotation, SignaturePlacement]

# Fields that may never change once an annotation exists
IMMUTABLE_FIELDS = {
    AnnotationKind.TEXT: {"id", "page_index"},
    AnnotationKind.DRAWING: {"id", "page_index", "points", "stroke_kind"},
    AnnotationKind.IMAGE: {"id", "page_index", "image_data"},
    AnnotationKind.SIGNATURE: {"id", "page_index", "image_data"},
}


def is_overlay(annotation: Optional[Annotation]) -> bool:
    """Text, image and signature annotations live on the interactive overlay."""
    return annotation is not None and annotation.kind is not AnnotationKind.DRAWING
