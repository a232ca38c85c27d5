"""
Font selection for exported text.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..annotations import FontWeight

logger = logging.getLogger(__name__)

# Logical family -> (regular, bold) base-14 font codes understood by PyMuPDF
STANDARD_FONTS: Dict[str, Tuple[str, str]] = {
    "Helvetica": ("helv", "hebo"),
    "Arial": ("helv", "hebo"),
    "Verdana": ("helv", "hebo"),
    "Times-Roman": ("tiro", "tibo"),
    "Georgia": ("tiro", "tibo"),
    "Courier": ("cour", "cobo"),
}

DEFAULT_FAMILY = "Helvetica"


@dataclass(frozen=True)
class FontChoice:
    """Font resource to use on a page."""

    fontname: str
    fontbuffer: Optional[bytes] = None  # None for base-14 fonts

    @property
    def is_embedded(self) -> bool:
        return self.fontbuffer is not None


class FontRegistry:
    """Maps logical family names to standard or embedded fonts."""

    def __init__(self):
        self._custom: Dict[Tuple[str, FontWeight], bytes] = {}

    def register_font(self, family: str, font_data: bytes,
                      weight: FontWeight = FontWeight.NORMAL) -> None:
        """
        Register TrueType/OpenType data to embed for a family.

        The data is only checked when a page actually uses it.
        """
        self._custom[(family, weight)] = bytes(font_data)

    def families(self):
        return sorted(set(STANDARD_FONTS) | {family for family, _ in self._custom})

    def resolve(self, family: str, weight: FontWeight = FontWeight.NORMAL) -> FontChoice:
        """
        Pick the font for a family and weight.

        Custom fonts win over the standard mapping; unknown families fall
        back to Helvetica.
        """
        custom = self._custom.get((family, weight))
        if custom is None and weight == FontWeight.BOLD:
            custom = self._custom.get((family, FontWeight.NORMAL))
        if custom is not None:
            return FontChoice(fontname=_resource_name(family, weight), fontbuffer=custom)

        regular, bold = STANDARD_FONTS.get(family, (None, None))
        if regular is None:
            logger.warning("Font family %r is not available, using %s", family, DEFAULT_FAMILY)
            regular, bold = STANDARD_FONTS[DEFAULT_FAMILY]
        return FontChoice(fontname=bold if weight == FontWeight.BOLD else regular)


def _resource_name(family: str, weight: FontWeight) -> str:
    """Page resource name for an embedded font, e.g. ``F-Inter-bold``."""
    cleaned = re.sub(r"[^A-Za-z0-9]+", "", family) or "Custom"
    return f"F-{cleaned}-{weight.value}"
