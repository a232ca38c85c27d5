"""
Per-page text extraction, grouping words into lines by vertical position.
"""
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import fitz  # PyMuPDF

from ..document import open_pdf
from ..errors import DocumentError

LINE_TOLERANCE = 5.0


@dataclass
class PageText:
    """Text of one page, lines top-to-bottom, words left-to-right."""

    page_index: int
    lines: List[List[str]] = field(default_factory=list)

    @property
    def tokens(self) -> List[str]:
        return [word for line in self.lines for word in line]

    @property
    def text(self) -> str:
        return "\n".join(" ".join(line) for line in self.lines)


def group_words_into_lines(words: Sequence[Tuple], tolerance: float = LINE_TOLERANCE) -> List[List[str]]:
    """
    Group PyMuPDF word tuples into lines.

    Words whose rounded top edge is within ``tolerance`` of a line's top edge
    belong to that line.

    Args:
        words: (x0, y0, x1, y1, word, ...) tuples
        tolerance: Maximum vertical distance within one line

    Returns:
        Lines sorted top-to-bottom, each a list of words sorted left-to-right
    """
    lines: List[Tuple[float, List[Tuple[float, str]]]] = []
    for word in sorted(words, key=lambda w: (round(w[1]), w[0])):
        x0, y0, text = word[0], round(word[1]), word[4]
        if not text.strip():
            continue
        if lines and abs(y0 - lines[-1][0]) <= tolerance:
            lines[-1][1].append((x0, text))
        else:
            lines.append((y0, [(x0, text)]))

    lines.sort(key=lambda line: line[0])
    return [[text for _, text in sorted(items, key=lambda item: item[0])]
            for _, items in lines]


def extract_page_lines(page: fitz.Page, tolerance: float = LINE_TOLERANCE) -> PageText:
    return PageText(page_index=page.number,
                    lines=group_words_into_lines(page.get_text("words"), tolerance))


def extract_document_text(data: bytes, tolerance: float = LINE_TOLERANCE) -> List[PageText]:
    """
    Extract the text of every page of a PDF.

    Raises:
        DocumentError: If the bytes cannot be parsed
    """
    doc = open_pdf(data, error_cls=DocumentError)
    try:
        return [extract_page_lines(page, tolerance) for page in doc]
    finally:
        doc.close()
