"""
Token-level comparison of two PDFs.
"""
import logging
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from enum import Enum
from typing import Dict, List, Optional

from ..errors import DocumentError
from .text_extractor import LINE_TOLERANCE, PageText, extract_document_text

logger = logging.getLogger(__name__)


class SpanOp(Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


class DifferenceType(Enum):
    TEXT = "text"
    LAYOUT = "layout"


@dataclass
class DiffSpan:
    op: SpanOp
    tokens: List[str]

    @property
    def text(self) -> str:
        return " ".join(self.tokens)


@dataclass
class PageDifference:
    page: int  # 1-based page number, 0 for document-level differences
    type: DifferenceType
    description: str
    spans: Optional[List[DiffSpan]] = None

    def to_dict(self):
        data = {"page": self.page, "type": self.type.value, "description": self.description}
        if self.spans is not None:
            data["spans"] = [{"op": s.op.value, "text": s.text} for s in self.spans]
        return data


@dataclass
class ComparisonResult:
    differences: List[PageDifference] = field(default_factory=list)
    page_count1: int = 0
    page_count2: int = 0

    @property
    def identical(self) -> bool:
        return not self.differences

    @property
    def summary_counts(self) -> Dict[str, int]:
        counts = {"total": len(self.differences), "text": 0, "layout": 0}
        for diff in self.differences:
            counts[diff.type.value] += 1
        return counts

    @property
    def summary(self) -> str:
        count = len(self.differences)
        if count == 0:
            return "The documents are identical."
        if count == 1:
            return "Found 1 difference between the documents."
        return f"Found {count} differences between the documents."

    def to_dict(self):
        return {
            "differences": [d.to_dict() for d in self.differences],
            "summary": self.summary,
            "summary_counts": self.summary_counts,
            "page_count1": self.page_count1,
            "page_count2": self.page_count2,
        }


def _normalize(token: str) -> str:
    return token.lower()


def diff_tokens(old: List[str], new: List[str]) -> List[DiffSpan]:
    """
    Diff two token lists, ignoring case.

    Returns:
        Spans in reading order; a replacement becomes a removed span
        followed by an added span
    """
    matcher = SequenceMatcher(None, [_normalize(t) for t in old],
                              [_normalize(t) for t in new], autojunk=False)
    spans = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            spans.append(DiffSpan(SpanOp.UNCHANGED, old[i1:i2]))
            continue
        if i2 > i1:
            spans.append(DiffSpan(SpanOp.REMOVED, old[i1:i2]))
        if j2 > j1:
            spans.append(DiffSpan(SpanOp.ADDED, new[j1:j2]))
    return spans


def compare_pages(pages1: List[PageText], pages2: List[PageText]) -> ComparisonResult:
    """Compare already extracted page texts."""
    result = ComparisonResult(page_count1=len(pages1), page_count2=len(pages2))

    if len(pages1) != len(pages2):
        result.differences.append(PageDifference(
            page=0,
            type=DifferenceType.LAYOUT,
            description=(f"Page count differs: Document 1 has {len(pages1)} pages, "
                         f"Document 2 has {len(pages2)} pages"),
        ))

    for index in range(max(len(pages1), len(pages2))):
        number = index + 1
        if index >= len(pages1):
            result.differences.append(PageDifference(
                number, DifferenceType.LAYOUT, f"Page {number} only exists in Document 2"))
            continue
        if index >= len(pages2):
            result.differences.append(PageDifference(
                number, DifferenceType.LAYOUT, f"Page {number} only exists in Document 1"))
            continue

        spans = diff_tokens(pages1[index].tokens, pages2[index].tokens)
        changed = sum(len(s.tokens) for s in spans if s.op != SpanOp.UNCHANGED)
        if changed:
            result.differences.append(PageDifference(
                number, DifferenceType.TEXT,
                f"Page {number}: Text content differs ({changed} word changes detected)",
                spans=spans,
            ))

    return result


def compare(data1: bytes, data2: bytes, tolerance: float = LINE_TOLERANCE) -> ComparisonResult:
    """
    Compare the text of two PDFs page by page.

    Raises:
        DocumentError: If either document cannot be parsed
    """
    pages = []
    for number, data in ((1, data1), (2, data2)):
        try:
            pages.append(extract_document_text(data, tolerance))
        except DocumentError as e:
            raise DocumentError(f"Cannot read document {number}: {e}") from e

    result = compare_pages(pages[0], pages[1])
    logger.info("Comparison complete: %s", result.summary)
    return result
