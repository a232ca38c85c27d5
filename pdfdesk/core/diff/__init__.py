"""
Document diff engine.
"""
from .diff_engine import (
    ComparisonResult,
    DiffSpan,
    DifferenceType,
    PageDifference,
    SpanOp,
    compare,
    compare_pages,
    diff_tokens,
)
from .text_extractor import (
    PageText,
    extract_document_text,
    extract_page_lines,
    group_words_into_lines,
)

__all__ = [
    "ComparisonResult",
    "DiffSpan",
    "DifferenceType",
    "PageDifference",
    "PageText",
    "SpanOp",
    "compare",
    "compare_pages",
    "diff_tokens",
    "extract_document_text",
    "extract_page_lines",
    "group_words_into_lines",
]
