"""
Page-structure engine: merge, split, reorder, rotate, stamp and compress.
"""
from .batch import BatchReport, BatchResult, run_batch
from .models import (
    CompressionLevel,
    DocumentInfo,
    PageNumberPosition,
    PageOperationState,
    WatermarkPosition,
)
from .page_operations import (
    add_page_numbers,
    add_watermark,
    compress,
    delete_pages,
    extract_pages,
    get_info,
    images_to_pdf,
    merge,
    organize,
    reorder,
    rotate,
    split,
)

__all__ = [
    "BatchReport",
    "BatchResult",
    "CompressionLevel",
    "DocumentInfo",
    "PageNumberPosition",
    "PageOperationState",
    "WatermarkPosition",
    "add_page_numbers",
    "add_watermark",
    "compress",
    "delete_pages",
    "extract_pages",
    "get_info",
    "images_to_pdf",
    "merge",
    "organize",
    "reorder",
    "rotate",
    "run_batch",
    "split",
]
