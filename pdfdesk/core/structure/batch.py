"""
Run one operation over many files, each succeeding or failing on its own.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..errors import PDFDeskError

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    name: str
    output: Any = None  # bytes, or a list of bytes for split-like operations
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchReport:
    results: List[BatchResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[BatchResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[BatchResult]:
        return [r for r in self.results if not r.ok]

    @property
    def summary(self) -> str:
        """E.g. ``"3 succeeded, 1 failed: scan.pdf"``."""
        text = f"{len(self.succeeded)} succeeded"
        if self.failed:
            names = ", ".join(r.name for r in self.failed)
            text += f", {len(self.failed)} failed: {names}"
        return text


def run_batch(files: Sequence[Tuple[str, bytes]],
              operation: Callable[[bytes], Any]) -> BatchReport:
    """
    Apply ``operation`` to every (name, data) pair.

    A toolkit error on one file is recorded against that file and the
    batch carries on.
    """
    report = BatchReport()
    for name, data in files:
        try:
            output = operation(data)
        except PDFDeskError as e:
            logger.warning("Batch item %s failed: %s", name, e)
            report.results.append(BatchResult(name=name, error=str(e)))
            continue
        report.results.append(BatchResult(name=name, output=output))
    logger.info("Batch finished: %s", report.summary)
    return report
