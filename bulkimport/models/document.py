"""
Document and batch models for the bulk import pipeline.

Contains:
    - Document: Opaque payload discovered on the filesystem
    - Batch: Sealed, bounded group of documents submitted together
    - Thresholds: Batch bounds and concurrency limits for a run
"""

from dataclasses import dataclass
from pathlib import Path

DEFAULT_MAX_COUNT = 1000
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_CONCURRENT_BATCHES = 1


@dataclass(frozen=True)
class Document:
    """
    Smallest unit of imported content.

    The payload is never inspected by the pipeline; origin fields are only
    used for diagnostics and record metadata.

    Attributes:
        payload: Raw document bytes
        doc_id: Caller-supplied identifier (backend assigns one if None)
        source_path: File the document was read from
        line_index: Position among the kept lines of the file (line mode only)
    """

    payload: bytes
    doc_id: str | None = None
    source_path: Path | None = None
    line_index: int | None = None

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.payload)

    def describe(self) -> str:
        """Short origin description for log messages."""
        if self.source_path is None:
            return self.doc_id or "<anonymous>"
        if self.line_index is None:
            return str(self.source_path)
        return f"{self.source_path}:{self.line_index}"


@dataclass(frozen=True)
class Batch:
    """
    Ordered group of documents sealed by the batcher.

    Attributes:
        batch_id: Sequential execution id (1-indexed)
        documents: Documents in offer order
    """

    batch_id: int
    documents: tuple[Document, ...]

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def size_bytes(self) -> int:
        """Cumulative payload size of the batch."""
        return sum(doc.size for doc in self.documents)


@dataclass(frozen=True)
class Thresholds:
    """
    Batch bounds fixed for the duration of a run.

    Attributes:
        max_count: Maximum documents per batch
        max_bytes: Maximum cumulative payload bytes per batch
        max_concurrent_batches: Batches allowed in flight (0 = synchronous)
        flush_interval: Seconds after which a partial batch is sealed (None = never)
    """

    max_count: int = DEFAULT_MAX_COUNT
    max_bytes: int = DEFAULT_MAX_BYTES
    max_concurrent_batches: int = DEFAULT_MAX_CONCURRENT_BATCHES
    flush_interval: float | None = None

    def __post_init__(self):
        """Validate threshold values."""
        if self.max_count < 1:
            raise ValueError("max_count must be at least 1")

        if self.max_bytes < 1:
            raise ValueError("max_bytes must be at least 1")

        if self.max_concurrent_batches < 0:
            raise ValueError("max_concurrent_batches must be non-negative")

        if self.flush_interval is not None and self.flush_interval <= 0:
            raise ValueError("flush_interval must be positive when set")
