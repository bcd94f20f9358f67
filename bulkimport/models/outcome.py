"""
Batch outcome models reported by the submitter.

Contains:
    - DocumentOutcome: Success or failure of a single document
    - BatchOutcome: Per-document outcomes or a terminal batch failure
"""

from dataclasses import dataclass

from bulkimport.models.document import Batch, Document


@dataclass(frozen=True)
class DocumentOutcome:
    """Result of writing one document."""

    document: Document
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class BatchOutcome:
    """
    Result of one backend bulk write.

    Exactly one of ``items`` (per-document outcomes, in batch order) or
    ``failure`` (the whole batch failed, e.g. at the transport level) is set.

    Attributes:
        batch: The batch that was submitted
        items: Per-document outcomes
        failure: Reason the whole batch failed
        took_ms: Wall-clock duration of the backend call
    """

    batch: Batch
    items: tuple[DocumentOutcome, ...] | None = None
    failure: str | None = None
    took_ms: int = 0

    def __post_init__(self):
        """Validate that exactly one outcome form is present."""
        if (self.items is None) == (self.failure is None):
            raise ValueError("BatchOutcome needs either items or failure")

    @classmethod
    def succeeded(cls, batch: Batch, took_ms: int = 0) -> "BatchOutcome":
        """Build an outcome where every document was accepted."""
        items = tuple(DocumentOutcome(document=doc) for doc in batch.documents)
        return cls(batch=batch, items=items, took_ms=took_ms)

    @classmethod
    def failed(cls, batch: Batch, reason: str, took_ms: int = 0) -> "BatchOutcome":
        """Build a terminal failure outcome for the whole batch."""
        return cls(batch=batch, failure=reason, took_ms=took_ms)

    @property
    def is_terminal_failure(self) -> bool:
        return self.failure is not None

    @property
    def failed_items(self) -> list[DocumentOutcome]:
        """Documents the backend rejected."""
        if self.items is None:
            return []
        return [item for item in self.items if not item.success]

    @property
    def has_failures(self) -> bool:
        """Check if any part of the batch failed."""
        return self.is_terminal_failure or bool(self.failed_items)
