"""
Domain models for the bulk import pipeline.

Exports:
    - RunState: Enum for import run state
    - Document: Opaque document payload
    - Batch: Sealed group of documents
    - Thresholds: Batch bounds and concurrency limits
    - DocumentOutcome: Per-document write result
    - BatchOutcome: Per-batch write result
    - AtomicCounter: Thread-safe increasing counter
    - IngestionState: Reconciliation counts of a run
    - ImportReport: Run summary
"""

from .status import RunState
from .document import Batch, Document, Thresholds
from .outcome import BatchOutcome, DocumentOutcome
from .state import AtomicCounter, IngestionState
from .report import ImportReport

__all__ = [
    "RunState",
    "Document",
    "Batch",
    "Thresholds",
    "DocumentOutcome",
    "BatchOutcome",
    "AtomicCounter",
    "IngestionState",
    "ImportReport",
]
