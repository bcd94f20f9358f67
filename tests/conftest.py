"""
Shared fixtures for bulk import tests.

Provides an in-memory backend that records every call and tracks how many
batches were in flight at once.
"""

import threading
import time
from pathlib import Path

import pytest

from bulkimport.backend.base import BackendAdapter, CollectionNotFoundError
from bulkimport.models import Batch, BatchOutcome, DocumentOutcome


class RecordingBackend(BackendAdapter):
    """
    In-memory backend adapter.

    Args:
        fail_nth_document: 1-based global position of a document to reject
        fail_batches: Batch ids whose submit raises (terminal failure)
        submit_delay: Seconds each submit sleeps (to overlap batches)
        visible_limit: Cap on the count ever reported (simulates lag)
        preexisting: Count already present before the run (None = no collection)
    """

    def __init__(
        self,
        fail_nth_document: int | None = None,
        fail_batches: set[int] | None = None,
        submit_delay: float = 0.0,
        visible_limit: int | None = None,
        preexisting: int | None = None,
    ):
        self.fail_nth_document = fail_nth_document
        self.fail_batches = fail_batches or set()
        self.submit_delay = submit_delay
        self.visible_limit = visible_limit

        self._lock = threading.Lock()
        self.exists = preexisting is not None
        self.stored = preexisting or 0
        self.batches: list[Batch] = []
        self.count_calls = 0
        self.refresh_calls = 0
        self.closed = False

        self._seen_documents = 0
        self._active = 0
        self.max_active = 0

    def count_in_scope(self, collection, doc_type=None):
        with self._lock:
            self.count_calls += 1
            if not self.exists:
                raise CollectionNotFoundError(collection)
            if self.visible_limit is not None:
                return min(self.stored, self.visible_limit)
            return self.stored

    def refresh(self, collection):
        with self._lock:
            self.refresh_calls += 1

    def submit_batch(self, batch):
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
            self.batches.append(batch)
        try:
            if self.submit_delay:
                time.sleep(self.submit_delay)

            if batch.batch_id in self.fail_batches:
                raise ConnectionError("connection reset by peer")

            items = []
            with self._lock:
                for doc in batch.documents:
                    self._seen_documents += 1
                    if self._seen_documents == self.fail_nth_document:
                        items.append(DocumentOutcome(document=doc, error="mapper_parsing_exception"))
                    else:
                        items.append(DocumentOutcome(document=doc))
                        self.stored += 1
                self.exists = True
            return BatchOutcome(batch=batch, items=tuple(items))
        finally:
            with self._lock:
                self._active -= 1

    def close(self):
        self.closed = True

    @property
    def batch_sizes(self) -> list[int]:
        return [len(batch) for batch in sorted(self.batches, key=lambda b: b.batch_id)]


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def make_backend():
    """Factory for RecordingBackend with custom failure and lag options."""
    return RecordingBackend


@pytest.fixture
def make_tree(tmp_path):
    """Write a mapping of relative path -> text content under tmp_path."""

    def _make(files: dict[str, str | bytes]) -> Path:
        for name, content in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding="utf-8")
        return tmp_path

    return _make
