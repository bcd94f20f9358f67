"""
Unit tests for the batcher.

Uses a stub submitter that records sealed batches, so batch boundaries can
be checked without threads.
"""

import time

import pytest

from bulkimport.ingestion.batcher import Batcher
from bulkimport.models import AtomicCounter, Document, Thresholds


class StubSubmitter:
    def __init__(self):
        self.batches = []
        self.drained = 0

    def submit(self, batch):
        self.batches.append(batch)

    def drain(self, timeout=None):
        self.drained += 1
        return True


def _docs(count, size=1):
    return [Document(payload=b"x" * size, doc_id=str(i)) for i in range(count)]


def test_count_bound_seals_batches():
    """Test 10 documents with max_count=4 produce batches of 4, 4 and 2."""
    submitter = StubSubmitter()
    batcher = Batcher(submitter, Thresholds(max_count=4))

    for doc in _docs(10):
        batcher.offer(doc)
    batcher.close()

    assert [len(b) for b in submitter.batches] == [4, 4, 2]
    assert [b.batch_id for b in submitter.batches] == [1, 2, 3]
    assert batcher.batches_submitted == 3


def test_documents_keep_offer_order():
    """Test that every document lands in exactly one batch, in order."""
    submitter = StubSubmitter()
    docs = _docs(7)
    with Batcher(submitter, Thresholds(max_count=3)) as batcher:
        for doc in docs:
            batcher.offer(doc)

    flattened = [doc for batch in submitter.batches for doc in batch.documents]
    assert flattened == docs


def test_byte_bound_seals_before_overflow():
    """Test that a document that would overflow max_bytes starts a new batch."""
    submitter = StubSubmitter()
    batcher = Batcher(submitter, Thresholds(max_count=100, max_bytes=10))

    for doc in _docs(5, size=4):
        batcher.offer(doc)
    batcher.close()

    assert [b.size_bytes for b in submitter.batches] == [8, 8, 4]
    assert all(b.size_bytes <= 10 for b in submitter.batches)


def test_oversized_document_goes_alone():
    """Test that a single document larger than max_bytes forms its own batch."""
    submitter = StubSubmitter()
    batcher = Batcher(submitter, Thresholds(max_count=100, max_bytes=10))

    batcher.offer(Document(payload=b"a"))
    batcher.offer(Document(payload=b"b" * 50))
    batcher.offer(Document(payload=b"c"))
    batcher.close()

    assert [len(b) for b in submitter.batches] == [1, 1, 1]
    assert submitter.batches[1].size_bytes == 50


def test_expected_counter_incremented_per_offer():
    """Test that the shared counter counts every offered document."""
    counter = AtomicCounter()
    batcher = Batcher(StubSubmitter(), Thresholds(max_count=2), expected_counter=counter)

    for doc in _docs(5):
        batcher.offer(doc)

    assert counter.get() == 5
    batcher.close()


def test_close_is_idempotent_and_drains():
    """Test that close() submits the remainder once and drains the submitter."""
    submitter = StubSubmitter()
    batcher = Batcher(submitter, Thresholds(max_count=10))
    batcher.offer(Document(payload=b"x"))

    batcher.close()
    batcher.close()

    assert len(submitter.batches) == 1
    assert submitter.drained == 1


def test_offer_after_close_raises():
    """Test that a closed batcher rejects new documents."""
    batcher = Batcher(StubSubmitter())
    batcher.close()

    with pytest.raises(RuntimeError):
        batcher.offer(Document(payload=b"x"))


def test_close_with_nothing_pending_submits_nothing():
    """Test that an empty run seals no batch."""
    submitter = StubSubmitter()
    Batcher(submitter).close()

    assert submitter.batches == []


def test_flush_seals_partial_batch():
    """Test that flush() submits the open batch immediately."""
    submitter = StubSubmitter()
    batcher = Batcher(submitter, Thresholds(max_count=10))
    batcher.offer(Document(payload=b"x"))

    batcher.flush()
    batcher.flush()

    assert [len(b) for b in submitter.batches] == [1]
    batcher.close()


def test_flush_interval_seals_idle_batch():
    """Test that the flush timer seals a partial batch without further offers."""
    submitter = StubSubmitter()
    batcher = Batcher(submitter, Thresholds(max_count=10, flush_interval=0.05))
    batcher.offer(Document(payload=b"x"))

    deadline = time.monotonic() + 5
    while not submitter.batches and time.monotonic() < deadline:
        time.sleep(0.01)

    assert [len(b) for b in submitter.batches] == [1]
    assert batcher.pending_count == 0
    batcher.close()
    assert len(submitter.batches) == 1
