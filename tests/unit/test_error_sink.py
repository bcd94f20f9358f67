"""
Unit tests for failure aggregation.
"""

from bulkimport.ingestion.error_sink import ErrorSink
from bulkimport.models import Batch, BatchOutcome, Document, DocumentOutcome


def _batch():
    return Batch(batch_id=7, documents=(Document(payload=b"a"), Document(payload=b"b")))


def test_successful_outcome_keeps_sink_clean():
    """Test that a fully accepted batch does not set the error flag."""
    sink = ErrorSink()
    sink.on_batch_result(BatchOutcome.succeeded(_batch()))

    assert not sink.is_errored()
    assert sink.failed_batches == 0
    assert sink.failed_documents == 0


def test_document_failure_sets_flag():
    """Test that a single rejected document errors the run."""
    batch = _batch()
    items = (
        DocumentOutcome(document=batch.documents[0]),
        DocumentOutcome(document=batch.documents[1], error="rejected"),
    )
    sink = ErrorSink()
    sink.on_batch_result(BatchOutcome(batch=batch, items=items))

    assert sink.is_errored()
    assert sink.failed_documents == 1
    assert sink.failed_batches == 0


def test_terminal_failure_sets_flag():
    """Test that a whole-batch failure errors the run."""
    sink = ErrorSink()
    sink.on_batch_result(BatchOutcome.failed(_batch(), "timeout"))

    assert sink.is_errored()
    assert sink.failed_batches == 1


def test_errored_is_sticky():
    """Test that later successes never clear the error flag."""
    sink = ErrorSink()
    sink.on_batch_result(BatchOutcome.failed(_batch(), "timeout"))
    sink.on_batch_result(BatchOutcome.succeeded(_batch()))

    assert sink.is_errored()
