"""
Import pipeline orchestrator.

Coordinates:
    - Baseline count sampling
    - Document discovery (folder scanning)
    - Batching and bounded-concurrency submission
    - Completion polling and the final report
"""

import logging

from bulkimport.backend.base import BackendAdapter
from bulkimport.config.settings import ImportSettings
from bulkimport.ingestion.batcher import Batcher
from bulkimport.ingestion.error_sink import ErrorSink
from bulkimport.ingestion.source import DocumentSource
from bulkimport.ingestion.submitter import Submitter
from bulkimport.ingestion.tracker import CompletionTracker
from bulkimport.models import ImportReport

logger = logging.getLogger("bulk_import.pipeline")


def build_source(settings: ImportSettings) -> DocumentSource:
    """Create the document source described by the settings."""
    return DocumentSource(
        root=settings.root,
        file_ext=settings.fileext,
        line_by_line=settings.linebyline,
    )


def run_import(settings: ImportSettings, backend: BackendAdapter) -> ImportReport:
    """
    Import every document under the configured root and wait for the
    backend to reflect them.

    Args:
        settings: Validated run settings
        backend: Connected backend adapter

    Returns:
        ImportReport with the terminal state and reconciled count

    Raises:
        OSError: If the root cannot be listed or a file cannot be read
    """
    thresholds = settings.thresholds()
    logger.info(
        f"Starting import into '{settings.collection}' "
        f"(max {thresholds.max_count} docs / {thresholds.max_bytes} bytes per bulk, "
        f"{thresholds.max_concurrent_batches} concurrent)"
    )

    error_sink = ErrorSink()
    tracker = CompletionTracker(
        backend,
        settings.collection,
        error_sink,
        doc_type=settings.doc_type,
        poll_interval=settings.poll_interval,
        timeout=settings.timeout,
    )
    state = tracker.sample_baseline()

    submitter = Submitter(
        backend,
        max_concurrent_batches=thresholds.max_concurrent_batches,
        listener=error_sink.on_batch_result,
    )
    try:
        batcher = Batcher(submitter, thresholds, expected_counter=state.expected)
        return tracker.run(build_source(settings), batcher, state)
    finally:
        submitter.close()
