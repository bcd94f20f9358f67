"""
Completion tracking for the bulk import pipeline.

The backend never acknowledges that a write is durable and visible, so a
run is finished when the count polled from the backend has grown by at
least the number of documents the batcher accepted. Failures reported by
the error sink end the run early with the partial count.

States: ENUMERATING -> DRAINING -> POLLING -> DONE | ERRORED | INCOMPLETE
"""

import logging
import time
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from bulkimport.backend.base import BackendAdapter, CollectionNotFoundError
from bulkimport.ingestion.batcher import Batcher
from bulkimport.ingestion.error_sink import ErrorSink
from bulkimport.models import Document, ImportReport, IngestionState, RunState
from bulkimport.utils.logger import log_structured

logger = logging.getLogger("bulk_import.tracker")

DEFAULT_POLL_INTERVAL = 1.0


class CompletionTracker:
    """Drives one import run through enumeration, draining and polling."""

    def __init__(
        self,
        backend: BackendAdapter,
        collection: str,
        error_sink: ErrorSink,
        doc_type: str | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the tracker.

        Args:
            backend: Adapter queried for counts
            collection: Target collection
            error_sink: Sticky failure state fed by the submitter
            doc_type: Document-type label scoping the count
            poll_interval: Seconds between count queries
            timeout: Seconds to keep polling before giving up (None = forever)
            sleep: Sleep function (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        if poll_interval < 0:
            raise ValueError("poll_interval must be non-negative")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive when set")

        self.backend = backend
        self.collection = collection
        self.error_sink = error_sink
        self.doc_type = doc_type
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._sleep = sleep
        self._clock = clock

        self.state = RunState.ENUMERATING
        self.poll_cycles = 0

    def count(self) -> int:
        """
        Refresh the collection and count documents in scope.

        A collection that does not exist yet counts as 0.
        """
        try:
            self.backend.refresh(self.collection)
            return self.backend.count_in_scope(self.collection, self.doc_type)
        except CollectionNotFoundError:
            logger.debug(f"Collection '{self.collection}' not found, counting 0")
            return 0

    def sample_baseline(self) -> IngestionState:
        """Create the run state with the backend count before any write."""
        baseline = self.count()
        logger.info(f"Baseline count for '{self.collection}': {baseline}")
        return IngestionState(
            baseline_count=baseline,
            observed_count=baseline,
            error_flag=self.error_sink.flag,
        )

    def run(
        self,
        documents: Iterable[Document],
        batcher: Batcher,
        state: IngestionState,
    ) -> ImportReport:
        """
        Import every document and wait until the backend reflects them.

        Args:
            documents: Document stream to import
            batcher: Batcher sharing ``state.expected`` as its counter
            state: Run state from sample_baseline()

        Returns:
            ImportReport whose result is the last observed count delta

        Raises:
            OSError: If reading the documents fails (the batcher is drained first)
        """
        start_timestamp = datetime.now(UTC)

        self._transition(RunState.ENUMERATING)
        try:
            for doc in documents:
                batcher.offer(doc)
        finally:
            self._transition(RunState.DRAINING)
            batcher.close()

        logger.info(
            f"Enumeration finished: {state.expected_count} documents in "
            f"{batcher.batches_submitted} batches"
        )

        self._transition(RunState.POLLING)
        final_state = self._poll(state)
        self._transition(final_state)

        report = ImportReport(
            state=final_state,
            result=state.observed_delta,
            expected_count=state.expected_count,
            baseline_count=state.baseline_count,
            observed_count=state.observed_count,
            batches_submitted=batcher.batches_submitted,
            failed_batches=self.error_sink.failed_batches,
            failed_documents=self.error_sink.failed_documents,
            poll_cycles=self.poll_cycles,
            start_timestamp=start_timestamp,
            end_timestamp=datetime.now(UTC),
        )
        log_structured(logger, "info", f"Indexed {report.result} documents", **report.to_dict())
        return report

    def _poll(self, state: IngestionState) -> RunState:
        deadline = None if self.timeout is None else self._clock() + self.timeout

        while True:
            state.observed_count = self.count()
            self.poll_cycles += 1

            delta = state.observed_delta
            expected = state.expected_count

            if state.errored:
                logger.error("Error while bulk indexing")
                return RunState.ERRORED

            logger.info(f"{delta}/{expected}")

            if delta >= expected:
                return RunState.DONE

            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    f"Gave up after {self.timeout:.1f}s: backend reflects {delta} "
                    f"of {expected} documents"
                )
                return RunState.INCOMPLETE

            self._sleep(self.poll_interval)

    def _transition(self, new_state: RunState) -> None:
        if new_state != self.state:
            logger.debug(f"Run state {self.state} -> {new_state}")
        self.state = new_state
