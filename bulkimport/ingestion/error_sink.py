"""
Failure aggregation for submitted batches.

Collapses per-batch and per-document failures into one sticky error flag
that the completion tracker polls.
"""

import logging
import threading

from bulkimport.models import BatchOutcome
from bulkimport.utils.logger import log_structured

logger = logging.getLogger("bulk_import.error_sink")


class ErrorSink:
    """
    Sticky error state for one import run.

    Completion callbacks from any submitter worker may report failures; once
    errored, the sink never goes back.
    """

    def __init__(self, flag: threading.Event | None = None):
        """
        Args:
            flag: Event to set on the first failure (default: a new one)
        """
        self.flag = flag if flag is not None else threading.Event()
        self._lock = threading.Lock()
        self.failed_batches = 0
        self.failed_documents = 0

    def is_errored(self) -> bool:
        return self.flag.is_set()

    def on_batch_result(self, outcome: BatchOutcome) -> None:
        """
        Record the outcome of one batch.

        Args:
            outcome: Completed batch outcome from the submitter
        """
        batch_id = outcome.batch.batch_id

        if outcome.is_terminal_failure:
            logger.error(
                f"Bulk actions done with errors [{batch_id}]: {outcome.failure}"
            )
            with self._lock:
                self.failed_batches += 1
            self.flag.set()
            return

        failed = outcome.failed_items
        if not failed:
            log_structured(
                logger,
                "debug",
                f"Bulk [{batch_id}] accepted all {len(outcome.batch)} documents",
                batch_id=batch_id,
            )
            return

        for item in failed:
            logger.error(f"{item.document.describe()}: {item.error}")

        with self._lock:
            self.failed_documents += len(failed)
        self.flag.set()
