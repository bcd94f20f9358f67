"""
Document batching for the bulk import pipeline.

Accumulates offered documents into one open batch and seals it when the
document-count bound, the byte-volume bound or the flush interval is hit.
Sealed batches go straight to the submitter.
"""

import logging
import threading

from bulkimport.ingestion.submitter import Submitter
from bulkimport.models import AtomicCounter, Batch, Document, Thresholds

logger = logging.getLogger("bulk_import.batcher")


class Batcher:
    """
    Bounded batch accumulator with an optional time-based flush.

    ``offer`` runs on the enumeration thread; the flush timer runs on its
    own daemon thread. Both seal batches under the same lock, so a sealed
    batch is never touched again.
    """

    def __init__(
        self,
        submitter: Submitter,
        thresholds: Thresholds | None = None,
        expected_counter: AtomicCounter | None = None,
    ):
        """
        Initialize the batcher and start the flush timer if configured.

        Args:
            submitter: Receives every sealed batch
            thresholds: Batch bounds (default: Thresholds())
            expected_counter: Incremented once per offered document
        """
        self.submitter = submitter
        self.thresholds = thresholds or Thresholds()
        self.expected = expected_counter if expected_counter is not None else AtomicCounter()

        self._lock = threading.Lock()
        self._open: list[Document] = []
        self._open_bytes = 0
        self._next_batch_id = 1
        self._closed = False

        self._stop_timer = threading.Event()
        self._timer: threading.Thread | None = None
        if self.thresholds.flush_interval is not None:
            self._timer = threading.Thread(
                target=self._run_flush_timer,
                name="bulk-flush-timer",
                daemon=True,
            )
            self._timer.start()

    @property
    def batches_submitted(self) -> int:
        with self._lock:
            return self._next_batch_id - 1

    @property
    def pending_count(self) -> int:
        """Documents in the open batch."""
        with self._lock:
            return len(self._open)

    def offer(self, doc: Document) -> None:
        """
        Add a document to the open batch.

        May block while the submitter's concurrency bound is saturated.

        Args:
            doc: Document to import

        Raises:
            RuntimeError: If the batcher has been closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Batcher is closed")

            if self._open and self._open_bytes + doc.size > self.thresholds.max_bytes:
                self._seal_and_submit()

            self._open.append(doc)
            self._open_bytes += doc.size
            self.expected.increment()

            if (
                len(self._open) >= self.thresholds.max_count
                or self._open_bytes >= self.thresholds.max_bytes
            ):
                self._seal_and_submit()

    def flush(self) -> None:
        """Seal and submit the open batch if it holds any documents."""
        with self._lock:
            if self._open:
                self._seal_and_submit()

    def close(self) -> None:
        """
        Submit the remaining documents and wait for in-flight batches.

        Safe to call more than once.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        self._stop_timer.set()
        if self._timer is not None:
            self._timer.join()

        with self._lock:
            if self._open:
                self._seal_and_submit()

        self.submitter.drain()
        logger.debug(f"Batcher closed after {self.batches_submitted} batches")

    def __enter__(self) -> "Batcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _seal_and_submit(self) -> None:
        # Caller holds self._lock
        batch = Batch(batch_id=self._next_batch_id, documents=tuple(self._open))
        self._next_batch_id += 1
        self._open = []
        self._open_bytes = 0
        self.submitter.submit(batch)

    def _run_flush_timer(self) -> None:
        interval = self.thresholds.flush_interval
        while not self._stop_timer.wait(interval):
            with self._lock:
                if self._open and not self._closed:
                    logger.debug(f"Flush interval elapsed, sealing {len(self._open)} documents")
                    self._seal_and_submit()
