"""
Bounded-concurrency batch submission.

Hands sealed batches to the backend on worker threads. At most
``max_concurrent_batches`` batches are in flight; ``submit`` blocks the
caller while the bound is saturated.
"""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait

from bulkimport.backend.base import BackendAdapter
from bulkimport.models import Batch, BatchOutcome
from bulkimport.utils.logger import log_structured

logger = logging.getLogger("bulk_import.submitter")

BatchListener = Callable[[BatchOutcome], None]


class Submitter:
    """
    Dispatches batches to the backend with a bounded number in flight.

    Every batch produces exactly one listener call, with either
    per-document outcomes or a terminal failure. Nothing is retried.
    """

    def __init__(
        self,
        backend: BackendAdapter,
        max_concurrent_batches: int = 1,
        listener: BatchListener | None = None,
    ):
        """
        Initialize the submitter.

        Args:
            backend: Adapter that performs the bulk write
            max_concurrent_batches: Batches allowed in flight; 0 runs each
                batch synchronously on the submitting thread
            listener: Called once per completed batch

        Raises:
            ValueError: If max_concurrent_batches is negative
        """
        if max_concurrent_batches < 0:
            raise ValueError("max_concurrent_batches must be non-negative")

        self.backend = backend
        self.max_concurrent_batches = max_concurrent_batches
        self.listener = listener

        self._slots = threading.BoundedSemaphore(max(max_concurrent_batches, 1))
        self._executor: ThreadPoolExecutor | None = None
        if max_concurrent_batches > 0:
            self._executor = ThreadPoolExecutor(
                max_workers=max_concurrent_batches,
                thread_name_prefix="bulk-submit",
            )

        self._lock = threading.Lock()
        self._pending: set[Future] = set()
        self._in_flight = 0
        self._closed = False

    @property
    def in_flight(self) -> int:
        """Batches handed to the backend and not yet completed."""
        with self._lock:
            return self._in_flight

    def submit(self, batch: Batch) -> Future | None:
        """
        Submit a batch, blocking while the concurrency bound is saturated.

        Args:
            batch: Sealed batch

        Returns:
            Future resolving to the BatchOutcome, or None in synchronous mode

        Raises:
            RuntimeError: If the submitter has been closed
        """
        if self._closed:
            raise RuntimeError("Submitter is closed")

        log_structured(
            logger,
            "debug",
            f"New bulk actions queued [{batch.batch_id}] of [{len(batch)} items]",
            batch_id=batch.batch_id,
            items=len(batch),
            size_bytes=batch.size_bytes,
        )

        if self._executor is None:
            self._execute(batch)
            return None

        self._slots.acquire()
        with self._lock:
            self._in_flight += 1
        try:
            future = self._executor.submit(self._execute, batch)
        except BaseException:
            self._release()
            raise

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def drain(self, timeout: float | None = None) -> bool:
        """
        Wait for every in-flight batch to complete.

        Args:
            timeout: Maximum seconds to wait (None = no limit)

        Returns:
            True if nothing is left in flight
        """
        with self._lock:
            pending = set(self._pending)
        if pending:
            logger.debug(f"Waiting for {len(pending)} in-flight batches")
            wait(pending, timeout=timeout)
        return self.in_flight == 0

    def close(self) -> None:
        """Drain in-flight batches and stop the worker threads. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.drain()
        if self._executor is not None:
            self._executor.shutdown(wait=True)

    def _execute(self, batch: Batch) -> BatchOutcome:
        try:
            outcome = self._outcome_for(batch)
            if self.listener is not None:
                self.listener(outcome)
            return outcome
        finally:
            if self._executor is not None:
                self._release()

    def _outcome_for(self, batch: Batch) -> BatchOutcome:
        # Every failure up to the listener call becomes a terminal outcome
        start = time.monotonic()
        try:
            outcome = self.backend.submit_batch(batch)
            if not isinstance(outcome, BatchOutcome):
                raise TypeError(
                    f"backend returned {type(outcome).__name__}, expected BatchOutcome"
                )
            if not outcome.took_ms:
                outcome = BatchOutcome(
                    batch=batch,
                    items=outcome.items,
                    failure=outcome.failure,
                    took_ms=int((time.monotonic() - start) * 1000),
                )
        except Exception as e:
            took_ms = int((time.monotonic() - start) * 1000)
            outcome = BatchOutcome.failed(batch, f"{type(e).__name__}: {e}", took_ms=took_ms)
            logger.debug(f"Bulk [{batch.batch_id}] raised", exc_info=True)

        log_structured(
            logger,
            "debug",
            f"Bulk actions done [{batch.batch_id}] [{len(batch)} items] [{outcome.took_ms}ms]",
            batch_id=batch.batch_id,
            items=len(batch),
            took_ms=outcome.took_ms,
            failed=outcome.has_failures,
        )
        return outcome

    def _release(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._slots.release()

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        error = future.exception()
        if error is not None:
            logger.error(f"Batch listener failed: {error}", exc_info=error)
