"""
Shared run state for the bulk import pipeline.

Contains:
    - AtomicCounter: Lock-guarded monotonically increasing counter
    - IngestionState: Baseline, expected and observed counts plus the error flag of a run
"""

import threading
from dataclasses import dataclass, field


class AtomicCounter:
    """Counter incremented by the enumeration thread and read by the poll loop."""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """
        Increase the counter.

        Args:
            amount: Non-negative increment

        Returns:
            Value after the increment

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError("Counter can only increase")
        with self._lock:
            self._value += amount
            return self._value

    def get(self) -> int:
        with self._lock:
            return self._value


@dataclass
class IngestionState:
    """
    Reconciliation state created at run start.

    Attributes:
        baseline_count: Backend count sampled once before the first write
        expected: Documents accepted by the batcher so far
        observed_count: Last count polled from the backend
        error_flag: Sticky failure flag, shared with the ErrorSink that sets it
    """

    baseline_count: int = 0
    expected: AtomicCounter = field(default_factory=AtomicCounter)
    observed_count: int = 0
    error_flag: threading.Event = field(default_factory=threading.Event)

    @property
    def errored(self) -> bool:
        return self.error_flag.is_set()

    @property
    def expected_count(self) -> int:
        return self.expected.get()

    @property
    def observed_delta(self) -> int:
        """Documents the backend gained since the baseline was taken."""
        return self.observed_count - self.baseline_count
