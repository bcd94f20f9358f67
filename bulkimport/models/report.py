"""
Run report model.

Contains:
    - ImportReport: Final outcome of one bulk import run
"""

import os
from dataclasses import dataclass
from datetime import datetime

from bulkimport.models.status import RunState


@dataclass
class ImportReport:
    """
    Represents the summary of a complete import run.

    Attributes:
        state: Terminal run state (done/errored/incomplete)
        result: Last observed count delta, the run's reported count
        expected_count: Documents accepted by the batcher
        baseline_count: Backend count before the first write
        observed_count: Last absolute count polled from the backend
        batches_submitted: Number of batches handed to the submitter
        failed_batches: Batches that failed wholesale
        failed_documents: Documents the backend rejected
        poll_cycles: Count queries issued while polling
        start_timestamp: Run start time
        end_timestamp: Run end time
    """

    state: RunState
    result: int
    expected_count: int
    baseline_count: int
    observed_count: int
    batches_submitted: int
    failed_batches: int
    failed_documents: int
    poll_cycles: int
    start_timestamp: datetime
    end_timestamp: datetime

    def is_success(self) -> bool:
        """Check if every expected document became visible without errors."""
        return self.state == RunState.DONE

    @property
    def missing(self) -> int:
        """Expected documents not (yet) reflected in the backend count."""
        return max(self.expected_count - self.result, 0)

    @property
    def total_duration_seconds(self) -> float:
        """Total wall-clock time of the run."""
        return (self.end_timestamp - self.start_timestamp).total_seconds()

    def to_dict(self) -> dict:
        """
        Convert to dictionary for logging.

        Returns:
            Dictionary representation of the report
        """
        return {
            "state": self.state.value,
            "result": self.result,
            "expected_count": self.expected_count,
            "baseline_count": self.baseline_count,
            "observed_count": self.observed_count,
            "batches_submitted": self.batches_submitted,
            "failed_batches": self.failed_batches,
            "failed_documents": self.failed_documents,
            "poll_cycles": self.poll_cycles,
            "duration_seconds": round(self.total_duration_seconds, 2),
        }

    def summary(self) -> str:
        """
        Generate human-readable summary.

        Returns:
            Formatted summary string
        """
        lines = [
            os.linesep,
            "=" * 60,
            "Bulk Import Summary",
            "=" * 60,
            f"Outcome: {self.state.value.upper()}",
            f"Documents Expected: {self.expected_count}",
            f"  [OK] Indexed: {self.result}",
            f"  [..] Missing: {self.missing}",
            f"Baseline Count: {self.baseline_count}",
            f"Batches Submitted: {self.batches_submitted}",
            f"Poll Cycles: {self.poll_cycles}",
            f"Total Duration: {self.total_duration_seconds:.2f} seconds",
        ]

        if self.failed_batches or self.failed_documents:
            lines.append(
                f"[X] Failures: {self.failed_batches} batches, "
                f"{self.failed_documents} documents"
            )

        if self.state == RunState.INCOMPLETE:
            lines.append("[!] Timed out before the backend reflected every document")

        lines.append("=" * 60)
        return os.linesep.join(lines)
