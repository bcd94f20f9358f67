"""Import run state enumeration."""

from enum import Enum


class RunState(Enum):
    """State of a bulk import run."""

    ENUMERATING = "enumerating"
    DRAINING = "draining"
    POLLING = "polling"
    DONE = "done"
    ERRORED = "errored"
    INCOMPLETE = "incomplete"

    def __str__(self) -> str:
        """Return the string value of the state."""
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Check if the run has finished in this state."""
        return self in (RunState.DONE, RunState.ERRORED, RunState.INCOMPLETE)
