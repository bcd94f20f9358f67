"""
Logging setup for bulk import runs.

Two sinks share the ``bulk_import`` logger tree:
- stderr: short colored lines, one per event, tagged with the component
- file: one JSON object per line with every structured field attached
  through ``log_structured`` (batch ids, item counts, report totals)

stdout is left to the CLI for the usage text and the final count.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "bulk_import"
DEFAULT_LOG_DIR = Path(".logs")

# Whatever a bare record carries is bookkeeping; the rest came in via ``extra``
_RECORD_FIELDS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


def _structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items() if key not in _RECORD_FIELDS
    }


def _component(record: logging.LogRecord) -> str:
    # bulk_import.submitter -> submitter
    if record.name == ROOT_LOGGER_NAME:
        return "main"
    return record.name.removeprefix(f"{ROOT_LOGGER_NAME}.")


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for the run's log file."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "component": _component(record),
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        entry.update(_structured_fields(record))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console lines.

    Example::

        INFO     12:01:07 submitter  Bulk actions done [3] [1000 items] [412ms]
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_color and record.levelname in self.LEVEL_COLORS:
            level = f"{self.LEVEL_COLORS[record.levelname]}{level}{self.RESET}"

        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{level} {clock} {_component(record):10} {record.getMessage()}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def default_log_file() -> Path:
    """Per-run JSON log path under .logs/."""
    stamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    return DEFAULT_LOG_DIR / f"import_{stamp}.json"


def setup_logging(log_level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """
    Route the ``bulk_import`` logger tree to stderr and a JSON file.

    Calling it again replaces the previous handlers.

    Args:
        log_level: Console threshold (DEBUG, INFO, WARNING, ERROR)
        log_file: JSON log file; the file always receives DEBUG
            (default: .logs/import_<timestamp>.json)

    Returns:
        The configured root logger of the tree
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(log_level.upper())
    console.setFormatter(ConsoleFormatter(use_color=sys.stderr.isatty()))
    root.addHandler(console)

    log_file = log_file or default_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    json_file = logging.FileHandler(log_file, encoding="utf-8")
    json_file.setLevel(logging.DEBUG)
    json_file.setFormatter(JSONFormatter())
    root.addHandler(json_file)

    root.debug(f"Logging to stderr at {log_level.upper()} and to {log_file}")
    return root


def log_structured(logger: logging.Logger, level: str, message: str, **fields: Any) -> None:
    """
    Log a message with extra fields that only the JSON file shows.

    Args:
        logger: Component logger
        level: Method name on the logger (debug, info, warning, error)
        message: Console message
        **fields: Extra values, e.g. batch_id=3, items=1000
    """
    getattr(logger, level.lower())(message, extra=fields)


def format_error_message(
    error_summary: str,
    error_reason: str,
    suggested_action: str,
    file_path: Path | None = None,
) -> str:
    """
    Build a multi-line error block for the console.

    Examples:
        >>> print(format_error_message(
        ...     "Configuration invalid",
        ...     "max_bulk_actions must be at least 1",
        ...     "Fix the setting and try again",
        ... ))
        [X] Error: Configuration invalid
           Reason: max_bulk_actions must be at least 1
           Action: Fix the setting and try again
    """
    lines = [f"[X] Error: {error_summary}"]
    if file_path:
        lines.append(f"   File: {file_path}")
    lines.append(f"   Reason: {error_reason}")
    lines.append(f"   Action: {suggested_action}")
    return "\n".join(lines)
