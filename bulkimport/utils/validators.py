"""
Value parsers and path validators for the bulk import pipeline.

Parses human-friendly byte sizes, durations and host:port endpoints, and
validates the import root folder.
"""

import re
from pathlib import Path


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


_BYTE_UNITS = {
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "m": 1024**2,
    "mb": 1024**2,
    "g": 1024**3,
    "gb": 1024**3,
}

_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")


def parse_byte_size(value: str | int) -> int:
    """
    Parse a byte size such as ``10mb``, ``512kb`` or ``2048``.

    Args:
        value: Size string with optional unit, or a plain byte count

    Returns:
        Size in bytes

    Raises:
        ValidationError: If the value cannot be parsed or is not positive
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid byte size: {value!r}")

    if isinstance(value, int):
        size = value
    else:
        match = _SIZE_PATTERN.match(str(value))
        if not match:
            raise ValidationError(f"Invalid byte size: {value!r}")

        number, unit = match.groups()
        multiplier = _BYTE_UNITS.get(unit.lower() or "b")
        if multiplier is None:
            raise ValidationError(f"Unknown byte size unit '{unit}' in {value!r}")
        size = int(float(number) * multiplier)

    if size <= 0:
        raise ValidationError(f"Byte size must be positive: {value!r}")

    return size


def parse_duration(value: str | int | float) -> float:
    """
    Parse a duration such as ``5s``, ``500ms``, ``1m`` or ``2.5``.

    Plain numbers are seconds.

    Args:
        value: Duration string with optional unit, or seconds

    Returns:
        Duration in seconds

    Raises:
        ValidationError: If the value cannot be parsed or is not positive
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        match = _SIZE_PATTERN.match(str(value))
        if not match:
            raise ValidationError(f"Invalid duration: {value!r}")

        number, unit = match.groups()
        multiplier = _DURATION_UNITS.get(unit.lower() or "s")
        if multiplier is None:
            raise ValidationError(f"Unknown duration unit '{unit}' in {value!r}")
        seconds = float(number) * multiplier

    if seconds <= 0:
        raise ValidationError(f"Duration must be positive: {value!r}")

    return seconds


def parse_endpoint(value: str) -> tuple[str, int]:
    """
    Split a ``host:port`` endpoint.

    Args:
        value: Endpoint string

    Returns:
        Tuple of (host, port)

    Raises:
        ValidationError: If the endpoint is malformed
    """
    host, sep, port = value.strip().rpartition(":")
    if not sep or not host:
        raise ValidationError(f"Endpoint must be host:port, got {value!r}")

    try:
        port_number = int(port)
    except ValueError as e:
        raise ValidationError(f"Invalid port in endpoint {value!r}") from e

    if not 0 < port_number < 65536:
        raise ValidationError(f"Port out of range in endpoint {value!r}")

    return host, port_number


def validate_root_path(root_path: Path) -> tuple[bool, str | None]:
    """
    Validate that the import root exists and is a readable directory.

    Args:
        root_path: Path to validate

    Returns:
        Tuple of (is_valid, error_message)
        - is_valid: True if validation passed
        - error_message: Error description if validation failed, None otherwise
    """
    if not root_path.exists():
        return False, f"Path does not exist: {root_path}"

    if not root_path.is_dir():
        return False, f"Path is not a directory: {root_path}"

    try:
        next(root_path.iterdir(), None)
    except PermissionError:
        return False, f"Permission denied: cannot read directory {root_path}"
    except OSError as e:
        return False, f"OS error accessing directory {root_path}: {e}"

    return True, None
