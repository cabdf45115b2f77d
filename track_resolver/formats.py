"""Helpers for reading upstream API responses."""

import math
import re
from typing import Any, Optional, Union

NUMBER_TEXT = re.compile(r"^-?[0-9]+$")


def duration_text_to_millis(duration: Union[str, int, float]) -> int:
    """Convert a duration to milliseconds.

    Accepts plain seconds ("45" or 45), "m:ss" and "h:mm:ss".

    Args:
        duration: Duration text or number of seconds

    Returns:
        Duration in milliseconds

    Raises:
        ValueError: If the text is not a colon-separated list of integers
    """
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")
    if isinstance(duration, (int, float)):
        if duration < 0 or not math.isfinite(duration):
            raise ValueError(f"Invalid duration: {duration!r}")
        return int(round(duration * 1000))

    seconds = 0
    for part in str(duration).strip().split(":"):
        if not part.isdigit():
            raise ValueError(f"Invalid duration: {duration!r}")
        seconds = seconds * 60 + int(part)

    return seconds * 1000


def dig(data: Any, *path: Union[str, int]) -> Any:
    """Walk a parsed JSON tree.

    Args:
        data: Parsed JSON value
        path: Object keys and array indexes, in order

    Returns:
        The value at the path, or None if any step is missing
    """
    for step in path:
        if isinstance(step, int):
            if not isinstance(data, list) or not -len(data) <= step < len(data):
                return None
            data = data[step]
        elif isinstance(data, dict):
            data = data.get(step)
        else:
            return None

        if data is None:
            return None

    return data


def safe_text(value: Any) -> str:
    """Text of a JSON value, empty string for null or missing."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def as_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """Integer value of a JSON number or numeric string, else default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str) and NUMBER_TEXT.match(value.strip()):
        return int(value.strip())
    return default
