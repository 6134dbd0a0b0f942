# backend/ephemera/utils/duration.py
"""Parsing of human duration strings such as ``2h``, ``1h30m`` or ``1.5h``."""
import re
from datetime import timedelta

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# Longest units first so "ms" wins over "m"
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """
    Parse an unsigned duration made of ``<number><unit>`` groups.

    Raises:
        ValueError: if the string is empty, signed or malformed.
    """
    if text is None:
        raise ValueError("duration is missing")
    value = text.strip()
    if not value:
        raise ValueError("duration is empty")
    if value == "0":
        return timedelta(0)

    seconds = 0.0
    position = 0
    for match in _COMPONENT.finditer(value):
        if match.start() != position:
            break
        number, unit = match.groups()
        seconds += float(number) * _UNITS[unit]
        position = match.end()

    if position != len(value):
        raise ValueError(f"invalid duration {text!r}")
    try:
        return timedelta(seconds=seconds)
    except OverflowError:
        raise ValueError(f"duration {text!r} is out of range")


def format_duration(delta: timedelta) -> str:
    """Render a timedelta compactly, e.g. ``1h30m0s``."""
    total = int(delta.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
