import math
import re
from typing import Optional

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")

# ===================== Time helpers =====================

def parse_time(value) -> Optional[int]:
    """
    Parse a timetable time to minutes since midnight.
    Supports:
    - text in "HH:MM" (seconds in "HH:MM:SS" are dropped)
    - int minutes, passed through
    Returns None for empty values and raises ValueError for malformed text.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid time value: {value!r}")
    if isinstance(value, int):
        if not 0 <= value < MINUTES_PER_DAY:
            raise ValueError(f"Time out of range: {value}")
        return value

    s = str(value).strip()
    if s == "":
        return None
    m = _HHMM_RE.match(s)
    if not m:
        raise ValueError(f"Invalid time format: {s!r} (expected HH:MM)")
    h, mins = int(m.group(1)), int(m.group(2))
    if not (0 <= h <= 23 and 0 <= mins <= 59):
        raise ValueError(f"Invalid time: {s!r}")
    return h * 60 + mins


def format_time(minutes: float) -> str:
    """Convert minutes since midnight to 'HH:MM'."""
    total = int(math.floor(minutes)) % MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def minutes_between(start: float, end: float) -> int:
    """Whole minutes from start to end, floored."""
    return int(math.floor(end - start))


def plural_minutes(n: int) -> str:
    return f"{n} minute" if n == 1 else f"{n} minutes"


def wrap_minutes(minutes: int) -> int:
    """Wrap a minute count into [0, 1440)."""
    return minutes % MINUTES_PER_DAY
