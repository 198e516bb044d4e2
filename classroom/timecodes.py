"""Wall-clock time strings ("9:00 AM") to minutes since midnight and back."""
import re

INVALID_TIME = -1
MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*(am|pm)$")


def encode_time(value: str) -> int:
    """Return minutes since midnight for ``"H:MM AM"``-style strings.

    Empty or malformed input (no colon, no AM/PM marker, out-of-range hour or
    minute) yields ``INVALID_TIME`` instead of raising, so callers must check
    for it before comparing.
    """
    if not value or not isinstance(value, str):
        return INVALID_TIME
    clean = " ".join(value.split()).lower()
    match = _TIME_PATTERN.match(clean)
    if not match:
        return INVALID_TIME
    hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3)
    if not 1 <= hours <= 12 or minutes > 59:
        return INVALID_TIME
    if period == "pm" and hours != 12:
        hours += 12
    if period == "am" and hours == 12:
        hours = 0
    return hours * 60 + minutes


def is_valid_time(value: str) -> bool:
    return encode_time(value) != INVALID_TIME


def format_minutes(minutes: int) -> str:
    """Inverse of :func:`encode_time` for values in ``[0, 1440)``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {minutes}")
    hours, mins = divmod(minutes, 60)
    period = "AM" if hours < 12 else "PM"
    display_hour = hours % 12 or 12
    return f"{display_hour}:{mins:02d} {period}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval test: touching endpoints do not overlap."""
    return start_a < end_b and start_b < end_a
