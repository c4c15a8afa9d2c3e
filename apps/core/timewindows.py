"""
Clock-time helpers shared by schedule validation and the booking engine.

All windows are half-open: [start, end).
"""
from datetime import time as time_type

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(t: time_type) -> int:
    return t.hour * 60 + t.minute


def minutes_to_time(total: int) -> time_type:
    return time_type(total // 60, total % 60)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True if minute window [a_start, a_end) overlaps [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def fmt_time(t: time_type) -> str:
    """
    Format time as '10:00 AM' without a leading zero on the hour.
    %-I is Linux-only and %#I is Windows-only, so build it by hand.
    """
    hour = t.hour % 12 or 12
    minute = t.strftime('%M')
    ampm = 'AM' if t.hour < 12 else 'PM'
    return f"{hour}:{minute} {ampm}"
