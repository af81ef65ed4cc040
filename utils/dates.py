"""
Date helpers for visit recency and tour timing.
"""

from datetime import date
from typing import Optional, Union


def days_since(day: Union[date, str], today: Optional[date] = None) -> int:
    """Whole days between day and today (negative for future days)."""
    if isinstance(day, str):
        day = date.fromisoformat(day[:10])
    today = today or date.today()
    return (today - day).days


def is_within_days(day: Union[date, str], window_days: int, today: Optional[date] = None) -> bool:
    """
    Whether day lies inside the last window_days days.

    A day exactly window_days ago still counts as inside; future days
    (clock skew) count as inside too.

    Args:
        day: The past date, e.g. a market's last visit
        window_days: Size of the window, e.g. 21
        today: Reference day (defaults to date.today())
    """
    return days_since(day, today) <= window_days


def format_minutes(minutes: int) -> str:
    """90 -> '1h 30min', 45 -> '45min'."""
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins}min"
    return f"{mins}min"
