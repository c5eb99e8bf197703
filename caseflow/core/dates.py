from __future__ import annotations

import calendar
from datetime import date


def months_ago(today: date, months: int) -> date:
    """Return the same calendar day ``months`` months earlier, clamped to month end."""

    total = today.year * 12 + (today.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
