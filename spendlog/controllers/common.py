"""Helpers shared by the resource controllers."""

from datetime import date
from typing import Optional


def resolve_period(
    month: Optional[int],
    year: Optional[int],
    today: Optional[date] = None,
) -> tuple[int, int]:
    """Fill a missing month or year with the current one."""
    today = today or date.today()
    return month or today.month, year or today.year
