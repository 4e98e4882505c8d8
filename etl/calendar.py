"""
etl/calendar.py

Calendar attribute derivation for the time dimension.

Seasons follow Northern-hemisphere month bands. The fiscal year starts on
1 April and is named after the calendar year in which it starts, so
March 2025 belongs to fiscal 2024 Q4.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from datetime import date, timedelta
from typing import Any

DEFAULT_RANGE_START = date(2020, 1, 1)
DEFAULT_RANGE_END = date(2030, 12, 31)

FISCAL_YEAR_START_MONTH = 4

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def season_for_month(month: int) -> str:
    if 3 <= month <= 5:
        return "Spring"
    if 6 <= month <= 8:
        return "Summer"
    if 9 <= month <= 11:
        return "Fall"
    return "Winter"


def fiscal_period(day: date) -> tuple[int, int]:
    """
    Return (fiscal_year, fiscal_quarter) on an April-start fiscal calendar.
    """

    fiscal_year = day.year if day.month >= FISCAL_YEAR_START_MONTH else day.year - 1
    months_into_year = (day.month - FISCAL_YEAR_START_MONTH) % 12
    return fiscal_year, months_into_year // 3 + 1


def week_of_year(day: date) -> int:
    """
    Week number counting Sunday-started weeks, with week 1 containing 1 January.
    """

    jan_first = date(day.year, 1, 1)
    # date.weekday() is Monday=0; shift so Sunday=0.
    jan_first_offset = (jan_first.weekday() + 1) % 7
    days_elapsed = (day - jan_first).days
    return math.ceil((days_elapsed + jan_first_offset + 1) / 7)


def time_attributes(day: date) -> dict[str, Any]:
    """
    Derive every dim_time column for one calendar date.
    """

    fiscal_year, fiscal_quarter = fiscal_period(day)
    weekday = day.weekday()
    return {
        "date": day,
        "year": day.year,
        "quarter": (day.month - 1) // 3 + 1,
        "month": day.month,
        "month_name": _MONTH_NAMES[day.month - 1],
        "week": week_of_year(day),
        "day": day.day,
        "day_name": _DAY_NAMES[weekday],
        "is_weekend": weekday >= 5,
        "is_holiday": False,
        "season": season_for_month(day.month),
        "fiscal_year": fiscal_year,
        "fiscal_quarter": fiscal_quarter,
    }


def iter_dates(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
