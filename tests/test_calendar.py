"""
tests/test_calendar.py

Pytest unit tests for time-dimension attribute derivation.

Coverage
--------
- Full attribute set for a known date
- April-start fiscal year and quarter
- Season bands
- Sunday-started week numbering
- Date iteration across a leap day
"""

from __future__ import annotations

from datetime import date

import pytest

from etl.calendar import fiscal_period, iter_dates, season_for_month, time_attributes, week_of_year


class TestTimeAttributes:
    def test_known_date(self) -> None:
        attrs = time_attributes(date(2025, 3, 15))

        assert attrs == {
            "date": date(2025, 3, 15),
            "year": 2025,
            "quarter": 1,
            "month": 3,
            "month_name": "March",
            "week": 11,
            "day": 15,
            "day_name": "Saturday",
            "is_weekend": True,
            "is_holiday": False,
            "season": "Spring",
            "fiscal_year": 2024,
            "fiscal_quarter": 4,
        }

    def test_weekday_is_not_weekend(self) -> None:
        attrs = time_attributes(date(2025, 3, 17))

        assert attrs["day_name"] == "Monday"
        assert attrs["is_weekend"] is False


class TestFiscalPeriod:
    @pytest.mark.parametrize(
        "day, expected",
        [
            (date(2025, 4, 1), (2025, 1)),
            (date(2025, 6, 30), (2025, 1)),
            (date(2025, 7, 1), (2025, 2)),
            (date(2025, 12, 31), (2025, 3)),
            (date(2026, 1, 1), (2025, 4)),
            (date(2025, 3, 31), (2024, 4)),
        ],
    )
    def test_april_start(self, day, expected) -> None:
        assert fiscal_period(day) == expected


class TestSeason:
    @pytest.mark.parametrize(
        "month, expected",
        [(1, "Winter"), (3, "Spring"), (6, "Summer"), (9, "Fall"), (11, "Fall"), (12, "Winter")],
    )
    def test_month_bands(self, month, expected) -> None:
        assert season_for_month(month) == expected


class TestWeekOfYear:
    def test_first_of_january_is_week_one(self) -> None:
        assert week_of_year(date(2025, 1, 1)) == 1

    def test_week_rolls_on_sunday(self) -> None:
        assert week_of_year(date(2025, 1, 4)) == 1
        assert week_of_year(date(2025, 1, 5)) == 2


class TestIterDates:
    def test_inclusive_across_leap_day(self) -> None:
        days = list(iter_dates(date(2024, 2, 28), date(2024, 3, 1)))

        assert days == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_empty_when_end_before_start(self) -> None:
        assert list(iter_dates(date(2024, 3, 2), date(2024, 3, 1))) == []
