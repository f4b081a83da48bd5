import os
import time as clock
from datetime import date, datetime, time, timezone

import pytest

from src.booking.dates import (
    as_local_day,
    format_date_fr,
    iter_days,
    js_weekday,
    parse_active_year,
    parse_yyyymmdd,
    school_year_bounds,
    school_year_months,
    to_yyyymmdd,
)


@pytest.fixture
def paris_time():
    """Run the test with the process timezone set to Europe/Paris."""
    if not hasattr(clock, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "Europe/Paris"
    clock.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    clock.tzset()


class TestDayStrings:
    def test_to_yyyymmdd_pads_fields(self):
        assert to_yyyymmdd(date(2026, 3, 5)) == "2026-03-05"

    def test_round_trip_over_school_year(self):
        """Every day from October 1st to June 30th survives both directions."""
        for day in iter_days(date(2025, 10, 1), date(2026, 6, 30)):
            assert parse_yyyymmdd(to_yyyymmdd(day)) == day

    def test_local_datetime_keeps_its_calendar_day(self, paris_time):
        """Aware datetimes near midnight around the DST changes keep their local day."""
        cases = [
            # 00:30 CEST, the night the clocks go back
            (datetime(2025, 10, 25, 22, 30, tzinfo=timezone.utc), date(2025, 10, 26)),
            # 23:30 CET, same day after the change
            (datetime(2025, 10, 26, 22, 30, tzinfo=timezone.utc), date(2025, 10, 26)),
            # 00:30 CET, the night the clocks go forward
            (datetime(2026, 3, 28, 23, 30, tzinfo=timezone.utc), date(2026, 3, 29)),
            # 23:30 CEST, same day after the change
            (datetime(2026, 3, 29, 21, 30, tzinfo=timezone.utc), date(2026, 3, 29)),
        ]
        for moment, day in cases:
            assert as_local_day(moment) == day
            assert to_yyyymmdd(moment) == to_yyyymmdd(day)

    def test_naive_local_midnight_keeps_its_day(self, paris_time):
        for day in (date(2025, 10, 26), date(2026, 3, 29)):
            for hour_of_day in (time(0, 0), time(23, 59)):
                moment = datetime.combine(day, hour_of_day).astimezone()
                assert to_yyyymmdd(moment) == to_yyyymmdd(day)

    @pytest.mark.parametrize("text", ["07/10/2025", "2025-13-01", "2025-02-30", "", "2025-1-1"])
    def test_parse_rejects_invalid(self, text):
        with pytest.raises(ValueError):
            parse_yyyymmdd(text)

    def test_format_date_fr(self):
        assert format_date_fr("2025-10-07") == "07/10/2025"
        assert format_date_fr("not a date") == "not a date"


class TestWeekdaysAndRanges:
    def test_js_weekday_numbering(self):
        assert js_weekday(date(2025, 10, 5)) == 0  # Sunday
        assert js_weekday(date(2025, 10, 7)) == 2  # Tuesday
        assert js_weekday(date(2025, 10, 11)) == 6  # Saturday

    def test_iter_days_is_inclusive(self):
        assert len(list(iter_days(date(2025, 10, 1), date(2025, 10, 31)))) == 31
        assert list(iter_days(date(2025, 10, 2), date(2025, 10, 1))) == []


class TestSchoolYear:
    def test_parse_active_year(self):
        assert parse_active_year("2026-2027") == (2026, 2027)

    def test_malformed_active_year_falls_back(self):
        assert parse_active_year("garbage") == (2025, 2026)

    def test_bounds(self):
        assert school_year_bounds("2025-2026") == (date(2025, 10, 1), date(2026, 6, 30))

    def test_months_before_start(self):
        months = school_year_months("2025-2026", date(2025, 9, 1))
        assert months[0] == (2025, 10)
        assert months[-1] == (2026, 6)
        assert len(months) == 9

    def test_months_mid_year_keep_current_month(self):
        months = school_year_months("2025-2026", date(2026, 1, 15))
        assert months == [(2026, m) for m in range(1, 7)]
