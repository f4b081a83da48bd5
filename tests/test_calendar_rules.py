from datetime import date

from src.booking.calendar_rules import earliest_bookable_day, is_date_bookable, is_holiday
from src.booking.models import AppSettings, Holiday

from tests.fakes import TODAY, TUESDAY, WEDNESDAY

ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


def test_allowed_weekdays(settings):
    assert is_date_bookable(TUESDAY, settings, TODAY)
    assert not is_date_bookable(WEDNESDAY, settings, TODAY)


def test_holiday_endpoints_are_closed():
    winter = Holiday(name="Noël", start_date=date(2025, 12, 20), end_date=date(2026, 1, 4))
    settings = AppSettings(allowed_days=ALL_DAYS, booking_lead_time=0, holidays=[winter])
    today = date(2025, 12, 1)

    assert is_date_bookable(date(2025, 12, 19), settings, today)
    assert not is_date_bookable(date(2025, 12, 20), settings, today)
    assert not is_date_bookable(date(2025, 12, 28), settings, today)
    assert not is_date_bookable(date(2026, 1, 4), settings, today)
    assert is_date_bookable(date(2026, 1, 5), settings, today)


def test_lead_time_boundary():
    settings = AppSettings(allowed_days=ALL_DAYS, booking_lead_time=14)
    today = date(2025, 10, 1)

    assert earliest_bookable_day(settings, today) == date(2025, 10, 15)
    assert not is_date_bookable(date(2025, 10, 14), settings, today)
    assert is_date_bookable(date(2025, 10, 15), settings, today)


def test_zero_lead_time_allows_today():
    settings = AppSettings(allowed_days=ALL_DAYS, booking_lead_time=0)
    assert is_date_bookable(date(2025, 10, 1), settings, date(2025, 10, 1))
    assert not is_date_bookable(date(2025, 9, 30), settings, date(2025, 10, 1))


def test_settings_changes_apply_on_next_call(settings):
    assert is_date_bookable(TUESDAY, settings, TODAY)
    closed = settings.model_copy(
        update={"holidays": [Holiday(name="Pont", start_date=TUESDAY, end_date=TUESDAY)]}
    )
    assert not is_date_bookable(TUESDAY, closed, TODAY)


def test_is_holiday_without_holidays():
    assert not is_holiday(TUESDAY, [])
