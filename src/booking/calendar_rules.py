"""School calendar rules: is a day open for bookings at all?

Pure functions of the settings passed in. Nothing is cached, so a settings
or holiday change is picked up on the next call.
"""

from datetime import date, timedelta
from typing import Iterable

from src.booking.dates import js_weekday
from src.booking.dates import today as local_today
from src.booking.models import AppSettings, Holiday


def is_holiday(day: date, holidays: Iterable[Holiday]) -> bool:
    """True if day falls inside any holiday range (endpoints included)."""
    return any(holiday.contains(day) for holiday in holidays)


def earliest_bookable_day(settings: AppSettings, today: date | None = None) -> date:
    """First day allowed by the lead time: today + booking_lead_time days."""
    today = today or local_today()
    return today + timedelta(days=settings.booking_lead_time)


def is_date_bookable(day: date, settings: AppSettings, today: date | None = None) -> bool:
    """Check the weekday allow-list, holiday ranges and lead time for a day.

    Args:
        day: Calendar day to check.
        settings: Global settings (allowed_days, holidays, booking_lead_time).
        today: Reference day for the lead time; defaults to the local day.

    Returns:
        True if the school calendar permits bookings on that day.
    """
    if js_weekday(day) not in settings.allowed_days:
        return False
    if is_holiday(day, settings.holidays):
        return False
    if day < earliest_bookable_day(settings, today):
        return False
    return True
