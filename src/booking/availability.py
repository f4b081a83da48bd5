"""Availability enumeration over the school year.

enumerate_available_slots walks a date range and yields every
(animation, date, hour) triple that is bookable against the bookings
snapshot it was given. Each triple is valid on its own; two triples from the
same run can still conflict with each other (same day and hour, same
afternoon, same animator). The generator resolves that with its own ClaimSet.

The month calendar used by the public booking page is a second view over
the same rules.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Iterator

from src.booking.calendar_rules import earliest_bookable_day, is_date_bookable, is_holiday
from src.booking.conflicts import animator_map, bookings_by_day, is_slot_bookable
from src.booking.dates import (
    SCHOOL_YEAR_END_MONTH,
    SCHOOL_YEAR_START_MONTH,
    iter_days,
    js_weekday,
    school_year_bounds,
    to_yyyymmdd,
)
from src.booking.dates import today as local_today
from src.booking.logging import get_logger
from src.booking.models import Animation, AppSettings, Booking, Slot

logger = get_logger(__name__)


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days. Empty when start > end."""

    start: date
    end: date

    def __iter__(self) -> Iterator[date]:
        return iter_days(self.start, self.end)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    @property
    def is_empty(self) -> bool:
        return self.start > self.end


def remaining_school_year(settings: AppSettings, today: date | None = None) -> DateRange:
    """From the later of today and October 1st through June 30th."""
    start, end = school_year_bounds(settings.active_year)
    today = today or local_today()
    return DateRange(max(start, today), end)


def enumerate_available_slots(
    animations: Iterable[Animation],
    settings: AppSettings,
    bookings: Iterable[Booking],
    date_range: DateRange,
    today: date | None = None,
) -> Iterator[Slot]:
    """Yield every bookable (animation, date, hour) in the range.

    Inputs are read once, when this function is called; the returned
    iterator never sees later changes and never mutates them. Calling again
    with the same inputs yields the same sequence: days in order, then
    animations by their ``order``, then hours as configured.

    Args:
        animations: Animations offered.
        settings: Global settings (calendar rules, animator settings, hours).
        bookings: Existing bookings snapshot.
        date_range: Days to walk.
        today: Reference day for the lead time; defaults to the local day.
    """
    today = today or local_today()
    ordered = sorted(animations, key=lambda animation: animation.order)
    animators = animator_map(ordered)
    by_day = bookings_by_day(bookings)
    hours = list(settings.available_time_slots)

    def _walk() -> Iterator[Slot]:
        for day in date_range:
            if not is_date_bookable(day, settings, today):
                continue
            day_bookings = by_day.get(day, [])
            for animation in ordered:
                for hour in hours:
                    if is_slot_bookable(
                        animation, day, hour, day_bookings, animators, settings, today
                    ):
                        yield Slot(animation=animation, date=day, hour=hour)

    return _walk()


def distinct_slot_count(slots: Iterable[Slot]) -> int:
    """Count one slot per day and band, whatever the number of animations."""
    return len({(slot.date, slot.band) for slot in slots})


def count_by_month(
    slots: Iterable[Slot], months: Iterable[tuple[int, int]]
) -> dict[tuple[int, int], int]:
    """Distinct day+band slots per (year, month), zero-filled for every month given."""
    counts = {month: 0 for month in months}
    seen: set[tuple[date, str]] = set()
    for slot in slots:
        key = (slot.date, slot.band)
        if key in seen:
            continue
        seen.add(key)
        month = (slot.date.year, slot.date.month)
        counts[month] = counts.get(month, 0) + 1
    return counts


@dataclass
class CalendarDay:
    """One open weekday of the public month calendar."""

    date: date
    too_soon: bool
    animator_unavailable: bool
    hours: dict[int, bool] = field(default_factory=dict)

    @property
    def date_key(self) -> str:
        return to_yyyymmdd(self.date)

    @property
    def is_open(self) -> bool:
        return any(self.hours.values())


def month_calendar(
    animation: Animation,
    year: int,
    month: int,
    settings: AppSettings,
    bookings: Iterable[Booking],
    animations: Iterable[Animation],
    today: date | None = None,
) -> list[CalendarDay]:
    """Open weekdays of a month for one animation, with per-hour availability.

    Holidays and closed weekdays are left out entirely. Days inside the lead
    time are listed but flagged ``too_soon`` with every hour unavailable.
    """
    today = today or local_today()
    animators = animator_map(animations)
    by_day = bookings_by_day(bookings)
    earliest = earliest_bookable_day(settings, today)
    unavailable = set(settings.settings_for(animation.animator).unavailable_dates)

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])

    days: list[CalendarDay] = []
    for day in iter_days(first, last):
        if js_weekday(day) not in settings.allowed_days:
            continue
        if is_holiday(day, settings.holidays):
            continue
        too_soon = day < earliest
        animator_off = animation.has_animator and to_yyyymmdd(day) in unavailable
        day_bookings = by_day.get(day, [])
        hours = {
            hour: not too_soon
            and not animator_off
            and is_slot_bookable(animation, day, hour, day_bookings, animators, settings, today)
            for hour in settings.available_time_slots
        }
        days.append(
            CalendarDay(
                date=day, too_soon=too_soon, animator_unavailable=animator_off, hours=hours
            )
        )
    return days


def can_navigate(year: int, month: int, settings: AppSettings) -> bool:
    """Months outside October..June of the active school year are not shown."""
    start_year, end_year = settings.school_year
    if year == start_year:
        return month >= SCHOOL_YEAR_START_MONTH
    if year == end_year:
        return month <= SCHOOL_YEAR_END_MONTH
    return False


def initial_month(settings: AppSettings, today: date | None = None) -> tuple[int, int]:
    """Month the calendar opens on: the current one if in the school year, else October."""
    today = today or local_today()
    if can_navigate(today.year, today.month, settings):
        return today.year, today.month
    return settings.school_year[0], SCHOOL_YEAR_START_MONTH
