"""Calendar-day helpers shared by every booking component.

All dates crossing the store boundary are ``YYYY-MM-DD`` strings built from
local calendar fields. Aware datetimes are converted to local time before the
day is taken, never through UTC, so a booking made at 23:30 stays on its day.
"""

import re
from datetime import date, datetime, timedelta
from typing import Iterator

# School year runs October (start year) to June (end year)
SCHOOL_YEAR_START_MONTH = 10
SCHOOL_YEAR_END_MONTH = 6
SCHOOL_YEAR_MONTHS: tuple[int, ...] = (10, 11, 12, 1, 2, 3, 4, 5, 6)

FALLBACK_SCHOOL_YEAR = (2025, 2026)

MONTH_NAMES_FR: dict[int, str] = {
    1: "Janvier",
    2: "Février",
    3: "Mars",
    4: "Avril",
    5: "Mai",
    6: "Juin",
    7: "Juillet",
    8: "Août",
    9: "Septembre",
    10: "Octobre",
    11: "Novembre",
    12: "Décembre",
}

_DAY_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ACTIVE_YEAR_PATTERN = re.compile(r"^\s*(\d{4})\s*-\s*(\d{4})\s*$")


def as_local_day(value: date | datetime) -> date:
    """Reduce a date or datetime to its local calendar day."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def to_yyyymmdd(value: date | datetime) -> str:
    """Serialize to 'YYYY-MM-DD' from local calendar fields."""
    day = as_local_day(value)
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_yyyymmdd(text: str) -> date:
    """Parse a 'YYYY-MM-DD' string into a date.

    Raises:
        ValueError: If the text is not a valid calendar day.
    """
    match = _DAY_PATTERN.match(text.strip()) if isinstance(text, str) else None
    if match is None:
        raise ValueError(f"Expected YYYY-MM-DD, got {text!r}")
    year, month, day = (int(part) for part in match.groups())
    return date(year, month, day)


def format_date_fr(text: str) -> str:
    """'2025-10-07' -> '07/10/2025'. Unparseable input is returned unchanged."""
    parts = text.split("-")
    if len(parts) != 3:
        return text
    return f"{parts[2]}/{parts[1]}/{parts[0]}"


def today() -> date:
    """Current local calendar day."""
    return date.today()


def js_weekday(day: date) -> int:
    """Weekday numbered 0=Sunday .. 6=Saturday, the numbering of allowed_days."""
    return (day.weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def parse_active_year(active_year: str) -> tuple[int, int]:
    """Split 'YYYY-YYYY' into (start_year, end_year).

    Malformed values fall back to FALLBACK_SCHOOL_YEAR, the same default the
    public calendar shows.
    """
    match = _ACTIVE_YEAR_PATTERN.match(active_year or "")
    if match is None:
        return FALLBACK_SCHOOL_YEAR
    return int(match.group(1)), int(match.group(2))


def school_year_bounds(active_year: str) -> tuple[date, date]:
    """First and last day of the school year (October 1st to June 30th)."""
    start_year, end_year = parse_active_year(active_year)
    return date(start_year, SCHOOL_YEAR_START_MONTH, 1), date(end_year, 6, 30)


def school_year_months(active_year: str, reference: date | None = None) -> list[tuple[int, int]]:
    """Remaining (year, month) pairs of the school year.

    Months before the reference day's month are dropped; the current month
    is kept.
    """
    start_year, end_year = parse_active_year(active_year)
    reference = reference or today()
    months = [
        (start_year if month >= SCHOOL_YEAR_START_MONTH else end_year, month)
        for month in SCHOOL_YEAR_MONTHS
    ]
    return [
        (year, month)
        for year, month in months
        if (year, month) >= (reference.year, reference.month)
    ]
