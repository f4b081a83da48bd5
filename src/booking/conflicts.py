"""Slot conflict rules: can this animation be booked at this (date, hour)?

Three exclusivity rules apply platform-wide on a given day:
  - one booking per exact hour, whatever the animation;
  - one booking in the afternoon band (14h or 15h);
  - one booking per assigned animator, whatever the hour.
The calendar rules and the animator's own constraints are checked last.

The checks read the bookings passed in and nothing else. ClaimSet is the
incremental counterpart used while a batch is being assembled in memory.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Mapping

from src.booking.animators import is_animator_available
from src.booking.calendar_rules import is_date_bookable
from src.booking.errors import ConstraintViolation
from src.booking.models import AFTERNOON_HOURS, Animation, AppSettings, Booking, Slot

SLOT_TAKEN = "slot_taken"
AFTERNOON_TAKEN = "afternoon_taken"
ANIMATOR_BUSY = "animator_busy"
DATE_CLOSED = "date_closed"
ANIMATOR_UNAVAILABLE = "animator_unavailable"
UNKNOWN_SLOT = "unknown_slot"

REASON_MESSAGES: dict[str, str] = {
    SLOT_TAKEN: "Ce créneau est déjà réservé.",
    AFTERNOON_TAKEN: "Une animation est déjà programmée cet après-midi.",
    ANIMATOR_BUSY: "L'animateur est déjà réservé ce jour-là.",
    DATE_CLOSED: "Cette date n'est pas ouverte à la réservation.",
    ANIMATOR_UNAVAILABLE: "L'animateur n'est pas disponible sur ce créneau.",
    UNKNOWN_SLOT: "Cet horaire n'est pas proposé.",
}


def animator_map(animations: Iterable[Animation]) -> dict[str, str]:
    """Map animation id -> animator name, for animations with an animator."""
    return {a.id: a.animator for a in animations if a.has_animator}


def bookings_by_day(bookings: Iterable[Booking]) -> dict[date, list[Booking]]:
    grouped: dict[date, list[Booking]] = defaultdict(list)
    for booking in bookings:
        grouped[booking.date].append(booking)
    return dict(grouped)


def find_exclusivity_conflict(
    animation: Animation,
    day: date,
    hour: int,
    bookings: Iterable[Booking],
    animators_by_animation: Mapping[str, str],
) -> str | None:
    """Check only the three per-day exclusivity rules against bookings.

    Used on its own for admin edits, where the calendar rules no longer
    apply to an existing booking.
    """
    day_bookings = [booking for booking in bookings if booking.date == day]

    if any(booking.time == hour for booking in day_bookings):
        return SLOT_TAKEN

    if hour in AFTERNOON_HOURS and any(b.time in AFTERNOON_HOURS for b in day_bookings):
        return AFTERNOON_TAKEN

    if animation.has_animator and any(
        animators_by_animation.get(b.animation_id) == animation.animator
        for b in day_bookings
    ):
        return ANIMATOR_BUSY

    return None


def find_conflict(
    animation: Animation,
    day: date,
    hour: int,
    bookings: Iterable[Booking],
    animators_by_animation: Mapping[str, str],
    settings: AppSettings,
    today: date | None = None,
) -> str | None:
    """Return the first rule that rejects the slot, or None when bookable.

    Args:
        animation: Animation the teacher wants to book.
        day: Calendar day of the slot.
        hour: Hour of the slot.
        bookings: Existing bookings snapshot (any days; filtered here).
        animators_by_animation: animation id -> animator name (see animator_map).
        settings: Global settings (calendar rules and animator settings).
        today: Reference day for the lead time.

    Returns:
        One of the reason codes of this module, or None.
    """
    reason = find_exclusivity_conflict(animation, day, hour, bookings, animators_by_animation)
    if reason is not None:
        return reason

    if not is_date_bookable(day, settings, today):
        return DATE_CLOSED

    if not is_animator_available(animation.animator, day, hour, settings.animator_settings):
        return ANIMATOR_UNAVAILABLE

    if hour not in settings.available_time_slots:
        return UNKNOWN_SLOT

    return None


def is_slot_bookable(
    animation: Animation,
    day: date,
    hour: int,
    bookings: Iterable[Booking],
    animators_by_animation: Mapping[str, str],
    settings: AppSettings,
    today: date | None = None,
) -> bool:
    return (
        find_conflict(animation, day, hour, bookings, animators_by_animation, settings, today)
        is None
    )


def ensure_slot_bookable(
    animation: Animation,
    day: date,
    hour: int,
    bookings: Iterable[Booking],
    animators_by_animation: Mapping[str, str],
    settings: AppSettings,
    today: date | None = None,
) -> None:
    """Like is_slot_bookable, but raise so the caller can show why.

    Raises:
        ConstraintViolation: With the reason code of the failing rule.
    """
    reason = find_conflict(
        animation, day, hour, bookings, animators_by_animation, settings, today
    )
    if reason is not None:
        raise ConstraintViolation(reason, REASON_MESSAGES[reason])


class ClaimSet:
    """Slots claimed so far by one batch, checked with the same three rules.

    Holds exact (day, hour) slots, (day, afternoon) bands and
    (day, animator) pairs. Lives for a single generation run.
    """

    def __init__(self) -> None:
        self._slots: set[tuple[date, int]] = set()
        self._afternoons: set[date] = set()
        self._animator_days: set[tuple[date, str]] = set()

    def __len__(self) -> int:
        return len(self._slots)

    def conflict(self, day: date, hour: int, animator: str | None) -> str | None:
        if (day, hour) in self._slots:
            return SLOT_TAKEN
        if hour in AFTERNOON_HOURS and day in self._afternoons:
            return AFTERNOON_TAKEN
        if animator and animator.strip() and (day, animator) in self._animator_days:
            return ANIMATOR_BUSY
        return None

    def claim(self, day: date, hour: int, animator: str | None) -> None:
        self._slots.add((day, hour))
        if hour in AFTERNOON_HOURS:
            self._afternoons.add(day)
        if animator and animator.strip():
            self._animator_days.add((day, animator))

    def conflicts(self, slot: Slot) -> bool:
        return self.conflict(slot.date, slot.hour, slot.animation.animator) is not None

    def claim_slot(self, slot: Slot) -> None:
        self.claim(slot.date, slot.hour, slot.animation.animator)
