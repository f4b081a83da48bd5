"""Random booking generator for test data.

Samples slots from the availability enumeration and synthesizes realistic
French school bookings for them. The enumeration was computed against the
bookings that existed *before* the run, so the generator keeps its own
ClaimSet of what it has accepted so far and skips any candidate that clashes
with it.

When the shuffled walk ends short of the requested count, a repair pass
looks for augmenting paths day by day (a day's bookings form a matching
between time positions and animators), so the batch reaches the largest
size the candidate pool allows before a shortfall is reported.
"""

import asyncio
import random
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Hashable, Iterable

from src.booking.availability import enumerate_available_slots, remaining_school_year
from src.booking.conflicts import ClaimSet
from src.booking.dates import today as local_today
from src.booking.logging import get_logger
from src.booking.models import AFTERNOON_HOURS, Animation, AppSettings, Booking, Slot

logger = get_logger(__name__)

FAKE_LAST_NAMES = [
    "Lefebvre", "Martin", "Bernard", "Dubois", "Thomas",
    "Robert", "Richard", "Petit", "Durand", "Leroy",
]
FAKE_FIRST_NAMES = [
    "Alice", "Benjamin", "Chloé", "David", "Eva",
    "François", "Gabrielle", "Hugo", "Inès", "Jules",
]
FAKE_CLASSES = ["PS", "MS", "GS", "CP", "CE1", "CE2", "CM1", "CM2"]
FAKE_COMMUNES = [
    "Lille", "Roubaix", "Tourcoing", "Villeneuve d'Ascq", "Marcq-en-Barœul", "Lambersart",
]
FAKE_SCHOOL_NAMES = [
    "École Pasteur", "École Victor Hugo", "École Jules Ferry",
    "École Jean Jaurès", "Groupe Scolaire Saint-Exupéry",
]


@dataclass
class GenerationResult:
    """Outcome of one generation run.

    A short batch is not an error: ``is_partial`` tells the caller that the
    candidate pool ran out before ``requested`` bookings could be placed.
    """

    requested: int
    bookings: list[Booking] = field(default_factory=list)

    @property
    def produced(self) -> int:
        return len(self.bookings)

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.produced)

    @property
    def is_partial(self) -> bool:
        return self.shortfall > 0

    @property
    def message(self) -> str:
        if self.produced == 0 and self.requested > 0:
            return "Aucun créneau n'est disponible avec les filtres actuels."
        if self.is_partial:
            return (
                f"Seulement {self.produced} réservation(s) sur les {self.requested} "
                "demandées en raison de conflits de créneaux."
            )
        return f"{self.produced} réservation(s) générée(s)."


def _ascii_lower(text: str) -> str:
    return (
        text.lower()
        .replace("é", "e")
        .replace("è", "e")
        .replace("ç", "c")
        .replace("ï", "i")
    )


def fake_booking(slot: Slot, rng: random.Random, booking_id: str) -> Booking:
    """Fully populated synthetic booking for a slot."""
    first_name = rng.choice(FAKE_FIRST_NAMES)
    last_name = rng.choice(FAKE_LAST_NAMES)
    return Booking(
        id=booking_id,
        animation_id=slot.animation.id,
        animation_title=slot.animation.title,
        date=slot.date,
        time=slot.hour,
        teacher_name=f"{first_name} {last_name}",
        class_level=rng.choice(FAKE_CLASSES),
        commune=rng.choice(FAKE_COMMUNES),
        school_name=rng.choice(FAKE_SCHOOL_NAMES),
        phone_number=f"06{rng.randrange(100_000_000):08d}",
        email=f"{_ascii_lower(first_name)}.{_ascii_lower(last_name)}@ecole-fictive.fr",
        student_count=rng.randint(20, 30),
        adult_count=rng.randint(2, 4),
        bus_info=(
            f"Le bus doit récupérer la classe à l'école primaire de {last_name}ville à 8h30."
        ),
        bus_status="pending",
    )


def _position(hour: int) -> Hashable:
    return "afternoon" if hour in AFTERNOON_HOURS else hour


def _resource(slot: Slot) -> Hashable:
    # Animations without an animator only compete for their time position
    if slot.animation.has_animator:
        return ("animator", slot.animation.animator)
    return ("free", _position(slot.hour))


class _DayMatching:
    """Bookings of one day as a matching of time positions to animators."""

    def __init__(self, candidates: list[Slot]) -> None:
        self.edges: dict[Hashable, list[tuple[Hashable, Slot]]] = defaultdict(list)
        for slot in candidates:
            self.edges[_position(slot.hour)].append((_resource(slot), slot))
        self.by_position: dict[Hashable, tuple[Hashable, Slot]] = {}
        self.by_resource: dict[Hashable, Hashable] = {}

    def assign(self, slot: Slot) -> None:
        position, resource = _position(slot.hour), _resource(slot)
        self.by_position[position] = (resource, slot)
        self.by_resource[resource] = position

    def open_positions(self) -> list[Hashable]:
        return [p for p in self.edges if p not in self.by_position]

    def augment(self, position: Hashable, visited: set[Hashable]) -> bool:
        for resource, slot in self.edges[position]:
            if resource in visited:
                continue
            visited.add(resource)
            holder = self.by_resource.get(resource)
            if holder is None or self.augment(holder, visited):
                self.by_position[position] = (resource, slot)
                self.by_resource[resource] = position
                return True
        return False


def generate(
    count: int,
    target_months: Iterable[int] | None,
    slots: Iterable[Slot],
    rng: random.Random | None = None,
    id_factory: Callable[[], str] | None = None,
) -> GenerationResult:
    """Pick up to ``count`` mutually compatible slots and synthesize bookings.

    Args:
        count: Number of bookings requested.
        target_months: Calendar months (1-12) to draw from; None for all.
        slots: Candidate pool, typically from enumerate_available_slots.
        rng: Random source; a fresh unseeded one by default.
        id_factory: Booking id factory; random hex ids by default.

    Returns:
        GenerationResult with at most ``count`` bookings.

    Raises:
        ValueError: If count is negative.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    rng = rng or random.Random()
    id_factory = id_factory or (lambda: uuid.uuid4().hex)
    if count == 0:
        return GenerationResult(requested=0)

    months = set(target_months) if target_months is not None else None
    candidates = [slot for slot in slots if months is None or slot.month in months]
    rng.shuffle(candidates)

    claims = ClaimSet()
    accepted: list[Slot] = []
    for slot in candidates:
        if len(accepted) >= count:
            break
        if claims.conflicts(slot):
            continue
        claims.claim_slot(slot)
        accepted.append(slot)

    if len(accepted) < count:
        accepted = _fill_shortfall(candidates, accepted, count)

    result = GenerationResult(
        requested=count,
        bookings=[fake_booking(slot, rng, id_factory()) for slot in accepted],
    )
    if result.is_partial:
        logger.warning(
            "generation_short",
            requested=count,
            produced=result.produced,
            candidates=len(candidates),
        )
    else:
        logger.info("generation_complete", produced=result.produced)
    return result


def _fill_shortfall(candidates: list[Slot], accepted: list[Slot], count: int) -> list[Slot]:
    """Grow the accepted set with augmenting paths until count or maximum."""
    by_day: dict[date, list[Slot]] = defaultdict(list)
    for slot in candidates:
        by_day[slot.date].append(slot)

    matchings = {day: _DayMatching(day_slots) for day, day_slots in by_day.items()}
    order: list[tuple[date, Hashable]] = []
    for slot in accepted:
        matchings[slot.date].assign(slot)
        order.append((slot.date, _position(slot.hour)))

    needed = count - len(accepted)
    for day, matching in matchings.items():
        for position in matching.open_positions():
            if needed == 0:
                break
            if matching.augment(position, set()):
                order.append((day, position))
                needed -= 1
        if needed == 0:
            break

    return [matchings[day].by_position[position][1] for day, position in order]


async def generate_for_school_year(
    animations: Iterable[Animation],
    settings: AppSettings,
    bookings: Iterable[Booking],
    count: int,
    months: Iterable[int] | None = None,
    rng: random.Random | None = None,
    today: date | None = None,
    yield_seconds: float = 0.05,
) -> GenerationResult:
    """Enumerate the rest of the school year and generate from it.

    Yields control once before the synchronous enumeration so an event loop
    serving the admin UI stays responsive. The run cannot be cancelled once
    enumeration has started.
    """
    animations = list(animations)
    bookings = list(bookings)
    await asyncio.sleep(yield_seconds)

    today = today or local_today()
    date_range = remaining_school_year(settings, today)
    slots = list(enumerate_available_slots(animations, settings, bookings, date_range, today))
    logger.debug(
        "generation_pool",
        slots=len(slots),
        start=str(date_range.start),
        end=str(date_range.end),
    )
    return generate(count, months, slots, rng=rng)
