"""Booking core for school workshop reservations.

Calendar rules, animator constraints, slot conflicts, availability
enumeration and the random booking generator, plus the service that runs
them against the document store.
"""

from src.booking.availability import DateRange, enumerate_available_slots
from src.booking.calendar_rules import is_date_bookable
from src.booking.conflicts import ClaimSet, is_slot_bookable
from src.booking.generator import GenerationResult, generate
from src.booking.models import Animation, AppSettings, Booking, Slot
from src.booking.service import BookingService

__all__ = [
    "Animation",
    "AppSettings",
    "Booking",
    "BookingService",
    "ClaimSet",
    "DateRange",
    "GenerationResult",
    "Slot",
    "enumerate_available_slots",
    "generate",
    "is_date_bookable",
    "is_slot_bookable",
]
