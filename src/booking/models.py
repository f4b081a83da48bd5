"""Pydantic models for the booking documents.

Fields are snake_case in Python and serialize with camelCase aliases so the
stored documents keep the shape the web client reads (``animationId``,
``busStatus``, ``animatorSettings`` ...). Dates are calendar days and dump as
'YYYY-MM-DD'.
"""

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.booking.dates import parse_active_year, to_yyyymmdd

AFTERNOON_HOURS: frozenset[int] = frozenset({14, 15})

SETTINGS_DOCUMENT_ID = "global"

BusStatus = Literal["pending", "validated"]


class Document(BaseModel):
    """Base for everything persisted in the document store."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, as written to the store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Animation(Document):
    """A bookable workshop offering."""

    id: str
    title: str
    description: str | None = None
    class_level: str = ""  # free text, e.g. "CP-CE1"
    animator: str | None = None  # animator *name*, not an id
    color: str = "#ffffff"
    font_color: str = "#000000"
    order: int = 0

    @property
    def has_animator(self) -> bool:
        return bool(self.animator and self.animator.strip())


class Booking(Document):
    """A single reservation of one animation at one (date, hour) slot."""

    id: str
    animation_id: str
    animation_title: str  # denormalized copy of Animation.title
    date: dt.date
    time: int  # hour value from AppSettings.available_time_slots
    teacher_name: str = ""
    class_level: str = ""
    commune: str = ""
    school_name: str = ""
    phone_number: str = ""
    email: str = ""
    student_count: int = 0
    adult_count: int = 0
    bus_info: str = ""
    no_bus_required: bool = False
    bus_status: BusStatus | None = None
    bus_cost: float | None = None

    @property
    def date_key(self) -> str:
        return to_yyyymmdd(self.date)

    @property
    def is_afternoon(self) -> bool:
        return self.time in AFTERNOON_HOURS

    @property
    def effective_bus_status(self) -> str:
        """'none' when no bus is needed, otherwise the status (pending by default)."""
        if self.no_bus_required:
            return "none"
        return self.bus_status or "pending"


class BookingForm(BaseModel):
    """Teacher-supplied fields of the public booking form."""

    teacher_name: str = Field(min_length=1)
    class_level: str = Field(min_length=1)
    commune: str = Field(min_length=1)
    school_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    email: str = Field(min_length=3)
    student_count: int = Field(default=0, ge=0)
    adult_count: int = Field(default=0, ge=0)
    bus_info: str = ""
    no_bus_required: bool = False

    @model_validator(mode="after")
    def _bus_info_required(self) -> "BookingForm":
        if not self.no_bus_required and not self.bus_info.strip():
            raise ValueError("bus_info is required unless no_bus_required is set")
        return self


class Holiday(Document):
    """A named closed range, inclusive of both endpoints."""

    name: str
    start_date: dt.date
    end_date: dt.date

    @model_validator(mode="after")
    def _ordered(self) -> "Holiday":
        if self.end_date < self.start_date:
            raise ValueError(f"Holiday {self.name!r} ends before it starts")
        return self

    def contains(self, day: dt.date) -> bool:
        return self.start_date <= day <= self.end_date


class AnimatorSettings(Document):
    """Per-animator calendar constraints, keyed by animator name in AppSettings."""

    unavailable_dates: list[str] = Field(default_factory=list)  # YYYY-MM-DD
    inactive_slots: list[int] = Field(default_factory=list)  # hours never worked


class Animator(Document):
    name: str
    email: str = ""
    avatar_url: str = ""


class AppSettings(Document):
    """The single global settings document (id SETTINGS_DOCUMENT_ID).

    Cosmetic fields the web client stores here (colors, fonts, game images)
    are preserved as extra fields.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    active_year: str = "2025-2026"
    booking_lead_time: int = Field(default=14, ge=0)
    allowed_days: list[int] = Field(default_factory=lambda: [2, 4])  # 0=Sunday
    available_time_slots: list[int] = Field(default_factory=lambda: [9, 10, 14, 15])
    holidays: list[Holiday] = Field(default_factory=list)
    animators: list[Animator] = Field(default_factory=list)
    animator_settings: dict[str, AnimatorSettings] = Field(default_factory=dict)

    admin_email: str = ""
    admin_username: str = ""
    admin_password: str = ""

    homepage_title: str = "Réservez votre animation de classe"
    homepage_subtitle: str = "Choisissez une animation pour voir les créneaux disponibles"
    footer_content: str = ""
    contact_phone: str = ""
    contact_email: str = ""

    @field_validator("allowed_days")
    @classmethod
    def _weekday_range(cls, value: list[int]) -> list[int]:
        bad = [day for day in value if not 0 <= day <= 6]
        if bad:
            raise ValueError(f"allowed_days must be 0..6, got {bad}")
        return value

    @property
    def school_year(self) -> tuple[int, int]:
        return parse_active_year(self.active_year)

    def settings_for(self, animator: str | None) -> AnimatorSettings:
        """Constraints for an animator; a missing entry means no constraints."""
        if animator and animator in self.animator_settings:
            return self.animator_settings[animator]
        return AnimatorSettings()

    def find_animator(self, name: str) -> Animator | None:
        return next((a for a in self.animators if a.name == name), None)


class ChangelogEntry(Document):
    id: str
    date: dt.date
    version: str
    title: str
    description: str = ""


class Slot(BaseModel):
    """An (animation, date, hour) triple that may be booked."""

    model_config = ConfigDict(frozen=True)

    animation: Animation
    date: dt.date
    hour: int

    @property
    def date_key(self) -> str:
        return to_yyyymmdd(self.date)

    @property
    def month(self) -> int:
        return self.date.month

    @property
    def is_afternoon(self) -> bool:
        return self.hour in AFTERNOON_HOURS

    @property
    def band(self) -> str:
        """Display band: both afternoon hours collapse into 'afternoon'."""
        return "afternoon" if self.is_afternoon else str(self.hour)
