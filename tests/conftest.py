from datetime import date

import pytest

from src.booking.config import BookingConfig
from src.booking.models import Animation, Animator, AppSettings, Booking


@pytest.fixture
def config():
    return BookingConfig(
        store_backend="memory",
        emailjs_service_id="service_test",
        emailjs_public_key="public_test",
        cloudinary_cloud_name="demo-cloud",
        cloudinary_upload_preset="unsigned_preset",
        generator_yield_seconds=0,
    )


@pytest.fixture
def settings():
    return AppSettings(
        active_year="2025-2026",
        booking_lead_time=14,
        allowed_days=[2, 4],
        available_time_slots=[9, 10, 14, 15],
        animators=[
            Animator(name="Alice", email="alice@example.org"),
            Animator(name="Bob"),
        ],
        admin_email="admin@example.org",
        admin_username="admin",
        admin_password="s3cret",
    )


@pytest.fixture
def animations():
    return [
        Animation(id="contes", title="Contes et légendes", animator="Alice", order=0),
        Animation(id="jardin", title="Jardin pédagogique", animator="Bob", order=1),
        Animation(id="musique", title="Éveil musical", animator=None, order=2),
    ]


@pytest.fixture
def make_booking(animations):
    titles = {a.id: a.title for a in animations}
    counter = iter(range(1, 10_000))

    def _make(animation_id: str, day: date, hour: int, **fields) -> Booking:
        return Booking(
            id=fields.pop("id", f"b{next(counter)}"),
            animation_id=animation_id,
            animation_title=titles.get(animation_id, animation_id),
            date=day,
            time=hour,
            teacher_name=fields.pop("teacher_name", "Mme Durand"),
            school_name=fields.pop("school_name", "École Pasteur"),
            commune=fields.pop("commune", "Lille"),
            bus_info=fields.pop("bus_info", "Devant l'école à 8h30"),
            **fields,
        )

    return _make
