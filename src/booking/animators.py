"""Animator availability and the settings transformations that maintain it.

Animator settings are keyed by the animator's *name*, which is mutable. Any
rename is therefore a migration that moves the settings key and rewrites the
denormalized ``Animation.animator`` field together (see rename_animator).
Every function here returns new objects and leaves its inputs untouched.
"""

from datetime import date
from typing import Iterable, Mapping

from src.booking.dates import to_yyyymmdd
from src.booking.errors import ReferentialBlock
from src.booking.models import Animation, Animator, AnimatorSettings, AppSettings


def is_animator_available(
    animator_name: str | None,
    day: date,
    hour: int,
    animator_settings: Mapping[str, AnimatorSettings],
) -> bool:
    """Check an animator's inactive hours and unavailable days.

    An animation without an animator is unconstrained, and an animator
    without a settings entry has no constraints.
    """
    if not animator_name or not animator_name.strip():
        return True
    entry = animator_settings.get(animator_name)
    if entry is None:
        return True
    if hour in entry.inactive_slots:
        return False
    if to_yyyymmdd(day) in entry.unavailable_dates:
        return False
    return True


def _with_entry(settings: AppSettings, name: str, entry: AnimatorSettings) -> AppSettings:
    animator_settings = dict(settings.animator_settings)
    animator_settings[name] = entry
    return settings.model_copy(update={"animator_settings": animator_settings})


def mark_unavailable(settings: AppSettings, name: str, days: Iterable[date]) -> AppSettings:
    """Add days to an animator's unavailable dates (kept sorted and unique)."""
    current = settings.settings_for(name)
    dates = set(current.unavailable_dates) | {to_yyyymmdd(day) for day in days}
    entry = current.model_copy(update={"unavailable_dates": sorted(dates)})
    return _with_entry(settings, name, entry)


def clear_unavailable(settings: AppSettings, name: str, day: date) -> AppSettings:
    current = settings.settings_for(name)
    key = to_yyyymmdd(day)
    entry = current.model_copy(
        update={"unavailable_dates": [d for d in current.unavailable_dates if d != key]}
    )
    return _with_entry(settings, name, entry)


def set_inactive_slots(settings: AppSettings, name: str, hours: Iterable[int]) -> AppSettings:
    """Replace the hours an animator never works.

    Raises:
        ValueError: If an hour is not one of the configured time slots.
    """
    hours = sorted(set(hours))
    unknown = [hour for hour in hours if hour not in settings.available_time_slots]
    if unknown:
        raise ValueError(f"Unknown time slots {unknown}; valid: {settings.available_time_slots}")
    entry = settings.settings_for(name).model_copy(update={"inactive_slots": hours})
    return _with_entry(settings, name, entry)


def add_animator(settings: AppSettings, name: str, email: str = "") -> AppSettings:
    """Append an animator, keeping the list sorted by name.

    Raises:
        ValueError: If the name is blank or already taken.
    """
    name = name.strip()
    if not name:
        raise ValueError("Animator name cannot be empty")
    if settings.find_animator(name) is not None:
        raise ValueError(f"Animator {name!r} already exists")
    animators = sorted(
        [*settings.animators, Animator(name=name, email=email)], key=lambda a: a.name
    )
    return settings.model_copy(update={"animators": animators})


def rename_animator(
    settings: AppSettings,
    animations: Iterable[Animation],
    old: str,
    new: str,
) -> tuple[AppSettings, list[Animation]]:
    """Rename an animator and migrate everything keyed on the old name.

    Returns:
        The migrated settings and the animations whose animator field was
        rewritten (only those need saving).

    Raises:
        KeyError: If no animator is called ``old``.
        ValueError: If ``new`` is blank or already used by another animator.
    """
    new = new.strip()
    if settings.find_animator(old) is None:
        raise KeyError(f"No animator named {old!r}")
    if not new:
        raise ValueError("Animator name cannot be empty")
    if new == old:
        return settings, []
    if settings.find_animator(new) is not None:
        raise ValueError(f"Animator {new!r} already exists")

    animators = sorted(
        (
            animator.model_copy(update={"name": new}) if animator.name == old else animator
            for animator in settings.animators
        ),
        key=lambda a: a.name,
    )
    animator_settings = dict(settings.animator_settings)
    if old in animator_settings:
        animator_settings[new] = animator_settings.pop(old)

    migrated = settings.model_copy(
        update={"animators": animators, "animator_settings": animator_settings}
    )
    changed = [
        animation.model_copy(update={"animator": new})
        for animation in animations
        if animation.animator == old
    ]
    return migrated, changed


def remove_animator(
    settings: AppSettings, animations: Iterable[Animation], name: str
) -> AppSettings:
    """Drop an animator and its settings entry.

    Raises:
        ReferentialBlock: If an animation is still assigned to the animator.
    """
    dependents = [animation.id for animation in animations if animation.animator == name]
    if dependents:
        raise ReferentialBlock(name, dependents)
    animator_settings = {k: v for k, v in settings.animator_settings.items() if k != name}
    return settings.model_copy(
        update={
            "animators": [a for a in settings.animators if a.name != name],
            "animator_settings": animator_settings,
        }
    )
