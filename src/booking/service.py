"""Application service: store snapshots in, validated writes out.

BookingService keeps in-memory projections of the four collections, fed by
the store's pushed snapshots, and routes every admin and public operation
through the pure evaluators before writing. Writes are last-writer-wins;
local projections are updated optimistically and reconciled by the next
snapshot, never rolled back.
"""

import hmac
import random
import re
import uuid
from datetime import date
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from src.booking import animators as animator_rules
from src.booking.availability import (
    CalendarDay,
    enumerate_available_slots,
    month_calendar,
    remaining_school_year,
)
from src.booking.config import BookingConfig, get_config
from src.booking.conflicts import (
    REASON_MESSAGES,
    animator_map,
    ensure_slot_bookable,
    find_exclusivity_conflict,
)
from src.booking.errors import (
    AuthenticationError,
    BookingError,
    ConstraintViolation,
    NotificationError,
    ReferentialBlock,
    UploadError,
)
from src.booking.generator import GenerationResult, generate_for_school_year
from src.booking.formatters import format_phone_number
from src.booking.logging import get_logger
from src.booking.media import MediaUploader
from src.booking.models import (
    SETTINGS_DOCUMENT_ID,
    Animation,
    AppSettings,
    Booking,
    BookingForm,
    BusStatus,
    ChangelogEntry,
    Holiday,
    Slot,
)
from src.booking.notifications import EmailNotifier
from src.booking.store import Collection, DocumentStore, Snapshot, Unsubscribe

logger = get_logger(__name__)

ACTIVE_YEAR_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


def _parse_documents(
    snapshot: Snapshot, model: type, collection: Collection
) -> list[Any]:
    """Validate every document of a snapshot, skipping (and logging) bad ones."""
    parsed = []
    for doc_id, data in snapshot.items():
        try:
            parsed.append(model.model_validate({**data, "id": doc_id}))
        except ValidationError as e:
            logger.warning(
                "invalid_document_skipped",
                collection=collection.value,
                doc_id=doc_id,
                errors=e.error_count(),
            )
    return parsed


class BookingService:
    """Booking platform operations over a document store.

    Args:
        store: Document store (InMemoryStore or FirestoreRestStore).
        notifier: E-mail sender; notifications are skipped when None.
        uploader: Image uploader; avatar uploads fail when None.
        config: Process configuration; defaults to get_config().
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: EmailNotifier | None = None,
        uploader: MediaUploader | None = None,
        config: BookingConfig | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.uploader = uploader
        self.config = config or get_config()

        self.animations: list[Animation] = []
        self.bookings: list[Booking] = []
        self.settings = AppSettings()
        self.changelog: list[ChangelogEntry] = []
        self._unsubscribes: list[Unsubscribe] = []

    # ------------------------------------------------------------------
    # Snapshot projections
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to all collections. Safe to call once per service."""
        if self._unsubscribes:
            return
        handlers: dict[Collection, Callable[[Snapshot], None]] = {
            Collection.ANIMATIONS: self._on_animations,
            Collection.BOOKINGS: self._on_bookings,
            Collection.SETTINGS: self._on_settings,
            Collection.CHANGELOG: self._on_changelog,
        }
        for collection, handler in handlers.items():
            self._unsubscribes.append(
                self.store.subscribe(
                    collection.value, handler, self._error_handler(collection)
                )
            )
        logger.info("service_started", collections=[c.value for c in handlers])

    def stop(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []
        logger.info("service_stopped")

    @staticmethod
    def _error_handler(collection: Collection) -> Callable[[Exception], None]:
        def on_error(error: Exception) -> None:
            logger.error("snapshot_error", collection=collection.value, error=str(error))

        return on_error

    def _on_animations(self, snapshot: Snapshot) -> None:
        animations = _parse_documents(snapshot, Animation, Collection.ANIMATIONS)
        self.animations = sorted(animations, key=lambda a: a.order)

    def _on_bookings(self, snapshot: Snapshot) -> None:
        self.bookings = _parse_documents(snapshot, Booking, Collection.BOOKINGS)

    def _on_settings(self, snapshot: Snapshot) -> None:
        data = snapshot.get(SETTINGS_DOCUMENT_ID)
        if data is None:
            self.settings = AppSettings()
            return
        try:
            self.settings = AppSettings.model_validate(data)
        except ValidationError as e:
            logger.warning("invalid_settings_ignored", errors=e.error_count())

    def _on_changelog(self, snapshot: Snapshot) -> None:
        entries = _parse_documents(snapshot, ChangelogEntry, Collection.CHANGELOG)
        self.changelog = sorted(entries, key=lambda e: e.date, reverse=True)

    def find_animation(self, animation_id: str) -> Animation:
        for animation in self.animations:
            if animation.id == animation_id:
                return animation
        raise KeyError(f"No animation with id {animation_id!r}")

    def find_booking(self, booking_id: str) -> Booking:
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking
        raise KeyError(f"No booking with id {booking_id!r}")

    # ------------------------------------------------------------------
    # Public booking
    # ------------------------------------------------------------------

    def available_slots(self, today: date | None = None) -> list[Slot]:
        """Every bookable slot for the rest of the active school year."""
        date_range = remaining_school_year(self.settings, today)
        return list(
            enumerate_available_slots(
                self.animations, self.settings, self.bookings, date_range, today
            )
        )

    def month_calendar(
        self, animation_id: str, year: int, month: int, today: date | None = None
    ) -> list[CalendarDay]:
        return month_calendar(
            self.find_animation(animation_id),
            year,
            month,
            self.settings,
            self.bookings,
            self.animations,
            today,
        )

    async def book(
        self,
        animation_id: str,
        day: date,
        hour: int,
        form: BookingForm,
        today: date | None = None,
    ) -> Booking:
        """Book a slot for a teacher.

        The slot is checked again against the current bookings snapshot
        before anything is written.

        Raises:
            KeyError: Unknown animation.
            ConstraintViolation: The slot is no longer bookable.
            StoreUnavailable: The write failed.
        """
        animation = self.find_animation(animation_id)
        ensure_slot_bookable(
            animation,
            day,
            hour,
            self.bookings,
            animator_map(self.animations),
            self.settings,
            today,
        )
        booking = Booking(
            id=uuid.uuid4().hex,
            animation_id=animation.id,
            animation_title=animation.title,
            date=day,
            time=hour,
            bus_status=None if form.no_bus_required else "pending",
            **form.model_dump(),
        )
        await self.store.save(Collection.BOOKINGS.value, booking.id, booking.to_document())
        self._upsert_booking(booking)
        logger.info(
            "booking_created",
            booking_id=booking.id,
            animation_id=animation.id,
            date=booking.date_key,
            hour=hour,
        )
        await self._notify_booking(booking, animation)
        return booking

    async def _notify_booking(self, booking: Booking, animation: Animation) -> None:
        if self.notifier is None or not self.notifier.enabled:
            return
        try:
            if self.config.teacher_confirmation_enabled:
                await self.notifier.send_booking_confirmation(booking)
            animator = self.settings.find_animator(animation.animator or "")
            if animator is not None:
                await self.notifier.send_animator_notification(booking, animator)
        except NotificationError as e:
            logger.warning("booking_notification_failed", booking_id=booking.id, error=str(e))

    def _upsert_booking(self, booking: Booking) -> None:
        self.bookings = [b for b in self.bookings if b.id != booking.id] + [booking]

    # ------------------------------------------------------------------
    # Animations
    # ------------------------------------------------------------------

    async def save_animation(self, animation: Animation) -> Animation:
        await self.store.save(
            Collection.ANIMATIONS.value, animation.id, animation.to_document()
        )
        others = [a for a in self.animations if a.id != animation.id]
        self.animations = sorted([*others, animation], key=lambda a: a.order)
        logger.info("animation_saved", animation_id=animation.id)
        return animation

    async def remove_animation(self, animation_id: str) -> None:
        """Delete an animation that no booking references.

        Raises:
            ReferentialBlock: If bookings still point at the animation.
        """
        dependents = [b.id for b in self.bookings if b.animation_id == animation_id]
        if dependents:
            raise ReferentialBlock(animation_id, dependents)
        await self.store.remove(Collection.ANIMATIONS.value, animation_id)
        self.animations = [a for a in self.animations if a.id != animation_id]
        logger.info("animation_removed", animation_id=animation_id)

    async def reorder_animations(self, ordered_ids: list[str]) -> list[Animation]:
        """Give the animations a dense 0..n-1 order following ordered_ids.

        Animations left out of ordered_ids keep their relative order and
        are numbered after the listed ones.

        Raises:
            KeyError: An id is unknown.
        """
        listed = set(ordered_ids)
        sequence = [self.find_animation(animation_id) for animation_id in ordered_ids]
        sequence += [a for a in self.animations if a.id not in listed]
        reordered = []
        for index, animation in enumerate(sequence):
            animation = animation.model_copy(update={"order": index})
            await self.store.save(
                Collection.ANIMATIONS.value, animation.id, animation.to_document()
            )
            reordered.append(animation)
        self.animations = reordered
        logger.info("animations_reordered", count=len(reordered))
        return reordered

    # ------------------------------------------------------------------
    # Bookings (admin)
    # ------------------------------------------------------------------

    async def update_booking(self, booking: Booking) -> Booking:
        """Overwrite a booking as edited by the admin.

        The animation title is taken from the referenced animation and the
        phone number is normalized. Only the exclusivity rules are checked,
        against every other booking; calendar rules do not apply to edits.

        Raises:
            KeyError: Unknown animation.
            ConstraintViolation: The new slot collides with another booking.
        """
        animation = self.find_animation(booking.animation_id)
        others = [b for b in self.bookings if b.id != booking.id]
        reason = find_exclusivity_conflict(
            animation, booking.date, booking.time, others, animator_map(self.animations)
        )
        if reason is not None:
            raise ConstraintViolation(reason, REASON_MESSAGES[reason])
        booking = booking.model_copy(
            update={
                "animation_title": animation.title,
                "phone_number": format_phone_number(booking.phone_number),
            }
        )
        await self.store.save(Collection.BOOKINGS.value, booking.id, booking.to_document())
        self._upsert_booking(booking)
        logger.info("booking_updated", booking_id=booking.id)
        return booking

    async def remove_booking(self, booking_id: str) -> None:
        await self.store.remove(Collection.BOOKINGS.value, booking_id)
        self.bookings = [b for b in self.bookings if b.id != booking_id]
        logger.info("booking_removed", booking_id=booking_id)

    async def remove_bookings(self, booking_ids: Iterable[str]) -> int:
        removed = 0
        for booking_id in booking_ids:
            await self.remove_booking(booking_id)
            removed += 1
        return removed

    async def set_bus_management(
        self, booking_id: str, status: BusStatus, cost: float | None = None
    ) -> Booking:
        """Record the bus order status and cost of a booking.

        Raises:
            KeyError: Unknown booking.
            ValueError: The booking does not need a bus, or cost is negative.
        """
        booking = self.find_booking(booking_id)
        if booking.no_bus_required:
            raise ValueError(f"Booking {booking_id!r} does not need a bus")
        if cost is not None and cost < 0:
            raise ValueError("Bus cost cannot be negative")
        updated = booking.model_copy(update={"bus_status": status, "bus_cost": cost})
        return await self.update_booking(updated)

    async def commit_generated(
        self, result: GenerationResult
    ) -> tuple[int, list[tuple[str, str]]]:
        """Save generated bookings one by one.

        Partial success is allowed: a failed save is recorded and the rest
        are still attempted.

        Returns:
            (number saved, [(booking id, error message), ...])
        """
        saved = 0
        failures: list[tuple[str, str]] = []
        for booking in result.bookings:
            try:
                await self.store.save(
                    Collection.BOOKINGS.value, booking.id, booking.to_document()
                )
            except BookingError as e:
                logger.error("generated_booking_failed", booking_id=booking.id, error=str(e))
                failures.append((booking.id, str(e)))
                continue
            self._upsert_booking(booking)
            saved += 1
        logger.info("generated_bookings_committed", saved=saved, failed=len(failures))
        return saved, failures

    async def generate_random_bookings(
        self,
        count: int,
        months: Iterable[int] | None = None,
        rng: random.Random | None = None,
        today: date | None = None,
    ) -> GenerationResult:
        """Generate (without saving) up to count bookings for the school year."""
        return await generate_for_school_year(
            self.animations,
            self.settings,
            self.bookings,
            count,
            months=months,
            rng=rng,
            today=today,
            yield_seconds=self.config.generator_yield_seconds,
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def load_settings(self) -> AppSettings:
        """Fetch the settings document, merged over defaults."""
        snapshot = await self.store.fetch(Collection.SETTINGS.value)
        self._on_settings(snapshot)
        return self.settings

    async def save_settings(self, settings: AppSettings) -> AppSettings:
        self.settings = settings
        await self.store.save(
            Collection.SETTINGS.value, SETTINGS_DOCUMENT_ID, settings.to_document()
        )
        logger.info("settings_saved")
        return settings

    async def set_active_year(self, active_year: str) -> AppSettings:
        """Set the school year, e.g. '2026-2027'.

        Raises:
            ValueError: Not 'YYYY-YYYY' with consecutive years.
        """
        match = ACTIVE_YEAR_PATTERN.match(active_year.strip())
        if not match or int(match.group(2)) != int(match.group(1)) + 1:
            raise ValueError(f"Invalid school year {active_year!r}; expected e.g. 2025-2026")
        return await self.save_settings(
            self.settings.model_copy(update={"active_year": active_year.strip()})
        )

    # ------------------------------------------------------------------
    # Animators
    # ------------------------------------------------------------------

    async def add_animator(self, name: str, email: str = "") -> AppSettings:
        return await self.save_settings(animator_rules.add_animator(self.settings, name, email))

    async def rename_animator(self, old: str, new: str) -> AppSettings:
        """Rename an animator and migrate settings and animations together."""
        settings, changed = animator_rules.rename_animator(
            self.settings, self.animations, old, new
        )
        for animation in changed:
            await self.save_animation(animation)
        result = await self.save_settings(settings)
        logger.info("animator_renamed", old=old, new=new.strip(), animations=len(changed))
        return result

    async def remove_animator(self, name: str) -> AppSettings:
        return await self.save_settings(
            animator_rules.remove_animator(self.settings, self.animations, name)
        )

    async def update_animator_email(self, name: str, email: str) -> AppSettings:
        if self.settings.find_animator(name) is None:
            raise KeyError(f"No animator named {name!r}")
        animators = [
            a.model_copy(update={"email": email.strip()}) if a.name == name else a
            for a in self.settings.animators
        ]
        return await self.save_settings(self.settings.model_copy(update={"animators": animators}))

    async def mark_unavailable(self, name: str, days: Iterable[date]) -> AppSettings:
        return await self.save_settings(
            animator_rules.mark_unavailable(self.settings, name, days)
        )

    async def clear_unavailable(self, name: str, day: date) -> AppSettings:
        return await self.save_settings(
            animator_rules.clear_unavailable(self.settings, name, day)
        )

    async def set_inactive_slots(self, name: str, hours: Iterable[int]) -> AppSettings:
        return await self.save_settings(
            animator_rules.set_inactive_slots(self.settings, name, hours)
        )

    async def upload_avatar(
        self, name: str, content: bytes, filename: str, content_type: str
    ) -> AppSettings:
        """Upload an animator photo and store its URL on the animator.

        Raises:
            KeyError: Unknown animator.
            ValueError: Not an image or too large.
            UploadError: No uploader configured, or the upload failed.
        """
        if self.settings.find_animator(name) is None:
            raise KeyError(f"No animator named {name!r}")
        if self.uploader is None:
            raise UploadError("No media uploader configured")
        url = await self.uploader.upload(content, filename, content_type, f"avatars/{filename}")
        animators = [
            a.model_copy(update={"avatar_url": url}) if a.name == name else a
            for a in self.settings.animators
        ]
        return await self.save_settings(self.settings.model_copy(update={"animators": animators}))

    # ------------------------------------------------------------------
    # Holidays
    # ------------------------------------------------------------------

    async def add_holiday(self, holiday: Holiday) -> AppSettings:
        holidays = sorted([*self.settings.holidays, holiday], key=lambda h: h.start_date)
        return await self.save_settings(self.settings.model_copy(update={"holidays": holidays}))

    async def update_holiday(self, original_name: str, holiday: Holiday) -> AppSettings:
        if not any(h.name == original_name for h in self.settings.holidays):
            raise KeyError(f"No holiday named {original_name!r}")
        holidays = sorted(
            (holiday if h.name == original_name else h for h in self.settings.holidays),
            key=lambda h: h.start_date,
        )
        return await self.save_settings(self.settings.model_copy(update={"holidays": holidays}))

    async def remove_holiday(self, name: str) -> AppSettings:
        holidays = [h for h in self.settings.holidays if h.name != name]
        return await self.save_settings(self.settings.model_copy(update={"holidays": holidays}))

    # ------------------------------------------------------------------
    # Changelog
    # ------------------------------------------------------------------

    async def save_changelog_entry(self, entry: ChangelogEntry) -> ChangelogEntry:
        await self.store.save(Collection.CHANGELOG.value, entry.id, entry.to_document())
        others = [e for e in self.changelog if e.id != entry.id]
        self.changelog = sorted([*others, entry], key=lambda e: e.date, reverse=True)
        return entry

    async def remove_changelog_entry(self, entry_id: str) -> None:
        await self.store.remove(Collection.CHANGELOG.value, entry_id)
        self.changelog = [e for e in self.changelog if e.id != entry_id]

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> None:
        """Check admin credentials against the settings document.

        Raises:
            AuthenticationError: On any mismatch, or when none are configured.
        """
        expected_user = self.settings.admin_username
        expected_password = self.settings.admin_password
        if not expected_user or not expected_password:
            raise AuthenticationError("Admin credentials are not configured")
        user_ok = hmac.compare_digest(username.encode(), expected_user.encode())
        password_ok = hmac.compare_digest(password.encode(), expected_password.encode())
        if not (user_ok and password_ok):
            logger.warning("admin_login_failed", username=username)
            raise AuthenticationError("Identifiants incorrects")
        logger.info("admin_login", username=username)

    async def send_password_recovery(self) -> None:
        """E-mail the admin credentials to the admin address.

        Raises:
            NotificationError: No notifier, no admin e-mail, or delivery failed.
        """
        if self.notifier is None:
            raise NotificationError("No e-mail notifier configured")
        await self.notifier.send_recovery_email(
            self.settings.admin_email,
            self.settings.admin_username,
            self.settings.admin_password,
        )
        logger.info("password_recovery_sent")
