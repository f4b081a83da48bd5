"""Transactional e-mail through the EmailJS REST API.

Three messages exist: the admin credential recovery, the teacher booking
confirmation and the animator notification. Recipients without an e-mail
address are skipped silently; delivery failures raise NotificationError and
the caller decides whether they matter (a booking is never undone because an
e-mail could not be sent).
"""

import asyncio
from typing import Any

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.booking.config import BookingConfig
from src.booking.dates import format_date_fr
from src.booking.errors import NotificationError, TransientError
from src.booking.formatters import format_phone_number
from src.booking.logging import get_logger
from src.booking.models import Animator, Booking

logger = get_logger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"
APP_NAME = "Gestion des Réservations"
NO_BUS_LABEL = "Aucune prise en charge bus demandée."
DEFAULT_BUS_LABEL = "Prise en charge bus demandée."


class _RetryableSend(TransientError):
    pass


class EmailNotifier:
    """EmailJS client.

    Args:
        config: Service id, public key and template ids.
        app_url: Public URL of the booking site, included in recovery mails.
        session: Optional requests session (tests inject one).
    """

    def __init__(
        self,
        config: BookingConfig,
        app_url: str = "",
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.app_url = app_url
        self._session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.config.emailjs_service_id and self.config.emailjs_public_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(_RetryableSend),
        reraise=True,
    )
    def _post(self, payload: dict[str, Any]) -> None:
        try:
            response = self._session.post(
                EMAILJS_SEND_URL, json=payload, timeout=self.config.http_timeout_seconds
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise _RetryableSend(f"EmailJS unreachable: {e}") from e
        if response.status_code == 429 or response.status_code >= 500:
            raise _RetryableSend(f"EmailJS returned {response.status_code}")
        if response.status_code >= 400:
            raise NotificationError(
                f"EmailJS rejected message: {response.status_code} {response.text[:200]}"
            )

    def _send_sync(self, template_id: str, params: dict[str, Any]) -> None:
        payload = {
            "service_id": self.config.emailjs_service_id,
            "template_id": template_id,
            "user_id": self.config.emailjs_public_key,
            "template_params": params,
        }
        try:
            self._post(payload)
        except _RetryableSend as e:
            raise NotificationError(str(e)) from e
        logger.info("email_sent", template=template_id, to=params.get("to_email"))

    async def send(self, template_id: str, params: dict[str, Any]) -> None:
        """Send one templated message.

        Raises:
            NotificationError: If EmailJS is not configured or refuses the message.
        """
        if not self.enabled:
            raise NotificationError("EmailJS service id and public key are not configured")
        await asyncio.to_thread(self._send_sync, template_id, params)

    async def send_recovery_email(
        self, admin_email: str, username: str, password: str
    ) -> None:
        """Mail the admin credentials to the configured admin address.

        Raises:
            NotificationError: If no admin e-mail is set or delivery fails.
        """
        target = (admin_email or "").strip()
        if not target:
            raise NotificationError("No admin e-mail configured for recovery")
        await self.send(
            self.config.emailjs_template_recovery,
            {
                "to_email": target,
                "username": username,
                "password": password,
                "app_url": self.app_url,
                "app_name": APP_NAME,
                "reply_to": target,
            },
        )

    async def send_booking_confirmation(self, booking: Booking) -> bool:
        """Confirm a booking to the teacher. Returns False when skipped."""
        target = booking.email.strip()
        if not target:
            return False
        await self.send(
            self.config.emailjs_template_confirmation,
            {
                "to_email": target,
                "to_name": booking.teacher_name,
                "animation_title": booking.animation_title,
                "booking_date": format_date_fr(booking.date_key),
                "booking_time": f"{booking.time}h",
                "school_name": booking.school_name,
                "commune": booking.commune,
            },
        )
        return True

    async def send_animator_notification(self, booking: Booking, animator: Animator) -> bool:
        """Tell the animator about a new booking. Returns False when skipped."""
        target = animator.email.strip()
        if not target:
            return False
        if booking.no_bus_required:
            bus_label = NO_BUS_LABEL
        else:
            bus_label = booking.bus_info or DEFAULT_BUS_LABEL
        await self.send(
            self.config.emailjs_template_animator,
            {
                "to_email": target,
                "animator_name": animator.name,
                "animation_title": booking.animation_title,
                "teacher_name": booking.teacher_name,
                "class_level": booking.class_level,
                "school_name": booking.school_name,
                "commune": booking.commune,
                "booking_date": format_date_fr(booking.date_key),
                "booking_time": f"{booking.time}h00",
                "student_count": booking.student_count,
                "adult_count": booking.adult_count,
                "bus_info": bus_label,
                "teacher_phone": format_phone_number(booking.phone_number),
                "teacher_email": booking.email,
            },
        )
        return True
