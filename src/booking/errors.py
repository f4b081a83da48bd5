"""Error hierarchy for the booking platform.

Mirrors a transient/permanent split so tenacity retry decorators on the
external collaborators (document store, e-mail, media host) can classify
failures automatically. The availability evaluators never raise for
"no availability"; a missing slot is a plain ``False``.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def _request(...):
        ...
"""


class BookingError(Exception):
    """Base exception for all booking platform errors."""

    pass


class TransientError(BookingError):
    """Temporary failure that may succeed on retry.

    Examples: network timeouts, 503 Service Unavailable from the store.
    """

    pass


class StoreUnavailable(TransientError):
    """The document store cannot be reached or is misconfigured.

    Detected at write time. Local projections are not rolled back; callers
    reconcile on the next snapshot.
    """

    pass


class NotificationError(TransientError):
    """The e-mail API rejected or failed to deliver a message."""

    pass


class UploadError(BookingError):
    """The media host refused an upload."""

    pass


class PermanentError(BookingError):
    """Failure that won't succeed on retry."""

    pass


class ConstraintViolation(PermanentError):
    """A requested booking breaks an exclusivity or calendar rule.

    Raised before any write is attempted. ``reason`` is one of the codes in
    ``src.booking.conflicts`` (``slot_taken``, ``afternoon_taken``, ...).
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or f"Slot cannot be booked: {reason}")


class ReferentialBlock(PermanentError):
    """Deletion refused because other records still reference the target.

    The caller must remove or reassign the dependents first.
    """

    def __init__(self, target: str, dependents: list[str]) -> None:
        self.target = target
        self.dependents = dependents
        super().__init__(
            f"{target!r} is still referenced by {len(dependents)} record(s)"
        )


class AuthenticationError(PermanentError):
    """Admin credentials did not match the settings document."""

    pass
