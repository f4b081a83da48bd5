"""Process configuration loaded from environment variables.

Only deployment knobs live here (store backend, API identifiers, logging).
The calendar rules themselves are the AppSettings document in the store.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class BookingConfig(BaseSettings):
    """Booking platform configuration loaded from environment variables.

    Settings are loaded from environment variables with sensible defaults.
    For local development, create a .env file in the project root.
    """

    # Document store
    store_backend: str = Field(
        default="memory",
        description="Document store backend: 'memory' or 'firestore'",
    )
    firestore_project_id: str = Field(
        default="",
        description="Google Cloud project hosting the Firestore database",
    )
    firestore_api_key: str = Field(
        default="",
        description="Web API key sent with Firestore REST calls",
    )
    firestore_database: str = Field(
        default="(default)",
        description="Firestore database id",
    )
    http_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for store, e-mail and media HTTP calls",
    )

    # EmailJS
    emailjs_service_id: str = Field(default="", description="EmailJS service id")
    emailjs_public_key: str = Field(default="", description="EmailJS public key")
    emailjs_template_recovery: str = Field(
        default="template_recovery",
        description="Template for admin credential recovery",
    )
    emailjs_template_confirmation: str = Field(
        default="template_confirmation",
        description="Template for the teacher booking confirmation",
    )
    emailjs_template_animator: str = Field(
        default="template_animateur",
        description="Template for the animator booking notification",
    )
    teacher_confirmation_enabled: bool = Field(
        default=False,
        description="Send a confirmation e-mail to the teacher after booking",
    )

    # Cloudinary
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_upload_preset: str = Field(
        default="",
        description="Unsigned upload preset",
    )
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Largest accepted image upload",
    )

    # Generator
    generator_yield_seconds: float = Field(
        default=0.05,
        description="Pause before enumerating the school year during generation",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (for production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton pattern
_config: BookingConfig | None = None


def get_config() -> BookingConfig:
    """Get the booking configuration singleton.

    Returns:
        BookingConfig: Booking configuration instance
    """
    global _config
    if _config is None:
        _config = BookingConfig()
    return _config
