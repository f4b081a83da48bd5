"""Image uploads to Cloudinary (unsigned preset).

Only images are accepted. Deleting an uploaded image needs a signed API, so
"removing" an avatar just detaches the URL from the animator.
"""

import asyncio

import requests

from src.booking.config import BookingConfig
from src.booking.errors import UploadError
from src.booking.logging import get_logger

logger = get_logger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


class MediaUploader:
    def __init__(self, config: BookingConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self._session = session or requests.Session()

    def _upload_sync(self, content: bytes, filename: str, content_type: str, folder: str) -> str:
        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self.config.cloudinary_cloud_name)
        try:
            response = self._session.post(
                url,
                files={"file": (filename, content, content_type)},
                data={"upload_preset": self.config.cloudinary_upload_preset, "folder": folder},
                timeout=self.config.http_timeout_seconds,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise UploadError(f"Cloudinary unreachable: {e}") from e

        if not response.ok:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            raise UploadError(message or "Échec de l'upload sur Cloudinary")

        secure_url = response.json()["secure_url"]
        logger.info("image_uploaded", folder=folder, url=secure_url)
        return secure_url

    async def upload(
        self, content: bytes, filename: str, content_type: str, path: str
    ) -> str:
        """Upload an image and return its durable HTTPS URL.

        Args:
            content: Raw file bytes.
            filename: Original file name.
            content_type: MIME type; must be image/*.
            path: Logical path; its first segment is the Cloudinary folder
                (e.g. "avatars/alice.png" -> "avatars").

        Raises:
            ValueError: Not an image, or larger than max_upload_bytes.
            UploadError: Cloudinary refused the upload or could not be reached.
        """
        if not content_type.startswith("image/"):
            raise ValueError("Le fichier doit être une image.")
        if len(content) > self.config.max_upload_bytes:
            raise ValueError(
                f"L'image est trop volumineuse (max {self.config.max_upload_bytes // (1024 * 1024)} Mo)."
            )
        if not self.config.cloudinary_cloud_name or not self.config.cloudinary_upload_preset:
            raise UploadError("Cloudinary cloud name and upload preset are not configured")
        folder = path.split("/")[0]
        return await asyncio.to_thread(self._upload_sync, content, filename, content_type, folder)
