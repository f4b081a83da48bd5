import pytest

from src.booking.errors import UploadError
from src.booking.media import MediaUploader

from tests.fakes import FakeResponse, FakeSession

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.asyncio
async def test_upload_returns_secure_url(config):
    session = FakeSession(
        FakeResponse(200, {"secure_url": "https://res.cloudinary.com/demo-cloud/alice.png"})
    )
    uploader = MediaUploader(config, session=session)

    url = await uploader.upload(PNG, "alice.png", "image/png", "avatars/alice.png")

    assert url == "https://res.cloudinary.com/demo-cloud/alice.png"
    call = session.calls[0]
    assert call["url"] == "https://api.cloudinary.com/v1_1/demo-cloud/image/upload"
    assert call["data"] == {"upload_preset": "unsigned_preset", "folder": "avatars"}
    assert call["files"]["file"] == ("alice.png", PNG, "image/png")


@pytest.mark.asyncio
async def test_rejects_non_images(config):
    uploader = MediaUploader(config, session=FakeSession())
    with pytest.raises(ValueError, match="image"):
        await uploader.upload(b"%PDF", "cv.pdf", "application/pdf", "avatars/cv.pdf")


@pytest.mark.asyncio
async def test_rejects_large_files(config):
    uploader = MediaUploader(config.model_copy(update={"max_upload_bytes": 16}), session=FakeSession())
    with pytest.raises(ValueError, match="volumineuse"):
        await uploader.upload(PNG, "alice.png", "image/png", "avatars/alice.png")


@pytest.mark.asyncio
async def test_api_error_payload(config):
    session = FakeSession(FakeResponse(400, {"error": {"message": "Upload preset not found"}}))
    uploader = MediaUploader(config, session=session)

    with pytest.raises(UploadError, match="Upload preset not found"):
        await uploader.upload(PNG, "alice.png", "image/png", "avatars/alice.png")


@pytest.mark.asyncio
async def test_unconfigured(config):
    uploader = MediaUploader(config.model_copy(update={"cloudinary_cloud_name": ""}))
    with pytest.raises(UploadError, match="not configured"):
        await uploader.upload(PNG, "alice.png", "image/png", "avatars/alice.png")
