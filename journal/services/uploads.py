"""Screenshot uploads to Cloudinary (unsigned upload preset).

A failed upload raises ``UploadError``; the trade save that asked for it is
aborted so no trade ever points at a missing image.
"""

import asyncio
import logging
from dataclasses import dataclass

import requests

from journal.config import settings

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = ("image/png", "image/jpeg")
UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


class UploadError(Exception):
    """Screenshot could not be stored."""


@dataclass
class Screenshot:
    filename: str
    content: bytes
    content_type: str


class ScreenshotUploader:
    """Uploads trade screenshots and returns their durable URL."""

    def __init__(
        self,
        cloud_name: str | None = None,
        upload_preset: str | None = None,
        max_bytes: int | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ):
        self.cloud_name = cloud_name if cloud_name is not None else settings.cloudinary_cloud_name
        self.upload_preset = upload_preset or settings.cloudinary_upload_preset
        self.max_bytes = max_bytes or settings.max_screenshot_bytes
        self.timeout = timeout
        self._session = session or requests.Session()

    def _validate(self, shot: Screenshot):
        if shot.content_type not in ALLOWED_CONTENT_TYPES:
            raise UploadError(f"Unsupported screenshot type {shot.content_type!r}; use PNG or JPEG")
        if not shot.content:
            raise UploadError("Screenshot is empty")
        if len(shot.content) > self.max_bytes:
            raise UploadError(f"Screenshot exceeds {self.max_bytes} bytes")
        if not self.cloud_name:
            raise UploadError("Screenshot uploads are not configured (JOURNAL_CLOUDINARY_CLOUD_NAME)")

    def upload(self, shot: Screenshot) -> str:
        """Upload one image. Returns the secure URL or raises UploadError."""
        self._validate(shot)
        url = UPLOAD_URL.format(cloud_name=self.cloud_name)
        logger.info(f"Uploading screenshot {shot.filename} ({len(shot.content)} bytes)")

        try:
            resp = self._session.post(
                url,
                data={"upload_preset": self.upload_preset},
                files={"file": (shot.filename, shot.content, shot.content_type)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Screenshot upload failed: {e}")
            raise UploadError(f"Failed to upload screenshot: {e}") from e

        if resp.status_code >= 400:
            try:
                message = resp.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                message = resp.text or f"HTTP {resp.status_code}"
            logger.error(f"Screenshot upload rejected ({resp.status_code}): {message}")
            raise UploadError(f"Failed to upload screenshot: {message}")

        try:
            secure_url = resp.json().get("secure_url")
        except ValueError:
            secure_url = None
        if not secure_url:
            raise UploadError("Failed to upload screenshot: response had no secure_url")
        return secure_url

    async def upload_async(self, shot: Screenshot) -> str:
        # requests is blocking; run in executor
        return await asyncio.get_running_loop().run_in_executor(None, self.upload, shot)


_uploader: ScreenshotUploader | None = None


def get_uploader() -> ScreenshotUploader:
    global _uploader
    if _uploader is None:
        _uploader = ScreenshotUploader()
    return _uploader
