"""
Cloudinary media storage for image upload and deletion.
Provides the storage adapter used by the upload and delete endpoints.
"""
import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from dataclasses import dataclass
import logging
import asyncio
from typing import Any, Dict, List, Optional, Protocol

from app.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredMedia:
    """Result of a successful upload. Metadata may be partial."""
    public_id: str
    secure_url: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    bytes: Optional[int] = None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "StoredMedia":
        return cls(
            public_id=result["public_id"],
            secure_url=result.get("secure_url") or result["url"],
            width=result.get("width"),
            height=result.get("height"),
            format=result.get("format"),
            bytes=result.get("bytes"),
        )


class MediaStorage(Protocol):
    """Contract the endpoints rely on for external image storage."""

    async def upload(
        self, data: bytes, *, folder: str, tags: List[str], public_id: str
    ) -> StoredMedia: ...

    async def upload_from_url(
        self, url: str, *, folder: str, tags: List[str], public_id: str
    ) -> StoredMedia: ...

    async def delete(self, public_id: str) -> None: ...

    def is_configured(self) -> bool: ...


class CloudinaryMediaStorage:
    """
    MediaStorage backed by Cloudinary.

    Uploads retry transient Cloudinary errors with exponential backoff.
    Deletes make a single attempt; callers decide whether failure is fatal.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.max_retries = max(1, settings.UPLOAD_MAX_RETRIES)
        cloudinary.config(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            secure=True  # Always use HTTPS for secure URLs
        )

    async def upload(
        self, data: bytes, *, folder: str, tags: List[str], public_id: str
    ) -> StoredMedia:
        """
        Upload image bytes to Cloudinary.

        Args:
            data: Raw image bytes
            folder: Cloudinary folder path
            tags: Cloudinary tags attached to the asset
            public_id: Public ID for the new asset

        Returns:
            StoredMedia: public id, secure URL and whatever metadata Cloudinary reported

        Raises:
            CloudinaryError: If upload fails after all retries
        """
        return await self._upload_with_retry(data, folder=folder, tags=tags, public_id=public_id)

    async def upload_from_url(
        self, url: str, *, folder: str, tags: List[str], public_id: str
    ) -> StoredMedia:
        """Let Cloudinary fetch and store a remote image."""
        return await self._upload_with_retry(url, folder=folder, tags=tags, public_id=public_id)

    async def _upload_with_retry(self, source: Any, **options) -> StoredMedia:
        for attempt in range(self.max_retries):
            try:
                result = await asyncio.to_thread(
                    cloudinary.uploader.upload,
                    source,
                    resource_type="image",
                    # Automatic optimization settings
                    transformation=[
                        {"quality": "auto"},
                        {"fetch_format": "auto"},
                    ],
                    **options,
                )

                logger.info(f"Successfully uploaded image: {result['public_id']}")
                return StoredMedia.from_result(result)

            except CloudinaryError as e:
                logger.warning(f"Cloudinary upload error (attempt {attempt + 1}/{self.max_retries}): {str(e)}")

                # Retry with exponential backoff for transient failures
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)  # 1s, 2s, 4s backoff
                    continue

                logger.error(f"Cloudinary upload failed after {self.max_retries} attempts: {str(e)}")
                raise

    async def delete(self, public_id: str) -> None:
        """
        Delete an image from Cloudinary with CDN invalidation.

        Raises:
            CloudinaryError: If Cloudinary rejects the request
        """
        result = await asyncio.to_thread(
            cloudinary.uploader.destroy,
            public_id,
            invalidate=True,  # Invalidate CDN cache
            resource_type="image",
        )

        if result.get("result") in ("ok", "not found"):
            logger.info(f"Deleted image from Cloudinary: {public_id} (result: {result.get('result')})")
        else:
            logger.warning(f"Unexpected Cloudinary delete result for {public_id}: {result}")

    def is_configured(self) -> bool:
        """
        Validate that Cloudinary credentials are present.

        Returns:
            bool: True if Cloudinary is configured, False otherwise
        """
        if not self.settings.CLOUDINARY_CLOUD_NAME:
            logger.warning("CLOUDINARY_CLOUD_NAME not configured")
            return False
        if not self.settings.CLOUDINARY_API_KEY:
            logger.warning("CLOUDINARY_API_KEY not configured")
            return False
        if not self.settings.CLOUDINARY_API_SECRET:
            logger.warning("CLOUDINARY_API_SECRET not configured")
            return False

        return True
