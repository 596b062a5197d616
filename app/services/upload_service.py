"""
Image upload orchestration.

Files in a batch are sent to media storage concurrently and independently; a
failed file is reported without cancelling its siblings. Rows for the stored
files are then written in one transaction. If that write fails, every object
stored for the request is deleted again so no upload outlives a failed
request.
"""
from dataclasses import dataclass, field
from pathlib import PurePath
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
import asyncio
import logging
import uuid

from app.config import Settings
from app.exceptions import (
    NotFoundError,
    PayloadTooLargeError,
    StorageError,
    UnexpectedError,
    ValidationError,
)
from app.models import Image, WebLink
from app.services.cloudinary_service import MediaStorage, StoredMedia
from app.utils.image_converter import ImageInfo, inspect_image
from app.utils.validators import normalize_tags, parse_id

logger = logging.getLogger(__name__)

URL_UPLOAD_CAPTION = "Uploaded from URL"
URL_UPLOAD_FILENAME = "from-url"
MAX_CAPTION_LENGTH = 500
MAX_TAG_LENGTH = 50


@dataclass
class IncomingFile:
    filename: str
    content_type: str
    data: bytes
    info: Optional[ImageInfo] = None


@dataclass
class UploadMetadata:
    caption: str = ""
    group_id: Optional[str] = None
    web_link_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)


def validate_files(files: List[IncomingFile], settings: Settings) -> None:
    """
    Check type, size and content of every file before anything is uploaded.

    Raises:
        ValidationError: Unsupported type or unreadable image
        PayloadTooLargeError: File above MAX_UPLOAD_SIZE
    """
    max_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
    for file in files:
        if file.content_type not in settings.ALLOWED_IMAGE_TYPES:
            raise ValidationError(f"Unsupported file type: {file.content_type or 'unknown'}")

        if len(file.data) > settings.MAX_UPLOAD_SIZE:
            raise PayloadTooLargeError(
                f"File too large: {file.filename}. Maximum size is {max_mb}MB"
            )

        file.info = inspect_image(file.data)
        if file.info is None:
            raise ValidationError(f"File '{file.filename}' is not a valid image file")


async def resolve_web_link_reference(db: AsyncSession, raw_web_link_id: Optional[str]) -> Optional[str]:
    """
    Raises:
        ValidationError: If the id is not syntactically valid
        NotFoundError: If no web link has this id
    """
    if raw_web_link_id in (None, "", "null"):
        return None

    web_link_id = parse_id(raw_web_link_id, "web link")
    if await db.get(WebLink, web_link_id) is None:
        raise NotFoundError("Web link not found")
    return web_link_id


def _new_image(
    stored: StoredMedia,
    metadata: UploadMetadata,
    caption: str,
    original_filename: str,
    info: Optional[ImageInfo] = None,
) -> Image:
    image = Image(
        url=stored.secure_url,
        storage_id=stored.public_id,
        caption=caption,
        group_id=metadata.group_id,
        web_link_id=metadata.web_link_id,
        is_favorite=False,
        width=stored.width if stored.width is not None else (info.width if info else None),
        height=stored.height if stored.height is not None else (info.height if info else None),
        format=stored.format or (info.format if info else None),
        size=stored.bytes if stored.bytes is not None else (info.bytes if info else None),
        original_filename=original_filename,
    )
    image.set_tags(metadata.tags)
    return image


async def _discard_stored(media: MediaStorage, public_ids: List[str]) -> None:
    """Best-effort removal of objects whose database rows were never written."""
    for public_id in public_ids:
        try:
            await media.delete(public_id)
            logger.info(f"Removed orphaned upload from Cloudinary: {public_id}")
        except Exception as e:
            logger.error(f"Failed to remove orphaned upload {public_id}: {str(e)}", exc_info=True)


async def _reload(db: AsyncSession, image_ids: List[str]) -> List[Image]:
    """Re-select freshly inserted images so group and tags are loaded."""
    result = await db.execute(
        select(Image)
        .where(Image.id.in_(image_ids))
        .order_by(Image.created_at.asc(), Image.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _store_file(media: MediaStorage, file: IncomingFile, metadata: UploadMetadata, folder: str) -> StoredMedia:
    logger.info(f"Uploading image to Cloudinary: {file.filename}")
    return await media.upload(
        file.data,
        folder=folder,
        tags=[*metadata.tags, "uploaded"],
        public_id=f"img_{uuid.uuid4().hex}",
    )


async def upload_files(
    db: AsyncSession,
    media: MediaStorage,
    files: List[IncomingFile],
    metadata: UploadMetadata,
    settings: Settings,
) -> Tuple[List[Image], List[dict]]:
    """
    Upload a batch of validated files and create their image rows.

    Returns:
        tuple: (created images, per-file errors as {filename, error})

    Raises:
        UnexpectedError: If the database write fails (stored objects are removed)
    """
    results = await asyncio.gather(
        *[_store_file(media, file, metadata, settings.CLOUDINARY_FOLDER) for file in files],
        return_exceptions=True,
    )

    errors: List[dict] = []
    pending: List[Image] = []
    for file, result in zip(files, results):
        if isinstance(result, BaseException):
            logger.error(f"Error uploading file {file.filename} to Cloudinary: {str(result)}")
            errors.append({"filename": file.filename, "error": str(result) or type(result).__name__})
            continue

        # Filename stems are cut to the column size
        caption = metadata.caption or PurePath(file.filename).stem[:MAX_CAPTION_LENGTH]
        pending.append(_new_image(result, metadata, caption, file.filename, file.info))

    if not pending:
        return [], errors

    stored_ids = [image.storage_id for image in pending]
    db.add_all(pending)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to save uploaded images: {str(e)}", exc_info=True)
        await _discard_stored(media, stored_ids)
        raise UnexpectedError("Failed to save uploaded images")

    created = await _reload(db, [image.id for image in pending])

    if errors:
        logger.warning(f"Partial upload success: {len(pending)} succeeded, {len(errors)} failed")
    logger.info(f"Successfully uploaded {len(pending)} image(s)")
    return created, errors


async def upload_from_url(
    db: AsyncSession,
    media: MediaStorage,
    image_url: str,
    metadata: UploadMetadata,
    settings: Settings,
) -> Image:
    """
    Store a remote image and create its row.
    Missing width/height/format in the storage response leave those fields empty.

    Raises:
        StorageError: If Cloudinary cannot fetch or store the image
        UnexpectedError: If the database write fails (stored object is removed)
    """
    try:
        stored = await media.upload_from_url(
            image_url,
            folder=settings.CLOUDINARY_FOLDER,
            tags=[*metadata.tags, "url-upload"],
            public_id=f"url_img_{uuid.uuid4().hex}",
        )
    except Exception as e:
        logger.error(f"Cloudinary URL upload failed for {image_url}: {str(e)}", exc_info=True)
        raise StorageError("Failed to upload image from URL")

    image = _new_image(stored, metadata, metadata.caption or URL_UPLOAD_CAPTION, URL_UPLOAD_FILENAME)
    db.add(image)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Failed to save image uploaded from URL: {str(e)}", exc_info=True)
        await _discard_stored(media, [stored.public_id])
        raise UnexpectedError("Failed to save uploaded image")

    logger.info(f"Successfully uploaded image from URL: ID {image.id}")
    return (await _reload(db, [image.id]))[0]


def build_metadata(caption: Optional[str], group_id: Optional[str], web_link_id: Optional[str], tags) -> UploadMetadata:
    """
    Normalize upload fields shared by every file in a request.

    Raises:
        ValidationError: Caption or a tag is longer than the stored column allows
    """
    caption = (caption or "").strip()
    if len(caption) > MAX_CAPTION_LENGTH:
        raise ValidationError(f"Caption must be at most {MAX_CAPTION_LENGTH} characters")

    tags = normalize_tags(tags)
    if any(len(tag) > MAX_TAG_LENGTH for tag in tags):
        raise ValidationError(f"Tags must be at most {MAX_TAG_LENGTH} characters")

    return UploadMetadata(
        caption=caption,
        group_id=group_id,
        web_link_id=web_link_id,
        tags=tags,
    )
