"""
Image mutations: favorite toggle, group reassignment, partial edit, delete.

Favorite toggle and group reassignment are single UPDATE statements so they
cannot race with a concurrent read-modify-write.
"""
from sqlalchemy import select, update, exists, not_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from app.exceptions import NotFoundError
from app.models import Image, ImageGroup, utcnow
from app.schemas import FavoriteStatus, ImageUpdate
from app.services.cloudinary_service import MediaStorage
from app.services.group_service import (
    UNGROUPED_VALUES,
    get_or_create_group,
    resolve_group_reference,
)
from app.services.image_patch import UNSET, ImagePatch, merge_image_patch
from app.utils.integrity import is_foreign_key_violation
from app.utils.validators import parse_id

logger = logging.getLogger(__name__)


async def get_image(db: AsyncSession, raw_image_id: str) -> Image:
    """
    Load an image with its group and tags.

    Raises:
        ValidationError: If the id is not syntactically valid
        NotFoundError: If the image does not exist
    """
    image_id = parse_id(raw_image_id, "image")
    result = await db.execute(
        select(Image)
        .where(Image.id == image_id)
        .execution_options(populate_existing=True)
    )
    image = result.scalar_one_or_none()
    if image is None:
        raise NotFoundError("Image not found")
    return image


async def toggle_favorite(db: AsyncSession, raw_image_id: str) -> FavoriteStatus:
    """Flip is_favorite atomically and return the new state."""
    image_id = parse_id(raw_image_id, "image")
    result = await db.execute(
        update(Image)
        .where(Image.id == image_id)
        .values(is_favorite=not_(Image.is_favorite), updated_at=utcnow())
        .returning(Image.id, Image.is_favorite, Image.updated_at)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Image not found")
    await db.commit()

    logger.info(f"Toggled favorite for image {image_id}: {row.is_favorite}")
    return FavoriteStatus(id=row.id, is_favorite=row.is_favorite, updated_at=row.updated_at)


async def get_favorite_status(db: AsyncSession, raw_image_id: str) -> FavoriteStatus:
    image_id = parse_id(raw_image_id, "image")
    result = await db.execute(select(Image.id, Image.is_favorite).where(Image.id == image_id))
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Image not found")
    return FavoriteStatus(id=row.id, is_favorite=row.is_favorite)


async def reassign_group(db: AsyncSession, raw_image_id: str, raw_group_id: Optional[str]) -> dict:
    """
    Set or clear an image's group in one conditional UPDATE.

    The update only applies when the target group exists at write time, so a
    group deleted between validation and write cannot be referenced.

    Raises:
        ValidationError: If either id is not syntactically valid
        NotFoundError: If the image or the group does not exist
    """
    image_id = parse_id(raw_image_id, "image")
    group_id = None if raw_group_id in UNGROUPED_VALUES else parse_id(raw_group_id, "group")

    statement = update(Image).where(Image.id == image_id)
    if group_id is not None:
        statement = statement.where(exists().where(ImageGroup.id == group_id))

    result = await db.execute(
        statement
        .values(group_id=group_id, updated_at=utcnow())
        .returning(Image.id, Image.group_id)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        await db.rollback()
        image_exists = await db.scalar(select(exists().where(Image.id == image_id)))
        raise NotFoundError("Image not found" if not image_exists else "Group not found")

    await db.commit()
    logger.info(f"Moved image {image_id} to group {group_id or 'ungrouped'}")
    return {"id": row.id, "groupId": row.group_id}


async def build_patch(db: AsyncSession, data: ImageUpdate) -> ImagePatch:
    """
    Resolve an edit request into an ImagePatch.
    groupName takes precedence over groupId and creates the group if missing.
    """
    fields = data.model_fields_set

    group_id = UNSET
    if data.group_name and data.group_name.strip():
        group = await get_or_create_group(db, data.group_name)
        group_id = group.id
    elif "group_id" in fields:
        group_id = await resolve_group_reference(db, data.group_id)

    return ImagePatch(
        caption=data.caption if "caption" in fields else None,
        group_id=group_id,
        tags=data.tags if "tags" in fields else None,
    )


async def update_image(db: AsyncSession, raw_image_id: str, data: ImageUpdate) -> Image:
    """
    Apply a partial edit; only supplied fields change.

    Raises:
        ValidationError: If an id is not syntactically valid
        NotFoundError: If the image or the referenced group does not exist
    """
    image_id = parse_id(raw_image_id, "image")
    # Resolving the group may roll back the transaction, so load the image after
    patch = await build_patch(db, data)
    image = await get_image(db, image_id)

    changes = {} if patch.is_empty() else merge_image_patch(
        {"caption": image.caption, "group_id": image.group_id, "tags": list(image.tags)},
        patch,
    )
    if not changes:
        await db.commit()
        return image

    if "caption" in changes:
        image.caption = changes["caption"]
    if "group_id" in changes:
        image.group_id = changes["group_id"]
    if "tags" in changes:
        image.set_tags(changes["tags"])
    image.updated_at = utcnow()

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_foreign_key_violation(e):
            raise NotFoundError("Group not found")
        raise

    logger.info(f"Updated image {image.id}: {', '.join(sorted(changes))}")
    return await get_image(db, image.id)


async def delete_image(db: AsyncSession, media: MediaStorage, raw_image_id: str) -> dict:
    """
    Delete an image: storage first (best effort), then the database row.

    A storage failure is logged and reported but never blocks the database
    delete; the stored object is then orphaned.
    """
    image = await get_image(db, raw_image_id)

    deleted_from_storage = True
    try:
        await media.delete(image.storage_id)
    except Exception as e:
        deleted_from_storage = False
        logger.error(
            f"Failed to delete from Cloudinary for image ID {image.id} "
            f"(public_id: {image.storage_id}): {str(e)}",
            exc_info=True
        )

    await db.delete(image)
    await db.commit()

    logger.info(f"Deleted image from database: ID {image.id}")
    return {
        "id": image.id,
        "deletedFrom": {"cloudinary": deleted_from_storage, "database": True},
    }
