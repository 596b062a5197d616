"""
Album (image group) mutations and reference resolution.
"""
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Tuple
import logging

from app.exceptions import ConflictError, NotFoundError
from app.models import Image, ImageGroup
from app.schemas import ImageGroupCreate
from app.utils.integrity import is_unique_violation
from app.utils.validators import parse_id

logger = logging.getLogger(__name__)

# Values meaning "no group" in forms and JSON bodies
UNGROUPED_VALUES = (None, "", "null", "ungrouped")


async def create_group(db: AsyncSession, data: ImageGroupCreate) -> ImageGroup:
    """
    Create an album. Name uniqueness is enforced by the database.

    Raises:
        ConflictError: If a group with the same name already exists
    """
    group = ImageGroup(
        name=data.name,
        description=data.description or "",
        date_range_start=data.date_range.start if data.date_range else None,
        date_range_end=data.date_range.end if data.date_range else None,
    )
    db.add(group)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError("A group with this name already exists")
        raise

    logger.info(f"Created image group: ID {group.id} ({group.name})")
    return group


async def get_or_create_group(db: AsyncSession, name: str) -> ImageGroup:
    """
    Return the group with ``name``, creating it if missing.

    Must run before anything else is loaded in the session: when a concurrent
    request creates the same name first, the transaction is rolled back and
    the existing row is returned.
    """
    name = name.strip()
    result = await db.execute(select(ImageGroup).where(ImageGroup.name == name))
    group = result.scalar_one_or_none()
    if group:
        return group

    group = ImageGroup(name=name, description="")
    db.add(group)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if not is_unique_violation(e):
            raise
        result = await db.execute(select(ImageGroup).where(ImageGroup.name == name))
        return result.scalar_one()

    logger.info(f"Created image group inline: ID {group.id} ({group.name})")
    return group


async def resolve_group_reference(db: AsyncSession, raw_group_id: Optional[str]) -> Optional[str]:
    """
    Turn a client supplied group reference into a canonical id or None.

    Raises:
        ValidationError: If the id is not syntactically valid
        NotFoundError: If no group has this id
    """
    if raw_group_id in UNGROUPED_VALUES:
        return None

    group_id = parse_id(raw_group_id, "group")
    exists = await db.scalar(select(func.count()).select_from(ImageGroup).where(ImageGroup.id == group_id))
    if not exists:
        raise NotFoundError("Group not found")
    return group_id


async def delete_group(db: AsyncSession, raw_group_id: str) -> Tuple[str, int]:
    """
    Delete an album and ungroup its images in the same transaction.

    Returns:
        tuple: (group id, number of images that became ungrouped)

    Raises:
        ValidationError: If the id is not syntactically valid
        NotFoundError: If the group does not exist
    """
    group_id = parse_id(raw_group_id, "group")
    group = await db.get(ImageGroup, group_id)
    if group is None:
        raise NotFoundError("Group not found")

    result = await db.execute(
        update(Image)
        .where(Image.group_id == group_id)
        .values(group_id=None)
        .execution_options(synchronize_session=False)
    )
    ungrouped = result.rowcount or 0

    await db.delete(group)
    await db.commit()

    logger.info(f"Deleted image group: ID {group_id}, {ungrouped} image(s) ungrouped")
    return group_id, ungrouped
