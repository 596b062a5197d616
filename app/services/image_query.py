"""
Image listing queries.

``build_image_filters`` and ``build_image_sort`` translate listing parameters
into SQLAlchemy clauses without touching the database; ``list_images`` runs the
page query and the count query as two independent reads.
"""
from dataclasses import dataclass
from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement
from typing import List, Literal, Optional, Tuple
import logging

from app.models import Image, ImageGroup, ImageTag
from app.utils.pagination import offset_for_page
from app.utils.validators import is_valid_id, parse_id, split_tag_param

logger = logging.getLogger(__name__)

ImageSortField = Literal["date", "name", "favorites", "group"]
SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class ImageListParams:
    page: int = 1
    limit: int = 12
    sort_by: Optional[ImageSortField] = None
    sort_order: SortOrder = "desc"
    group: Optional[str] = None
    search: Optional[str] = None
    favorites_only: bool = False
    tags: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    web_link_id: Optional[str] = None


def build_image_filters(params: ImageListParams) -> List[ColumnElement]:
    """
    Build the WHERE clauses for an image listing.

    Unrecognized group or web link ids are ignored rather than rejected.
    """
    filters: List[ColumnElement] = []

    group = params.group
    if group and group != "all":
        if group == "ungrouped":
            filters.append(Image.group_id.is_(None))
        elif is_valid_id(group):
            filters.append(Image.group_id == parse_id(group, "group"))

    web_link_id = params.web_link_id
    if web_link_id == "null":
        filters.append(Image.web_link_id.is_(None))
    elif is_valid_id(web_link_id):
        filters.append(Image.web_link_id == parse_id(web_link_id, "web link"))

    search = params.search.strip() if params.search else ""
    if search:
        filters.append(
            Image.caption.icontains(search, autoescape=True)
            | Image.tag_rows.any(ImageTag.name.icontains(search, autoescape=True))
        )

    if params.favorites_only:
        filters.append(Image.is_favorite.is_(True))

    tags = split_tag_param(params.tags)
    if tags:
        filters.append(Image.tag_rows.any(ImageTag.name.in_(tags)))

    if params.start_date is not None:
        filters.append(Image.taken_at >= params.start_date)
    if params.end_date is not None:
        filters.append(Image.taken_at <= params.end_date)

    return filters


def build_image_sort(sort_by: Optional[str], sort_order: str = "desc") -> List[ColumnElement]:
    """
    Build the ORDER BY clauses for an image listing.

    created_at breaks ties: it follows the primary direction when sorting by
    date and is always descending otherwise.
    """
    def direction(column):
        return column.asc() if sort_order == "asc" else column.desc()

    if sort_by == "date":
        order = [direction(Image.taken_at), direction(Image.created_at)]
    elif sort_by == "name":
        order = [direction(Image.caption), Image.created_at.desc()]
    elif sort_by == "favorites":
        order = [direction(Image.is_favorite), Image.created_at.desc()]
    elif sort_by == "group":
        order = [direction(Image.group_id), Image.created_at.desc()]
    else:
        order = [Image.created_at.desc()]

    # Keeps page boundaries deterministic
    order.append(Image.id.asc())
    return order


async def list_images(db: AsyncSession, params: ImageListParams) -> Tuple[List[Image], int]:
    """
    Fetch one page of images and the total match count.

    The two reads are not transactionally linked, so the count can drift from
    the page content under concurrent writes.
    """
    filters = build_image_filters(params)

    query = (
        select(Image)
        .where(*filters)
        .order_by(*build_image_sort(params.sort_by, params.sort_order))
        .offset(offset_for_page(params.page, params.limit))
        .limit(params.limit)
    )
    result = await db.execute(query)
    images = list(result.scalars().all())

    count_result = await db.execute(select(func.count()).select_from(Image).where(*filters))
    total_count = count_result.scalar_one()

    logger.info(
        f"Retrieved {len(images)} images "
        f"(page: {params.page}, limit: {params.limit}, total: {total_count})"
    )
    return images, total_count


def image_count_subquery():
    """Per-group image counts, for an explicit outer join onto image_groups."""
    return (
        select(Image.group_id.label("group_id"), func.count(Image.id).label("image_count"))
        .where(Image.group_id.is_not(None))
        .group_by(Image.group_id)
        .subquery()
    )


async def list_groups_with_counts(db: AsyncSession) -> List[Tuple[ImageGroup, int]]:
    """All groups sorted by name, each paired with its image count."""
    counts = image_count_subquery()
    result = await db.execute(
        select(ImageGroup, func.coalesce(counts.c.image_count, 0))
        .outerjoin(counts, counts.c.group_id == ImageGroup.id)
        .order_by(ImageGroup.name.asc())
    )
    return [(group, count) for group, count in result.all()]
