"""
Web link listing with read-time image aggregation and collection statistics.

Each listed link is annotated with ``imageCount`` (outer join onto a grouped
count of images) and ``recentImages`` (the newest linked images, ranked with a
window function). Nothing is denormalized onto the web_links table.
"""
from dataclasses import dataclass
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement
from typing import Dict, List, Literal, Optional, Tuple
import logging

from app.models import Image, WebLink, WebLinkTag
from app.utils.validators import split_tag_param

logger = logging.getLogger(__name__)

RECENT_IMAGES_LIMIT = 3
POPULAR_TAGS_LIMIT = 20

WebLinkSortField = Literal["createdAt", "visitCount", "lastVisited", "title"]

SORT_COLUMNS = {
    "createdAt": WebLink.created_at,
    "visitCount": WebLink.visit_count,
    "lastVisited": WebLink.last_visited,
    "title": WebLink.title,
}


@dataclass(frozen=True)
class WebLinkListParams:
    category: Optional[str] = None
    tags: Optional[str] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0
    sort_by: WebLinkSortField = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"
    include_inactive: bool = False


@dataclass
class WebLinkAggregate:
    web_link: WebLink
    image_count: int
    recent_images: List[Image]


def build_web_link_filters(params: WebLinkListParams) -> List[ColumnElement]:
    filters: List[ColumnElement] = []

    if not params.include_inactive:
        filters.append(WebLink.is_active.is_(True))

    if params.category and params.category != "all":
        filters.append(WebLink.category == params.category)

    tags = split_tag_param(params.tags)
    if tags:
        filters.append(WebLink.tag_rows.any(WebLinkTag.name.in_(tags)))

    search = params.search.strip() if params.search else ""
    if search:
        filters.append(
            WebLink.title.icontains(search, autoescape=True)
            | WebLink.description.icontains(search, autoescape=True)
            | WebLink.tag_rows.any(WebLinkTag.name.icontains(search, autoescape=True))
        )

    return filters


def build_web_link_sort(sort_by: str = "createdAt", sort_order: str = "desc") -> List[ColumnElement]:
    column = SORT_COLUMNS[sort_by]
    primary = column.asc() if sort_order == "asc" else column.desc()
    if sort_by == "lastVisited":
        # Never-visited links sort as oldest on every backend
        primary = primary.nulls_first() if sort_order == "asc" else primary.nulls_last()
    return [primary, WebLink.id.asc()]


def linked_image_counts():
    """Per-web-link image counts, for an explicit outer join onto web_links."""
    return (
        select(Image.web_link_id.label("web_link_id"), func.count(Image.id).label("image_count"))
        .where(Image.web_link_id.is_not(None))
        .group_by(Image.web_link_id)
        .subquery()
    )


async def fetch_recent_images(
    db: AsyncSession, web_link_ids: List[str], per_link: int = RECENT_IMAGES_LIMIT
) -> Dict[str, List[Image]]:
    """
    Newest images per web link, at most ``per_link`` each, newest first.
    """
    if not web_link_ids:
        return {}

    ranked = (
        select(
            Image.id.label("id"),
            func.row_number().over(
                partition_by=Image.web_link_id,
                order_by=(Image.created_at.desc(), Image.id.desc()),
            ).label("rank"),
        )
        .where(Image.web_link_id.in_(web_link_ids))
        .subquery()
    )
    result = await db.execute(
        select(Image)
        .join(ranked, ranked.c.id == Image.id)
        .where(ranked.c.rank <= per_link)
        .order_by(Image.web_link_id, ranked.c.rank)
    )

    recent: Dict[str, List[Image]] = {web_link_id: [] for web_link_id in web_link_ids}
    for image in result.scalars().all():
        recent[image.web_link_id].append(image)
    return recent


async def list_web_links(
    db: AsyncSession, params: WebLinkListParams
) -> Tuple[List[WebLinkAggregate], int]:
    """
    Fetch one page of web links with their image aggregates, plus the total
    number of links matching the filter.
    """
    filters = build_web_link_filters(params)
    counts = linked_image_counts()

    result = await db.execute(
        select(WebLink, func.coalesce(counts.c.image_count, 0))
        .outerjoin(counts, counts.c.web_link_id == WebLink.id)
        .where(*filters)
        .order_by(*build_web_link_sort(params.sort_by, params.sort_order))
        .offset(params.offset)
        .limit(params.limit)
    )
    rows = result.all()

    recent = await fetch_recent_images(db, [web_link.id for web_link, _ in rows])
    aggregates = [
        WebLinkAggregate(web_link=web_link, image_count=count, recent_images=recent.get(web_link.id, []))
        for web_link, count in rows
    ]

    count_result = await db.execute(select(func.count()).select_from(WebLink).where(*filters))
    total_count = count_result.scalar_one()

    logger.info(
        f"Retrieved {len(aggregates)} web links "
        f"(offset: {params.offset}, limit: {params.limit}, total: {total_count})"
    )
    return aggregates, total_count


async def compute_statistics(db: AsyncSession) -> dict:
    """
    Summary over every active web link, independent of any listing filter.

    Returns:
        dict: categories (count per category), popularTags (top 20 by
            frequency) and overview (totals, average visits, last update)
    """
    active = WebLink.is_active.is_(True)

    category_result = await db.execute(
        select(WebLink.category, func.count(WebLink.id))
        .where(active)
        .group_by(WebLink.category)
        .order_by(WebLink.category.asc())
    )
    categories = [
        {"category": category.value, "count": count}
        for category, count in category_result.all()
    ]

    tag_count = func.count(WebLinkTag.web_link_id).label("count")
    tag_result = await db.execute(
        select(WebLinkTag.name, tag_count)
        .join(WebLink, WebLink.id == WebLinkTag.web_link_id)
        .where(active)
        .group_by(WebLinkTag.name)
        .order_by(tag_count.desc(), WebLinkTag.name.asc())
        .limit(POPULAR_TAGS_LIMIT)
    )
    popular_tags = [{"name": name, "count": count} for name, count in tag_result.all()]

    overview_result = await db.execute(
        select(
            func.count(WebLink.id),
            func.coalesce(func.sum(WebLink.visit_count), 0),
            func.avg(WebLink.visit_count),
            func.max(WebLink.updated_at),
        ).where(active)
    )
    total_links, total_visits, avg_visits, last_updated = overview_result.one()

    return {
        "categories": categories,
        "popularTags": popular_tags,
        "overview": {
            "totalLinks": total_links,
            "totalVisits": int(total_visits),
            "avgVisitsPerLink": float(avg_visits) if avg_visits is not None else 0.0,
            "lastUpdated": last_updated.isoformat() if last_updated else None,
        },
    }
