"""
Web link mutations: creation and visit tracking.
"""
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.exceptions import ConflictError, NotFoundError
from app.models import WebLink, utcnow
from app.schemas import VisitResponse, WebLinkCreate
from app.utils.integrity import is_unique_violation
from app.utils.validators import normalize_tags, parse_id

logger = logging.getLogger(__name__)


async def create_web_link(db: AsyncSession, data: WebLinkCreate) -> WebLink:
    """
    Create an active web link.

    The partial unique index on active URLs rejects duplicates; an inactive
    link with the same URL does not conflict.

    Raises:
        ConflictError: If an active web link already has this URL
    """
    metadata = data.metadata
    web_link = WebLink(
        title=data.title,
        url=data.url,
        description=data.description,
        category=data.category,
        background_color=data.background_color,
        text_color=data.text_color,
        site_name=metadata.site_name if metadata else None,
        site_description=metadata.site_description if metadata else None,
        favicon=metadata.favicon if metadata else None,
        preview_image=metadata.preview_image if metadata else None,
        visit_count=0,
        is_active=True,
    )
    web_link.set_tags(normalize_tags(data.tags))
    db.add(web_link)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if is_unique_violation(e):
            raise ConflictError("A web link with this URL already exists")
        raise

    logger.info(f"Created web link: ID {web_link.id} ({web_link.url})")
    return web_link


async def record_visit(db: AsyncSession, raw_web_link_id: str) -> VisitResponse:
    """Increment visit_count and stamp last_visited in one UPDATE."""
    web_link_id = parse_id(raw_web_link_id, "web link")
    result = await db.execute(
        update(WebLink)
        .where(WebLink.id == web_link_id)
        .values(visit_count=WebLink.visit_count + 1, last_visited=utcnow())
        .returning(WebLink.visit_count, WebLink.last_visited)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        raise NotFoundError("Web link not found")
    await db.commit()

    logger.info(f"Recorded visit for web link {web_link_id}: {row.visit_count} visits")
    return VisitResponse(visit_count=row.visit_count, last_visited=row.last_visited)
