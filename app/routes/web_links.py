"""
Web link routes: listing with image aggregates and statistics, creation and
visit tracking.
"""
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Literal, Optional
import logging

from app.database import get_db
from app.exceptions import GalleryError, UnexpectedError, ValidationError
from app.schemas import WebLinkCreate, WebLinkResponse
from app.services.web_link_query import (
    WebLinkListParams,
    WebLinkSortField,
    compute_statistics,
    list_web_links,
)
from app.services.web_link_service import create_web_link, record_visit
from app.utils.pagination import MAX_PAGE_LIMIT, offset_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/web-links", tags=["web-links"])

CategoryFilter = Literal["all", "memories", "gifts", "letters", "moments", "other"]


@router.get("")
async def get_web_links(
    category: Optional[CategoryFilter] = None,
    tags: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
    sort_by: WebLinkSortField = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    include_inactive: bool = Query(False, alias="includeInactive"),
    db: AsyncSession = Depends(get_db),
):
    """
    Get web links annotated with imageCount and recentImages, plus statistics
    over every active link.

    Returns:
        dict: {success, data: {webLinks, pagination, statistics}}
    """
    params = WebLinkListParams(
        category=category,
        tags=tags,
        search=search,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
        include_inactive=include_inactive,
    )
    try:
        aggregates, total_count = await list_web_links(db, params)
        statistics = await compute_statistics(db)
    except GalleryError:
        raise
    except Exception as e:
        logger.error(f"Error fetching web links: {str(e)}", exc_info=True)
        raise UnexpectedError("Failed to fetch web links")

    return {
        "success": True,
        "data": {
            "webLinks": [
                WebLinkResponse.from_model(a.web_link, a.image_count, a.recent_images).to_json()
                for a in aggregates
            ],
            "pagination": offset_window(total_count, limit, offset),
            "statistics": statistics,
        },
    }


@router.patch("")
async def patch_web_link(
    id: Optional[str] = None,
    action: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Record a visit: PATCH /web-links?id={id}&action=visit

    Returns:
        dict: {success, data: {visitCount, lastVisited}}
    """
    if not id or action != "visit":
        raise ValidationError("Invalid parameters")

    visit = await record_visit(db, id)
    return {"success": True, "data": visit.to_json()}


@router.post("/create", status_code=status.HTTP_201_CREATED)
async def post_web_link(payload: WebLinkCreate, db: AsyncSession = Depends(get_db)):
    """
    Create a web link.

    Raises:
        ConflictError: 409 if an active web link already uses this URL
    """
    web_link = await create_web_link(db, payload)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Web link created successfully",
            "data": WebLinkResponse.from_model(web_link, 0, []).to_json(),
        },
    )
