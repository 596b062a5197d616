"""
Album routes.
Lists albums with their image counts, creates and deletes albums.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.database import get_db
from app.exceptions import GalleryError, UnexpectedError
from app.schemas import ImageGroupCreate, ImageGroupResponse
from app.services.group_service import create_group, delete_group
from app.services.image_query import list_groups_with_counts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/image-groups", tags=["image-groups"])


@router.get("")
async def get_image_groups(db: AsyncSession = Depends(get_db)):
    """
    Get all albums ordered by name, each with its image count.

    Returns:
        dict: {success, data: [ImageGroupResponse]}
    """
    try:
        groups = await list_groups_with_counts(db)
        logger.info(f"Retrieved {len(groups)} image groups")
        return {
            "success": True,
            "data": [ImageGroupResponse.from_model(group, count).to_json() for group, count in groups],
        }
    except GalleryError:
        raise
    except Exception as e:
        logger.error(f"Error fetching image groups: {str(e)}", exc_info=True)
        raise UnexpectedError("Failed to fetch image groups")


@router.post("", status_code=status.HTTP_201_CREATED)
async def post_image_group(payload: ImageGroupCreate, db: AsyncSession = Depends(get_db)):
    """
    Create an album.

    Raises:
        ConflictError: 409 if an album with the same name exists
    """
    group = await create_group(db, payload)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"success": True, "data": ImageGroupResponse.from_model(group, 0).to_json()},
    )


@router.delete("/{group_id}")
async def delete_image_group(group_id: str, db: AsyncSession = Depends(get_db)):
    """
    Delete an album. Its images are kept and become ungrouped.

    Raises:
        ValidationError: 400 if the id is malformed
        NotFoundError: 404 if the album does not exist
    """
    deleted_id, ungrouped = await delete_group(db, group_id)
    return {"success": True, "data": {"id": deleted_id, "ungroupedImages": ungrouped}}
