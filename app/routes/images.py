"""
Image routes: listing, upload, fetch, edit, delete, group and favorite changes.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional
import logging

from app.config import Settings
from app.database import get_db
from app.dependencies import get_media_storage, get_settings
from app.exceptions import (
    GalleryError,
    UnexpectedError,
    ValidationError,
    format_validation_errors,
)
from app.schemas import (
    GroupSummary,
    ImageGroupAssign,
    ImageGroupResponse,
    ImageResponse,
    ImageUpdate,
    ImageUrlUpload,
)
from app.services import image_service, upload_service
from app.services.cloudinary_service import MediaStorage
from app.services.group_service import resolve_group_reference
from app.services.image_query import (
    ImageListParams,
    ImageSortField,
    SortOrder,
    list_groups_with_counts,
    list_images,
)
from app.utils.pagination import MAX_PAGE_LIMIT, page_window

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["images"])


@router.get("")
async def get_images(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=MAX_PAGE_LIMIT),
    sort_by: Optional[ImageSortField] = Query(None, alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    group: Optional[str] = None,
    search: Optional[str] = None,
    favorites_only: bool = Query(False, alias="favoritesOnly"),
    tags: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    web_link_id: Optional[str] = Query(None, alias="webLinkId"),
    db: AsyncSession = Depends(get_db),
):
    """
    Get filtered, sorted, paginated images together with every album.

    Args:
        group: "all", "ungrouped" or an album id (unknown ids are ignored)
        search: Case-insensitive match against caption or tags
        tags: Comma-separated; matches images carrying any of them
        web_link_id: "null" for images without a web link, or a web link id

    Returns:
        dict: {success, data: {images, groups, pagination}}
    """
    params = ImageListParams(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        group=group,
        search=search,
        favorites_only=favorites_only,
        tags=tags,
        start_date=start_date,
        end_date=end_date,
        web_link_id=web_link_id,
    )
    try:
        images, total_count = await list_images(db, params)
        groups = await list_groups_with_counts(db)
    except GalleryError:
        raise
    except Exception as e:
        logger.error(f"Failed to retrieve images: {str(e)}", exc_info=True)
        raise UnexpectedError("Failed to fetch images")

    return {
        "success": True,
        "data": {
            "images": [ImageResponse.from_model(image).to_json() for image in images],
            "groups": [ImageGroupResponse.from_model(g, count).to_json() for g, count in groups],
            "pagination": page_window(total_count, page, limit),
        },
    }


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_images(
    request: Request,
    db: AsyncSession = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Upload images as multipart files (field "files") or from a JSON {imageUrl}.

    Multipart form fields: caption, groupId, webLinkId, tags (comma-separated).

    Raises:
        ValidationError: 400 on unsupported content, bad ids or invalid files
        NotFoundError: 404 if the album or web link does not exist
        PayloadTooLargeError: 413 if a file exceeds the size limit
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        return await _handle_file_upload(request, db, media, settings)
    if content_type.startswith("application/json"):
        return await _handle_url_upload(request, db, media, settings)

    raise ValidationError("Unsupported content type")


async def _handle_file_upload(request: Request, db: AsyncSession, media: MediaStorage, settings: Settings):
    form = await request.form()
    uploads = [item for item in form.getlist("files") if hasattr(item, "filename")]
    if not uploads:
        raise ValidationError("No files provided")

    files = []
    for upload in uploads:
        files.append(upload_service.IncomingFile(
            filename=upload.filename or "image",
            content_type=upload.content_type or "",
            data=await upload.read(),
        ))
    upload_service.validate_files(files, settings)

    raw_tags = form.get("tags") or ""
    metadata = upload_service.build_metadata(
        caption=form.get("caption"),
        group_id=await resolve_group_reference(db, form.get("groupId") or None),
        web_link_id=await upload_service.resolve_web_link_reference(db, form.get("webLinkId") or None),
        tags=raw_tags.split(",") if isinstance(raw_tags, str) else [],
    )

    created, errors = await upload_service.upload_files(db, media, files, metadata, settings)
    if not created:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "All uploads failed", "details": errors},
        )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": f"Uploaded {len(created)} image(s) successfully",
            "data": {
                "images": [ImageResponse.from_model(image).to_json() for image in created],
                "count": len(created),
                "errors": errors,
            },
        },
    )


async def _handle_url_upload(request: Request, db: AsyncSession, media: MediaStorage, settings: Settings):
    try:
        payload = ImageUrlUpload.model_validate(await request.json())
    except PydanticValidationError as e:
        raise ValidationError("Validation failed", details=format_validation_errors(e.errors()))
    except ValueError:
        raise ValidationError("Request body must be valid JSON")

    metadata = upload_service.build_metadata(
        caption=payload.caption,
        group_id=await resolve_group_reference(db, payload.group_id),
        web_link_id=await upload_service.resolve_web_link_reference(db, payload.web_link_id),
        tags=payload.tags,
    )
    image = await upload_service.upload_from_url(db, media, payload.image_url, metadata, settings)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Uploaded image from URL successfully",
            "data": ImageResponse.from_model(image).to_json(),
        },
    )


@router.get("/{image_id}")
async def get_image(image_id: str, db: AsyncSession = Depends(get_db)):
    image = await image_service.get_image(db, image_id)
    return {"success": True, "data": ImageResponse.from_model(image).to_json()}


@router.patch("/{image_id}")
async def patch_image(image_id: str, payload: ImageUpdate, db: AsyncSession = Depends(get_db)):
    """
    Partially edit caption, album and tags. Only supplied fields change.

    Returns:
        dict: {success, data: {id, caption, groupId, group, tags, updatedAt}}
    """
    image = await image_service.update_image(db, image_id, payload)
    return {
        "success": True,
        "data": {
            "id": image.id,
            "caption": image.caption,
            "groupId": image.group_id,
            "group": GroupSummary.from_model(image.group).to_json() if image.group else None,
            "tags": list(image.tags),
            "updatedAt": image.updated_at.isoformat(),
        },
    }


@router.delete("/{image_id}")
async def delete_image(
    image_id: str,
    db: AsyncSession = Depends(get_db),
    media: MediaStorage = Depends(get_media_storage),
):
    """
    Delete an image from Cloudinary (best effort) and from the database.

    Returns:
        dict: {success, data: {id, deletedFrom: {cloudinary, database}}}
    """
    result = await image_service.delete_image(db, media, image_id)
    return {"success": True, "data": result}


@router.patch("/{image_id}/group")
async def patch_image_group(
    image_id: str,
    payload: Optional[ImageGroupAssign] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Move an image to another album.
    groupId: absent = unchanged, null or "ungrouped" = remove from album.
    """
    if payload is None or "group_id" not in payload.model_fields_set:
        image = await image_service.get_image(db, image_id)
        return {"success": True, "data": {"id": image.id, "groupId": image.group_id}}

    result = await image_service.reassign_group(db, image_id, payload.group_id)
    return {"success": True, "data": result}


@router.patch("/{image_id}/toggle-favorite")
async def toggle_favorite(image_id: str, db: AsyncSession = Depends(get_db)):
    status_ = await image_service.toggle_favorite(db, image_id)
    return {"success": True, "data": status_.to_json()}


@router.get("/{image_id}/toggle-favorite")
async def get_favorite(image_id: str, db: AsyncSession = Depends(get_db)):
    status_ = await image_service.get_favorite_status(db, image_id)
    return {"success": True, "data": status_.model_dump(mode="json", by_alias=True, exclude={"updated_at"})}
