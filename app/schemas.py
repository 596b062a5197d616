"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.
All JSON field names are camelCase.
"""
from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List

from app.models import Image, ImageGroup, WebLink, WebLinkCategory
from app.utils.validators import is_http_url

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# Image groups

class DateRange(CamelModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.start and self.end and self.start > self.end:
            raise ValueError("dateRange.start must not be after dateRange.end")
        return self


class ImageGroupCreate(CamelModel):
    """
    Request schema for creating an album.
    Used by POST /image-groups.
    """
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date_range: Optional[DateRange] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Group name is required")
        return v

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> str:
        return v.strip() if v else ""


class GroupSummary(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    date_range: Optional[DateRange] = None

    @classmethod
    def from_model(cls, group: ImageGroup) -> "GroupSummary":
        return cls(
            id=group.id,
            name=group.name,
            description=group.description,
            date_range=_date_range(group),
        )


class ImageGroupResponse(GroupSummary):
    """
    Album with its derived image count.
    Used by GET/POST /image-groups.
    """
    image_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, group: ImageGroup, image_count: int = 0) -> "ImageGroupResponse":
        return cls(
            id=group.id,
            name=group.name,
            description=group.description,
            date_range=_date_range(group),
            image_count=image_count,
            created_at=group.created_at,
            updated_at=group.updated_at,
        )


def _date_range(group: ImageGroup) -> Optional[DateRange]:
    if group.date_range_start is None and group.date_range_end is None:
        return None
    return DateRange(start=group.date_range_start, end=group.date_range_end)


# Images

class ImageMetadata(CamelModel):
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    size: Optional[int] = None
    original_filename: Optional[str] = None


def format_size(size: Optional[int]) -> str:
    """Human readable byte size, e.g. "512 B", "1.5 KB", "2.0 MB"."""
    if not size:
        return "Unknown"
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


class ImageResponse(CamelModel):
    """
    Full image representation.
    Used by listing, fetch and upload endpoints.
    """
    id: str
    url: str
    storage_id: str
    caption: str = ""
    taken_at: datetime
    is_favorite: bool = False
    metadata: ImageMetadata
    tags: List[str] = []
    group_id: Optional[str] = None
    group: Optional[GroupSummary] = None
    web_link_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="formattedSize")
    @property
    def formatted_size(self) -> str:
        return format_size(self.metadata.size)

    @classmethod
    def from_model(cls, image: Image) -> "ImageResponse":
        return cls(
            id=image.id,
            url=image.url,
            storage_id=image.storage_id,
            caption=image.caption or "",
            taken_at=image.taken_at,
            is_favorite=image.is_favorite,
            metadata=ImageMetadata(
                width=image.width,
                height=image.height,
                format=image.format,
                size=image.size,
                original_filename=image.original_filename,
            ),
            tags=list(image.tags),
            group_id=image.group_id,
            group=GroupSummary.from_model(image.group) if image.group else None,
            web_link_id=image.web_link_id,
            created_at=image.created_at,
            updated_at=image.updated_at,
        )


class ImageUpdate(CamelModel):
    """
    Request schema for partial image edits.
    Used by PATCH /images/{id}. Absent fields are left unchanged.
    """
    caption: Optional[str] = Field(default=None, max_length=500)
    group_id: Optional[str] = None
    group_name: Optional[str] = Field(default=None, max_length=100)
    tags: Optional[List[str]] = Field(default=None, max_length=50)

    @field_validator("tags")
    @classmethod
    def validate_tag_length(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and any(len(tag.strip()) > 50 for tag in v):
            raise ValueError("Tags must be at most 50 characters")
        return v


class ImageGroupAssign(CamelModel):
    """
    Request schema for group reassignment.
    Used by PATCH /images/{id}/group.
    groupId: absent = no change, null or "ungrouped" = clear, id = assign.
    """
    group_id: Optional[str] = None


class ImageUrlUpload(CamelModel):
    """
    Request schema for uploading an image from a remote URL.
    Used by POST /images/upload with a JSON body.
    """
    image_url: str
    caption: Optional[str] = Field(default=None, max_length=500)
    group_id: Optional[str] = None
    web_link_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list, max_length=50)

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        v = v.strip()
        if not is_http_url(v):
            raise ValueError("Invalid URL format")
        return v


class FavoriteStatus(CamelModel):
    id: str
    is_favorite: bool
    updated_at: Optional[datetime] = None


# Web links

class WebLinkMetadata(CamelModel):
    site_name: Optional[str] = None
    site_description: Optional[str] = None
    favicon: Optional[str] = None
    preview_image: Optional[str] = None

    @field_validator("preview_image")
    @classmethod
    def validate_preview_image(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_http_url(v):
            raise ValueError("Invalid URL format")
        return v


class WebLinkCreate(CamelModel):
    """
    Request schema for creating a web link.
    Used by POST /web-links/create.
    """
    title: str = Field(min_length=1, max_length=200)
    url: str
    description: Optional[str] = Field(default=None, max_length=1000)
    tags: List[str] = Field(default_factory=list, max_length=20)
    category: WebLinkCategory = WebLinkCategory.memories
    background_color: str = Field(default="#ec4899", pattern=HEX_COLOR_PATTERN)
    text_color: str = Field(default="#ffffff", pattern=HEX_COLOR_PATTERN)
    metadata: Optional[WebLinkMetadata] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not is_http_url(v):
            raise ValueError("Invalid URL format")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        for tag in v:
            if not 1 <= len(tag) <= 50:
                raise ValueError("Tags must be between 1 and 50 characters")
        return v


class RecentImage(CamelModel):
    id: str
    url: str
    caption: str = ""
    created_at: datetime

    @classmethod
    def from_model(cls, image: Image) -> "RecentImage":
        return cls(id=image.id, url=image.url, caption=image.caption or "", created_at=image.created_at)


class WebLinkResponse(CamelModel):
    """
    Web link annotated with its joined image aggregates.
    """
    id: str
    title: str
    url: str
    description: Optional[str] = None
    tags: List[str] = []
    category: WebLinkCategory
    is_active: bool
    background_color: str
    text_color: str
    visit_count: int
    last_visited: Optional[datetime] = None
    metadata: WebLinkMetadata
    image_count: int = 0
    recent_images: List[RecentImage] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(
        cls,
        web_link: WebLink,
        image_count: int = 0,
        recent_images: Optional[List[Image]] = None,
    ) -> "WebLinkResponse":
        return cls(
            id=web_link.id,
            title=web_link.title,
            url=web_link.url,
            description=web_link.description,
            tags=list(web_link.tags),
            category=web_link.category,
            is_active=web_link.is_active,
            background_color=web_link.background_color,
            text_color=web_link.text_color,
            visit_count=web_link.visit_count,
            last_visited=web_link.last_visited,
            metadata=WebLinkMetadata(
                site_name=web_link.site_name,
                site_description=web_link.site_description,
                favicon=web_link.favicon,
                preview_image=web_link.preview_image,
            ),
            image_count=image_count,
            recent_images=[RecentImage.from_model(img) for img in recent_images or []],
            created_at=web_link.created_at,
            updated_at=web_link.updated_at,
        )


class VisitResponse(CamelModel):
    visit_count: int
    last_visited: Optional[datetime] = None
