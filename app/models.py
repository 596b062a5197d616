"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
import uuid

from app.database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebLinkCategory(str, enum.Enum):
    memories = "memories"
    gifts = "gifts"
    letters = "letters"
    moments = "moments"
    other = "other"


class ImageGroup(Base):
    """
    Album that images optionally belong to.
    The image count is derived on read, never stored.
    """
    __tablename__ = "image_groups"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(500), nullable=False, default="")
    date_range_start = Column(DateTime(timezone=True), nullable=True)
    date_range_end = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    images = relationship("Image", back_populates="group", passive_deletes=True)


class ImageTag(Base):
    __tablename__ = "image_tags"

    image_id = Column(String(36), ForeignKey("images.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(50), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_image_tags_name", "name"),
    )


class Image(Base):
    """
    Image stored in external media storage.
    storage_id is the Cloudinary public id (1:1 with the stored object).
    """
    __tablename__ = "images"

    id = Column(String(36), primary_key=True, default=generate_id)
    url = Column(Text, nullable=False)
    storage_id = Column(String(255), nullable=False, unique=True)
    caption = Column(String(500), nullable=False, default="")
    group_id = Column(String(36), ForeignKey("image_groups.id", ondelete="SET NULL"), nullable=True)
    web_link_id = Column(String(36), ForeignKey("web_links.id", ondelete="SET NULL"), nullable=True)
    taken_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    is_favorite = Column(Boolean, nullable=False, default=False)

    # Storage metadata (all optional)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    format = Column(String(20), nullable=True)
    size = Column(Integer, nullable=True)
    original_filename = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    group = relationship("ImageGroup", back_populates="images", lazy="selectin")
    tag_rows = relationship(
        "ImageTag",
        order_by=ImageTag.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    tags = association_proxy("tag_rows", "name", creator=lambda name: ImageTag(name=name))

    def set_tags(self, names):
        """Replace tags, keeping rows for names that stay."""
        existing = {row.name: row for row in self.tag_rows}
        self.tag_rows = [existing.get(name) or ImageTag(name=name) for name in names]
        self.tag_rows.reorder()

    __table_args__ = (
        CheckConstraint("url LIKE 'http://%' OR url LIKE 'https://%'", name="ck_images_url_http"),
        Index("ix_images_group_created", "group_id", "created_at"),
        Index("ix_images_favorite_created", "is_favorite", "created_at"),
        Index("ix_images_web_link_created", "web_link_id", "created_at"),
    )


class WebLinkTag(Base):
    __tablename__ = "web_link_tags"

    web_link_id = Column(String(36), ForeignKey("web_links.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(50), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_web_link_tags_name", "name"),
    )


class WebLink(Base):
    """
    Bookmarked external site.
    Only one active link may hold a given URL; inactive links are soft-deleted.
    """
    __tablename__ = "web_links"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(200), nullable=False)
    url = Column(Text, nullable=False)
    description = Column(String(1000), nullable=True)
    category = Column(Enum(WebLinkCategory, name="web_link_category"), nullable=False, default=WebLinkCategory.memories)
    is_active = Column(Boolean, nullable=False, default=True)
    background_color = Column(String(7), nullable=False, default="#ec4899")
    text_color = Column(String(7), nullable=False, default="#ffffff")
    visit_count = Column(Integer, nullable=False, default=0)
    last_visited = Column(DateTime(timezone=True), nullable=True)

    # Site metadata
    site_name = Column(String(200), nullable=True)
    site_description = Column(Text, nullable=True)
    favicon = Column(Text, nullable=True)
    preview_image = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tag_rows = relationship(
        "WebLinkTag",
        order_by=WebLinkTag.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    tags = association_proxy("tag_rows", "name", creator=lambda name: WebLinkTag(name=name))

    def set_tags(self, names):
        existing = {row.name: row for row in self.tag_rows}
        self.tag_rows = [existing.get(name) or WebLinkTag(name=name) for name in names]
        self.tag_rows.reorder()

    __table_args__ = (
        Index(
            "uq_web_links_active_url",
            "url",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("ix_web_links_category", "category"),
    )
