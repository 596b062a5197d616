"""create_gallery_tables

Revision ID: 3c9e1a7b52d4
Revises:
Create Date: 2026-10-19 10:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c9e1a7b52d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

web_link_category = sa.Enum(
    'memories', 'gifts', 'letters', 'moments', 'other',
    name='web_link_category',
)


def upgrade() -> None:
    op.create_table(
        'image_groups',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('date_range_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_range_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('name'),
    )
    op.create_index(op.f('ix_image_groups_created_at'), 'image_groups', ['created_at'], unique=False)

    op.create_table(
        'web_links',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('description', sa.String(length=1000), nullable=True),
        sa.Column('category', web_link_category, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('background_color', sa.String(length=7), nullable=False),
        sa.Column('text_color', sa.String(length=7), nullable=False),
        sa.Column('visit_count', sa.Integer(), nullable=False),
        sa.Column('last_visited', sa.DateTime(timezone=True), nullable=True),
        sa.Column('site_name', sa.String(length=200), nullable=True),
        sa.Column('site_description', sa.Text(), nullable=True),
        sa.Column('favicon', sa.Text(), nullable=True),
        sa.Column('preview_image', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    # Only one active link per URL; soft-deleted links may repeat it
    op.create_index(
        'uq_web_links_active_url',
        'web_links',
        ['url'],
        unique=True,
        postgresql_where=sa.text('is_active'),
        sqlite_where=sa.text('is_active'),
    )
    op.create_index('ix_web_links_category', 'web_links', ['category'], unique=False)

    op.create_table(
        'images',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('storage_id', sa.String(length=255), nullable=False),
        sa.Column('caption', sa.String(length=500), nullable=False),
        sa.Column('group_id', sa.String(length=36),
                  sa.ForeignKey('image_groups.id', ondelete='SET NULL'), nullable=True),
        sa.Column('web_link_id', sa.String(length=36),
                  sa.ForeignKey('web_links.id', ondelete='SET NULL'), nullable=True),
        sa.Column('taken_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_favorite', sa.Boolean(), nullable=False),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('format', sa.String(length=20), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('original_filename', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("url LIKE 'http://%' OR url LIKE 'https://%'", name='ck_images_url_http'),
        sa.UniqueConstraint('storage_id'),
    )
    op.create_index(op.f('ix_images_taken_at'), 'images', ['taken_at'], unique=False)
    op.create_index('ix_images_group_created', 'images', ['group_id', 'created_at'], unique=False)
    op.create_index('ix_images_favorite_created', 'images', ['is_favorite', 'created_at'], unique=False)
    op.create_index('ix_images_web_link_created', 'images', ['web_link_id', 'created_at'], unique=False)

    op.create_table(
        'image_tags',
        sa.Column('image_id', sa.String(length=36),
                  sa.ForeignKey('images.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('name', sa.String(length=50), primary_key=True),
        sa.Column('position', sa.Integer(), nullable=False),
    )
    op.create_index('ix_image_tags_name', 'image_tags', ['name'], unique=False)

    op.create_table(
        'web_link_tags',
        sa.Column('web_link_id', sa.String(length=36),
                  sa.ForeignKey('web_links.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('name', sa.String(length=50), primary_key=True),
        sa.Column('position', sa.Integer(), nullable=False),
    )
    op.create_index('ix_web_link_tags_name', 'web_link_tags', ['name'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_web_link_tags_name', table_name='web_link_tags')
    op.drop_table('web_link_tags')
    op.drop_index('ix_image_tags_name', table_name='image_tags')
    op.drop_table('image_tags')

    op.drop_index('ix_images_web_link_created', table_name='images')
    op.drop_index('ix_images_favorite_created', table_name='images')
    op.drop_index('ix_images_group_created', table_name='images')
    op.drop_index(op.f('ix_images_taken_at'), table_name='images')
    op.drop_table('images')

    op.drop_index('ix_web_links_category', table_name='web_links')
    op.drop_index('uq_web_links_active_url', table_name='web_links')
    op.drop_table('web_links')
    web_link_category.drop(op.get_bind(), checkfirst=True)

    op.drop_index(op.f('ix_image_groups_created_at'), table_name='image_groups')
    op.drop_table('image_groups')
