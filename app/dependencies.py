"""
FastAPI dependencies for collaborators stored on ``app.state``.
"""
from fastapi import Request

from app.config import Settings
from app.services.cloudinary_service import MediaStorage


def get_media_storage(request: Request) -> MediaStorage:
    return request.app.state.media_storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
