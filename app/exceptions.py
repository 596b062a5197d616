"""
Application error taxonomy.
Every error carries the HTTP status it maps to at the response boundary.
"""
from fastapi import status
from typing import Any, List, Optional


class GalleryError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(GalleryError):
    """Malformed id, schema violation, size or type limits."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(GalleryError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(GalleryError):
    """Duplicate value for a unique field."""

    status_code = status.HTTP_409_CONFLICT


class PayloadTooLargeError(GalleryError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class StorageError(GalleryError):
    """External media storage failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UnexpectedError(GalleryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def format_validation_errors(errors: List[dict]) -> List[dict]:
    """
    Flatten pydantic error dicts into ``[{"field": "a.b", "message": "..."}]``.
    The request location prefix (body, query, path) is dropped.
    """
    formatted = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in ("body", "query", "path", "header"):
            location = location[1:]
        formatted.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value"),
        })
    return formatted
