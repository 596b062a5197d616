"""
Validation and normalization helpers shared by routes and services.
"""
from typing import Iterable, List, Optional
from urllib.parse import urlparse
import re
import uuid

from app.exceptions import ValidationError

HTTP_URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)


def is_valid_id(value: Optional[str]) -> bool:
    """Return True if value is a syntactically valid entity id (UUID)."""
    if not value or not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def parse_id(value: Optional[str], label: str = "image") -> str:
    """
    Normalize an entity id to its canonical string form.

    Raises:
        ValidationError: If the id is not syntactically valid
    """
    if not is_valid_id(value):
        raise ValidationError(f"Invalid {label} ID")
    return str(uuid.UUID(value))


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Trim, lowercase, drop empties and de-duplicate, keeping first occurrence.

    >>> normalize_tags(["A", " b ", "a", ""])
    ['a', 'b']
    """
    seen = set()
    normalized = []
    for tag in tags or []:
        if tag is None:
            continue
        cleaned = str(tag).strip().lower()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            normalized.append(cleaned)
    return normalized


def split_tag_param(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tag parameter and normalize its entries."""
    if not tags:
        return []
    return normalize_tags(tags.split(","))


def is_http_url(url: Optional[str]) -> bool:
    """Return True for absolute http(s) URLs with a host."""
    if not url or not HTTP_URL_PATTERN.match(url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.netloc)
