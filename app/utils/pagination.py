"""
Pagination math shared by the image and web link listings.
"""
import math

MAX_PAGE_LIMIT = 100


def offset_for_page(page: int, limit: int) -> int:
    """Number of rows to skip for a 1-based page."""
    return (page - 1) * limit


def page_window(total_count: int, page: int, limit: int) -> dict:
    """
    Compute page-based pagination metadata.

    Args:
        total_count: Number of rows matching the filter
        page: Requested 1-based page
        limit: Page size (must be positive)

    Returns:
        dict: currentPage, totalPages, totalImages, hasNext, hasPrev
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    total_pages = math.ceil(total_count / limit)
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalImages": total_count,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def offset_window(total_count: int, limit: int, offset: int) -> dict:
    """
    Compute offset-based pagination metadata.

    Returns:
        dict: total, limit, offset, hasMore, totalPages, currentPage
    """
    if limit <= 0:
        raise ValueError("limit must be positive")

    return {
        "total": total_count,
        "limit": limit,
        "offset": offset,
        "hasMore": offset + limit < total_count,
        "totalPages": math.ceil(total_count / limit),
        "currentPage": offset // limit + 1,
    }
