import pytest

from app.utils.pagination import offset_for_page, offset_window, page_window


@pytest.mark.parametrize(
    "total, page, limit, total_pages, has_next, has_prev",
    [
        (0, 1, 12, 0, False, False),
        (15, 1, 12, 2, True, False),
        (15, 2, 12, 2, False, True),
        (24, 2, 12, 2, False, True),
        (25, 3, 12, 3, False, True),
        (5, 4, 12, 1, False, True),
    ],
)
def test_page_window(total, page, limit, total_pages, has_next, has_prev):
    window = page_window(total, page, limit)

    assert window == {
        "currentPage": page,
        "totalPages": total_pages,
        "totalImages": total,
        "hasNext": has_next,
        "hasPrev": has_prev,
    }


def test_page_window_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        page_window(10, 1, 0)


def test_offset_for_page():
    assert offset_for_page(1, 12) == 0
    assert offset_for_page(3, 12) == 24


def test_offset_window():
    assert offset_window(120, 50, 50) == {
        "total": 120,
        "limit": 50,
        "offset": 50,
        "hasMore": True,
        "totalPages": 3,
        "currentPage": 2,
    }


def test_offset_window_last_page():
    window = offset_window(120, 50, 100)

    assert window["hasMore"] is False
    assert window["currentPage"] == 3


def test_offset_window_empty():
    window = offset_window(0, 50, 0)

    assert window["totalPages"] == 0
    assert window["hasMore"] is False
    assert window["currentPage"] == 1
