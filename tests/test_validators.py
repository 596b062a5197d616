import uuid

import pytest

from app.exceptions import ValidationError
from app.utils.validators import (
    is_http_url,
    is_valid_id,
    normalize_tags,
    parse_id,
    split_tag_param,
)


def test_normalize_tags_trims_lowercases_and_dedupes():
    assert normalize_tags(["A", " b ", "a"]) == ["a", "b"]


def test_normalize_tags_drops_empty_values():
    assert normalize_tags(["", "   ", None, "Beach"]) == ["beach"]


def test_normalize_tags_handles_none():
    assert normalize_tags(None) == []


def test_split_tag_param():
    assert split_tag_param("Summer, beach,,SUMMER") == ["summer", "beach"]
    assert split_tag_param("") == []
    assert split_tag_param(None) == []


def test_is_valid_id():
    assert is_valid_id(str(uuid.uuid4()))
    assert not is_valid_id("not-an-id")
    assert not is_valid_id("")
    assert not is_valid_id(None)


def test_parse_id_canonicalizes():
    value = uuid.uuid4()
    assert parse_id(str(value).upper()) == str(value)


def test_parse_id_rejects_malformed_id():
    with pytest.raises(ValidationError) as exc_info:
        parse_id("123", "group")

    assert exc_info.value.message == "Invalid group ID"
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/a.jpg", True),
        ("http://example.com", True),
        ("HTTPS://EXAMPLE.COM", True),
        ("ftp://example.com/file", False),
        ("example.com", False),
        ("https://", False),
        ("", False),
    ],
)
def test_is_http_url(url, expected):
    assert is_http_url(url) is expected
