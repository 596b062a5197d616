import uuid
from datetime import datetime

from sqlalchemy.dialects import postgresql, sqlite

from app.services.image_query import ImageListParams, build_image_filters, build_image_sort
from app.services.web_link_query import WebLinkListParams, build_web_link_filters, build_web_link_sort


def compile_clause(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect()))


def test_no_filters_by_default():
    assert build_image_filters(ImageListParams()) == []


def test_group_all_is_ignored():
    assert build_image_filters(ImageListParams(group="all")) == []


def test_group_ungrouped_filters_null():
    (clause,) = build_image_filters(ImageListParams(group="ungrouped"))

    assert compile_clause(clause) == "images.group_id IS NULL"


def test_group_id_filters_by_equality():
    (clause,) = build_image_filters(ImageListParams(group=str(uuid.uuid4())))

    assert compile_clause(clause).startswith("images.group_id = ")


def test_invalid_group_id_is_ignored():
    assert build_image_filters(ImageListParams(group="garbage")) == []


def test_web_link_null_filter():
    (clause,) = build_image_filters(ImageListParams(web_link_id="null"))

    assert compile_clause(clause) == "images.web_link_id IS NULL"


def test_search_covers_caption_and_tags():
    (clause,) = build_image_filters(ImageListParams(search="  paris "))
    sql = compile_clause(clause)

    assert "images.caption" in sql
    assert "image_tags.name" in sql


def test_combined_filters():
    params = ImageListParams(
        favorites_only=True,
        tags="beach,sea",
        start_date=datetime(2023, 1, 1),
        end_date=datetime(2023, 12, 31),
    )

    assert len(build_image_filters(params)) == 4


def test_default_sort_is_newest_first():
    sql = [compile_clause(clause) for clause in build_image_sort(None)]

    assert sql == ["images.created_at DESC", "images.id ASC"]


def test_date_sort_applies_direction_to_both_dates():
    sql = [compile_clause(clause) for clause in build_image_sort("date", "asc")]

    assert sql == ["images.taken_at ASC", "images.created_at ASC", "images.id ASC"]


def test_name_sort_breaks_ties_by_newest():
    sql = [compile_clause(clause) for clause in build_image_sort("name", "asc")]

    assert sql == ["images.caption ASC", "images.created_at DESC", "images.id ASC"]


def test_web_link_filters_default_to_active():
    (clause,) = build_web_link_filters(WebLinkListParams())

    assert compile_clause(clause).startswith("web_links.is_active IS ")


def test_web_link_filters_include_inactive_and_all_category():
    assert build_web_link_filters(WebLinkListParams(include_inactive=True, category="all")) == []


def test_web_link_search_covers_title_description_and_tags():
    filters = build_web_link_filters(WebLinkListParams(include_inactive=True, search="gift"))
    sql = compile_clause(filters[0])

    assert "web_links.title" in sql
    assert "web_links.description" in sql
    assert "web_link_tags.name" in sql


def test_web_link_sort():
    sql = [compile_clause(clause) for clause in build_web_link_sort("visitCount", "asc")]

    assert sql == ["web_links.visit_count ASC", "web_links.id ASC"]


def test_last_visited_sort_puts_never_visited_links_oldest():
    def compile_postgres(sort_order):
        clauses = build_web_link_sort("lastVisited", sort_order)
        return [str(clause.compile(dialect=postgresql.dialect())) for clause in clauses]

    assert compile_postgres("desc") == ["web_links.last_visited DESC NULLS LAST", "web_links.id ASC"]
    assert compile_postgres("asc") == ["web_links.last_visited ASC NULLS FIRST", "web_links.id ASC"]
