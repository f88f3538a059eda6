"""Test catalog request rules."""
import pytest

from core.config import ReportingConfig
from core.errors import ValidationError
from verticals.catalog.models.schemas import ReadingStatus, SortKey
from verticals.catalog.rules import (
    clamp_days,
    clamp_limit,
    coerce_genre_id,
    escape_like,
    haversine_km,
    is_email,
    normalize_email,
    normalize_search,
    normalize_status,
    parse_compare_ids,
    parse_coordinate,
    parse_positive_int,
    resolve_listing_sort,
    to_int,
)


def test_to_int_accepts_integral_values():
    assert to_int(7) == 7
    assert to_int(" 12 ") == 12
    assert to_int("3.0") == 3


def test_to_int_rejects_non_integral():
    assert to_int("3.5") is None
    assert to_int("abc") is None
    assert to_int("") is None
    assert to_int(None) is None
    assert to_int(True) is None


def test_parse_positive_int():
    assert parse_positive_int("4") == 4
    assert parse_positive_int("0") is None
    assert parse_positive_int(-2) is None


def test_sort_defaults_to_title_ascending():
    sort = resolve_listing_sort(None, None)
    assert sort.key == SortKey.TITLE
    assert sort.descending is False


def test_sort_unknown_key_falls_back_to_title():
    sort = resolve_listing_sort("title; DROP TABLE books", "desc")
    assert sort.key == SortKey.TITLE
    assert sort.descending is True


def test_sort_rating_and_reviews_default_descending():
    assert resolve_listing_sort("rating", None).descending is True
    assert resolve_listing_sort("reviews", None).descending is True
    assert resolve_listing_sort("year", None).descending is False


def test_sort_explicit_order_wins():
    assert resolve_listing_sort("rating", "asc").descending is False
    assert resolve_listing_sort("year", "DESC").descending is True


def test_genre_id_non_numeric_ignored():
    assert coerce_genre_id("3") == 3
    assert coerce_genre_id("3.0") == 3
    assert coerce_genre_id("fantasy") is None
    assert coerce_genre_id(None) is None


def test_genre_id_non_integral_is_kept():
    assert coerce_genre_id("3.5") == 3.5
    assert coerce_genre_id("inf") is None


def test_normalize_search_blank():
    assert normalize_search("   ") is None
    assert normalize_search(None) is None
    assert normalize_search("  omens ") == "omens"


def test_escape_like_wildcards():
    assert escape_like("100%_Pure", "/") == "100/%/_Pure"
    assert escape_like("a/b", "/") == "a//b"


def test_compare_ids_parses_and_dedupes():
    assert parse_compare_ids("3, 7,3,x,12") == [3, 7, 12]


def test_compare_ids_repeats_count_towards_minimum():
    assert parse_compare_ids("5,5") == [5]


@pytest.mark.parametrize("raw", [None, "", "5", "5,abc", "0,-1"])
def test_compare_ids_requires_two(raw):
    with pytest.raises(ValidationError):
        parse_compare_ids(raw)


def test_clamp_limit():
    assert clamp_limit(None, 10, 100) == 10
    assert clamp_limit("0", 10, 100) == 10
    assert clamp_limit("abc", 5, 100) == 5
    assert clamp_limit("3", 10, 100) == 3
    assert clamp_limit("1000", 10, 100) == 100


def test_clamp_days():
    config = ReportingConfig()
    assert clamp_days(None, config) == 14
    assert clamp_days("0", config) == 14
    assert clamp_days("-5", config) == 1
    assert clamp_days("30", config) == 30
    assert clamp_days("9999", config) == 365


def test_normalize_status_falls_back_to_want():
    assert normalize_status("reading") == ReadingStatus.READING
    assert normalize_status("finished") == ReadingStatus.FINISHED
    assert normalize_status("abandoned") == ReadingStatus.WANT
    assert normalize_status(None) == ReadingStatus.WANT


def test_email_rules():
    assert is_email("reader@example.com")
    assert not is_email("reader@example")
    assert not is_email("not an email")
    assert normalize_email("  Reader@Example.COM ") == "reader@example.com"


def test_parse_coordinate():
    assert parse_coordinate("40.5") == 40.5
    assert parse_coordinate(None) is None
    assert parse_coordinate("north") is None
    assert parse_coordinate("nan") is None


def test_haversine_known_distance():
    # New York to Boston is roughly 306 km
    distance = haversine_km(40.7128, -74.0060, 42.3601, -71.0589)
    assert 300 < distance < 312
    assert haversine_km(10.0, 10.0, 10.0, 10.0) == 0.0
