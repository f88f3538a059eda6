"""Catalog request rules — pure functions.

Parameter resolution and clamping for listings, comparisons and reports.
No database, no side effects: every function maps raw query/body values to
the closed set of values the repositories accept, so caller input never
reaches a query string.
"""

import math
import re
from dataclasses import dataclass
from typing import Any

from core.config import ReportingConfig
from core.errors import ValidationError
from verticals.catalog.models.schemas import ReadingStatus, SortKey, SortOrder

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EARTH_RADIUS_KM = 6371.0


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def to_int(value: Any) -> int | None:
    """Coerce a query/body value to int; None when it is not integral."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def parse_positive_int(value: Any) -> int | None:
    number = to_int(value)
    return number if number is not None and number > 0 else None


def is_non_empty(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_RE.match(value) is not None


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListingSort:
    key: SortKey
    descending: bool


def resolve_listing_sort(sort: str | None, order: str | None) -> ListingSort:
    """Map raw ``sort``/``order`` to a closed sort key and direction.

    Unknown keys fall back to title. Direction is ascending unless
    ``order=desc``; rating and reviews default to descending when no order
    is given.
    """
    try:
        key = SortKey(sort)
    except ValueError:
        key = SortKey.TITLE

    if order:
        descending = str(order).lower() == SortOrder.DESC.value
    else:
        descending = key in (SortKey.RATING, SortKey.REVIEWS)

    return ListingSort(key=key, descending=descending)


def coerce_genre_id(value: Any) -> int | float | None:
    """Genre filter value.

    Integral input gives the genre id. Other numeric input (``"3.5"``) is
    returned as a float, a filter no genre matches. Non-numeric input is
    ignored.
    """
    genre_id = to_int(value)
    if genre_id is not None or value is None or isinstance(value, bool):
        return genre_id
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def normalize_search(q: str | None) -> str | None:
    if q is None or not str(q).strip():
        return None
    return str(q).strip()


def escape_like(text: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return (
        text.replace(escape, escape * 2)
        .replace("%", f"{escape}%")
        .replace("_", f"{escape}_")
    )


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

def parse_compare_ids(raw: str | None) -> list[int]:
    """Parse ``"3,7,12"`` into distinct positive ids, first occurrence wins.

    Raises ValidationError when fewer than two valid tokens are given.
    Repeats count towards that minimum, so ``"5,5"`` compares book 5 alone.
    """
    tokens = [parse_positive_int(token) for token in str(raw or "").split(",")]
    valid = [book_id for book_id in tokens if book_id is not None]
    if len(valid) < 2:
        raise ValidationError("Select at least two books to compare")
    return list(dict.fromkeys(valid))


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def clamp_limit(value: Any, default: int, maximum: int) -> int:
    """Positive limit capped at ``maximum``; anything else yields ``default``."""
    limit = parse_positive_int(value)
    if limit is None:
        limit = default
    return min(limit, maximum)


def clamp_days(value: Any, config: ReportingConfig) -> int:
    days = to_int(value) or config.reviews_window_default
    return max(config.reviews_window_min, min(days, config.reviews_window_max))


# ---------------------------------------------------------------------------
# Reading list
# ---------------------------------------------------------------------------

def normalize_status(status: str | None) -> ReadingStatus:
    """Reading-list status; unknown values fall back to ``want``."""
    try:
        return ReadingStatus(status)
    except ValueError:
        return ReadingStatus.WANT


# ---------------------------------------------------------------------------
# Geo
# ---------------------------------------------------------------------------

def parse_coordinate(value: Any) -> float | None:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))
