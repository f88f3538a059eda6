"""Report endpoints.

The two "top" rankings are public; everything else requires the admin role.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response

from api.auth import get_config, require_admin
from core.config import CatalogConfig
from core.security import Identity
from verticals.catalog.models.schemas import (
    DailyReviewsResponse,
    GenreStat,
    ListResponse,
    Summary,
    TopAuthor,
    TopBook,
)
from verticals.catalog.renderer import SUMMARY_CSV_FILENAME, render_summary_csv
from verticals.catalog.reports import ReportRepository, get_report_repository
from verticals.catalog.rules import clamp_days, clamp_limit

router = APIRouter()


@router.get("/top-books", response_model=ListResponse[TopBook])
async def top_books(
    limit: Optional[str] = None,
    config: CatalogConfig = Depends(get_config),
    repo: ReportRepository = Depends(get_report_repository),
):
    """Best-rated reviewed books (default 10, at most 100)."""
    limit_value = clamp_limit(
        limit, config.reporting.top_books_default, config.reporting.top_limit_max
    )
    books = await repo.top_books(limit_value)
    return {"data": books, "count": len(books)}


@router.get("/top-authors", response_model=ListResponse[TopAuthor])
async def top_authors(
    limit: Optional[str] = None,
    config: CatalogConfig = Depends(get_config),
    repo: ReportRepository = Depends(get_report_repository),
):
    """Best-rated authors (default 5, at most 100)."""
    limit_value = clamp_limit(
        limit, config.reporting.top_authors_default, config.reporting.top_limit_max
    )
    authors = await repo.top_authors(limit_value)
    return {"data": authors, "count": len(authors)}


@router.get("/summary", response_model=Summary)
async def summary(
    admin: Identity = Depends(require_admin),
    repo: ReportRepository = Depends(get_report_repository),
):
    """Users, books, reviews and the overall average rating."""
    return await repo.summary()


@router.get("/summary/csv")
async def summary_csv(
    admin: Identity = Depends(require_admin),
    repo: ReportRepository = Depends(get_report_repository),
):
    """The summary as a one-row CSV download."""
    body = render_summary_csv(await repo.summary())
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{SUMMARY_CSV_FILENAME}"'},
    )


@router.get("/genres-stats", response_model=ListResponse[GenreStat])
async def genres_stats(
    admin: Identity = Depends(require_admin),
    repo: ReportRepository = Depends(get_report_repository),
):
    """Distinct book count per genre, including empty genres."""
    genres = await repo.genre_stats()
    return {"data": genres, "count": len(genres)}


@router.get("/reviews-by-day", response_model=DailyReviewsResponse)
async def reviews_by_day(
    days: Optional[str] = None,
    admin: Identity = Depends(require_admin),
    config: CatalogConfig = Depends(get_config),
    repo: ReportRepository = Depends(get_report_repository),
):
    """Daily review counts over the last ``days`` days (1-365, default 14)."""
    window = clamp_days(days, config.reporting)
    buckets = await repo.reviews_by_day(window)
    return {"data": buckets, "count": len(buckets), "days": window}
