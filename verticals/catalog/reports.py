"""Reporting repository — ranked and aggregated catalog statistics.

Every ranking has a total, deterministic order: rating, then volume, then
name. Review counts are always computed from the live reviews table.
"""

from datetime import date, datetime, time, timedelta, timezone

from fastapi import Depends
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from verticals.catalog.models.db_models import (
    Author,
    Book,
    Genre,
    Review,
    User,
    book_authors,
    book_genres,
)
from verticals.catalog.repository import as_rating


def day_bucket(column, dialect: str):
    """Calendar day (UTC) of a timestamp column.

    PostgreSQL truncates timestamptz in the session time zone, so the value
    is shifted to UTC first. SQLite stores naive UTC already.
    """
    if dialect == "postgresql":
        return func.date(func.timezone("UTC", column))
    return func.date(column)


class ReportRepository:
    """Read-only reporting queries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def top_books(self, limit: int) -> list[dict]:
        """Reviewed books by avg rating desc, review count desc, title asc."""
        avg_rating = func.round(func.avg(Review.rating), 2).label("avg_rating")
        reviews_count = func.count(Review.review_id).label("reviews_count")

        stmt = (
            select(Book.book_id, Book.title, Book.publication_year, avg_rating, reviews_count)
            .join(Review, Review.book_id == Book.book_id)
            .group_by(Book.book_id, Book.title, Book.publication_year)
            .having(func.count(Review.review_id) > 0)
            .order_by(avg_rating.desc(), reviews_count.desc(), Book.title.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "book_id": row.book_id,
                "title": row.title,
                "publication_year": row.publication_year,
                "avg_rating": as_rating(row.avg_rating),
                "reviews_count": row.reviews_count,
            }
            for row in result.all()
        ]

    async def top_authors(self, limit: int) -> list[dict]:
        """Authors with reviewed books, ranked like top_books.

        A review of a co-authored book counts once for each of its authors.
        """
        avg_rating = func.round(func.avg(Review.rating), 2).label("avg_rating")
        reviews_count = func.count(Review.review_id).label("reviews_count")
        books_count = func.count(distinct(book_authors.c.book_id)).label("books_count")

        stmt = (
            select(Author.author_id, Author.full_name, books_count, reviews_count, avg_rating)
            .select_from(Author)
            .join(book_authors, book_authors.c.author_id == Author.author_id)
            .join(Review, Review.book_id == book_authors.c.book_id)
            .group_by(Author.author_id, Author.full_name)
            .having(func.count(Review.review_id) > 0)
            .order_by(avg_rating.desc(), reviews_count.desc(), Author.full_name.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "author_id": row.author_id,
                "full_name": row.full_name,
                "books_count": row.books_count,
                "reviews_count": row.reviews_count,
                "avg_rating": as_rating(row.avg_rating),
            }
            for row in result.all()
        ]

    async def genre_stats(self) -> list[dict]:
        """Every genre, including empty ones, with its distinct book count."""
        books_count = func.count(distinct(book_genres.c.book_id)).label("books_count")
        stmt = (
            select(Genre.genre_id, Genre.genre_name, books_count)
            .select_from(Genre)
            .outerjoin(book_genres, book_genres.c.genre_id == Genre.genre_id)
            .group_by(Genre.genre_id, Genre.genre_name)
            .order_by(books_count.desc(), Genre.genre_name.asc())
        )
        result = await self.session.execute(stmt)
        return [
            {
                "genre_id": row.genre_id,
                "genre_name": row.genre_name,
                "books_count": row.books_count,
            }
            for row in result.all()
        ]

    async def reviews_by_day(self, days: int, today: date | None = None) -> list[dict]:
        """Review counts per calendar day (UTC) over the trailing window.

        Days without reviews are not emitted.
        """
        today = today or datetime.now(timezone.utc).date()
        since = datetime.combine(today - timedelta(days=days), time.min, tzinfo=timezone.utc)

        day = day_bucket(Review.review_date, self.session.bind.dialect.name).label("day")
        stmt = (
            select(day, func.count(Review.review_id).label("reviews_count"))
            .where(Review.review_date >= since)
            .group_by(day)
            .order_by(day)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "label": row.day if isinstance(row.day, str) else row.day.isoformat(),
                "reviews_count": row.reviews_count,
            }
            for row in result.all()
        ]

    async def summary(self) -> dict:
        """Global totals and the overall average rating (None without reviews)."""
        users_count = await self.session.scalar(select(func.count()).select_from(User))
        books_count = await self.session.scalar(select(func.count()).select_from(Book))
        reviews = await self.session.execute(
            select(func.count(Review.review_id), func.round(func.avg(Review.rating), 2))
        )
        reviews_count, avg_rating = reviews.one()

        return {
            "users_count": users_count or 0,
            "books_count": books_count or 0,
            "reviews_count": reviews_count or 0,
            "avg_rating": as_rating(avg_rating),
        }


def get_report_repository(session: AsyncSession = Depends(get_session)) -> ReportRepository:
    """FastAPI dependency for ReportRepository."""
    return ReportRepository(session)
