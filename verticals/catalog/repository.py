"""Catalog repositories — async database access for books and their neighbours.

BookRepository owns the listing query (dynamic filter + sort composition
over books with live review statistics) and the comparison/detail views.
The remaining repositories cover authors, genres, reviews, reading lists,
users and bookstores.
"""

from collections import defaultdict
from typing import Any, Iterable

import structlog
from fastapi import Depends
from sqlalchemy import Table, delete, distinct, false, func, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_session
from core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from core.security import Identity
from patterns.repository import BaseRepository
from verticals.catalog.models.db_models import (
    Author,
    Book,
    Bookstore,
    Genre,
    Review,
    User,
    UserBook,
    book_authors,
    book_genres,
)
from verticals.catalog.models.schemas import ReadingStatus, Role, SortKey
from verticals.catalog.rules import ListingSort, escape_like, haversine_km

logger = structlog.get_logger(__name__)

LIKE_ESCAPE = "/"


def as_rating(value: Any) -> float | None:
    """Normalise a store-side AVG/ROUND result (Decimal, float or None)."""
    if value is None:
        return None
    return round(float(value), 2)


def review_stats_subquery():
    """Per-book rating statistics, one row per reviewed book.

    Aggregating reviews on their own before joining keeps author/genre
    fan-out away from the counts.
    """
    return (
        select(
            Review.book_id.label("book_id"),
            func.round(func.avg(Review.rating), 2).label("avg_rating"),
            func.count(distinct(Review.review_id)).label("reviews_count"),
        )
        .group_by(Review.book_id)
        .subquery("review_stats")
    )


def _join_names(names: Iterable[str]) -> str | None:
    unique = sorted(set(names), key=lambda name: (name.lower(), name))
    return ", ".join(unique) if unique else None


# ---------------------------------------------------------------------------
# Book repository
# ---------------------------------------------------------------------------

class BookRepository(BaseRepository[Book]):
    """Repository for book listing, comparison, detail and admin CRUD."""

    model = Book

    # -- Listing --

    async def list_books(
        self,
        sort: ListingSort,
        q: str | None = None,
        genre_id: int | float | None = None,
    ) -> list[dict]:
        """Full book list matching every supplied filter, with live stats."""
        stats = review_stats_subquery()
        avg_rating = func.coalesce(stats.c.avg_rating, 0).label("avg_rating")
        reviews_count = func.coalesce(stats.c.reviews_count, 0).label("reviews_count")

        stmt = select(Book, avg_rating, reviews_count).outerjoin(
            stats, stats.c.book_id == Book.book_id
        )

        if q:
            pattern = f"%{escape_like(q, LIKE_ESCAPE)}%"
            author_match = (
                select(book_authors.c.book_id)
                .join(Author, Author.author_id == book_authors.c.author_id)
                .where(Author.full_name.ilike(pattern, escape=LIKE_ESCAPE))
            )
            stmt = stmt.where(
                or_(
                    Book.title.ilike(pattern, escape=LIKE_ESCAPE),
                    Book.book_id.in_(author_match),
                )
            )

        if isinstance(genre_id, float):
            # non-integral genre ids never match
            stmt = stmt.where(false())
        elif genre_id is not None:
            stmt = stmt.where(
                Book.book_id.in_(
                    select(book_genres.c.book_id).where(book_genres.c.genre_id == genre_id)
                )
            )

        sort_columns = {
            SortKey.TITLE: Book.title,
            SortKey.YEAR: Book.publication_year,
            SortKey.RATING: avg_rating,
            SortKey.REVIEWS: reviews_count,
        }
        column = sort_columns[sort.key]
        stmt = stmt.order_by(
            column.desc() if sort.descending else column.asc(),
            Book.book_id.asc(),
        )

        result = await self.session.execute(stmt)
        return [
            {
                **book.to_dict(),
                "avg_rating": as_rating(avg) or 0.0,
                "reviews_count": int(count or 0),
            }
            for book, avg, count in result.all()
        ]

    # -- Comparison --

    async def compare(self, book_ids: list[int]) -> list[dict]:
        """Side-by-side rows for the requested books that exist.

        Authors and genres are flattened into ``", "``-joined strings of
        distinct names in alphabetical order.
        """
        stats = review_stats_subquery()
        stmt = (
            select(
                Book,
                func.coalesce(stats.c.avg_rating, 0),
                func.coalesce(stats.c.reviews_count, 0),
            )
            .outerjoin(stats, stats.c.book_id == Book.book_id)
            .where(Book.book_id.in_(book_ids))
            .order_by(Book.book_id)
        )
        result = await self.session.execute(stmt)
        rows = result.all()
        if not rows:
            return []

        found = [book.book_id for book, _, _ in rows]
        authors = await self._names_by_book(
            book_authors, Author, Author.author_id == book_authors.c.author_id, Author.full_name, found
        )
        genres = await self._names_by_book(
            book_genres, Genre, Genre.genre_id == book_genres.c.genre_id, Genre.genre_name, found
        )

        return [
            {
                **book.to_dict(),
                "avg_rating": as_rating(avg) or 0.0,
                "reviews_count": int(count or 0),
                "authors": _join_names(authors.get(book.book_id, [])),
                "genres": _join_names(genres.get(book.book_id, [])),
            }
            for book, avg, count in rows
        ]

    async def _names_by_book(
        self, link: Table, model, onclause, name_column, book_ids: list[int]
    ) -> dict[int, list[str]]:
        stmt = (
            select(link.c.book_id, name_column)
            .join(model, onclause)
            .where(link.c.book_id.in_(book_ids))
        )
        result = await self.session.execute(stmt)
        names: dict[int, list[str]] = defaultdict(list)
        for book_id, name in result.all():
            names[book_id].append(name)
        return names

    # -- Detail --

    async def get_detail(self, book_id: int) -> dict:
        """Book with structured author/genre lists and live stats."""
        book = await self.get_instance(book_id)
        if not book:
            raise NotFoundError("Book not found")

        authors_result = await self.session.execute(
            select(Author)
            .join(book_authors, book_authors.c.author_id == Author.author_id)
            .where(book_authors.c.book_id == book_id)
            .order_by(Author.full_name, Author.author_id)
        )
        genres_result = await self.session.execute(
            select(Genre)
            .join(book_genres, book_genres.c.genre_id == Genre.genre_id)
            .where(book_genres.c.book_id == book_id)
            .order_by(Genre.genre_name, Genre.genre_id)
        )
        stats_result = await self.session.execute(
            select(
                func.round(func.coalesce(func.avg(Review.rating), 0), 2),
                func.count(Review.review_id),
            ).where(Review.book_id == book_id)
        )
        avg, count = stats_result.one()

        return {
            **book.to_dict(),
            "authors": [a.to_dict() for a in authors_result.scalars().all()],
            "genres": [g.to_dict() for g in genres_result.scalars().all()],
            "avg_rating": as_rating(avg) or 0.0,
            "reviews_count": int(count or 0),
        }

    # -- Admin CRUD --

    async def create_book(self, data: dict[str, Any]) -> dict:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required")
        author_ids = await self._checked_ids(Author, data.get("author_ids") or [], "author")
        genre_ids = await self._checked_ids(Genre, data.get("genre_ids") or [], "genre")

        book = await self.create({
            "title": title,
            "publication_year": data.get("publication_year"),
            "description": data.get("description"),
            "cover_url": data.get("cover_url"),
        })
        await self._link(book_authors, "author_id", book["book_id"], author_ids)
        await self._link(book_genres, "genre_id", book["book_id"], genre_ids)

        logger.info("Book created", book_id=book["book_id"], title=title)
        return book

    async def update_book(self, book_id: int, data: dict[str, Any]) -> dict:
        """Replace a book's fields; supplied link lists replace the link set."""
        if not await self.exists(book_id):
            raise NotFoundError("Book not found")

        title = data.get("title")
        if title is not None and not title.strip():
            raise ValidationError("title must not be blank")

        author_ids = data.get("author_ids")
        genre_ids = data.get("genre_ids")
        if author_ids is not None:
            author_ids = await self._checked_ids(Author, author_ids, "author")
        if genre_ids is not None:
            genre_ids = await self._checked_ids(Genre, genre_ids, "genre")

        fields = {
            "publication_year": data.get("publication_year"),
            "description": data.get("description"),
            "cover_url": data.get("cover_url"),
        }
        if title is not None:
            fields["title"] = title.strip()
        updated = await self.update(book_id, fields)

        if author_ids is not None:
            await self.session.execute(
                delete(book_authors).where(book_authors.c.book_id == book_id)
            )
            await self._link(book_authors, "author_id", book_id, author_ids)
        if genre_ids is not None:
            await self.session.execute(
                delete(book_genres).where(book_genres.c.book_id == book_id)
            )
            await self._link(book_genres, "genre_id", book_id, genre_ids)

        await self.session.flush()
        logger.info("Book updated", book_id=book_id)
        return updated

    async def delete_book(self, book_id: int) -> None:
        """Delete a book with its links, reviews and reading-list entries."""
        if not await self.exists(book_id):
            raise NotFoundError("Book not found")

        await self.session.execute(delete(book_authors).where(book_authors.c.book_id == book_id))
        await self.session.execute(delete(book_genres).where(book_genres.c.book_id == book_id))
        await self.session.execute(delete(Review).where(Review.book_id == book_id))
        await self.session.execute(delete(UserBook).where(UserBook.book_id == book_id))
        await self.delete(book_id)
        logger.info("Book deleted", book_id=book_id)

    async def _checked_ids(self, model, ids: Iterable[int], label: str) -> list[int]:
        """Distinct ids in input order; unknown ids are a ValidationError."""
        wanted = list(dict.fromkeys(int(i) for i in ids))
        if not wanted:
            return []
        pk = model.__mapper__.primary_key[0]
        result = await self.session.execute(select(pk).where(pk.in_(wanted)))
        known = set(result.scalars().all())
        missing = [i for i in wanted if i not in known]
        if missing:
            raise ValidationError(
                f"Unknown {label} ids", detail=", ".join(str(i) for i in missing)
            )
        return wanted

    async def _link(self, table: Table, column: str, book_id: int, ids: list[int]) -> None:
        if ids:
            await self.session.execute(
                insert(table), [{"book_id": book_id, column: i} for i in ids]
            )


# ---------------------------------------------------------------------------
# Author / genre repositories
# ---------------------------------------------------------------------------

class AuthorRepository(BaseRepository[Author]):
    model = Author

    async def list_all(self) -> list[dict]:
        result = await self.session.execute(select(Author).order_by(Author.full_name))
        return [a.to_dict() for a in result.scalars().all()]

    async def get_or_create(self, full_name: str, country: str | None) -> tuple[dict, bool]:
        """Return (author, created). Names match case-insensitively."""
        name = (full_name or "").strip()
        if not name:
            raise ValidationError("Author name is required")
        country = (country or "").strip() or None

        result = await self.session.execute(
            select(Author).where(func.lower(Author.full_name) == name.lower()).limit(1)
        )
        existing = result.scalar_one_or_none()
        if existing:
            return {**existing.to_dict(), "existed": True}, False

        author = await self.create({"full_name": name, "country": country})
        logger.info("Author created", author_id=author["author_id"])
        return author, True


class GenreRepository(BaseRepository[Genre]):
    model = Genre

    async def list_all(self) -> list[dict]:
        result = await self.session.execute(select(Genre).order_by(Genre.genre_name))
        return [g.to_dict() for g in result.scalars().all()]


# ---------------------------------------------------------------------------
# Review repository
# ---------------------------------------------------------------------------

class ReviewRepository(BaseRepository[Review]):
    """Repository for book reviews."""

    model = Review

    def _with_username(self):
        return select(Review, User.username).join(User, User.user_id == Review.user_id)

    async def _row(self, review_id: int) -> dict:
        result = await self.session.execute(
            self._with_username().where(Review.review_id == review_id)
        )
        review, username = result.one()
        return {**review.to_dict(), "username": username}

    async def list_for_book(self, book_id: int) -> list[dict]:
        """All reviews of a book, newest first."""
        result = await self.session.execute(
            self._with_username()
            .where(Review.book_id == book_id)
            .order_by(Review.review_date.desc(), Review.review_id.desc())
        )
        return [{**review.to_dict(), "username": username} for review, username in result.all()]

    async def create_for_book(
        self, book_id: int, user_id: int, rating: int, review_text: str | None
    ) -> dict:
        if not await BookRepository(self.session).exists(book_id):
            raise NotFoundError("Book not found")

        review = await self.create({
            "book_id": book_id,
            "user_id": user_id,
            "rating": rating,
            "review_text": review_text,
        })
        logger.info("Review created", review_id=review["review_id"], book_id=book_id)
        return await self._row(review["review_id"])

    async def _owned(self, review_id: int, identity: Identity) -> Review:
        review = await self.get_instance(review_id)
        if not review:
            raise NotFoundError("Review not found")
        if identity.role != Role.ADMIN.value and identity.user_id != review.user_id:
            raise AuthorizationError("Insufficient permissions")
        return review

    async def update_review(
        self, review_id: int, identity: Identity, rating: int | None, review_text: str | None
    ) -> dict:
        """Owner or admin only; rating kept when omitted, text replaced."""
        await self._owned(review_id, identity)
        fields = {"review_text": review_text}
        if rating is not None:
            fields["rating"] = rating
        await self.update(review_id, fields)
        return await self._row(review_id)

    async def delete_review(self, review_id: int, identity: Identity) -> None:
        await self._owned(review_id, identity)
        await self.delete(review_id)
        logger.info("Review deleted", review_id=review_id, by_user=identity.user_id)


# ---------------------------------------------------------------------------
# Reading list repository
# ---------------------------------------------------------------------------

class UserBookRepository:
    """Reading-list entries keyed by (user_id, book_id)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_user(self, user_id: int) -> list[dict]:
        result = await self.session.execute(
            select(
                UserBook.book_id,
                UserBook.status,
                UserBook.created_at,
                Book.title,
                Book.publication_year,
                Book.cover_url,
            )
            .join(Book, Book.book_id == UserBook.book_id)
            .where(UserBook.user_id == user_id)
            .order_by(UserBook.created_at.desc(), UserBook.book_id.desc())
        )
        return [
            {
                "book_id": row.book_id,
                "status": row.status,
                "created_at": row.created_at.isoformat() if row.created_at else None,
                "title": row.title,
                "publication_year": row.publication_year,
                "cover_url": row.cover_url,
            }
            for row in result.all()
        ]

    async def upsert(self, user_id: int, book_id: int, status: ReadingStatus) -> None:
        """Insert the entry or overwrite its status in one statement."""
        if not await BookRepository(self.session).exists(book_id):
            raise NotFoundError("Book not found")

        values = {"user_id": user_id, "book_id": book_id, "status": status.value}
        dialect = self.session.bind.dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert_fn(UserBook).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[UserBook.user_id, UserBook.book_id],
                set_={"status": stmt.excluded.status},
            )
            await self.session.execute(stmt)
        else:
            result = await self.session.execute(
                update(UserBook)
                .where(UserBook.user_id == user_id, UserBook.book_id == book_id)
                .values(status=status.value)
            )
            if not result.rowcount:
                self.session.add(UserBook(**values))
        await self.session.flush()
        logger.info("Reading list updated", user_id=user_id, book_id=book_id, status=status.value)

    async def remove(self, user_id: int, book_id: int) -> None:
        result = await self.session.execute(
            delete(UserBook).where(UserBook.user_id == user_id, UserBook.book_id == book_id)
        )
        if not result.rowcount:
            raise NotFoundError("Book is not in the user's list")


# ---------------------------------------------------------------------------
# User repository
# ---------------------------------------------------------------------------

class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def register(self, username: str, email: str, password_hash: str, role: str) -> dict:
        if await self.get_by_email(email):
            raise ConflictError("User already exists")
        try:
            user = await self.create({
                "username": username,
                "email": email,
                "password_hash": password_hash,
                "role": role,
            })
        except IntegrityError:
            # concurrent registration with the same email
            raise ConflictError("User already exists")
        logger.info("User registered", user_id=user["user_id"])
        return user

    async def profile_summary(self, user_id: int) -> dict:
        """Profile, review count and reading lists grouped by status."""
        user = await self.get(user_id)
        if not user:
            raise NotFoundError("User not found")

        count_result = await self.session.execute(
            select(func.count(Review.review_id)).where(Review.user_id == user_id)
        )
        books = await UserBookRepository(self.session).list_for_user(user_id)

        lists: dict[str, list[dict]] = {status.value: [] for status in ReadingStatus}
        for row in books:
            lists.setdefault(row["status"], []).append(row)

        return {
            "user": user,
            "stats": {
                "reviews_count": count_result.scalar() or 0,
                "books_total": len(books),
                "lists_counts": {status: len(rows) for status, rows in lists.items()},
            },
            "lists": lists,
        }


# ---------------------------------------------------------------------------
# Bookstore repository
# ---------------------------------------------------------------------------

class BookstoreRepository(BaseRepository[Bookstore]):
    model = Bookstore

    async def list_all(self) -> list[dict]:
        result = await self.session.execute(select(Bookstore).order_by(Bookstore.store_id))
        return [s.to_dict() for s in result.scalars().all()]

    async def near(self, lat: float, lng: float, limit: int) -> list[dict]:
        """Nearest stores first, with great-circle distance in km."""
        stores = await self.list_all()
        for store in stores:
            store["distance_km"] = round(
                haversine_km(lat, lng, store["latitude"], store["longitude"]), 3
            )
        stores.sort(key=lambda s: (s["distance_km"], s["store_id"]))
        return stores[:limit]


# ---------------------------------------------------------------------------
# FastAPI dependency factories
# ---------------------------------------------------------------------------

def get_book_repository(session: AsyncSession = Depends(get_session)) -> BookRepository:
    """FastAPI dependency for BookRepository."""
    return BookRepository(session)


def get_author_repository(session: AsyncSession = Depends(get_session)) -> AuthorRepository:
    return AuthorRepository(session)


def get_genre_repository(session: AsyncSession = Depends(get_session)) -> GenreRepository:
    return GenreRepository(session)


def get_review_repository(session: AsyncSession = Depends(get_session)) -> ReviewRepository:
    """FastAPI dependency for ReviewRepository."""
    return ReviewRepository(session)


def get_user_book_repository(session: AsyncSession = Depends(get_session)) -> UserBookRepository:
    return UserBookRepository(session)


def get_user_repository(session: AsyncSession = Depends(get_session)) -> UserRepository:
    return UserRepository(session)


def get_bookstore_repository(session: AsyncSession = Depends(get_session)) -> BookstoreRepository:
    return BookstoreRepository(session)
