"""Pydantic schemas for API request/response validation."""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SortKey(str, Enum):
    TITLE = "title"
    YEAR = "year"
    RATING = "rating"
    REVIEWS = "reviews"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ReadingStatus(str, Enum):
    WANT = "want"
    READING = "reading"
    FINISHED = "finished"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class BookCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    publication_year: Optional[int] = None
    description: Optional[str] = None
    cover_url: Optional[str] = Field(None, max_length=1000)
    author_ids: list[int] = Field(default_factory=list)
    genre_ids: list[int] = Field(default_factory=list)


class BookUpdate(BaseModel):
    """Full replacement of the optional fields; omitted link lists are kept."""

    title: Optional[str] = Field(None, max_length=500)
    publication_year: Optional[int] = None
    description: Optional[str] = None
    cover_url: Optional[str] = Field(None, max_length=1000)
    author_ids: Optional[list[int]] = None
    genre_ids: Optional[list[int]] = None


class AuthorCreate(BaseModel):
    full_name: str = ""
    country: Optional[str] = None


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    review_text: Optional[str] = None


class UserBookUpsert(BaseModel):
    book_id: Any = None
    status: Optional[str] = None


class RegisterRequest(BaseModel):
    username: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------

class BookListItem(BaseModel):
    book_id: int
    title: str
    publication_year: Optional[int] = None
    description: Optional[str] = None
    cover_url: Optional[str] = None
    avg_rating: float = 0.0
    reviews_count: int = 0


class ComparedBook(BookListItem):
    authors: Optional[str] = None
    genres: Optional[str] = None


class AuthorRef(BaseModel):
    author_id: int
    full_name: str
    country: Optional[str] = None


class GenreRef(BaseModel):
    genre_id: int
    genre_name: str


class BookDetail(BookListItem):
    authors: list[AuthorRef] = Field(default_factory=list)
    genres: list[GenreRef] = Field(default_factory=list)


class TopBook(BaseModel):
    book_id: int
    title: str
    publication_year: Optional[int] = None
    avg_rating: float
    reviews_count: int


class TopAuthor(BaseModel):
    author_id: int
    full_name: str
    books_count: int
    reviews_count: int
    avg_rating: float


class GenreStat(BaseModel):
    genre_id: int
    genre_name: str
    books_count: int


class DailyReviews(BaseModel):
    label: str
    reviews_count: int


ItemT = TypeVar("ItemT")


class ListResponse(BaseModel, Generic[ItemT]):
    """The {"data", "count"} envelope every collection endpoint returns."""

    data: list[ItemT]
    count: int


class DailyReviewsResponse(ListResponse[DailyReviews]):
    days: int


class Summary(BaseModel):
    users_count: int
    books_count: int
    reviews_count: int
    avg_rating: Optional[float] = None


class AuthResponse(BaseModel):
    token: str
    user: dict


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")
