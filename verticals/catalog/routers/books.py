"""Book endpoints — listing, comparison, detail and admin CRUD.

- Listing with free-text search, genre filter and closed-set sorting
- Side-by-side comparison of two or more books
- Detail view with structured authors/genres
- Create/update/delete behind the admin role
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path

from api.auth import require_admin
from core.security import Identity
from verticals.catalog.models.schemas import (
    BookCreate,
    BookDetail,
    BookListItem,
    BookUpdate,
    ComparedBook,
    ListResponse,
)
from verticals.catalog.repository import BookRepository, get_book_repository
from verticals.catalog.rules import (
    coerce_genre_id,
    normalize_search,
    parse_compare_ids,
    resolve_listing_sort,
)

router = APIRouter()


@router.get("", response_model=ListResponse[BookListItem])
async def list_books(
    sort: Optional[str] = None,
    order: Optional[str] = None,
    q: Optional[str] = None,
    genre_id: Optional[str] = None,
    repo: BookRepository = Depends(get_book_repository),
):
    """List every book matching the filters, with avg_rating and reviews_count.

    - **sort**: title (default), year, rating, reviews
    - **order**: asc or desc (rating/reviews default to desc)
    - **q**: case-insensitive match on title or author name
    - **genre_id**: restrict to one genre; non-numeric values are ignored
    """
    books = await repo.list_books(
        sort=resolve_listing_sort(sort, order),
        q=normalize_search(q),
        genre_id=coerce_genre_id(genre_id),
    )
    return {"data": books, "count": len(books)}


@router.get("/compare", response_model=ListResponse[ComparedBook])
async def compare_books(
    ids: Optional[str] = None,
    repo: BookRepository = Depends(get_book_repository),
):
    """Compare books given as ``ids=3,7,12``; unknown ids are skipped."""
    books = await repo.compare(parse_compare_ids(ids))
    return {"data": books, "count": len(books)}


@router.get("/{book_id}", response_model=BookDetail)
async def get_book(
    book_id: int,
    repo: BookRepository = Depends(get_book_repository),
):
    """Get a single book with its authors, genres and rating stats."""
    return await repo.get_detail(book_id)


@router.post("", status_code=201)
async def create_book(
    request: BookCreate,
    admin: Identity = Depends(require_admin),
    repo: BookRepository = Depends(get_book_repository),
):
    """Add a new book, optionally linked to authors and genres."""
    return await repo.create_book(request.model_dump())


@router.put("/{book_id}")
async def update_book(
    request: BookUpdate,
    book_id: int = Path(..., ge=1),
    admin: Identity = Depends(require_admin),
    repo: BookRepository = Depends(get_book_repository),
):
    """Replace a book's fields; supplied author_ids/genre_ids replace its links."""
    return await repo.update_book(book_id, request.model_dump())


@router.delete("/{book_id}", status_code=204)
async def delete_book(
    book_id: int = Path(..., ge=1),
    admin: Identity = Depends(require_admin),
    repo: BookRepository = Depends(get_book_repository),
):
    """Remove a book together with its links, reviews and reading-list entries."""
    await repo.delete_book(book_id)
