"""Reading list and profile endpoints for the authenticated user."""

from fastapi import APIRouter, Depends, Path

from api.auth import get_current_identity
from core.errors import ValidationError
from core.security import Identity
from verticals.catalog.models.schemas import UserBookUpsert
from verticals.catalog.repository import (
    UserBookRepository,
    UserRepository,
    get_user_book_repository,
    get_user_repository,
)
from verticals.catalog.rules import normalize_status, parse_positive_int

router = APIRouter()
me_router = APIRouter()


# ============================================================================
# Reading list
# ============================================================================

@router.get("")
async def list_my_books(
    identity: Identity = Depends(get_current_identity),
    repo: UserBookRepository = Depends(get_user_book_repository),
):
    """The caller's reading list, most recently added first."""
    books = await repo.list_for_user(identity.user_id)
    return {"data": books, "count": len(books)}


@router.post("")
async def save_my_book(
    request: UserBookUpsert,
    identity: Identity = Depends(get_current_identity),
    repo: UserBookRepository = Depends(get_user_book_repository),
):
    """Add a book to the list or change its status (want, reading, finished)."""
    book_id = parse_positive_int(request.book_id)
    if book_id is None:
        raise ValidationError("Invalid book_id")

    await repo.upsert(identity.user_id, book_id, normalize_status(request.status))
    return {"ok": True}


@router.delete("/{book_id}", status_code=204)
async def remove_my_book(
    book_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: UserBookRepository = Depends(get_user_book_repository),
):
    await repo.remove(identity.user_id, book_id)


# ============================================================================
# Profile
# ============================================================================

@me_router.get("/summary")
async def my_summary(
    identity: Identity = Depends(get_current_identity),
    repo: UserRepository = Depends(get_user_repository),
):
    """Profile, review count and reading lists grouped by status."""
    return await repo.profile_summary(identity.user_id)
