"""Review endpoints — public listing, authenticated writes.

Updates and deletes are allowed for the review's author or an admin.
"""

from fastapi import APIRouter, Depends, Path

from api.auth import get_current_identity
from core.security import Identity
from verticals.catalog.models.schemas import ReviewCreate, ReviewUpdate
from verticals.catalog.repository import ReviewRepository, get_review_repository

router = APIRouter()


@router.get("/books/{book_id}")
async def get_reviews(
    book_id: int = Path(..., ge=1),
    repo: ReviewRepository = Depends(get_review_repository),
):
    """Get all reviews for a book, newest first."""
    reviews = await repo.list_for_book(book_id)
    return {"data": reviews, "count": len(reviews)}


@router.post("/books/{book_id}", status_code=201)
async def create_review(
    request: ReviewCreate,
    book_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: ReviewRepository = Depends(get_review_repository),
):
    """Submit a 1-5 rating with optional text for a book."""
    return await repo.create_for_book(
        book_id=book_id,
        user_id=identity.user_id,
        rating=request.rating,
        review_text=request.review_text,
    )


@router.put("/{review_id}")
async def update_review(
    request: ReviewUpdate,
    review_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: ReviewRepository = Depends(get_review_repository),
):
    return await repo.update_review(
        review_id, identity, rating=request.rating, review_text=request.review_text
    )


@router.delete("/{review_id}")
async def delete_review(
    review_id: int = Path(..., ge=1),
    identity: Identity = Depends(get_current_identity),
    repo: ReviewRepository = Depends(get_review_repository),
):
    await repo.delete_review(review_id, identity)
    return {"ok": True}
