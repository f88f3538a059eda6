"""Reference data endpoints — authors, genres and bookstores."""

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from api.auth import get_config, require_admin
from core.config import CatalogConfig
from core.errors import ValidationError
from core.security import Identity
from verticals.catalog.models.schemas import AuthorCreate
from verticals.catalog.repository import (
    AuthorRepository,
    BookstoreRepository,
    GenreRepository,
    get_author_repository,
    get_bookstore_repository,
    get_genre_repository,
)
from verticals.catalog.rules import clamp_limit, parse_coordinate

authors_router = APIRouter()
genres_router = APIRouter()
bookstores_router = APIRouter()


# ============================================================================
# Authors
# ============================================================================

@authors_router.get("")
async def list_authors(repo: AuthorRepository = Depends(get_author_repository)):
    authors = await repo.list_all()
    return {"data": authors, "count": len(authors)}


@authors_router.post("", status_code=status.HTTP_201_CREATED)
async def create_author(
    request: AuthorCreate,
    response: Response,
    admin: Identity = Depends(require_admin),
    repo: AuthorRepository = Depends(get_author_repository),
):
    """Create an author; an existing name (any case) is returned with 200."""
    author, created = await repo.get_or_create(request.full_name, request.country)
    if not created:
        response.status_code = status.HTTP_200_OK
    return author


# ============================================================================
# Genres
# ============================================================================

@genres_router.get("")
async def list_genres(repo: GenreRepository = Depends(get_genre_repository)):
    genres = await repo.list_all()
    return {"data": genres, "count": len(genres)}


# ============================================================================
# Bookstores
# ============================================================================

@bookstores_router.get("")
async def list_bookstores(repo: BookstoreRepository = Depends(get_bookstore_repository)):
    stores = await repo.list_all()
    return {"data": stores, "count": len(stores)}


@bookstores_router.get("/near")
async def nearest_bookstores(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    limit: Optional[str] = None,
    config: CatalogConfig = Depends(get_config),
    repo: BookstoreRepository = Depends(get_bookstore_repository),
):
    """Stores ordered by distance from (lat, lng), nearest first."""
    latitude, longitude = parse_coordinate(lat), parse_coordinate(lng)
    if latitude is None or longitude is None:
        raise ValidationError("lat and lng are required")

    limit_value = clamp_limit(
        limit, config.reporting.near_stores_default, config.reporting.near_stores_max
    )
    stores = await repo.near(latitude, longitude, limit_value)
    return {"data": stores, "count": len(stores)}
