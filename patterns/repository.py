"""Async repository pattern for database access.

Provides a generic base repository with the CRUD primitives every catalog
entity needs. Domain repositories subclass this to add their own queries
(listing, comparison, reporting).

Example: BookRepository extending BaseRepository.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models.base import Base

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Base)


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class BaseRepository(Generic[ModelT]):
    """Generic async repository with CRUD over a single-column primary key.

    Subclass and set `model` to your SQLAlchemy model::

        class AuthorRepository(BaseRepository[Author]):
            model = Author

            async def list_by_country(self, country: str):
                stmt = select(self.model).where(self.model.country == country)
                result = await self.session.execute(stmt)
                return [r.to_dict() for r in result.scalars().all()]
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def pk(self):
        return self.model.__mapper__.primary_key[0]

    # -- Lookup --

    async def get_instance(self, item_id: int) -> ModelT | None:
        stmt = select(self.model).where(self.pk == item_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, item_id: int) -> dict | None:
        """Get a single item by ID."""
        item = await self.get_instance(item_id)
        return item.to_dict() if item else None

    async def exists(self, item_id: int) -> bool:
        result = await self.session.execute(select(self.pk).where(self.pk == item_id))
        return result.first() is not None

    # -- Create --

    async def create(self, data: dict[str, Any]) -> dict:
        """Create a new item."""
        item = self.model(**data)
        self.session.add(item)
        await self.session.flush()
        await self.session.refresh(item)
        return item.to_dict()

    # -- Update --

    async def update(self, item_id: int, data: dict[str, Any]) -> dict | None:
        """Update an existing item. Returns None if not found."""
        item = await self.get_instance(item_id)
        if not item:
            return None

        for key, value in data.items():
            if hasattr(item, key) and key != self.pk.key:
                setattr(item, key, value)

        await self.session.flush()
        return item.to_dict()

    # -- Delete --

    async def delete(self, item_id: int) -> bool:
        """Delete an item. Returns True if deleted, False if not found."""
        item = await self.get_instance(item_id)
        if not item:
            return False

        await self.session.delete(item)
        await self.session.flush()
        return True
