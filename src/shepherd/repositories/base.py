"""Base repository with tenant-scoped lookups and cursor pagination."""

from datetime import datetime
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.shepherd.core.exceptions import InvalidRequest
from src.shepherd.schemas.pagination import decode_cursor, encode_cursor

_CURSOR_SEPARATOR = "|"

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Data access for one table.

    Repositories never commit. The calling service owns the transaction
    (see ``core.db.atomic``).
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Read a row as currently stored, even if the session already holds it."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == id)  # type: ignore[attr-defined]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_in_tenant(self, id: UUID, tenant_id: UUID) -> ModelType | None:
        """Get a row only if it belongs to ``tenant_id``."""
        result = await self.session.execute(
            select(self.model)
            .where(
                self.model.id == id,  # type: ignore[attr-defined]
                self.model.tenant_id == tenant_id,  # type: ignore[attr-defined]
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def refresh(self, entity: ModelType) -> ModelType:
        """Re-read a row, overwriting whatever the identity map holds."""
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == entity.id)  # type: ignore[attr-defined]
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
        cursor_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Run ``query`` newest first, one page at a time.

        The cursor encodes ``(cursor_field, id)`` of the last row returned, so rows
        sharing a timestamp are neither skipped nor repeated.

        Returns:
            Tuple of (items, next_cursor, has_more)

        Raises:
            InvalidRequest: If ``cursor`` was not produced by this method.
        """
        id_field = self.model.id  # type: ignore[attr-defined]
        if cursor:
            position, last_id = _parse_cursor(cursor)
            query = query.where(
                (cursor_field < position) | ((cursor_field == position) & (id_field < last_id))
            )

        query = (
            query.order_by(cursor_field.desc(), id_field.desc())
            .limit(limit + 1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        if has_more:
            items = items[:limit]

        next_cursor = None
        if has_more and items:
            last = items[-1]
            value: datetime = getattr(last, cursor_field.key)
            last_id = last.id  # type: ignore[attr-defined]
            next_cursor = encode_cursor(f"{value.isoformat()}{_CURSOR_SEPARATOR}{last_id}")

        return items, next_cursor, has_more


def _parse_cursor(cursor: str) -> tuple[datetime, UUID]:
    try:
        raw_position, raw_id = decode_cursor(cursor).split(_CURSOR_SEPARATOR, 1)
        return datetime.fromisoformat(raw_position), UUID(raw_id)
    except ValueError as e:
        raise InvalidRequest("Invalid pagination cursor") from e
