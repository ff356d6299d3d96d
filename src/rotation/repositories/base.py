"""Base repository with common data access operations."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.rotation.schemas.pagination import decode_cursor, encode_cursor


class BaseRepository[ModelType: SQLModel]:
    """Base repository providing common database operations.

    Repositories handle data access only. Transaction control (commit)
    is done in the service layer.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID, *, fresh: bool = False) -> ModelType | None:
        """Get a record by its primary key.

        Args:
            id: Primary key.
            fresh: Overwrite any identity-map copy with the row as stored now.
        """
        query = select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        """Add entity to session (no flush/commit)."""
        self.session.add(entity)

    def add_all(self, entities: list[ModelType]) -> None:
        """Add several entities to session (no flush/commit)."""
        self.session.add_all(entities)

    async def execute_conditional(self, stmt: Any) -> int:
        """Execute a conditional UPDATE and return the affected row count.

        The row count is the compare-and-swap verdict: 0 means the guard in
        the WHERE clause no longer held.
        """
        result: CursorResult[Any] = await self.session.execute(  # type: ignore[assignment]
            stmt.execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
        cursor_field: Any,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Execute cursor-based pagination on a query.

        Args:
            query: The base query to paginate
            cursor: Optional cursor from previous page (base64-encoded)
            limit: Maximum number of items to return
            cursor_field: Datetime column used for ordering (newest first)

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        if cursor:
            try:
                cursor_value = datetime.fromisoformat(decode_cursor(cursor))
                query = query.where(cursor_field < cursor_value)
            except (ValueError, TypeError):
                # Invalid cursor - ignore and start from beginning
                pass

        query = query.order_by(cursor_field.desc()).limit(limit + 1)

        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        if has_more:
            items = items[:limit]

        next_cursor = None
        if has_more and items:
            value = getattr(items[-1], cursor_field.key)
            if isinstance(value, datetime):
                next_cursor = encode_cursor(value.isoformat())

        return items, next_cursor, has_more
