"""Repository for SweepRun entity."""

from sqlmodel import select

from src.rotation.models import SweepRun
from src.rotation.repositories.base import BaseRepository


class SweepRunRepository(BaseRepository[SweepRun]):
    """Repository for SweepRun entity."""

    model = SweepRun

    async def list_recent(
        self, cursor: str | None, limit: int, job: str | None = None
    ) -> tuple[list[SweepRun], str | None, bool]:
        """Sweep runs newest first, with cursor-based pagination."""
        query = select(SweepRun)
        if job is not None:
            query = query.where(SweepRun.job == job)
        return await self.paginate(query, cursor, limit, SweepRun.started_at)
