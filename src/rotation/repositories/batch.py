"""Repository for Batch entity."""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlmodel import col, select, update

from src.rotation.models import (
    Batch,
    BatchStatus,
    Candidate,
    Project,
    ProjectStatus,
    ResponseStatus,
)
from src.rotation.repositories.base import BaseRepository


class BatchRepository(BaseRepository[Batch]):
    """Repository for Batch entity."""

    model = Batch

    async def get_active_for_project(
        self, project_id: UUID, batch_type: str | None = None
    ) -> Batch | None:
        """Newest active batch of a project, optionally of one type."""
        query = (
            select(Batch)
            .where(col(Batch.project_id) == project_id)
            .where(col(Batch.status) == BatchStatus.ACTIVE.value)
        )
        if batch_type is not None:
            query = query.where(col(Batch.batch_type) == batch_type)
        result = await self.session.execute(
            query.order_by(col(Batch.batch_number).desc()).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_latest_for_project(
        self, project_id: UUID, batch_type: str | None = None
    ) -> Batch | None:
        """Most recently created batch of a project regardless of status."""
        query = select(Batch).where(col(Batch.project_id) == project_id)
        if batch_type is not None:
            query = query.where(col(Batch.batch_type) == batch_type)
        result = await self.session.execute(
            query.order_by(col(Batch.batch_number).desc()).execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def count_for_project(self, project_id: UUID, batch_type: str | None = None) -> int:
        query = select(func.count()).select_from(Batch).where(col(Batch.project_id) == project_id)
        if batch_type is not None:
            query = query.where(col(Batch.batch_type) == batch_type)
        result = await self.session.execute(query)
        return int(result.scalar_one())

    async def next_batch_number(self, project_id: UUID) -> int:
        result = await self.session.execute(
            select(func.max(Batch.batch_number)).where(col(Batch.project_id) == project_id)
        )
        current = result.scalar_one_or_none()
        return (current or 0) + 1

    async def transition(
        self,
        batch_id: UUID,
        from_statuses: Sequence[BatchStatus],
        to_status: BatchStatus,
        now: datetime,
    ) -> bool:
        """Move a batch to ``to_status`` if it is currently in one of ``from_statuses``."""
        values: dict[str, object] = {"status": to_status.value}
        if to_status is not BatchStatus.ACTIVE:
            values["closed_at"] = now
        stmt = (
            update(Batch)
            .where(col(Batch.id) == batch_id)
            .where(col(Batch.status).in_([s.value for s in from_statuses]))
            .values(**values)
        )
        return await self.execute_conditional(stmt) == 1

    async def close_open_for_project(self, project_id: UUID, now: datetime) -> int:
        """Close every active or exhausted batch of a project, of any type."""
        stmt = (
            update(Batch)
            .where(col(Batch.project_id) == project_id)
            .where(col(Batch.status).in_([BatchStatus.ACTIVE.value, BatchStatus.EXHAUSTED.value]))
            .values(status=BatchStatus.CLOSED.value, closed_at=now)
        )
        return await self.execute_conditional(stmt)

    async def list_unsettled_ids(self, batch_types: Sequence[str], limit: int = 200) -> list[UUID]:
        """Current batches of open projects whose candidates are all terminal.

        A batch lands here when a sweep expired its last candidates but
        failed before exhausting or refreshing it.
        """
        open_candidates = select(Candidate.batch_id).where(
            col(Candidate.response_status).in_(
                [ResponseStatus.PENDING.value, ResponseStatus.ACCEPTED.value]
            )
        )
        result = await self.session.execute(
            select(Batch.id)
            .join(Project, col(Project.current_batch_id) == col(Batch.id))
            .where(col(Batch.status).in_([BatchStatus.ACTIVE.value, BatchStatus.EXHAUSTED.value]))
            .where(col(Batch.batch_type).in_(batch_types))
            .where(col(Project.status) == ProjectStatus.OPEN.value)
            .where(col(Project.accepted_candidate_id).is_(None))
            .where(col(Batch.id).in_(select(Candidate.batch_id)))
            .where(col(Batch.id).not_in(open_candidates))
            .order_by(col(Batch.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())
