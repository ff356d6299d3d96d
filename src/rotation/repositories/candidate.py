"""Repository for Candidate entity.

Every status change is a single conditional UPDATE guarded on the current
status; the affected-row count tells the caller whether it won.
"""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_
from sqlmodel import col, select, update

from src.rotation.models import Batch, BatchStatus, Candidate, Project, ResponseStatus
from src.rotation.repositories.base import BaseRepository

PENDING = ResponseStatus.PENDING.value


def _deadline_open(now: datetime):  # type: ignore[no-untyped-def]
    """WHERE fragment: no deadline, or deadline still in the future."""
    return or_(
        col(Candidate.acceptance_deadline).is_(None),
        col(Candidate.acceptance_deadline) > now,
    )


class CandidateRepository(BaseRepository[Candidate]):
    """Repository for Candidate entity."""

    model = Candidate

    # --- Conditional transitions ---

    async def accept_if_pending(self, candidate_id: UUID, now: datetime) -> bool:
        """pending -> accepted (first accepted), only while the deadline is open."""
        stmt = (
            update(Candidate)
            .where(col(Candidate.id) == candidate_id)
            .where(col(Candidate.response_status) == PENDING)
            .where(col(Candidate.is_first_accepted).is_(False))
            .where(_deadline_open(now))
            .values(
                response_status=ResponseStatus.ACCEPTED.value,
                responded_at=now,
                is_first_accepted=True,
            )
        )
        return await self.execute_conditional(stmt) == 1

    async def reject_if_pending(self, candidate_id: UUID, now: datetime) -> bool:
        """pending -> rejected, only while the deadline is open."""
        stmt = (
            update(Candidate)
            .where(col(Candidate.id) == candidate_id)
            .where(col(Candidate.response_status) == PENDING)
            .where(_deadline_open(now))
            .values(response_status=ResponseStatus.REJECTED.value, responded_at=now)
        )
        return await self.execute_conditional(stmt) == 1

    async def find_stale(self, now: datetime, sources: Sequence[str]) -> list[tuple[UUID, UUID]]:
        """(candidate_id, batch_id) for pending candidates whose deadline has passed."""
        no_expire_batches = select(Batch.id).where(col(Batch.no_expire).is_(True))
        result = await self.session.execute(
            select(Candidate.id, Candidate.batch_id)
            .where(col(Candidate.response_status) == PENDING)
            .where(col(Candidate.acceptance_deadline).is_not(None))
            .where(col(Candidate.acceptance_deadline) <= now)
            .where(col(Candidate.source).in_(sources))
            .where(col(Candidate.batch_id).not_in(no_expire_batches))
        )
        return [(row[0], row[1]) for row in result.all()]

    async def expire_if_stale(self, candidate_ids: Sequence[UUID], now: datetime) -> int:
        """pending -> expired for the given ids whose deadline has passed.

        Re-checks status and deadline so candidates that were answered
        between the select and this update are left alone.
        """
        if not candidate_ids:
            return 0
        stmt = (
            update(Candidate)
            .where(col(Candidate.id).in_(candidate_ids))
            .where(col(Candidate.response_status) == PENDING)
            .where(col(Candidate.acceptance_deadline).is_not(None))
            .where(col(Candidate.acceptance_deadline) <= now)
            .values(response_status=ResponseStatus.EXPIRED.value, expired_at=now)
        )
        return await self.execute_conditional(stmt)

    async def invalidate_pending_in_batch(
        self, batch_id: UUID, winning_candidate_id: UUID | None, now: datetime
    ) -> int:
        """pending -> invalidated for every candidate of the batch except the winner."""
        stmt = (
            update(Candidate)
            .where(col(Candidate.batch_id) == batch_id)
            .where(col(Candidate.response_status) == PENDING)
            .values(response_status=ResponseStatus.INVALIDATED.value, invalidated_at=now)
        )
        if winning_candidate_id is not None:
            stmt = stmt.where(col(Candidate.id) != winning_candidate_id)
        return await self.execute_conditional(stmt)

    async def invalidate_pending_in_project(
        self, project_id: UUID, winning_candidate_id: UUID, now: datetime
    ) -> int:
        """pending -> invalidated for every candidate of the project except the winner."""
        stmt = (
            update(Candidate)
            .where(col(Candidate.project_id) == project_id)
            .where(col(Candidate.id) != winning_candidate_id)
            .where(col(Candidate.response_status) == PENDING)
            .values(response_status=ResponseStatus.INVALIDATED.value, invalidated_at=now)
        )
        return await self.execute_conditional(stmt)

    # --- Queries ---

    async def list_by_batch(self, batch_id: UUID) -> list[Candidate]:
        result = await self.session.execute(
            select(Candidate)
            .where(col(Candidate.batch_id) == batch_id)
            .order_by(col(Candidate.assigned_at), col(Candidate.level))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_by_status(self, batch_id: UUID) -> dict[str, int]:
        """Candidate counts per response status for one batch."""
        result = await self.session.execute(
            select(Candidate.response_status, func.count())
            .where(col(Candidate.batch_id) == batch_id)
            .group_by(col(Candidate.response_status))
        )
        return {status: count for status, count in result.all()}

    async def developer_ids_in_batch(
        self, batch_id: UUID, statuses: Sequence[str] | None = None
    ) -> set[UUID]:
        query = select(Candidate.developer_id).where(col(Candidate.batch_id) == batch_id)
        if statuses is not None:
            query = query.where(col(Candidate.response_status).in_(statuses))
        result = await self.session.execute(query)
        return set(result.scalars().all())

    async def developer_ids_in_project(self, project_id: UUID, statuses: Sequence[str]) -> set[UUID]:
        result = await self.session.execute(
            select(Candidate.developer_id)
            .where(col(Candidate.project_id) == project_id)
            .where(col(Candidate.response_status).in_(statuses))
        )
        return set(result.scalars().all())

    async def overloaded_developer_ids(self, source: str, limit: int) -> set[UUID]:
        """Developers already holding ``limit`` or more pending invites in active batches."""
        active_batches = select(Batch.id).where(col(Batch.status) == BatchStatus.ACTIVE.value)
        result = await self.session.execute(
            select(Candidate.developer_id)
            .where(col(Candidate.response_status) == PENDING)
            .where(col(Candidate.source) == source)
            .where(col(Candidate.batch_id).in_(active_batches))
            .group_by(col(Candidate.developer_id))
            .having(func.count() >= limit)
        )
        return set(result.scalars().all())

    async def get_pending_manual_invite(
        self, project_id: UUID, developer_id: UUID, source: str
    ) -> Candidate | None:
        result = await self.session.execute(
            select(Candidate)
            .where(col(Candidate.project_id) == project_id)
            .where(col(Candidate.developer_id) == developer_id)
            .where(col(Candidate.source) == source)
            .where(col(Candidate.response_status) == PENDING)
        )
        return result.scalars().first()

    async def list_pending_for_developer(self, developer_id: UUID, now: datetime) -> list[Candidate]:
        """Pending invitations a developer can still answer, newest first."""
        result = await self.session.execute(
            select(Candidate)
            .where(col(Candidate.developer_id) == developer_id)
            .where(col(Candidate.response_status) == PENDING)
            .where(_deadline_open(now))
            .order_by(col(Candidate.assigned_at).desc())
        )
        return list(result.scalars().all())

    async def list_activity_for_developer(
        self, developer_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[Candidate], str | None, bool]:
        """Terminal invitations for a developer with cursor-based pagination."""
        query = (
            select(Candidate)
            .where(col(Candidate.developer_id) == developer_id)
            .where(col(Candidate.response_status) != PENDING)
        )
        return await self.paginate(query, cursor, limit, Candidate.assigned_at)

    async def find_pending_beside_winner(self, limit: int = 500) -> list[tuple[UUID, UUID, UUID]]:
        """(project_id, batch_id, winning_candidate_id) groups left pending after a win.

        The sweep uses this to invalidate stragglers the winning
        transaction did not cover.
        """
        result = await self.session.execute(
            select(Project.id, Candidate.batch_id, Project.accepted_candidate_id)
            .join(Project, col(Project.id) == col(Candidate.project_id))
            .where(col(Candidate.response_status) == PENDING)
            .where(col(Project.accepted_candidate_id).is_not(None))
            .where(col(Candidate.id) != col(Project.accepted_candidate_id))
            .distinct()
            .limit(limit)
        )
        return [(row[0], row[1], row[2]) for row in result.all()]
