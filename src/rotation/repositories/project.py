"""Repository for Project entity."""

from datetime import datetime
from uuid import UUID

from sqlmodel import col, update

from src.rotation.models import Project, ProjectStatus
from src.rotation.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project entity."""

    model = Project

    async def claim(
        self, project_id: UUID, candidate_id: UUID, developer_id: UUID, now: datetime
    ) -> bool:
        """Write the first-accepted-wins slot.

        Succeeds only if no candidate has claimed the project yet and it is
        still open. Exactly one concurrent caller can get True.
        """
        stmt = (
            update(Project)
            .where(col(Project.id) == project_id)
            .where(col(Project.accepted_candidate_id).is_(None))
            .where(col(Project.status) == ProjectStatus.OPEN.value)
            .values(
                accepted_candidate_id=candidate_id,
                assigned_developer_id=developer_id,
                updated_at=now,
            )
        )
        return await self.execute_conditional(stmt) == 1

    async def mark_in_progress(self, project_id: UUID, now: datetime) -> bool:
        """open -> in_progress once a candidate has been accepted."""
        stmt = (
            update(Project)
            .where(col(Project.id) == project_id)
            .where(col(Project.status) == ProjectStatus.OPEN.value)
            .where(col(Project.accepted_candidate_id).is_not(None))
            .values(status=ProjectStatus.IN_PROGRESS.value, updated_at=now)
        )
        return await self.execute_conditional(stmt) == 1

    async def switch_current_batch(
        self,
        project_id: UUID,
        expected_batch_id: UUID | None,
        new_batch_id: UUID,
        now: datetime,
    ) -> bool:
        """Point an open, unclaimed project at a new auto-rotation batch.

        Succeeds only while ``current_batch_id`` is still ``expected_batch_id``.
        Of two concurrent batch creations for one project, one gets True.
        """
        current = col(Project.current_batch_id)
        stmt = (
            update(Project)
            .where(col(Project.id) == project_id)
            .where(current.is_(None) if expected_batch_id is None else current == expected_batch_id)
            .where(col(Project.accepted_candidate_id).is_(None))
            .where(col(Project.status) == ProjectStatus.OPEN.value)
            .values(current_batch_id=new_batch_id, updated_at=now)
        )
        return await self.execute_conditional(stmt) == 1

    async def touch_if_open(self, project_id: UUID, now: datetime) -> bool:
        """Lock an open, unclaimed project row for the rest of the transaction."""
        stmt = (
            update(Project)
            .where(col(Project.id) == project_id)
            .where(col(Project.accepted_candidate_id).is_(None))
            .where(col(Project.status) == ProjectStatus.OPEN.value)
            .values(updated_at=now)
        )
        return await self.execute_conditional(stmt) == 1
