"""Repository for Developer entity."""

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import func
from sqlmodel import col, select

from src.rotation.models import Availability, Candidate, Developer, DevLevel
from src.rotation.repositories.base import BaseRepository


class DeveloperRepository(BaseRepository[Developer]):
    """Repository for Developer entity."""

    model = Developer

    async def list_eligible(
        self,
        level: DevLevel,
        required_skills: Collection[str],
        exclude_ids: Collection[UUID] = (),
    ) -> list[Developer]:
        """Approved, available developers of one tier, least recently invited first.

        Skill matching happens in Python so the query stays portable across
        JSON column implementations. A project without required skills
        matches everyone.
        """
        last_invited = (
            select(
                Candidate.developer_id,
                func.max(Candidate.assigned_at).label("last_assigned_at"),
            )
            .group_by(col(Candidate.developer_id))
            .subquery()
        )
        query = (
            select(Developer)
            .outerjoin(last_invited, last_invited.c.developer_id == col(Developer.id))
            .where(col(Developer.level) == level.value)
            .where(col(Developer.is_approved).is_(True))
            .where(col(Developer.availability) == Availability.AVAILABLE.value)
            .order_by(
                last_invited.c.last_assigned_at.asc().nulls_first(),
                col(Developer.created_at).asc(),
            )
        )
        if exclude_ids:
            query = query.where(col(Developer.id).not_in(list(exclude_ids)))

        result = await self.session.execute(query)
        developers = list(result.scalars().all())

        wanted = {s.lower() for s in required_skills}
        if not wanted:
            return developers
        return [d for d in developers if wanted & {s.lower() for s in d.skills}]
