"""Repository for ContactGrant entity."""

from uuid import UUID

from sqlmodel import select

from src.rotation.models import ContactGrant
from src.rotation.repositories.base import BaseRepository


class ContactGrantRepository(BaseRepository[ContactGrant]):
    """Repository for ContactGrant entity."""

    model = ContactGrant

    async def get_for(self, project_id: UUID, developer_id: UUID) -> ContactGrant | None:
        result = await self.session.execute(
            select(ContactGrant).where(
                ContactGrant.project_id == project_id,
                ContactGrant.developer_id == developer_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[ContactGrant]:
        result = await self.session.execute(
            select(ContactGrant).where(ContactGrant.project_id == project_id)
        )
        return list(result.scalars().all())
