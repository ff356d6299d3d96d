"""Contact grant - lets a client see an accepted developer's contact details."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.rotation.models.base import utc_now


class ContactGrant(SQLModel, table=True):
    __tablename__ = "contact_grants"
    __table_args__ = (
        UniqueConstraint("project_id", "developer_id", name="uq_contact_grants_project_developer"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="projects.id", index=True)
    client_id: UUID = Field(index=True)
    developer_id: UUID = Field(foreign_key="developers.id")
    reason: str = Field(default="ACCEPTED_PROJECT", max_length=50)
    created_at: datetime = Field(default_factory=utc_now)
