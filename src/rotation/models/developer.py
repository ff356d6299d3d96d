"""Developer profile model - the pool batches are composed from."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.rotation.models.base import utc_now
from src.rotation.models.enums import Availability, DevLevel

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Developer(SQLModel, table=True):
    """Developer eligible for invitations once approved and available."""

    __tablename__ = "developers"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    display_name: str = Field(max_length=100)
    email: str = Field(max_length=255, unique=True, index=True)
    level: str = Field(default=DevLevel.FRESHER.value, max_length=10, index=True)
    skills: list[str] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    is_approved: bool = Field(default=False)
    availability: str = Field(default=Availability.AVAILABLE.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def level_enum(self) -> DevLevel:
        """Get level as DevLevel enum."""
        return DevLevel(self.level)

    @property
    def is_eligible(self) -> bool:
        """Approved and toggled available."""
        return self.is_approved and self.availability == Availability.AVAILABLE.value
