"""Sweep run record - one row per expiry sweep invocation."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column
from sqlmodel import Field, SQLModel

from src.rotation.models.base import utc_now
from src.rotation.models.developer import JSONType
from src.rotation.models.enums import SweepRunStatus


class SweepRun(SQLModel, table=True):
    """Tracks sweep invocations so failed batches can be replayed by hand."""

    __tablename__ = "sweep_runs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job: str = Field(default="expire-candidates", max_length=50, index=True)
    status: str = Field(default=SweepRunStatus.STARTED.value, max_length=20)
    expired_count: int = Field(default=0)
    refreshed_batches: int = Field(default=0)
    failed_batches: int = Field(default=0)
    details: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONType, nullable=False))
    started_at: datetime = Field(default_factory=utc_now, index=True)
    finished_at: datetime | None = Field(default=None)
