"""Shared test helpers for seeding rotation data."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, col, select

from src.rotation.models import (
    Batch,
    BatchType,
    Candidate,
    CandidateSource,
    Developer,
    DevLevel,
    Project,
)
from tests.factories import (
    BatchFactory,
    CandidateFactory,
    DeveloperFactory,
    ProjectFactory,
    utc_now,
)


@dataclass
class SeededBatch:
    project: Project
    batch: Batch
    developers: list[Developer]
    candidates: list[Candidate]
    spare_developers: list[Developer] = field(default_factory=list)


async def seed_developers(
    session: AsyncSession, levels: list[DevLevel], **overrides: object
) -> list[Developer]:
    developers = [DeveloperFactory.build(level=level.value, **overrides) for level in levels]
    session.add_all(developers)
    await session.commit()
    return developers


async def seed_project(session: AsyncSession, **overrides: object) -> Project:
    project = ProjectFactory.build(**overrides)
    session.add(project)
    await session.commit()
    return project


async def seed_batch(
    session: AsyncSession,
    *,
    levels: list[DevLevel] | None = None,
    spare_levels: list[DevLevel] | None = None,
    now: datetime | None = None,
    window_minutes: int = 15,
    manual: bool = False,
    batch_number: int = 1,
    project: Project | None = None,
) -> SeededBatch:
    """Seed a project with one active batch of pending candidates.

    ``spare_levels`` adds eligible developers who are not invited, so a
    later refresh has someone new to pick.
    """
    now = now or utc_now()
    levels = levels if levels is not None else [DevLevel.EXPERT, DevLevel.MID, DevLevel.FRESHER]
    project = project or ProjectFactory.build()

    developers = [DeveloperFactory.build(level=level.value) for level in levels]
    spare = [DeveloperFactory.build(level=level.value) for level in spare_levels or []]

    if manual:
        batch = BatchFactory.build(
            project_id=project.id,
            batch_number=batch_number,
            batch_type=BatchType.MANUAL_INVITE.value,
            no_expire=True,
            level_mix={levels[0].value: 1},
            created_at=now,
        )
        source = CandidateSource.MANUAL_INVITE.value
        deadline = None
    else:
        batch = BatchFactory.build(
            project_id=project.id,
            batch_number=batch_number,
            level_mix={level.value: levels.count(level) for level in DevLevel},
            created_at=now,
        )
        project.current_batch_id = batch.id
        source = CandidateSource.AUTO_ROTATION.value
        deadline = now + timedelta(minutes=window_minutes)

    candidates = [
        CandidateFactory.build(
            batch_id=batch.id,
            project_id=project.id,
            developer_id=developer.id,
            level=developer.level,
            source=source,
            assigned_at=now,
            acceptance_deadline=deadline,
        )
        for developer in developers
    ]

    session.add_all([project, *developers, *spare, batch, *candidates])
    await session.commit()
    return SeededBatch(project, batch, developers, candidates, spare)


async def reload[T: SQLModel](
    session_factory: async_sessionmaker[AsyncSession], model: type[T], id: UUID
) -> T:
    """Read a row as committed, from a session of its own."""
    async with session_factory() as session:
        obj = await session.get(model, id)
        assert obj is not None, f"{model.__name__} {id} not found"
        return obj


async def candidates_of(
    session_factory: async_sessionmaker[AsyncSession], batch_id: UUID
) -> list[Candidate]:
    async with session_factory() as session:
        result = await session.execute(
            select(Candidate).where(col(Candidate.batch_id) == batch_id)
        )
        return list(result.scalars().all())


async def batches_of(
    session_factory: async_sessionmaker[AsyncSession], project_id: UUID
) -> list[Batch]:
    """All batches of a project, oldest first."""
    async with session_factory() as session:
        result = await session.execute(
            select(Batch)
            .where(col(Batch.project_id) == project_id)
            .order_by(col(Batch.batch_number))
        )
        return list(result.scalars().all())
