"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.rotation.api.dependencies.db import DBSession, DBSessionFactory
from src.rotation.repositories import (
    BatchRepository,
    CandidateRepository,
    DeveloperRepository,
    ProjectRepository,
)
from src.rotation.services import AssignmentService, BatchService, SweepService


def get_assignment_service(session: DBSession) -> AssignmentService:
    return AssignmentService(
        CandidateRepository(session),
        BatchRepository(session),
        ProjectRepository(session),
        session,
    )


def get_batch_service(session: DBSession) -> BatchService:
    return BatchService(
        BatchRepository(session),
        CandidateRepository(session),
        DeveloperRepository(session),
        ProjectRepository(session),
        session,
    )


def get_sweep_service(session_factory: DBSessionFactory) -> SweepService:
    return SweepService(session_factory)


AssignmentServiceDep = Annotated[AssignmentService, Depends(get_assignment_service)]
BatchServiceDep = Annotated[BatchService, Depends(get_batch_service)]
SweepServiceDep = Annotated[SweepService, Depends(get_sweep_service)]
