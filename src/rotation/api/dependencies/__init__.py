"""FastAPI dependency injection definitions."""

from src.rotation.api.dependencies.db import (
    DBSession,
    DBSessionFactory,
    get_db_session,
    get_db_session_factory,
)
from src.rotation.api.dependencies.identity import (
    CronAuthorized,
    DeveloperId,
    get_developer_id,
    verify_cron_secret,
)
from src.rotation.api.dependencies.services import (
    AssignmentServiceDep,
    BatchServiceDep,
    SweepServiceDep,
    get_assignment_service,
    get_batch_service,
    get_sweep_service,
)

__all__ = [
    # Database
    "DBSession",
    "DBSessionFactory",
    "get_db_session",
    "get_db_session_factory",
    # Identity
    "CronAuthorized",
    "DeveloperId",
    "get_developer_id",
    "verify_cron_secret",
    # Services
    "AssignmentServiceDep",
    "BatchServiceDep",
    "SweepServiceDep",
    "get_assignment_service",
    "get_batch_service",
    "get_sweep_service",
]
