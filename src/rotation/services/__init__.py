"""Service layer - the assignment lifecycle manager."""

from src.rotation.services.assignment_service import AssignmentService
from src.rotation.services.batch_service import BatchService
from src.rotation.services.collaborators import (
    AssignmentCollaborators,
    DefaultCollaborators,
    NullCollaborators,
)
from src.rotation.services.results import (
    BatchOutcome,
    ExpireResult,
    RefreshResult,
    RespondOutcome,
    RotationError,
    SweepReport,
)
from src.rotation.services.sweep_service import SweepService

__all__ = [
    "AssignmentCollaborators",
    "AssignmentService",
    "BatchOutcome",
    "BatchService",
    "DefaultCollaborators",
    "ExpireResult",
    "NullCollaborators",
    "RefreshResult",
    "RespondOutcome",
    "RotationError",
    "SweepReport",
    "SweepService",
]
