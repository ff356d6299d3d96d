"""Model exports.

Import from here: `from src.rotation.models import Candidate, Batch`
"""

from src.rotation.models.batch import Batch
from src.rotation.models.candidate import Candidate
from src.rotation.models.contact_grant import ContactGrant
from src.rotation.models.developer import Developer
from src.rotation.models.enums import (
    Availability,
    BatchStatus,
    BatchType,
    CandidateSource,
    DevLevel,
    ProjectStatus,
    RespondAction,
    ResponseStatus,
    SweepRunStatus,
)
from src.rotation.models.project import Project
from src.rotation.models.sweep_run import SweepRun

__all__ = [
    # Enums
    "Availability",
    "BatchStatus",
    "BatchType",
    "CandidateSource",
    "DevLevel",
    "ProjectStatus",
    "RespondAction",
    "ResponseStatus",
    "SweepRunStatus",
    # Tables
    "Batch",
    "Candidate",
    "ContactGrant",
    "Developer",
    "Project",
    "SweepRun",
]
