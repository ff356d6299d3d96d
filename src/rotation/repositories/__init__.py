"""Repository exports."""

from src.rotation.repositories.base import BaseRepository
from src.rotation.repositories.batch import BatchRepository
from src.rotation.repositories.candidate import CandidateRepository
from src.rotation.repositories.contact_grant import ContactGrantRepository
from src.rotation.repositories.developer import DeveloperRepository
from src.rotation.repositories.project import ProjectRepository
from src.rotation.repositories.sweep_run import SweepRunRepository

__all__ = [
    "BaseRepository",
    "BatchRepository",
    "CandidateRepository",
    "ContactGrantRepository",
    "DeveloperRepository",
    "ProjectRepository",
    "SweepRunRepository",
]
