"""Test factories for generating test data.

    from tests.factories import DeveloperFactory, ProjectFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.rotation import (
    BatchFactory,
    CandidateFactory,
    DeveloperFactory,
    ProjectFactory,
)

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Rotation
    "BatchFactory",
    "CandidateFactory",
    "DeveloperFactory",
    "ProjectFactory",
]
