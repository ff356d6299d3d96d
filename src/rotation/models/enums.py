"""Shared enums for models."""

from enum import Enum


class DevLevel(str, Enum):
    """Experience tier used for batch composition."""

    EXPERT = "EXPERT"
    MID = "MID"
    FRESHER = "FRESHER"


class Availability(str, Enum):
    """Developer availability toggle - only available developers are rotated."""

    AVAILABLE = "available"
    NOT_AVAILABLE = "not_available"


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BatchStatus(str, Enum):
    """Invitation round status."""

    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    REFRESHED = "refreshed"
    CLOSED = "closed"


class BatchType(str, Enum):
    """How a batch was created."""

    AUTO_ROTATION = "auto_rotation"
    MANUAL_INVITE = "manual_invite"


class ResponseStatus(str, Enum):
    """Candidate response status. Everything but PENDING is terminal."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    INVALIDATED = "invalidated"

    @property
    def is_terminal(self) -> bool:
        return self is not ResponseStatus.PENDING

    @property
    def is_developer_driven(self) -> bool:
        """Accepted/rejected are set by the developer and carry responded_at."""
        return self in (ResponseStatus.ACCEPTED, ResponseStatus.REJECTED)


class CandidateSource(str, Enum):
    """Where an invitation came from. Policy per source lives in services.policies."""

    AUTO_ROTATION = "AUTO_ROTATION"
    MANUAL_INVITE = "MANUAL_INVITE"


class RespondAction(str, Enum):
    """Developer action on an invitation."""

    ACCEPT = "accept"
    REJECT = "reject"


class SweepRunStatus(str, Enum):
    """Sweep run record status."""

    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_RESPONSE_STATUSES = tuple(s.value for s in ResponseStatus if s.is_terminal)
