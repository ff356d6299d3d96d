"""Per-source candidate policy and batch level mix.

Every decision that depends on where an invitation came from reads a
``SourcePolicy`` instead of branching on the source string at call sites.
"""

from dataclasses import dataclass
from typing import Self

from src.rotation.core.config import Settings
from src.rotation.models.enums import BatchType, CandidateSource, DevLevel


@dataclass(frozen=True)
class SourcePolicy:
    source: CandidateSource
    batch_type: BatchType
    expires: bool
    refresh_eligible: bool

    @property
    def no_expire(self) -> bool:
        return not self.expires


AUTO_ROTATION_POLICY = SourcePolicy(
    source=CandidateSource.AUTO_ROTATION,
    batch_type=BatchType.AUTO_ROTATION,
    expires=True,
    refresh_eligible=True,
)

MANUAL_INVITE_POLICY = SourcePolicy(
    source=CandidateSource.MANUAL_INVITE,
    batch_type=BatchType.MANUAL_INVITE,
    expires=False,
    refresh_eligible=False,
)

_POLICIES: dict[CandidateSource, SourcePolicy] = {
    CandidateSource.AUTO_ROTATION: AUTO_ROTATION_POLICY,
    CandidateSource.MANUAL_INVITE: MANUAL_INVITE_POLICY,
}


def expiring_sources() -> list[str]:
    """Stored source values the sweep is allowed to expire."""
    return [p.source.value for p in _POLICIES.values() if p.expires]


def refresh_eligible_batch_types() -> list[str]:
    """Stored batch types the sweep may refresh once exhausted."""
    return [p.batch_type.value for p in _POLICIES.values() if p.refresh_eligible]


@dataclass(frozen=True)
class LevelMix:
    """Requested number of candidates per tier."""

    expert: int = 0
    mid: int = 0
    fresher: int = 0

    def __post_init__(self) -> None:
        if min(self.expert, self.mid, self.fresher) < 0:
            raise ValueError("Level counts cannot be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> Self:
        return cls(
            expert=settings.batch_expert_count,
            mid=settings.batch_mid_count,
            fresher=settings.batch_fresher_count,
        )

    @classmethod
    def from_dict(cls, data: dict[str, int]) -> Self:
        return cls(
            expert=int(data.get(DevLevel.EXPERT.value, 0)),
            mid=int(data.get(DevLevel.MID.value, 0)),
            fresher=int(data.get(DevLevel.FRESHER.value, 0)),
        )

    @property
    def total(self) -> int:
        return self.expert + self.mid + self.fresher

    def count_for(self, level: DevLevel) -> int:
        return {
            DevLevel.EXPERT: self.expert,
            DevLevel.MID: self.mid,
            DevLevel.FRESHER: self.fresher,
        }[level]

    def to_dict(self) -> dict[str, int]:
        return {
            DevLevel.EXPERT.value: self.expert,
            DevLevel.MID.value: self.mid,
            DevLevel.FRESHER.value: self.fresher,
        }


def adapt_quota(target: LevelMix, found: dict[DevLevel, int]) -> dict[DevLevel, int]:
    """Decide how many slots each tier fills when the pool is short.

    Unfilled EXPERT slots are handed to surplus MID developers, then unfilled
    MID slots to surplus FRESHER developers. Returns the number of developers
    to take from each tier (never more than were found).
    """
    available = {level: found.get(level, 0) for level in DevLevel}
    take = {level: min(target.count_for(level), available[level]) for level in DevLevel}

    expert_shortfall = target.expert - take[DevLevel.EXPERT]
    mid_shortfall = target.mid - take[DevLevel.MID]

    take[DevLevel.MID] += min(expert_shortfall, available[DevLevel.MID] - take[DevLevel.MID])
    take[DevLevel.FRESHER] += min(
        mid_shortfall, available[DevLevel.FRESHER] - take[DevLevel.FRESHER]
    )
    return take
