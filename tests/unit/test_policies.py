"""Tests for source policies and the adaptive level quota."""

import pytest

from src.rotation.core.config import Settings
from src.rotation.models import BatchType, CandidateSource, DevLevel
from src.rotation.services.policies import (
    AUTO_ROTATION_POLICY,
    MANUAL_INVITE_POLICY,
    LevelMix,
    adapt_quota,
    expiring_sources,
    refresh_eligible_batch_types,
)

pytestmark = pytest.mark.unit


class TestSourcePolicy:
    def test_auto_rotation_expires_and_refreshes(self):
        policy = AUTO_ROTATION_POLICY

        assert policy.source is CandidateSource.AUTO_ROTATION
        assert policy.expires is True
        assert policy.no_expire is False
        assert policy.refresh_eligible is True
        assert policy.batch_type is BatchType.AUTO_ROTATION

    def test_manual_invite_never_expires(self):
        policy = MANUAL_INVITE_POLICY

        assert policy.source is CandidateSource.MANUAL_INVITE
        assert policy.no_expire is True
        assert policy.refresh_eligible is False
        assert policy.batch_type is BatchType.MANUAL_INVITE

    def test_sweep_filters(self):
        assert expiring_sources() == ["AUTO_ROTATION"]
        assert refresh_eligible_batch_types() == ["auto_rotation"]


class TestLevelMix:
    def test_from_settings_uses_defaults(self):
        mix = LevelMix.from_settings(Settings(_env_file=None))
        assert (mix.expert, mix.mid, mix.fresher) == (3, 5, 5)
        assert mix.total == 13

    def test_dict_round_trip_uses_tier_names(self):
        mix = LevelMix(expert=1, mid=2, fresher=0)
        assert mix.to_dict() == {"EXPERT": 1, "MID": 2, "FRESHER": 0}
        assert LevelMix.from_dict({"MID": 4}) == LevelMix(mid=4)

    def test_negative_counts_are_rejected(self):
        with pytest.raises(ValueError):
            LevelMix(expert=-1)


class TestAdaptQuota:
    """Unfilled EXPERT slots go to MID, unfilled MID slots go to FRESHER."""

    def test_full_pool_takes_the_target(self):
        take = adapt_quota(
            LevelMix(3, 5, 5), {DevLevel.EXPERT: 10, DevLevel.MID: 10, DevLevel.FRESHER: 10}
        )
        assert take == {DevLevel.EXPERT: 3, DevLevel.MID: 5, DevLevel.FRESHER: 5}

    def test_missing_experts_are_filled_by_mids(self):
        take = adapt_quota(
            LevelMix(3, 5, 5), {DevLevel.EXPERT: 1, DevLevel.MID: 10, DevLevel.FRESHER: 10}
        )
        assert take == {DevLevel.EXPERT: 1, DevLevel.MID: 7, DevLevel.FRESHER: 5}

    def test_missing_mids_are_filled_by_freshers(self):
        take = adapt_quota(
            LevelMix(3, 5, 5), {DevLevel.EXPERT: 3, DevLevel.MID: 2, DevLevel.FRESHER: 10}
        )
        assert take == {DevLevel.EXPERT: 3, DevLevel.MID: 2, DevLevel.FRESHER: 8}

    def test_expert_shortfall_does_not_cascade_to_freshers(self):
        take = adapt_quota(
            LevelMix(3, 5, 5), {DevLevel.EXPERT: 0, DevLevel.MID: 5, DevLevel.FRESHER: 10}
        )
        assert take == {DevLevel.EXPERT: 0, DevLevel.MID: 5, DevLevel.FRESHER: 5}

    def test_never_takes_more_than_found(self):
        take = adapt_quota(LevelMix(3, 5, 5), {DevLevel.MID: 1})
        assert take == {DevLevel.EXPERT: 0, DevLevel.MID: 1, DevLevel.FRESHER: 0}

    def test_empty_pool(self):
        take = adapt_quota(LevelMix(3, 5, 5), {})
        assert sum(take.values()) == 0
