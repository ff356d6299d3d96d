"""Property-based tests for the adaptive level quota using hypothesis."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.rotation.models import DevLevel
from src.rotation.services.policies import LevelMix, adapt_quota

pytestmark = pytest.mark.unit

counts = st.integers(min_value=0, max_value=20)
level_mixes = st.builds(LevelMix, expert=counts, mid=counts, fresher=counts)
pools = st.fixed_dictionaries(
    {DevLevel.EXPERT: counts, DevLevel.MID: counts, DevLevel.FRESHER: counts}
)


@given(target=level_mixes, found=pools)
@settings(max_examples=200)
def test_never_takes_more_than_found(target: LevelMix, found: dict[DevLevel, int]):
    take = adapt_quota(target, found)
    assert all(0 <= take[level] <= found[level] for level in DevLevel)


@given(target=level_mixes, found=pools)
def test_never_exceeds_the_requested_total(target: LevelMix, found: dict[DevLevel, int]):
    assert sum(adapt_quota(target, found).values()) <= target.total


@given(target=level_mixes, found=pools)
def test_slots_only_move_one_tier_down(target: LevelMix, found: dict[DevLevel, int]):
    """EXPERT is never topped up, MID only covers EXPERT, FRESHER only covers MID."""
    take = adapt_quota(target, found)

    assert take[DevLevel.EXPERT] == min(target.expert, found[DevLevel.EXPERT])
    assert take[DevLevel.MID] <= target.mid + target.expert
    assert take[DevLevel.FRESHER] <= target.fresher + target.mid


@given(target=level_mixes)
def test_abundant_pool_takes_the_target_exactly(target: LevelMix):
    found = {level: target.total for level in DevLevel}
    assert adapt_quota(target, found) == {
        DevLevel.EXPERT: target.expert,
        DevLevel.MID: target.mid,
        DevLevel.FRESHER: target.fresher,
    }
