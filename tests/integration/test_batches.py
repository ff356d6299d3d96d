"""Tests for composing, refreshing and closing batches."""

import asyncio
import threading
from collections import Counter
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.rotation.models import (
    Batch,
    BatchStatus,
    BatchType,
    CandidateSource,
    DevLevel,
    Project,
    ProjectStatus,
    RespondAction,
    ResponseStatus,
)
from src.rotation.models.base import utc_now
from src.rotation.repositories import ProjectRepository
from src.rotation.services import (
    AssignmentService,
    BatchService,
    DefaultCollaborators,
    NullCollaborators,
    RefreshResult,
    RotationError,
)
from src.rotation.services import collaborators as collaborators_module
from src.rotation.services.policies import LevelMix
from tests.factories import generate_uuid
from tests.helpers import (
    batches_of,
    candidates_of,
    reload,
    seed_batch,
    seed_developers,
    seed_project,
)

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


def _batches(session: AsyncSession) -> BatchService:
    return BatchService.for_session(session, NullCollaborators())


def _assignments(session: AsyncSession) -> AssignmentService:
    return AssignmentService.for_session(session, NullCollaborators())


class TestComposeBatch:
    async def test_compose_fills_short_tiers_from_the_next_tier(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        project = await seed_project(db_session)
        await seed_developers(db_session, [DevLevel.MID] * 3 + [DevLevel.FRESHER] * 2)
        now = utc_now()

        outcome = await _batches(db_session).compose_batch(
            project.id, LevelMix(expert=2, mid=1, fresher=1), now=now
        )

        assert outcome.ok
        assert outcome.batch is not None
        levels = Counter(c.level for c in outcome.candidates)
        assert levels == {DevLevel.MID.value: 3, DevLevel.FRESHER.value: 1}
        assert outcome.batch.batch_number == 1
        assert outcome.batch.level_mix == {"EXPERT": 2, "MID": 1, "FRESHER": 1}
        assert all(
            c.acceptance_deadline == now + timedelta(minutes=15) for c in outcome.candidates
        )
        assert all(c.source == CandidateSource.AUTO_ROTATION.value for c in outcome.candidates)

        stored = await reload(session_factory, Project, project.id)
        assert stored.current_batch_id == outcome.batch.id

    async def test_compose_only_picks_eligible_matching_developers(
        self, db_session: AsyncSession
    ):
        project = await seed_project(db_session, skills_required=["Python"])
        eligible = await seed_developers(db_session, [DevLevel.MID])
        await seed_developers(db_session, [DevLevel.MID], skills=["rust"])
        await seed_developers(db_session, [DevLevel.MID], is_approved=False)
        await seed_developers(db_session, [DevLevel.MID], availability="not_available")

        outcome = await _batches(db_session).compose_batch(project.id, LevelMix(mid=5))

        assert [c.developer_id for c in outcome.candidates] == [eligible[0].id]

    async def test_compose_supersedes_the_active_batch(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(db_session, levels=[DevLevel.MID], spare_levels=[DevLevel.MID])

        outcome = await _batches(db_session).compose_batch(seeded.project.id, LevelMix(mid=1))

        assert outcome.ok
        assert outcome.batch is not None
        assert outcome.batch.batch_number == 2
        # Developers already pending on this project are not invited twice
        assert [c.developer_id for c in outcome.candidates] == [seeded.spare_developers[0].id]

        previous = await reload(session_factory, Batch, seeded.batch.id)
        assert previous.status == BatchStatus.REFRESHED.value
        old = await candidates_of(session_factory, seeded.batch.id)
        assert old[0].response_status == ResponseStatus.INVALIDATED.value

    async def test_compose_skips_overloaded_developers(
        self, db_session: AsyncSession, override_settings
    ):
        override_settings(max_pending_invites_per_developer=1)
        busy = await seed_batch(db_session, levels=[DevLevel.MID])
        other_project = await seed_project(db_session)

        outcome = await _batches(db_session).compose_batch(other_project.id, LevelMix(mid=1))

        assert outcome.error is RotationError.INVALID_STATE
        assert busy.developers[0].id not in {c.developer_id for c in outcome.candidates}

    async def test_compose_below_the_cap_reuses_developers(self, db_session: AsyncSession):
        busy = await seed_batch(db_session, levels=[DevLevel.MID])
        other_project = await seed_project(db_session)

        outcome = await _batches(db_session).compose_batch(other_project.id, LevelMix(mid=1))

        assert [c.developer_id for c in outcome.candidates] == [busy.developers[0].id]

    async def test_compose_refusals(self, db_session: AsyncSession):
        service = _batches(db_session)
        missing = await service.compose_batch(generate_uuid())
        assert missing.error is RotationError.NOT_FOUND

        empty = await seed_project(db_session)
        nobody = await service.compose_batch(empty.id)
        assert nobody.error is RotationError.INVALID_STATE

        cancelled = await seed_project(db_session, status=ProjectStatus.CANCELLED.value)
        await seed_developers(db_session, [DevLevel.MID])
        closed = await service.compose_batch(cancelled.id)
        assert closed.error is RotationError.INVALID_STATE


class TestRefreshBatch:
    async def test_refresh_after_expiry_invites_new_developers(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        t0 = utc_now()
        seeded = await seed_batch(
            db_session, levels=[DevLevel.MID] * 3, spare_levels=[DevLevel.MID] * 3, now=t0
        )
        t16 = t0 + timedelta(minutes=16)
        expired = await _assignments(db_session).expire_stale(t16)
        assert expired.expired_count == 3

        result = await _batches(db_session).refresh_batch(seeded.project.id, now=t16)

        assert result.refreshed
        assert result.candidate_count == 3
        assert result.repeats_allowed is False
        assert result.new_batch_id is not None

        new_candidates = await candidates_of(session_factory, result.new_batch_id)
        assert {c.developer_id for c in new_candidates} == {
            d.id for d in seeded.spare_developers
        }
        assert all(c.acceptance_deadline == t16 + timedelta(minutes=15) for c in new_candidates)

        previous = await reload(session_factory, Batch, seeded.batch.id)
        assert previous.status == BatchStatus.REFRESHED.value
        project = await reload(session_factory, Project, seeded.project.id)
        assert project.current_batch_id == result.new_batch_id

    async def test_refresh_allows_repeats_when_exclusion_empties_pool(
        self, db_session: AsyncSession
    ):
        seeded = await seed_batch(db_session, levels=[DevLevel.MID] * 2)
        assignments = _assignments(db_session)
        for candidate in seeded.candidates:
            await assignments.respond(candidate.id, RespondAction.REJECT, candidate.developer_id)

        result = await _batches(db_session).refresh_batch(seeded.project.id)

        assert result.refreshed
        assert result.repeats_allowed is True
        assert result.candidate_count == 2

    async def test_refresh_can_reinvite_expired_when_configured(
        self, db_session: AsyncSession, override_settings
    ):
        override_settings(exclude_expired_on_refresh=False)
        t0 = utc_now()
        seeded = await seed_batch(db_session, levels=[DevLevel.MID] * 2, now=t0)
        t16 = t0 + timedelta(minutes=16)
        await _assignments(db_session).expire_stale(t16)

        result = await _batches(db_session).refresh_batch(seeded.project.id, now=t16)

        assert result.refreshed
        assert result.repeats_allowed is False
        assert result.candidate_count == 2

    async def test_refresh_refused_for_closed_project(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(db_session, spare_levels=[DevLevel.MID])
        seeded.project.status = ProjectStatus.CANCELLED.value
        await db_session.commit()

        result = await _batches(db_session).refresh_batch(seeded.project.id)

        assert result.refreshed is False
        assert result.reason == "Project is cancelled"
        batch = await reload(session_factory, Batch, seeded.batch.id)
        assert batch.status == BatchStatus.CLOSED.value
        candidates = await candidates_of(session_factory, seeded.batch.id)
        assert all(c.response_status == ResponseStatus.INVALIDATED.value for c in candidates)

    async def test_refresh_refused_for_claimed_project(self, db_session: AsyncSession):
        seeded = await seed_batch(db_session, spare_levels=[DevLevel.MID])
        winner = seeded.candidates[0]
        await _assignments(db_session).respond(
            winner.id, RespondAction.ACCEPT, winner.developer_id
        )

        result = await _batches(db_session).refresh_batch(seeded.project.id)

        assert result.refreshed is False
        assert result.new_batch_id is None

    async def test_refresh_refused_at_max_batches(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        override_settings,
    ):
        override_settings(max_batches_per_project=1)
        seeded = await seed_batch(db_session, spare_levels=[DevLevel.MID] * 3)

        result = await _batches(db_session).refresh_batch(seeded.project.id)

        assert result.refreshed is False
        assert result.reason == "Maximum number of batches reached"
        assert len(await batches_of(session_factory, seeded.project.id)) == 1
        batch = await reload(session_factory, Batch, seeded.batch.id)
        assert batch.status == BatchStatus.CLOSED.value

    async def test_refresh_keeps_the_previous_level_mix(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(
            db_session,
            levels=[DevLevel.EXPERT],
            spare_levels=[DevLevel.EXPERT, DevLevel.MID, DevLevel.FRESHER],
        )
        candidate = seeded.candidates[0]
        await _assignments(db_session).respond(
            candidate.id, RespondAction.REJECT, candidate.developer_id
        )

        result = await _batches(db_session).refresh_batch(seeded.project.id)

        assert result.candidate_count == 1
        assert result.new_batch_id is not None
        new_candidates = await candidates_of(session_factory, result.new_batch_id)
        assert new_candidates[0].level == DevLevel.EXPERT.value

    async def test_refresh_with_a_level_mix_overrides_the_previous_one(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(
            db_session, levels=[DevLevel.EXPERT], spare_levels=[DevLevel.MID] * 2
        )

        result = await _batches(db_session).refresh_batch(seeded.project.id, LevelMix(mid=1))

        assert result.refreshed
        assert result.candidate_count == 1
        assert result.new_batch_id is not None
        batch = await reload(session_factory, Batch, result.new_batch_id)
        assert batch.level_mix == {"EXPERT": 0, "MID": 1, "FRESHER": 0}
        new_candidates = await candidates_of(session_factory, result.new_batch_id)
        assert [c.level for c in new_candidates] == [DevLevel.MID.value]


class TestConcurrentBatchCreation:
    async def test_concurrent_refreshes_leave_one_active_batch(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(
            db_session, levels=[DevLevel.MID] * 3, spare_levels=[DevLevel.MID] * 6
        )

        async def refresh() -> RefreshResult:
            async with session_factory() as session:
                return await _batches(session).refresh_batch(seeded.project.id)

        results = await asyncio.gather(refresh(), refresh())

        assert any(r.refreshed for r in results)
        batches = await batches_of(session_factory, seeded.project.id)
        active = [b for b in batches if b.status == BatchStatus.ACTIVE.value]
        assert len(active) == 1
        project = await reload(session_factory, Project, seeded.project.id)
        assert project.current_batch_id == active[0].id

    async def test_refresh_loses_to_a_refresh_that_committed_first(
        self,
        db_session: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ):
        seeded = await seed_batch(
            db_session, levels=[DevLevel.MID] * 3, spare_levels=[DevLevel.MID] * 6
        )
        original = BatchService._select_developers
        competing: list[RefreshResult] = []

        async def select_after_competing_refresh(self, project, mix, exclude_ids):
            if not competing:
                competing.append(RefreshResult(None, False))
                async with session_factory() as other:
                    competing[0] = await _batches(other).refresh_batch(seeded.project.id)
            return await original(self, project, mix, exclude_ids)

        monkeypatch.setattr(BatchService, "_select_developers", select_after_competing_refresh)

        async with session_factory() as session:
            result = await _batches(session).refresh_batch(seeded.project.id)

        assert competing[0].refreshed
        assert result.refreshed is False
        assert result.reason == "Project changed concurrently, please retry"
        batches = await batches_of(session_factory, seeded.project.id)
        assert [b.status for b in batches] == [
            BatchStatus.REFRESHED.value,
            BatchStatus.ACTIVE.value,
        ]
        project = await reload(session_factory, Project, seeded.project.id)
        assert project.current_batch_id == competing[0].new_batch_id

    async def test_switch_current_batch_requires_the_expected_batch(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(db_session)
        repo = ProjectRepository(db_session)
        now = utc_now()

        stale = await repo.switch_current_batch(
            seeded.project.id, generate_uuid(), generate_uuid(), now
        )
        await db_session.commit()

        assert stale is False
        project = await reload(session_factory, Project, seeded.project.id)
        assert project.current_batch_id == seeded.batch.id


class TestManualInvite:
    async def test_manual_invite_never_expires(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        project = await seed_project(db_session)
        [developer] = await seed_developers(db_session, [DevLevel.EXPERT])

        outcome = await _batches(db_session).invite_manually(
            project.id, developer.id, message="  Loved your portfolio  "
        )

        assert outcome.ok
        assert outcome.batch is not None
        assert outcome.batch.batch_type == BatchType.MANUAL_INVITE.value
        assert outcome.batch.no_expire is True
        [candidate] = outcome.candidates
        assert candidate.acceptance_deadline is None
        assert candidate.source == CandidateSource.MANUAL_INVITE.value
        assert candidate.message == "Loved your portfolio"

        # Manual invites do not replace the rotation batch
        stored = await reload(session_factory, Project, project.id)
        assert stored.current_batch_id is None

    async def test_duplicate_pending_manual_invite_is_refused(self, db_session: AsyncSession):
        project = await seed_project(db_session)
        [developer] = await seed_developers(db_session, [DevLevel.MID])
        service = _batches(db_session)

        await service.invite_manually(project.id, developer.id)
        again = await service.invite_manually(project.id, developer.id)

        assert again.error is RotationError.INVALID_STATE

    async def test_manual_invite_refusals(self, db_session: AsyncSession):
        project = await seed_project(db_session)
        [unavailable] = await seed_developers(
            db_session, [DevLevel.MID], availability="not_available"
        )
        service = _batches(db_session)

        too_long = await service.invite_manually(project.id, unavailable.id, message="x" * 301)
        assert too_long.error is RotationError.INVALID_STATE

        ineligible = await service.invite_manually(project.id, unavailable.id)
        assert ineligible.error is RotationError.INVALID_STATE

        unknown = await service.invite_manually(project.id, generate_uuid())
        assert unknown.error is RotationError.NOT_FOUND


class TestCloseAndRead:
    async def test_close_batch_invalidates_pending(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ):
        seeded = await seed_batch(db_session)
        service = _batches(db_session)

        outcome = await service.close_batch(seeded.project.id)

        assert outcome.ok
        assert outcome.batch is not None
        assert outcome.batch.status == BatchStatus.CLOSED.value
        assert all(
            c.response_status == ResponseStatus.INVALIDATED.value for c in outcome.candidates
        )

        again = await service.close_batch(seeded.project.id)
        assert again.error is RotationError.NOT_FOUND

    async def test_current_batch_returns_candidates(self, db_session: AsyncSession):
        seeded = await seed_batch(db_session)

        outcome = await _batches(db_session).current_batch(seeded.project.id)

        assert outcome.batch is not None
        assert outcome.batch.id == seeded.batch.id
        assert len(outcome.candidates) == 3

    async def test_current_batch_for_project_without_batches(self, db_session: AsyncSession):
        project = await seed_project(db_session)

        outcome = await _batches(db_session).current_batch(project.id)

        assert outcome.error is RotationError.NOT_FOUND


class TestInvitationEmails:
    async def test_invitation_emails_are_sent_concurrently(
        self, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
    ):
        seeded = await seed_batch(db_session, levels=[DevLevel.MID] * 3)
        # Each send blocks until all three are in flight
        barrier = threading.Barrier(3, timeout=5)
        sent: list[str] = []

        def fake_send(to, developer_name, project_title, deadline, message=None):
            barrier.wait()
            sent.append(to)
            return to != seeded.developers[0].email

        monkeypatch.setattr(collaborators_module, "send_invitation_email", fake_send)

        await DefaultCollaborators().on_invited(db_session, seeded.project, seeded.candidates)

        assert sorted(sent) == sorted(d.email for d in seeded.developers)
