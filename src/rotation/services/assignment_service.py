"""Candidate state machine: respond, expire, invalidate.

Every transition is one conditional UPDATE whose affected-row count is the
verdict, so two concurrent callers can never both win. Pre-checks read the
row first only to pick the right error for the caller; the UPDATE re-asserts
them.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.rotation.core.logging import get_logger
from src.rotation.core.retry import TransientStoreError, with_store_retry
from src.rotation.models import (
    Candidate,
    RespondAction,
    ResponseStatus,
)
from src.rotation.models.base import as_naive_utc, utc_now
from src.rotation.repositories import BatchRepository, CandidateRepository, ProjectRepository
from src.rotation.services.collaborators import AssignmentCollaborators, DefaultCollaborators
from src.rotation.services.policies import expiring_sources
from src.rotation.services.results import ExpireResult, RespondOutcome, RotationError

logger = get_logger(__name__)

# What a caller sees when its candidate is already terminal
_TERMINAL_ERRORS: dict[ResponseStatus, RotationError] = {
    ResponseStatus.ACCEPTED: RotationError.ALREADY_RESPONDED,
    ResponseStatus.REJECTED: RotationError.ALREADY_RESPONDED,
    ResponseStatus.EXPIRED: RotationError.DEADLINE_PASSED,
    ResponseStatus.INVALIDATED: RotationError.CONFLICT,
}


class AssignmentService:
    """Service for candidate lifecycle transitions."""

    def __init__(
        self,
        candidate_repo: CandidateRepository,
        batch_repo: BatchRepository,
        project_repo: ProjectRepository,
        session: AsyncSession,
        collaborators: AssignmentCollaborators | None = None,
    ):
        self.candidate_repo = candidate_repo
        self.batch_repo = batch_repo
        self.project_repo = project_repo
        self.session = session
        self.collaborators = collaborators or DefaultCollaborators()

    @classmethod
    def for_session(
        cls, session: AsyncSession, collaborators: AssignmentCollaborators | None = None
    ) -> "AssignmentService":
        return cls(
            CandidateRepository(session),
            BatchRepository(session),
            ProjectRepository(session),
            session,
            collaborators,
        )

    # --- respond ---

    async def respond(
        self,
        candidate_id: UUID,
        action: RespondAction,
        developer_id: UUID,
        now: datetime | None = None,
    ) -> RespondOutcome:
        """Accept or reject an invitation on behalf of ``developer_id``.

        Accept claims the project, flips the candidate, closes the project's
        open batches and invalidates its other pending candidates in one
        transaction. Exactly one of any set of concurrent accepts for a
        project succeeds; the others get CONFLICT.
        """
        now = as_naive_utc(now) if now else utc_now()
        log = logger.bind(candidate_id=str(candidate_id), action=action.value)

        try:
            outcome = await with_store_retry(
                f"respond.{action.value}",
                lambda: self._respond_once(candidate_id, action, developer_id, now),
                on_retry=self.session.rollback,
            )
        except TransientStoreError:
            await self.session.rollback()
            return RespondOutcome.failure(RotationError.TRANSIENT_STORE_ERROR)

        if outcome.candidate is None:
            log.info("Invitation response refused", error=outcome.error)
            return outcome

        candidate = outcome.candidate
        log.info(
            "Invitation response recorded",
            batch_id=str(candidate.batch_id),
            project_id=str(candidate.project_id),
            response_status=candidate.response_status,
        )
        if action is RespondAction.ACCEPT:
            # Detach so a collaborator rollback cannot expire what the caller returns
            self.session.expunge(candidate)
            await self._notify_accepted(candidate)
        return outcome

    async def _respond_once(
        self, candidate_id: UUID, action: RespondAction, developer_id: UUID, now: datetime
    ) -> RespondOutcome:
        try:
            candidate = await self.candidate_repo.get_by_id(candidate_id, fresh=True)
            if candidate is None:
                await self.session.rollback()
                return RespondOutcome.failure(RotationError.NOT_FOUND)
            error = self._precheck(candidate, developer_id, now)
            if error is not None:
                await self.session.rollback()
                return RespondOutcome.failure(error)

            if action is RespondAction.ACCEPT:
                return await self._accept(candidate, now)
            return await self._reject(candidate, now)
        except Exception:
            await self.session.rollback()
            raise

    def _precheck(
        self, candidate: Candidate, developer_id: UUID, now: datetime
    ) -> RotationError | None:
        if candidate.developer_id != developer_id:
            return RotationError.FORBIDDEN
        if not candidate.is_pending:
            return _TERMINAL_ERRORS[candidate.status_enum]
        if candidate.deadline_passed(now):
            return RotationError.DEADLINE_PASSED
        return None

    async def _accept(self, candidate: Candidate, now: datetime) -> RespondOutcome:
        claimed = await self.project_repo.claim(
            candidate.project_id, candidate.id, candidate.developer_id, now
        )
        if not claimed:
            await self.session.rollback()
            return await self._classify_lost(candidate.id, candidate.developer_id, now)

        if not await self.candidate_repo.accept_if_pending(candidate.id, now):
            await self.session.rollback()
            return await self._classify_lost(candidate.id, candidate.developer_id, now)

        # The claim is project-wide, so nothing else on the project stays open
        closed = await self.batch_repo.close_open_for_project(candidate.project_id, now)
        invalidated = await self.candidate_repo.invalidate_pending_in_project(
            candidate.project_id, candidate.id, now
        )
        await self.session.commit()

        logger.info(
            "Candidate accepted",
            candidate_id=str(candidate.id),
            batch_id=str(candidate.batch_id),
            project_id=str(candidate.project_id),
            closed_batches=closed,
            invalidated_candidates=invalidated,
        )
        await self.session.refresh(candidate)
        return RespondOutcome.success(candidate)

    async def _reject(self, candidate: Candidate, now: datetime) -> RespondOutcome:
        if not await self.candidate_repo.reject_if_pending(candidate.id, now):
            await self.session.rollback()
            return await self._classify_lost(candidate.id, candidate.developer_id, now)
        await self.session.commit()
        await self.session.refresh(candidate)
        return RespondOutcome.success(candidate)

    async def _classify_lost(
        self, candidate_id: UUID, developer_id: UUID, now: datetime
    ) -> RespondOutcome:
        """Explain why a conditional update matched no row, from a fresh read."""
        candidate = await self.candidate_repo.get_by_id(candidate_id, fresh=True)
        if candidate is None:
            return RespondOutcome.failure(RotationError.NOT_FOUND)
        error = self._precheck(candidate, developer_id, now)
        if error is not None:
            return RespondOutcome.failure(error)

        project = await self.project_repo.get_by_id(candidate.project_id, fresh=True)
        if project is not None and project.accepted_candidate_id == candidate.id:
            return RespondOutcome.failure(RotationError.ALREADY_RESPONDED)
        if project is not None and not project.is_claimed:
            return RespondOutcome.failure(
                RotationError.CONFLICT, f"Project is {project.status}, no longer open"
            )
        return RespondOutcome.failure(RotationError.CONFLICT)

    async def _notify_accepted(self, candidate: Candidate) -> None:
        try:
            await self.collaborators.on_accepted(self.session, candidate)
        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Post-accept collaborator failed",
                candidate_id=str(candidate.id),
                project_id=str(candidate.project_id),
                error=str(e),
            )

    # --- system transitions ---

    async def expire_stale(self, now: datetime | None = None) -> ExpireResult:
        """Expire every pending candidate whose deadline has passed.

        Idempotent: a second call with the same ``now`` expires nothing.
        Candidates of no-expire batches and non-expiring sources are skipped.

        Raises:
            TransientStoreError: If the store keeps failing.
        """
        now = as_naive_utc(now) if now else utc_now()

        async def _expire() -> ExpireResult:
            stale = await self.candidate_repo.find_stale(now, expiring_sources())
            count = await self.candidate_repo.expire_if_stale([c for c, _ in stale], now)
            await self.session.commit()
            batch_ids = sorted({b for _, b in stale}, key=str)
            return ExpireResult(expired_count=count, batch_ids=batch_ids)

        result = await with_store_retry("expire_stale", _expire, on_retry=self.session.rollback)
        if result.expired_count:
            logger.info(
                "Expired stale candidates",
                expired_count=result.expired_count,
                batch_ids=[str(b) for b in result.batch_ids],
            )
        return result

    async def invalidate_siblings(
        self, batch_id: UUID, winning_candidate_id: UUID | None, now: datetime | None = None
    ) -> int:
        """Invalidate every pending candidate of a batch except the winner."""
        now = as_naive_utc(now) if now else utc_now()

        async def _invalidate() -> int:
            count = await self.candidate_repo.invalidate_pending_in_batch(
                batch_id, winning_candidate_id, now
            )
            await self.session.commit()
            return count

        count = await with_store_retry(
            "invalidate_siblings", _invalidate, on_retry=self.session.rollback
        )
        if count:
            logger.info("Invalidated batch siblings", batch_id=str(batch_id), count=count)
        return count

    async def invalidate_project_pending(
        self, project_id: UUID, winning_candidate_id: UUID, now: datetime | None = None
    ) -> int:
        """Invalidate every pending candidate of a project except the winner."""
        now = as_naive_utc(now) if now else utc_now()

        async def _invalidate() -> int:
            count = await self.candidate_repo.invalidate_pending_in_project(
                project_id, winning_candidate_id, now
            )
            await self.session.commit()
            return count

        count = await with_store_retry(
            "invalidate_project_pending", _invalidate, on_retry=self.session.rollback
        )
        if count:
            logger.info("Invalidated project pending candidates", project_id=str(project_id), count=count)
        return count

    # --- reads ---

    async def pending_invitations(
        self, developer_id: UUID, now: datetime | None = None
    ) -> list[Candidate]:
        now = as_naive_utc(now) if now else utc_now()
        return await self.candidate_repo.list_pending_for_developer(developer_id, now)

    async def recent_activity(
        self, developer_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[Candidate], str | None, bool]:
        return await self.candidate_repo.list_activity_for_developer(developer_id, cursor, limit)
