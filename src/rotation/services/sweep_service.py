"""Periodic sweep: expire stale invitations and keep projects staffed."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog.contextvars import bound_contextvars

from src.rotation.core.logging import get_logger
from src.rotation.core.retry import with_store_retry
from src.rotation.models import BatchStatus, ResponseStatus, SweepRun, SweepRunStatus
from src.rotation.models.base import as_naive_utc, utc_now
from src.rotation.repositories import (
    BatchRepository,
    CandidateRepository,
    ProjectRepository,
    SweepRunRepository,
)
from src.rotation.services.assignment_service import AssignmentService
from src.rotation.services.batch_service import BatchService
from src.rotation.services.collaborators import AssignmentCollaborators
from src.rotation.services.policies import refresh_eligible_batch_types
from src.rotation.services.results import SweepReport

logger = get_logger(__name__)

SWEEP_JOB_NAME = "expire-candidates"


class SweepService:
    """Runs one sweep tick.

    Each touched batch is settled in its own session and transaction, so a
    failure on one batch is logged, counted and left for the next tick
    without affecting the others.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        collaborators: AssignmentCollaborators | None = None,
    ):
        self.session_factory = session_factory
        self.collaborators = collaborators

    async def run_sweep(self, now: datetime | None = None) -> SweepReport:
        """Expire stale candidates, then exhaust and refresh the affected batches.

        Raises:
            TransientStoreError: If expiry itself keeps failing; the run is
                recorded as failed first.
        """
        now = as_naive_utc(now) if now else utc_now()
        sweep_run_id = await self._start_run(now)
        with bound_contextvars(sweep_run_id=str(sweep_run_id)):
            return await self._run(sweep_run_id, now)

    async def _run(self, sweep_run_id: UUID, now: datetime) -> SweepReport:
        try:
            async with self.session_factory() as session:
                expired = await AssignmentService.for_session(
                    session, self.collaborators
                ).expire_stale(now)
        except Exception as e:
            logger.error("Sweep failed to expire candidates", error=str(e))
            await self._finish_run(
                sweep_run_id, SweepRunStatus.FAILED, SweepReport(sweep_run_id, 0), str(e)
            )
            raise

        exhausted: list[UUID] = []
        refreshed: list[UUID] = []
        failed: list[UUID] = []
        for batch_id in await self._batches_to_settle(expired.batch_ids):
            with bound_contextvars(batch_id=str(batch_id)):
                try:
                    outcome = await self._settle_batch(batch_id, now)
                except Exception:
                    logger.exception("Sweep failed to settle batch")
                    failed.append(batch_id)
                    continue
            if outcome in ("exhausted", "refreshed"):
                exhausted.append(batch_id)
            if outcome == "refreshed":
                refreshed.append(batch_id)

        try:
            repaired = await self._repair_claimed_projects(now)
        except Exception:
            logger.exception("Sweep failed to repair claimed projects")
            repaired = 0

        report = SweepReport(
            sweep_run_id=sweep_run_id,
            expired_count=expired.expired_count,
            refreshed_batches=refreshed,
            exhausted_batches=exhausted,
            failed_batches=failed,
            repaired_candidates=repaired,
        )
        status = SweepRunStatus.FAILED if failed else SweepRunStatus.SUCCEEDED
        await self._finish_run(sweep_run_id, status, report)
        logger.info("Sweep finished", **report.as_dict())
        return report

    async def _batches_to_settle(self, expired_batch_ids: list[UUID]) -> list[UUID]:
        """Batches touched by this expiry plus any a previous tick left unsettled."""
        try:
            async with self.session_factory() as session:
                leftovers = await BatchRepository(session).list_unsettled_ids(
                    refresh_eligible_batch_types()
                )
        except Exception:
            logger.exception("Sweep failed to list unsettled batches")
            leftovers = []
        seen = set(expired_batch_ids)
        return expired_batch_ids + [b for b in leftovers if b not in seen]

    async def _settle_batch(self, batch_id: UUID, now: datetime) -> str | None:
        """Exhaust a fully-terminal batch and refresh it when its type allows.

        Returns "exhausted", "refreshed" or None when nothing changed.
        """
        async with self.session_factory() as session:
            batch_repo = BatchRepository(session)
            batch = await batch_repo.get_by_id(batch_id, fresh=True)
            if batch is None:
                return None

            with bound_contextvars(project_id=str(batch.project_id)):
                if batch.status not in (BatchStatus.ACTIVE.value, BatchStatus.EXHAUSTED.value):
                    return None

                counts = await CandidateRepository(session).count_by_status(batch.id)
                if counts.get(ResponseStatus.PENDING.value) or counts.get(
                    ResponseStatus.ACCEPTED.value
                ):
                    return None

                if batch.status == BatchStatus.ACTIVE.value:
                    await with_store_retry(
                        "exhaust_batch",
                        lambda: self._exhaust(session, batch_repo, batch.id, now),
                        on_retry=session.rollback,
                    )
                    logger.info("Batch exhausted")

                if batch.batch_type not in refresh_eligible_batch_types():
                    return "exhausted"

                project = await ProjectRepository(session).get_by_id(batch.project_id, fresh=True)
                if project is None or project.current_batch_id != batch.id:
                    # Superseded by a newer batch
                    return "exhausted"

                result = await BatchService.for_session(session, self.collaborators).refresh_batch(
                    batch.project_id, now=now
                )
                return "refreshed" if result.refreshed else "exhausted"

    async def _exhaust(
        self, session: AsyncSession, batch_repo: BatchRepository, batch_id: UUID, now: datetime
    ) -> bool:
        moved = await batch_repo.transition(batch_id, [BatchStatus.ACTIVE], BatchStatus.EXHAUSTED, now)
        await session.commit()
        return moved

    async def _repair_claimed_projects(self, now: datetime) -> int:
        """Invalidate pending candidates left beside an existing winner."""
        async with self.session_factory() as session:
            stragglers = await CandidateRepository(session).find_pending_beside_winner()
            await session.rollback()
            service = AssignmentService.for_session(session, self.collaborators)
            repaired = 0
            for project_id, batch_id, winner_id in stragglers:
                count = await service.invalidate_siblings(batch_id, winner_id, now)
                if count:
                    logger.warning(
                        "Repaired pending candidates of a claimed project",
                        project_id=str(project_id),
                        batch_id=str(batch_id),
                        count=count,
                    )
                repaired += count
            return repaired

    async def _start_run(self, now: datetime) -> UUID:
        async with self.session_factory() as session:
            run = SweepRun(job=SWEEP_JOB_NAME, started_at=now)
            SweepRunRepository(session).add(run)
            await session.commit()
            return run.id

    async def _finish_run(
        self,
        sweep_run_id: UUID,
        status: SweepRunStatus,
        report: SweepReport,
        error: str | None = None,
    ) -> None:
        details: dict[str, object] = report.as_dict()
        if error:
            details["error"] = error
        try:
            async with self.session_factory() as session:
                run = await SweepRunRepository(session).get_by_id(sweep_run_id)
                if run is None:
                    return
                run.status = status.value
                run.expired_count = report.expired_count
                run.refreshed_batches = len(report.refreshed_batches)
                run.failed_batches = len(report.failed_batches)
                run.details = details
                run.finished_at = utc_now()
                await session.commit()
        except Exception as e:
            logger.error("Failed to record sweep run", sweep_run_id=str(sweep_run_id), error=str(e))


async def list_sweep_runs(
    session: AsyncSession, cursor: str | None, limit: int
) -> tuple[list[SweepRun], str | None, bool]:
    """Sweep run history, newest first."""
    return await SweepRunRepository(session).list_recent(cursor, limit, job=SWEEP_JOB_NAME)
