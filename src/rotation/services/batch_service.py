"""Batch composition, refresh and manual invites."""

from collections.abc import Collection
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from src.rotation.core.config import get_settings
from src.rotation.core.logging import get_logger
from src.rotation.core.retry import with_store_retry
from src.rotation.models import (
    Batch,
    BatchStatus,
    BatchType,
    Candidate,
    Developer,
    DevLevel,
    Project,
    ProjectStatus,
    ResponseStatus,
)
from src.rotation.models.base import as_naive_utc, utc_now
from src.rotation.repositories import (
    BatchRepository,
    CandidateRepository,
    DeveloperRepository,
    ProjectRepository,
)
from src.rotation.services.collaborators import AssignmentCollaborators, DefaultCollaborators
from src.rotation.services.policies import (
    AUTO_ROTATION_POLICY,
    MANUAL_INVITE_POLICY,
    LevelMix,
    SourcePolicy,
    adapt_quota,
)
from src.rotation.services.results import BatchOutcome, RefreshResult, RotationError

logger = get_logger(__name__)

# Developers who already hold one of these on a project are never re-invited to it
_BUSY_STATUSES = [ResponseStatus.PENDING.value, ResponseStatus.ACCEPTED.value]

_RETIRABLE = (BatchStatus.ACTIVE, BatchStatus.EXHAUSTED)

_CHANGED_CONCURRENTLY = "Project changed concurrently, please retry"


class BatchService:
    """Service for composing and replacing invitation batches."""

    def __init__(
        self,
        batch_repo: BatchRepository,
        candidate_repo: CandidateRepository,
        developer_repo: DeveloperRepository,
        project_repo: ProjectRepository,
        session: AsyncSession,
        collaborators: AssignmentCollaborators | None = None,
    ):
        self.batch_repo = batch_repo
        self.candidate_repo = candidate_repo
        self.developer_repo = developer_repo
        self.project_repo = project_repo
        self.session = session
        self.collaborators = collaborators or DefaultCollaborators()

    @classmethod
    def for_session(
        cls, session: AsyncSession, collaborators: AssignmentCollaborators | None = None
    ) -> "BatchService":
        return cls(
            BatchRepository(session),
            CandidateRepository(session),
            DeveloperRepository(session),
            ProjectRepository(session),
            session,
            collaborators,
        )

    # --- compose ---

    async def compose_batch(
        self,
        project_id: UUID,
        level_mix: LevelMix | None = None,
        now: datetime | None = None,
    ) -> BatchOutcome:
        """Create a new auto-rotation batch for a project.

        Any active auto-rotation batch is superseded (``refreshed``). Fails
        with INVALID_STATE when the project cannot take a new batch or no
        eligible developer is left.

        Raises:
            TransientStoreError: If the store keeps failing.
        """
        now = as_naive_utc(now) if now else utc_now()
        mix = level_mix or LevelMix.from_settings(get_settings())

        async def _compose() -> BatchOutcome:
            try:
                project = await self.project_repo.get_by_id(project_id, fresh=True)
                if project is None:
                    return BatchOutcome.failure(RotationError.NOT_FOUND, "Project not found")
                refusal = await self._refusal_reason(project)
                if refusal is not None:
                    return BatchOutcome.failure(RotationError.INVALID_STATE, refusal)

                chosen = await self._select_developers(project, mix, exclude_ids=())
                if not chosen:
                    return BatchOutcome.failure(
                        RotationError.INVALID_STATE, "No eligible developers available"
                    )

                previous = await self.batch_repo.get_latest_for_project(
                    project.id, BatchType.AUTO_ROTATION.value
                )
                created = await self._create_batch(
                    project, chosen, mix, AUTO_ROTATION_POLICY, now, previous=previous
                )
                if created is None:
                    await self.session.rollback()
                    return BatchOutcome.failure(RotationError.CONFLICT, _CHANGED_CONCURRENTLY)
                await self.session.commit()
                batch, candidates = created
                return BatchOutcome(batch=batch, candidates=candidates)
            except Exception:
                await self.session.rollback()
                raise

        outcome = await with_store_retry("compose_batch", _compose, on_retry=self.session.rollback)
        if outcome.batch is not None:
            await self._after_create(outcome.batch, outcome.candidates)
        return outcome

    # --- refresh ---

    async def refresh_batch(
        self,
        project_id: UUID,
        level_mix: LevelMix | None = None,
        now: datetime | None = None,
    ) -> RefreshResult:
        """Replace a project's latest auto-rotation batch with a new one.

        The new batch uses ``level_mix`` when given, otherwise the prior
        batch's mix, otherwise the configured default.

        Developers who rejected, were invalidated or (when configured)
        expired in the prior batch are excluded. If that leaves nobody to
        invite, the exclusion is dropped and repeats are allowed.

        Refuses, closing the prior batch, when the project is claimed, no
        longer open, or has reached the maximum number of batches.

        Raises:
            TransientStoreError: If the store keeps failing.
        """
        now = as_naive_utc(now) if now else utc_now()
        settings = get_settings()

        async def _refresh() -> tuple[RefreshResult, BatchOutcome | None]:
            try:
                project = await self.project_repo.get_by_id(project_id, fresh=True)
                if project is None:
                    return RefreshResult(None, False, reason="Project not found"), None

                previous = await self.batch_repo.get_latest_for_project(
                    project.id, BatchType.AUTO_ROTATION.value
                )
                refusal = await self._refusal_reason(project)
                if refusal is not None:
                    if previous is not None:
                        await self._retire(previous, BatchStatus.CLOSED, now)
                    await self.session.commit()
                    return RefreshResult(None, False, reason=refusal), None

                excluded: set[UUID] = set()
                mix = level_mix or LevelMix.from_settings(settings)
                if previous is not None:
                    if level_mix is None and previous.level_mix:
                        mix = LevelMix.from_dict(previous.level_mix)
                    excluded = await self.candidate_repo.developer_ids_in_batch(
                        previous.id, self._refresh_exclusion_statuses()
                    )

                repeats_allowed = False
                chosen = await self._select_developers(project, mix, exclude_ids=excluded)
                if not chosen and excluded:
                    # Exclusion emptied the pool: fall back to re-inviting
                    chosen = await self._select_developers(project, mix, exclude_ids=())
                    repeats_allowed = bool(chosen)

                if not chosen:
                    await self.session.rollback()
                    return (
                        RefreshResult(None, False, reason="No eligible developers available"),
                        None,
                    )

                created = await self._create_batch(
                    project, chosen, mix, AUTO_ROTATION_POLICY, now, previous=previous
                )
                if created is None:
                    await self.session.rollback()
                    return RefreshResult(None, False, reason=_CHANGED_CONCURRENTLY), None
                await self.session.commit()
                batch, candidates = created
                result = RefreshResult(
                    new_batch_id=batch.id,
                    refreshed=True,
                    candidate_count=len(candidates),
                    repeats_allowed=repeats_allowed,
                )
                return result, BatchOutcome(batch=batch, candidates=candidates)
            except Exception:
                await self.session.rollback()
                raise

        result, outcome = await with_store_retry(
            "refresh_batch", _refresh, on_retry=self.session.rollback
        )
        log = logger.bind(project_id=str(project_id))
        if result.refreshed:
            log.info(
                "Batch refreshed",
                batch_id=str(result.new_batch_id),
                candidate_count=result.candidate_count,
                repeats_allowed=result.repeats_allowed,
            )
        else:
            log.info("Batch refresh refused", reason=result.reason)
        if outcome is not None and outcome.batch is not None:
            await self._after_create(outcome.batch, outcome.candidates)
        return result

    # --- manual invites ---

    async def invite_manually(
        self,
        project_id: UUID,
        developer_id: UUID,
        message: str | None = None,
        now: datetime | None = None,
    ) -> BatchOutcome:
        """Invite one developer directly, outside auto-rotation.

        The invite lives in its own ``manual_invite`` batch and never expires.

        Raises:
            TransientStoreError: If the store keeps failing.
        """
        now = as_naive_utc(now) if now else utc_now()
        settings = get_settings()
        if message is not None:
            message = message.strip() or None
        if message and len(message) > settings.manual_invite_message_max_length:
            return BatchOutcome.failure(
                RotationError.INVALID_STATE,
                f"Message must be at most {settings.manual_invite_message_max_length} characters",
            )

        async def _invite() -> BatchOutcome:
            try:
                project = await self.project_repo.get_by_id(project_id, fresh=True)
                if project is None:
                    return BatchOutcome.failure(RotationError.NOT_FOUND, "Project not found")
                if project.is_claimed or project.status != ProjectStatus.OPEN.value:
                    return BatchOutcome.failure(
                        RotationError.INVALID_STATE, "Project is no longer open for invitations"
                    )

                developer = await self.developer_repo.get_by_id(developer_id)
                if developer is None:
                    return BatchOutcome.failure(RotationError.NOT_FOUND, "Developer not found")
                if not developer.is_eligible:
                    return BatchOutcome.failure(
                        RotationError.INVALID_STATE, "Developer is not available for invitations"
                    )

                if not await self.project_repo.touch_if_open(project.id, now):
                    await self.session.rollback()
                    return BatchOutcome.failure(
                        RotationError.INVALID_STATE, "Project is no longer open for invitations"
                    )
                existing = await self.candidate_repo.get_pending_manual_invite(
                    project.id, developer.id, MANUAL_INVITE_POLICY.source.value
                )
                if existing is not None:
                    await self.session.rollback()
                    return BatchOutcome.failure(
                        RotationError.INVALID_STATE,
                        "Developer already has a pending invitation for this project",
                    )

                mix = LevelMix.from_dict({developer.level: 1})
                created = await self._create_batch(
                    project, [developer], mix, MANUAL_INVITE_POLICY, now, message=message
                )
                if created is None:
                    await self.session.rollback()
                    return BatchOutcome.failure(RotationError.CONFLICT, _CHANGED_CONCURRENTLY)
                await self.session.commit()
                batch, candidates = created
                return BatchOutcome(batch=batch, candidates=candidates)
            except Exception:
                await self.session.rollback()
                raise

        outcome = await with_store_retry("invite_manually", _invite, on_retry=self.session.rollback)
        if outcome.batch is not None:
            await self._after_create(outcome.batch, outcome.candidates)
        return outcome

    # --- close / read ---

    async def close_batch(self, project_id: UUID, now: datetime | None = None) -> BatchOutcome:
        """Close a project's active auto-rotation batch without a successor.

        Pending candidates of the closed batch are invalidated.

        Raises:
            TransientStoreError: If the store keeps failing.
        """
        now = as_naive_utc(now) if now else utc_now()

        async def _close() -> BatchOutcome:
            try:
                batch = await self.batch_repo.get_active_for_project(
                    project_id, BatchType.AUTO_ROTATION.value
                )
                if batch is None:
                    return BatchOutcome.failure(RotationError.NOT_FOUND, "No active batch")
                if not await self._retire(batch, BatchStatus.CLOSED, now):
                    await self.session.rollback()
                    return BatchOutcome.failure(RotationError.CONFLICT, "Batch changed concurrently")
                closed = await self.batch_repo.get_by_id(batch.id, fresh=True)
                candidates = await self.candidate_repo.list_by_batch(batch.id)
                await self.session.commit()
                return BatchOutcome(batch=closed, candidates=candidates)
            except Exception:
                await self.session.rollback()
                raise

        outcome = await with_store_retry("close_batch", _close, on_retry=self.session.rollback)
        if outcome.ok and outcome.batch is not None:
            logger.info("Batch closed", batch_id=str(outcome.batch.id), project_id=str(project_id))
        return outcome

    async def current_batch(self, project_id: UUID) -> BatchOutcome:
        project = await self.project_repo.get_by_id(project_id, fresh=True)
        if project is None:
            return BatchOutcome.failure(RotationError.NOT_FOUND, "Project not found")
        batch = None
        if project.current_batch_id is not None:
            batch = await self.batch_repo.get_by_id(project.current_batch_id, fresh=True)
        if batch is None:
            batch = await self.batch_repo.get_latest_for_project(project_id)
        if batch is None:
            return BatchOutcome.failure(RotationError.NOT_FOUND, "Project has no batches")
        candidates = await self.candidate_repo.list_by_batch(batch.id)
        return BatchOutcome(batch=batch, candidates=candidates)

    # --- internals ---

    def _refresh_exclusion_statuses(self) -> list[str]:
        statuses = [ResponseStatus.REJECTED.value, ResponseStatus.INVALIDATED.value]
        if get_settings().exclude_expired_on_refresh:
            statuses.append(ResponseStatus.EXPIRED.value)
        return statuses

    async def _refusal_reason(self, project: Project) -> str | None:
        if project.is_claimed:
            return "Project already has an accepted developer"
        if project.status != ProjectStatus.OPEN.value:
            return f"Project is {project.status}"
        count = await self.batch_repo.count_for_project(project.id, BatchType.AUTO_ROTATION.value)
        if count >= get_settings().max_batches_per_project:
            return "Maximum number of batches reached"
        return None

    async def _select_developers(
        self, project: Project, mix: LevelMix, exclude_ids: Collection[UUID]
    ) -> list[Developer]:
        settings = get_settings()
        busy = await self.candidate_repo.developer_ids_in_project(project.id, _BUSY_STATUSES)
        overloaded = await self.candidate_repo.overloaded_developer_ids(
            AUTO_ROTATION_POLICY.source.value, settings.max_pending_invites_per_developer
        )
        excluded = busy | overloaded | set(exclude_ids)

        pools: dict[DevLevel, list[Developer]] = {}
        for level in DevLevel:
            pools[level] = await self.developer_repo.list_eligible(
                level, project.skills_required, exclude_ids=excluded
            )

        take = adapt_quota(mix, {level: len(pool) for level, pool in pools.items()})
        chosen: list[Developer] = []
        for level in DevLevel:
            chosen.extend(pools[level][: take[level]])
        return chosen

    async def _retire(self, batch: Batch, status: BatchStatus, now: datetime) -> bool:
        """Move an active or exhausted batch to ``status`` and drop its pending invites."""
        moved = await self.batch_repo.transition(batch.id, _RETIRABLE, status, now)
        if moved:
            await self.candidate_repo.invalidate_pending_in_batch(batch.id, None, now)
        return moved

    async def _create_batch(
        self,
        project: Project,
        developers: list[Developer],
        mix: LevelMix,
        policy: SourcePolicy,
        now: datetime,
        previous: Batch | None = None,
        message: str | None = None,
    ) -> tuple[Batch, list[Candidate]] | None:
        """Insert a batch and its candidates, superseding ``previous``.

        Auto-rotation batches first take over the project's current batch
        slot. Returns None when another writer changed the project or the
        previous batch since they were read; the caller must roll back.
        """
        batch_id = uuid4()
        if policy.batch_type is BatchType.AUTO_ROTATION:
            switched = await self.project_repo.switch_current_batch(
                project.id, project.current_batch_id, batch_id, now
            )
            if not switched:
                return None
        if previous is not None and previous.status in _RETIRABLE:
            if not await self._retire(previous, BatchStatus.REFRESHED, now):
                return None

        batch = Batch(
            id=batch_id,
            project_id=project.id,
            batch_number=await self.batch_repo.next_batch_number(project.id),
            batch_type=policy.batch_type.value,
            no_expire=policy.no_expire,
            level_mix=mix.to_dict(),
            created_at=now,
        )
        self.batch_repo.add(batch)

        deadline = None
        if not policy.no_expire:
            deadline = now + timedelta(minutes=get_settings().acceptance_window_minutes)

        candidates = [
            Candidate(
                batch_id=batch.id,
                developer_id=developer.id,
                project_id=project.id,
                level=developer.level,
                source=policy.source.value,
                assigned_at=now,
                acceptance_deadline=deadline,
                message=message,
            )
            for developer in developers
        ]
        self.candidate_repo.add_all(candidates)
        await self.session.flush()
        return batch, candidates

    async def _after_create(self, batch: Batch, candidates: list[Candidate]) -> None:
        logger.info(
            "Batch created",
            batch_id=str(batch.id),
            project_id=str(batch.project_id),
            batch_number=batch.batch_number,
            batch_type=batch.batch_type,
            candidate_count=len(candidates),
        )
        # Detach so a collaborator rollback cannot expire what the caller returns
        self.session.expunge_all()
        project = await self.project_repo.get_by_id(batch.project_id)
        if project is None:
            return
        try:
            await self.collaborators.on_invited(self.session, project, candidates)
        except Exception as e:
            await self.session.rollback()
            logger.error("Invitation notification failed", batch_id=str(batch.id), error=str(e))
