"""Hooks run after lifecycle transitions have committed.

Collaborators never decide the outcome of a transition: they run once the
transition is durable, and their failures are logged and swallowed so an
accepted invitation is never rolled back by a failed email.
"""

import asyncio
from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel
from structlog.stdlib import BoundLogger

from src.rotation.core.logging import get_logger
from src.rotation.core.notifications import send_acceptance_email, send_invitation_email
from src.rotation.models import Candidate, ContactGrant, Developer, Project
from src.rotation.models.base import utc_now
from src.rotation.repositories import ContactGrantRepository, ProjectRepository

logger = get_logger(__name__)

CONTACT_REASON_ACCEPTED = "ACCEPTED_PROJECT"


class AssignmentCollaborators(Protocol):
    async def on_accepted(self, session: AsyncSession, candidate: Candidate) -> None: ...

    async def on_invited(
        self, session: AsyncSession, project: Project, candidates: Sequence[Candidate]
    ) -> None: ...


class NullCollaborators:
    """Does nothing. Useful where side effects are unwanted."""

    async def on_accepted(self, session: AsyncSession, candidate: Candidate) -> None:
        return None

    async def on_invited(
        self, session: AsyncSession, project: Project, candidates: Sequence[Candidate]
    ) -> None:
        return None


class DefaultCollaborators:
    """Moves the project forward, reveals contacts and sends emails."""

    async def on_accepted(self, session: AsyncSession, candidate: Candidate) -> None:
        log = logger.bind(
            candidate_id=str(candidate.id),
            batch_id=str(candidate.batch_id),
            project_id=str(candidate.project_id),
        )
        project_repo = ProjectRepository(session)
        now = utc_now()

        try:
            await project_repo.mark_in_progress(candidate.project_id, now)
            await session.commit()
        except Exception as e:
            await session.rollback()
            log.error("Failed to mark project in progress", error=str(e))

        project = await self._load(session, Project, candidate.project_id, log)
        developer = await self._load(session, Developer, candidate.developer_id, log)
        if project is None:
            return

        await self._grant_contact(session, project, candidate, log)

        if developer is not None and project.client_email:
            sent = await asyncio.to_thread(
                send_acceptance_email, project.client_email, developer.display_name, project.title
            )
            if not sent:
                log.warning("Acceptance email not delivered")

    async def on_invited(
        self, session: AsyncSession, project: Project, candidates: Sequence[Candidate]
    ) -> None:
        recipients: list[tuple[Candidate, Developer]] = []
        for candidate in candidates:
            developer = await self._load(
                session, Developer, candidate.developer_id, logger.bind(candidate_id=str(candidate.id))
            )
            if developer is not None:
                recipients.append((candidate, developer))

        results = await asyncio.gather(
            *(
                asyncio.to_thread(
                    send_invitation_email,
                    developer.email,
                    developer.display_name,
                    project.title,
                    candidate.acceptance_deadline,
                    candidate.message,
                )
                for candidate, developer in recipients
            )
        )
        for (candidate, _), sent in zip(recipients, results, strict=True):
            if not sent:
                logger.warning(
                    "Invitation email not delivered",
                    candidate_id=str(candidate.id),
                    developer_id=str(candidate.developer_id),
                )

    async def _grant_contact(
        self, session: AsyncSession, project: Project, candidate: Candidate, log: BoundLogger
    ) -> None:
        repo = ContactGrantRepository(session)
        try:
            if await repo.get_for(project.id, candidate.developer_id) is not None:
                return
            repo.add(
                ContactGrant(
                    project_id=project.id,
                    client_id=project.client_id,
                    developer_id=candidate.developer_id,
                    reason=CONTACT_REASON_ACCEPTED,
                )
            )
            await session.commit()
            log.info("Contact revealed to client")
        except IntegrityError:
            # Granted concurrently
            await session.rollback()
        except Exception as e:
            await session.rollback()
            log.error("Failed to grant contact", error=str(e))

    async def _load[T: SQLModel](
        self, session: AsyncSession, model: type[T], id: UUID, log: BoundLogger
    ) -> T | None:
        try:
            return await session.get(model, id)
        except Exception as e:
            await session.rollback()
            log.error("Failed to load record for notification", model=model.__name__, error=str(e))
            return None
