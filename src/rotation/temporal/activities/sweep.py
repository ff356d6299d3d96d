"""Candidate sweep activity."""

from dataclasses import dataclass, field
from datetime import datetime

from temporalio import activity

from src.rotation.core.db import get_session_factory
from src.rotation.services.sweep_service import SweepService


@dataclass
class SweepInput:
    """Sweep input. ``now`` is an ISO timestamp fixed by the workflow."""

    now: str | None = None


@dataclass
class SweepOutput:
    sweep_run_id: str | None
    expired_count: int
    refreshed_batches: list[str] = field(default_factory=list)
    exhausted_batches: list[str] = field(default_factory=list)
    failed_batches: list[str] = field(default_factory=list)
    repaired_candidates: int = 0


@activity.defn
async def run_candidate_sweep(input: SweepInput) -> SweepOutput:
    """
    Expire stale invitations and refresh exhausted batches.

    Idempotent: expiry only touches candidates still pending past their
    deadline, so a retried attempt finds nothing left to expire and only
    settles batches that are still unsettled.

    Raises:
        TransientStoreError: When the store stays unavailable; Temporal retries.
    """
    now = datetime.fromisoformat(input.now) if input.now else None
    activity.logger.info(f"Running candidate sweep (now={input.now or 'server time'})")

    report = await SweepService(get_session_factory()).run_sweep(now)

    activity.logger.info(
        f"Candidate sweep complete: {report.expired_count} expired, "
        f"{len(report.refreshed_batches)} refreshed, {len(report.failed_batches)} failed"
    )
    return SweepOutput(
        sweep_run_id=str(report.sweep_run_id) if report.sweep_run_id else None,
        expired_count=report.expired_count,
        refreshed_batches=[str(b) for b in report.refreshed_batches],
        exhausted_batches=[str(b) for b in report.exhausted_batches],
        failed_batches=[str(b) for b in report.failed_batches],
        repaired_candidates=report.repaired_candidates,
    )
