"""Registration of the recurring candidate sweep schedule."""

from datetime import timedelta

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleIntervalSpec,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
)

from src.rotation.core.config import Settings, get_settings
from src.rotation.core.logging import get_logger
from src.rotation.temporal.routing import route_for_system_job
from src.rotation.temporal.workflows import CandidateSweepWorkflow

logger = get_logger(__name__)


def build_sweep_schedule(settings: Settings) -> Schedule:
    """Schedule that starts CandidateSweepWorkflow every sweep interval."""
    route = route_for_system_job(
        namespace=settings.temporal_namespace,
        prefix=settings.temporal_queue_prefix,
    )
    return Schedule(
        action=ScheduleActionStartWorkflow(
            CandidateSweepWorkflow.run,
            id=f"{settings.sweep_schedule_id}-run",
            task_queue=route.task_queue,
            execution_timeout=timedelta(minutes=10),
        ),
        spec=ScheduleSpec(
            intervals=[ScheduleIntervalSpec(every=timedelta(minutes=settings.sweep_interval_minutes))]
        ),
        # A slow tick must finish before the next one starts
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


async def ensure_sweep_schedule(client: Client, settings: Settings | None = None) -> bool:
    """Create the sweep schedule if it does not exist yet.

    Returns:
        True if the schedule was created, False if it already existed.
    """
    settings = settings or get_settings()
    try:
        await client.create_schedule(settings.sweep_schedule_id, build_sweep_schedule(settings))
    except ScheduleAlreadyRunningError:
        logger.info("Sweep schedule already registered", schedule_id=settings.sweep_schedule_id)
        return False
    logger.info(
        "Sweep schedule registered",
        schedule_id=settings.sweep_schedule_id,
        interval_minutes=settings.sweep_interval_minutes,
    )
    return True
