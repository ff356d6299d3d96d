"""
Temporal Worker - Separate process from API.

Run with:
    uv run python -m src.rotation.temporal.worker                      # Worker + sweep schedule
    uv run python -m src.rotation.temporal.worker --no-register-schedule
"""

import argparse
import asyncio
from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from temporalio.client import Client
from temporalio.worker import Worker

from src.rotation.core.config import get_settings
from src.rotation.core.db import dispose_engine
from src.rotation.core.logging import get_logger, setup_logging
from src.rotation.temporal.activities import run_candidate_sweep
from src.rotation.temporal.routing import QueueKind, task_queue_name
from src.rotation.temporal.schedules import ensure_sweep_schedule
from src.rotation.temporal.workflows import CandidateSweepWorkflow

logger = get_logger(__name__)

WORKER_HEALTH_PORT = 8001


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Temporal worker for scheduled jobs")
    parser.add_argument(
        "--register-schedule",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Create the candidate sweep schedule on startup if missing (default: on)",
    )
    parser.add_argument("--health-port", type=int, default=WORKER_HEALTH_PORT)
    return parser.parse_args(argv)


def create_jobs_worker(client: Client, task_queue: str) -> Worker:
    """Worker for the jobs queue. Sweeps are short, so concurrency stays modest."""
    return Worker(
        client,
        task_queue=task_queue,
        workflows=[CandidateSweepWorkflow],
        activities=[run_candidate_sweep],
        max_concurrent_activities=10,
        max_concurrent_workflow_tasks=10,
    )


async def run_health_server(task_queues: list[str], port: int = WORKER_HEALTH_PORT) -> None:
    """Run a lightweight health server for K8s probes."""
    health_app = FastAPI(title="Temporal Worker Health")

    @health_app.get("/health")
    async def health() -> dict[str, str | list[str]]:
        return {
            "status": "healthy",
            "service": "temporal-worker",
            "task_queues": task_queues,
        }

    @health_app.get("/ready")
    async def ready() -> dict[str, str]:
        return {"status": "ready"}

    config = uvicorn.Config(health_app, host="0.0.0.0", port=port, log_level="warning")
    server = uvicorn.Server(config)
    logger.info(f"Starting health server on port {port}")
    await server.serve()


async def main() -> None:
    args = parse_args()
    settings = get_settings()
    setup_logging(settings.debug)

    client = await Client.connect(
        settings.temporal_host,
        namespace=settings.temporal_namespace,
    )

    if args.register_schedule:
        await ensure_sweep_schedule(client, settings)

    tq = task_queue_name(settings.temporal_queue_prefix, QueueKind.JOBS)
    worker = create_jobs_worker(client, tq)
    logger.info(f"Starting jobs worker on queue: {tq}")

    try:
        health_task = asyncio.create_task(run_health_server([tq], args.health_port))
        await worker.run()
        await health_task
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
