"""Task queue naming for Temporal workloads."""

from dataclasses import dataclass
from enum import StrEnum


class QueueKind(StrEnum):
    """Workflow workload types for queue routing."""

    JOBS = "jobs"  # Scheduled system jobs (candidate sweep)


@dataclass(frozen=True)
class TemporalRoute:
    namespace: str
    task_queue: str


def task_queue_name(prefix: str, kind: QueueKind, shard: int = 0) -> str:
    """Generate task queue name: {prefix}.{kind}.{shard:02d}"""
    return f"{prefix}.{kind}.{shard:02d}"


def route_for_system_job(
    *,
    namespace: str,
    prefix: str,
    kind: QueueKind = QueueKind.JOBS,
) -> TemporalRoute:
    """Routing for system-level jobs. Always shard 00."""
    return TemporalRoute(namespace=namespace, task_queue=task_queue_name(prefix, kind))
