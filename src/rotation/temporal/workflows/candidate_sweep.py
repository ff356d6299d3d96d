"""
Candidate Sweep Workflow.

Started by a Temporal Schedule every few minutes. Expires invitations whose
acceptance deadline has passed, then exhausts and refreshes the batches they
belonged to.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from src.rotation.temporal.activities import SweepInput, SweepOutput, run_candidate_sweep


@workflow.defn
class CandidateSweepWorkflow:
    """One sweep tick. Overlapping ticks are skipped by the schedule."""

    @workflow.run
    async def run(self) -> SweepOutput:
        # Workflow time keeps the deadline comparison stable across activity retries
        now = workflow.now().replace(tzinfo=None).isoformat()
        workflow.logger.info(f"Starting candidate sweep at {now}")

        result = await workflow.execute_activity(
            run_candidate_sweep,
            SweepInput(now=now),
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=RetryPolicy(
                maximum_attempts=3,
                initial_interval=timedelta(seconds=5),
            ),
        )

        workflow.logger.info(
            f"Candidate sweep complete: {result.expired_count} expired, "
            f"{len(result.failed_batches)} failed batches"
        )
        return result
