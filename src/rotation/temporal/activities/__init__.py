"""Temporal Activities - idempotent operations called from workflows."""

from src.rotation.temporal.activities.sweep import SweepInput, SweepOutput, run_candidate_sweep

__all__ = [
    "SweepInput",
    "SweepOutput",
    "run_candidate_sweep",
]
