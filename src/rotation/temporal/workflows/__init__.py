"""Temporal Workflows - Re-exports for worker registration."""

from src.rotation.temporal.workflows.candidate_sweep import CandidateSweepWorkflow

__all__ = [
    "CandidateSweepWorkflow",
]
