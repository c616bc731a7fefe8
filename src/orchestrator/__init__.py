"""Pipeline orchestrator for CI runs.

Connects the trigger gate, provisioning, dependency cache, step execution
and result reporting into a single pipeline run.
"""

from src.executor import PipelineRun, RunStatus, StepResult

from .pipeline import PipelineOrchestrator

__all__ = [
    "PipelineOrchestrator",
    "PipelineRun",
    "RunStatus",
    "StepResult",
]
