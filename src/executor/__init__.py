"""Sequential fail-fast step execution.

Public API:
    - StepExecutor: Runs steps in declared order, halting on first failure
    - Step: One named unit of pipeline work
    - StepResult: Outcome of one step within a run
    - PipelineRun: One execution instance and its results
    - RunStatus: Lifecycle status of a run
    - default_steps: The fetch/format/build/lint/build-tests/test sequence
    - RunStateError: Raised on results that would break prefix-completeness
"""

from .exceptions import RunStateError
from .executor import StepExecutor
from .models import PipelineRun, RunStatus, Step, StepResult
from .steps import default_steps, step_from_dict

__all__ = [
    "StepExecutor",
    "Step",
    "StepResult",
    "PipelineRun",
    "RunStatus",
    "default_steps",
    "step_from_dict",
    "RunStateError",
]
