"""StepExecutor - runs pipeline steps in order, halting on first failure."""

import logging
import re
import time
from typing import Iterable, Optional

from src.workspace import (
    TIMEOUT_EXIT_CODE,
    CommandOutcome,
    CommandRunner,
    ExecutionContext,
    SubprocessRunner,
)

from .models import PipelineRun, RunStatus, Step, StepResult
from .steps import default_steps

logger = logging.getLogger(__name__)

# Compiler-style warning lines, e.g. "warning: unused variable" or "warning[E0001]: ..."
WARNING_PATTERN = re.compile(r"^warning(\[[^\]]*\])?:", re.MULTILINE)

# Exit code recorded for a step that failed without a non-zero status of its own
GENERIC_FAILURE_EXIT_CODE = 1

# Lines of captured output kept on each StepResult
OUTPUT_TAIL_LINES = 50


def _tail(output: str, lines: int = OUTPUT_TAIL_LINES) -> str:
    return "\n".join(output.splitlines()[-lines:])


class StepExecutor:
    """Runs an immutable, ordered list of steps inside one execution context.

    Steps share the context's workspace, so earlier steps' artifacts are
    visible to later ones. A step fails on a non-zero exit status, on
    timeout, or, for warnings-as-errors steps, when its output contains
    warnings. The first failure stops the run; later steps get no result.

    Example:
        executor = StepExecutor()
        run = executor.run(context)
        print(run.status, [s.name for s in run.steps])
    """

    def __init__(
        self,
        steps: Optional[Iterable[Step]] = None,
        runner: Optional[CommandRunner] = None,
        default_timeout: Optional[float] = None,
    ):
        self._steps: tuple[Step, ...] = tuple(steps) if steps is not None else default_steps()
        self._runner = runner
        self._default_timeout = default_timeout

        names = [step.name for step in self._steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Step names must be unique: {names}")

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    def _get_runner(self) -> CommandRunner:
        if self._runner is None:
            self._runner = SubprocessRunner()
        return self._runner

    def _invoke(self, step: Step, context: ExecutionContext) -> CommandOutcome:
        if callable(step.command):
            outcome = step.command(context)
            if isinstance(outcome, CommandOutcome):
                return outcome
            return CommandOutcome(exit_code=int(outcome))

        timeout = step.timeout_seconds or self._default_timeout
        return self._get_runner().run(step.command, context, timeout=timeout)

    def _run_step(self, index: int, step: Step, context: ExecutionContext) -> StepResult:
        """Run one step with timing and error isolation."""
        logger.info(
            "Step %d '%s': %s",
            index + 1,
            step.name,
            step.display_command,
            extra={"step": step.name},
        )
        start = time.monotonic()
        try:
            outcome = self._invoke(step, context)
        except Exception as e:
            duration = time.monotonic() - start
            logger.exception("Step '%s' raised", step.name, extra={"step": step.name})
            return StepResult(
                index=index,
                name=step.name,
                exit_code=GENERIC_FAILURE_EXIT_CODE,
                success=False,
                duration_seconds=round(duration, 2),
                error=str(e),
            )
        duration = time.monotonic() - start

        error = None
        success = outcome.success
        if outcome.timed_out:
            error = "timed out"
        elif outcome.exit_code != 0:
            error = f"exited with status {outcome.exit_code}"
        elif step.warnings_as_errors and WARNING_PATTERN.search(outcome.output):
            success = False
            error = "warnings reported and treated as errors"

        return StepResult(
            index=index,
            name=step.name,
            exit_code=TIMEOUT_EXIT_CODE if outcome.timed_out else outcome.exit_code,
            success=success,
            duration_seconds=round(duration, 2),
            output=_tail(outcome.output),
            error=error,
            timed_out=outcome.timed_out,
        )

    def run(self, context: ExecutionContext, run: Optional[PipelineRun] = None) -> PipelineRun:
        """Execute the steps in declared order.

        Args:
            context: Provisioned context shared by every step.
            run: Run to record results on. A new one is created if omitted.

        Returns:
            The run, with status SUCCEEDED or FAILED.
        """
        run = run if run is not None else PipelineRun()
        run.status = RunStatus.RUNNING

        for index, step in enumerate(self._steps):
            result = self._run_step(index, step, context)
            run.add_step_result(result)
            if not result.success:
                logger.error(
                    "Step '%s' failed (%s); skipping %d remaining step(s)",
                    step.name,
                    result.error,
                    len(self._steps) - index - 1,
                    extra={"step": step.name, "exit_code": result.exit_code},
                )
                run.finish(RunStatus.FAILED)
                return run
            logger.info(
                "Step '%s' passed in %.2fs",
                step.name,
                result.duration_seconds,
                extra={"step": step.name},
            )

        run.finish(RunStatus.SUCCEEDED)
        return run
