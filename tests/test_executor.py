"""Unit tests for the StepExecutor and run models."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.executor import (
    PipelineRun,
    RunStateError,
    RunStatus,
    Step,
    StepExecutor,
    StepResult,
    default_steps,
    step_from_dict,
)
from src.trigger import TriggerEvent
from src.workspace import TIMEOUT_EXIT_CODE, CommandOutcome, CommandRunner, ExecutionContext


@pytest.fixture
def context(tmp_path):
    return ExecutionContext(workspace=tmp_path)


def _ok(context):
    return 0


def _steps(*codes):
    return [Step(name=f"step{i}", command=lambda ctx, code=code: code) for i, code in enumerate(codes)]


class TestDefaultSteps:
    def test_declared_order(self):
        names = [step.name for step in default_steps()]
        assert names == ["fetch", "format", "build", "lint", "build-tests", "test"]

    def test_lint_treats_warnings_as_errors(self):
        lint = {step.name: step for step in default_steps()}["lint"]
        assert lint.warnings_as_errors is True
        assert lint.command == ("cargo", "clippy", "--", "-D", "warnings")

    def test_only_lint_treats_warnings_as_errors(self):
        flagged = [step.name for step in default_steps() if step.warnings_as_errors]
        assert flagged == ["lint"]


class TestStepFromDict:
    def test_string_command_is_split(self):
        step = step_from_dict({"name": "format", "run": "cargo fmt -- --check"})
        assert step.command == ("cargo", "fmt", "--", "--check")
        assert step.warnings_as_errors is False

    def test_list_command_and_options(self):
        step = step_from_dict(
            {"name": "lint", "run": ["cargo", "clippy"], "warnings_as_errors": True, "timeout_seconds": 60}
        )
        assert step.command == ("cargo", "clippy")
        assert step.warnings_as_errors is True
        assert step.timeout_seconds == 60.0

    @pytest.mark.parametrize("data", [{"run": "x"}, {"name": "x"}, {"name": "x", "run": ""}])
    def test_incomplete_entries_rejected(self, data):
        with pytest.raises(ValueError):
            step_from_dict(data)


class TestPipelineRun:
    def test_new_run_is_pending(self):
        run = PipelineRun()
        assert run.status is RunStatus.PENDING
        assert run.success is False
        assert run.failed_step is None

    def test_cannot_record_after_failure(self):
        run = PipelineRun()
        run.add_step_result(StepResult(index=0, name="a", exit_code=2, success=False, duration_seconds=0.0))
        with pytest.raises(RunStateError):
            run.add_step_result(StepResult(index=1, name="b", exit_code=0, success=True, duration_seconds=0.0))

    def test_cannot_record_after_finish(self):
        run = PipelineRun()
        run.finish(RunStatus.SUCCEEDED)
        with pytest.raises(RunStateError):
            run.add_step_result(StepResult(index=0, name="a", exit_code=0, success=True, duration_seconds=0.0))

    def test_finish_requires_terminal_status(self):
        with pytest.raises(RunStateError):
            PipelineRun().finish(RunStatus.RUNNING)

    def test_roundtrip(self):
        run = PipelineRun(
            event=TriggerEvent(kind="push", branch="main"),
            started_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            fingerprint="v1-deps-abc",
            cache_hit=True,
        )
        run.add_step_result(StepResult(index=0, name="fetch", exit_code=0, success=True, duration_seconds=1.5))
        run.finish(RunStatus.SUCCEEDED)
        run.exit_code = 0

        restored = PipelineRun.from_dict(run.to_dict())
        assert restored == run


class TestStepExecutor:
    def test_all_steps_succeed(self, context):
        run = StepExecutor(steps=_steps(0, 0, 0)).run(context)

        assert run.status is RunStatus.SUCCEEDED
        assert [r.name for r in run.steps] == ["step0", "step1", "step2"]
        assert [r.index for r in run.steps] == [0, 1, 2]
        assert all(r.success for r in run.steps)
        assert run.finished_at is not None

    @pytest.mark.parametrize("failing", range(6))
    def test_results_are_prefix_complete(self, context, failing):
        codes = [0] * 6
        codes[failing] = 7
        run = StepExecutor(steps=_steps(*codes)).run(context)

        assert run.status is RunStatus.FAILED
        assert len(run.steps) == failing + 1
        assert all(r.success for r in run.steps[:-1])
        assert run.failed_step.index == failing
        assert run.failed_step.exit_code == 7

    def test_later_steps_are_not_invoked_after_failure(self, context):
        later = MagicMock(return_value=0)
        steps = [
            Step(name="fetch", command=_ok),
            Step(name="format", command=lambda ctx: 1),
            Step(name="build", command=later),
        ]
        StepExecutor(steps=steps).run(context)
        later.assert_not_called()

    def test_steps_share_context_state(self, context, tmp_path):
        def build(ctx):
            (ctx.workspace / "artifact.bin").write_text("built")
            ctx.artifacts["built"] = True
            return 0

        def test(ctx):
            assert ctx.artifacts["built"] is True
            return 0 if (ctx.workspace / "artifact.bin").exists() else 1

        run = StepExecutor(steps=[Step("build", build), Step("test", test)]).run(context)
        assert run.success is True

    def test_exception_in_step_is_a_failure(self, context):
        def boom(ctx):
            raise RuntimeError("tool crashed")

        run = StepExecutor(steps=[Step("fetch", boom), Step("build", _ok)]).run(context)

        assert run.status is RunStatus.FAILED
        assert len(run.steps) == 1
        assert run.steps[0].exit_code == 1
        assert run.steps[0].error == "tool crashed"

    def test_command_steps_use_runner(self, context):
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandOutcome(exit_code=0, output="ok")
        steps = [Step(name="build", command=("cargo", "build"))]

        run = StepExecutor(steps=steps, runner=runner, default_timeout=30).run(context)

        assert run.success is True
        runner.run.assert_called_once_with(("cargo", "build"), context, timeout=30)

    def test_step_timeout_overrides_default(self, context):
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandOutcome(exit_code=0)
        steps = [Step(name="test", command=("cargo", "test"), timeout_seconds=5)]

        StepExecutor(steps=steps, runner=runner, default_timeout=30).run(context)
        assert runner.run.call_args.kwargs["timeout"] == 5

    def test_timeout_is_a_failure(self, context):
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandOutcome(exit_code=TIMEOUT_EXIT_CODE, timed_out=True)
        run = StepExecutor(steps=[Step("test", ("cargo", "test"))], runner=runner).run(context)

        assert run.status is RunStatus.FAILED
        assert run.steps[0].timed_out is True
        assert run.steps[0].exit_code == TIMEOUT_EXIT_CODE

    def test_warnings_fail_warnings_as_errors_step(self, context):
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandOutcome(
            exit_code=0, output="   Checking demo\nwarning: unused variable: `x`\n"
        )
        steps = [Step("lint", ("cargo", "clippy"), warnings_as_errors=True), Step("test", _ok)]
        run = StepExecutor(steps=steps, runner=runner).run(context)

        assert run.status is RunStatus.FAILED
        assert len(run.steps) == 1
        assert run.steps[0].exit_code == 0
        assert "warnings" in run.steps[0].error

    def test_warnings_ignored_without_flag(self, context):
        runner = MagicMock(spec=CommandRunner)
        runner.run.return_value = CommandOutcome(exit_code=0, output="warning: unused import\n")
        run = StepExecutor(steps=[Step("build", ("cargo", "build"))], runner=runner).run(context)
        assert run.success is True

    def test_callable_may_return_outcome(self, context):
        step = Step("lint", lambda ctx: CommandOutcome(exit_code=0, output="warning[E1]: x"), True)
        run = StepExecutor(steps=[step]).run(context)
        assert run.success is False

    def test_output_tail_is_kept(self, context):
        output = "\n".join(f"line {i}" for i in range(200))
        step = Step("test", lambda ctx: CommandOutcome(exit_code=1, output=output))
        run = StepExecutor(steps=[step]).run(context)
        assert run.steps[0].output.splitlines()[-1] == "line 199"
        assert len(run.steps[0].output.splitlines()) == 50

    def test_records_on_given_run(self, context):
        run = PipelineRun(event=TriggerEvent(kind="pull_request"))
        returned = StepExecutor(steps=_steps(0)).run(context, run)
        assert returned is run
        assert run.event.kind == "pull_request"

    def test_duplicate_step_names_rejected(self):
        with pytest.raises(ValueError):
            StepExecutor(steps=[Step("a", _ok), Step("a", _ok)])

    def test_defaults_to_standard_steps(self):
        assert StepExecutor().steps == default_steps()
