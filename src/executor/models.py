"""Data models for steps and pipeline runs."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union

from src.trigger import TriggerEvent
from src.workspace import CommandOutcome, ExecutionContext

from .exceptions import RunStateError

# A step command is either an argument vector for an external tool or a
# callable invoked with the shared context.
StepCommand = Union[
    Sequence[str],
    Callable[[ExecutionContext], Union[int, CommandOutcome]],
]


class RunStatus(Enum):
    """Lifecycle status of a pipeline run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.SUCCEEDED, RunStatus.FAILED)


@dataclass(frozen=True)
class Step:
    """An ordered, named unit of work.

    Attributes:
        name: Step name, unique within a pipeline.
        command: Argument vector or callable producing an exit status.
        warnings_as_errors: Fail the step if its output reports warnings,
            even when the exit status is zero.
        timeout_seconds: Per-step timeout overriding the executor default.
    """

    name: str
    command: StepCommand
    warnings_as_errors: bool = False
    timeout_seconds: Optional[float] = None

    @property
    def display_command(self) -> str:
        if callable(self.command):
            return getattr(self.command, "__name__", repr(self.command))
        return " ".join(self.command)


@dataclass
class StepResult:
    """Result of a single step within one run."""

    index: int
    name: str
    exit_code: int
    success: bool
    duration_seconds: float
    output: str = ""
    error: Optional[str] = None
    timed_out: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "index": self.index,
            "name": self.name,
            "exit_code": self.exit_code,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "output": self.output,
            "error": self.error,
            "timed_out": self.timed_out,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepResult":
        """Deserialize from dictionary."""
        return cls(
            index=data["index"],
            name=data["name"],
            exit_code=data["exit_code"],
            success=data["success"],
            duration_seconds=data.get("duration_seconds", 0.0),
            output=data.get("output", ""),
            error=data.get("error"),
            timed_out=data.get("timed_out", False),
        )


@dataclass
class PipelineRun:
    """One execution instance of the pipeline.

    Attributes:
        event: The event that admitted this run (None for ad-hoc runs).
        steps: Step results in execution order. Prefix-complete: every
            result but the last is a success.
        status: Current lifecycle status.
        started_at: When the run was created.
        finished_at: When the run reached a terminal status.
        error: Provisioning failure message, if the run never reached steps.
        fingerprint: Dependency cache key used by this run.
        cache_hit: Whether the cache was restored (None if not attempted).
        exit_code: Process exit code assigned when the run is finalized.
    """

    event: Optional[TriggerEvent] = None
    steps: list[StepResult] = field(default_factory=list)
    status: RunStatus = RunStatus.PENDING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    fingerprint: Optional[str] = None
    cache_hit: Optional[bool] = None
    exit_code: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    @property
    def failed_step(self) -> Optional[StepResult]:
        """The step that halted the run, if any."""
        if self.steps and not self.steps[-1].success:
            return self.steps[-1]
        return None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return round((self.finished_at - self.started_at).total_seconds(), 2)

    def add_step_result(self, result: StepResult) -> None:
        """Append a step result, enforcing prefix-completeness."""
        if self.status.is_terminal:
            raise RunStateError(
                f"Run already {self.status.value}; cannot record '{result.name}'",
                step_name=result.name,
            )
        if self.failed_step is not None:
            raise RunStateError(
                f"Step '{self.failed_step.name}' failed; cannot record '{result.name}'",
                step_name=result.name,
            )
        self.steps.append(result)

    def finish(self, status: RunStatus, error: Optional[str] = None) -> None:
        """Move the run to a terminal status."""
        if not status.is_terminal:
            raise RunStateError(f"'{status.value}' is not a terminal status")
        self.status = status
        if error is not None:
            self.error = error
        self.finished_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for archiving."""
        return {
            "event": self.event.to_dict() if self.event else None,
            "steps": [s.to_dict() for s in self.steps],
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
            "fingerprint": self.fingerprint,
            "cache_hit": self.cache_hit,
            "exit_code": self.exit_code,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PipelineRun":
        """Deserialize from dictionary."""
        finished_at = None
        if data.get("finished_at"):
            finished_at = datetime.fromisoformat(data["finished_at"])
        return cls(
            event=TriggerEvent.from_dict(data["event"]) if data.get("event") else None,
            steps=[StepResult.from_dict(s) for s in data.get("steps", [])],
            status=RunStatus(data.get("status", RunStatus.PENDING.value)),
            started_at=datetime.fromisoformat(data["started_at"]),
            finished_at=finished_at,
            error=data.get("error"),
            fingerprint=data.get("fingerprint"),
            cache_hit=data.get("cache_hit"),
            exit_code=data.get("exit_code"),
        )
