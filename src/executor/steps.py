"""Step definitions for the default pipeline."""

import shlex
from typing import Any

from .models import Step


def default_steps() -> tuple[Step, ...]:
    """The fixed verification sequence, in execution order.

    Later steps rely on artifacts produced by earlier ones, so the order is
    part of the contract and is not rearranged for cost.
    """
    return (
        Step(name="fetch", command=("cargo", "fetch")),
        Step(name="format", command=("cargo", "fmt", "--", "--check")),
        Step(name="build", command=("cargo", "build")),
        Step(
            name="lint",
            command=("cargo", "clippy", "--", "-D", "warnings"),
            warnings_as_errors=True,
        ),
        Step(name="build-tests", command=("cargo", "test", "--no-run")),
        Step(name="test", command=("cargo", "test")),
    )


def step_from_dict(data: dict[str, Any]) -> Step:
    """Build a Step from a pipeline definition entry.

    ``run`` may be a shell-style string or a list of arguments.

    Raises:
        ValueError: If the entry has no name or no command.
    """
    name = data.get("name")
    run = data.get("run")
    if not name:
        raise ValueError("step is missing 'name'")
    if not run:
        raise ValueError(f"step '{name}' is missing 'run'")

    command = tuple(shlex.split(run)) if isinstance(run, str) else tuple(str(a) for a in run)
    timeout = data.get("timeout_seconds")
    return Step(
        name=str(name),
        command=command,
        warnings_as_errors=bool(data.get("warnings_as_errors", False)),
        timeout_seconds=float(timeout) if timeout is not None else None,
    )
