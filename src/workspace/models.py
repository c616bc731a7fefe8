"""Data models for the execution context of a pipeline run."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass
class ExecutionContext:
    """Mutable state of one provisioned run.

    A single instance is passed by reference through provisioning, cache
    restore and every step, so filesystem side effects of earlier steps
    (e.g. build output) are visible to later ones.

    Attributes:
        workspace: Root of the isolated source snapshot.
        env: Environment variables for every command run in the workspace.
        revision: Source revision the snapshot was taken from (if known).
        toolchain_version: Version string reported by the installed toolchain.
        artifacts: Free-form state shared between steps.
        ephemeral: True when the workspace was created by the provisioner
            and should be removed after the run.
    """

    workspace: Path
    env: dict[str, str] = field(default_factory=dict)
    revision: Optional[str] = None
    toolchain_version: Optional[str] = None
    artifacts: dict[str, Any] = field(default_factory=dict)
    ephemeral: bool = False


@dataclass
class CommandOutcome:
    """Result of running one external command."""

    exit_code: int
    output: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out
