"""Execution context and command running shared by provisioning and steps.

Public API:
    - ExecutionContext: Mutable workspace state passed through a run
    - CommandOutcome: Exit status and captured output of one command
    - CommandRunner: Interface for running external commands
    - SubprocessRunner: CommandRunner backed by subprocess
"""

from .models import CommandOutcome, ExecutionContext
from .runner import TIMEOUT_EXIT_CODE, CommandRunner, SubprocessRunner

__all__ = [
    "ExecutionContext",
    "CommandOutcome",
    "CommandRunner",
    "SubprocessRunner",
    "TIMEOUT_EXIT_CODE",
]
