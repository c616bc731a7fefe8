"""Command runner interfaces for invoking external tools."""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from .models import CommandOutcome, ExecutionContext

logger = logging.getLogger(__name__)

# Exit status reported for a command killed on timeout, as coreutils timeout(1) does
TIMEOUT_EXIT_CODE = 124

# Exit status reported when the executable cannot be found, as a shell would
NOT_FOUND_EXIT_CODE = 127


class CommandRunner(ABC):
    """Interface for running an external command inside a workspace.

    Implementations:
    - SubprocessRunner: Runs real processes
    - Test doubles can return canned CommandOutcomes
    """

    @abstractmethod
    def run(
        self,
        command: Sequence[str],
        context: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> CommandOutcome:
        """Run a command and wait for it to finish.

        Args:
            command: Argument vector; the first item is the executable.
            context: Execution context providing cwd and environment.
            timeout: Seconds before the command is killed. None waits forever.

        Returns:
            CommandOutcome with exit status and combined output.
        """
        pass


class SubprocessRunner(CommandRunner):
    """Runs commands as blocking child processes.

    stdout and stderr are merged so tool warnings appear in the same
    captured output that warnings-as-errors checks inspect.
    """

    def run(
        self,
        command: Sequence[str],
        context: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> CommandOutcome:
        argv = list(command)
        logger.debug("Running %s in %s", argv, context.workspace)
        try:
            completed = subprocess.run(
                argv,
                cwd=context.workspace,
                env=context.env or None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode(errors="replace")
            logger.warning("Command %s timed out after %ss", argv, timeout)
            return CommandOutcome(
                exit_code=TIMEOUT_EXIT_CODE, output=output, timed_out=True
            )
        except FileNotFoundError as e:
            logger.error("Executable not found for %s", argv)
            return CommandOutcome(exit_code=NOT_FOUND_EXIT_CODE, output=str(e))

        return CommandOutcome(exit_code=completed.returncode, output=completed.stdout or "")
