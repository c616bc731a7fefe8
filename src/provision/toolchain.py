"""Toolchain installers."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.workspace import CommandRunner, ExecutionContext, SubprocessRunner

from .exceptions import ToolchainInstallError
from .models import ToolchainSpec

logger = logging.getLogger(__name__)


class ToolchainInstaller(ABC):
    """Interface for installing a toolchain into an execution context."""

    @abstractmethod
    def install(self, spec: ToolchainSpec, context: ExecutionContext) -> Optional[str]:
        """Install the toolchain described by ``spec``.

        Args:
            spec: Declared channel, profile and components.
            context: Context whose workspace the toolchain applies to.

        Returns:
            Version string of the installed toolchain, if it can be determined.

        Raises:
            ToolchainInstallError: If any installation command fails.
        """
        pass


class RustupToolchainInstaller(ToolchainInstaller):
    """Installs a Rust toolchain with rustup.

    Runs the equivalent of:
        rustup toolchain install <channel> --profile <profile> --component <c>...
        rustup override set <channel>          # when spec.override
        rustc --version
    """

    def __init__(self, runner: Optional[CommandRunner] = None, timeout: Optional[float] = None):
        self._runner = runner or SubprocessRunner()
        self._timeout = timeout

    @staticmethod
    def install_commands(spec: ToolchainSpec) -> list[list[str]]:
        install = ["rustup", "toolchain", "install", spec.channel, "--profile", spec.profile]
        for component in spec.components:
            install.extend(["--component", component])
        commands = [install]
        if spec.override:
            commands.append(["rustup", "override", "set", spec.channel])
        return commands

    def _run(self, command: list[str], context: ExecutionContext) -> str:
        outcome = self._runner.run(command, context, timeout=self._timeout)
        if not outcome.success:
            raise ToolchainInstallError(command, outcome.exit_code, outcome.output)
        return outcome.output

    def install(self, spec: ToolchainSpec, context: ExecutionContext) -> Optional[str]:
        for command in self.install_commands(spec):
            self._run(command, context)

        version = self._run(["rustc", "--version"], context).strip() or None
        logger.info("Installed toolchain %s (%s)", spec.channel, version)
        return version
