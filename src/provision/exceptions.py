"""Exceptions for the provision module."""


class ProvisionError(Exception):
    """Base exception for failures building the execution context.

    A ProvisionError terminates the run before any step executes.
    """

    pass


class CheckoutError(ProvisionError):
    """Raised when the source snapshot cannot be taken."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to snapshot source tree '{source}': {reason}")


class ToolchainInstallError(ProvisionError):
    """Raised when a toolchain installation command fails."""

    def __init__(self, command: list[str], exit_code: int, output: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            f"Toolchain command {' '.join(command)!r} failed with exit code {exit_code}"
        )
