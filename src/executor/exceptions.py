"""Exceptions for the executor module."""


class RunStateError(Exception):
    """Raised when a pipeline run is updated in an invalid way."""

    def __init__(self, message: str, step_name: str | None = None):
        self.step_name = step_name
        super().__init__(message)
