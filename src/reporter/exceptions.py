"""Exceptions for the reporter module."""


class ReporterError(Exception):
    """Base exception for reporter errors."""

    pass


class ArchiveError(ReporterError):
    """Raised when a finished run cannot be archived."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to archive run: {reason}")
