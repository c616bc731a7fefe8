"""Result reporting for pipeline runs.

Maps a finished run to the process exit code, renders a plain text
summary and optionally archives the run as JSON.
"""

from .exceptions import ArchiveError, ReporterError
from .reporter import GENERIC_FAILURE_EXIT_CODE, ResultReporter

__all__ = [
    "ResultReporter",
    "GENERIC_FAILURE_EXIT_CODE",
    "ReporterError",
    "ArchiveError",
]
