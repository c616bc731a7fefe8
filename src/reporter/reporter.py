"""ResultReporter - turns a finished run into an exit code and summary."""

import json
import logging
from pathlib import Path
from typing import Optional

from src.executor import PipelineRun, RunStatus

from .exceptions import ArchiveError, ReporterError

logger = logging.getLogger(__name__)

GENERIC_FAILURE_EXIT_CODE = 1

# Process exit statuses keep only the low 8 bits; codes outside this range
# (e.g. 256, or negative signal codes) would not survive as a failure
MIN_EXIT_CODE = 1
MAX_EXIT_CODE = 255


class ResultReporter:
    """Aggregates a run into one binary outcome.

    The exit code is the only externally observable signal: 0 when every
    step succeeded, otherwise the failing step's own exit code when it is
    non-zero and representable as a process status, else a generic
    non-zero code.
    """

    def __init__(self, archive_dir: Optional[Path] = None):
        """Initialize the reporter.

        Args:
            archive_dir: Directory to write finished runs to as JSON.
                Archiving is skipped when not set.
        """
        self._archive_dir = Path(archive_dir) if archive_dir else None

    @staticmethod
    def exit_code_for(run: PipelineRun) -> int:
        """Map a finished run to its process exit code.

        Raises:
            ReporterError: If the run has not reached a terminal status.
        """
        if not run.status.is_terminal:
            raise ReporterError(f"Cannot report a run that is still {run.status.value}")
        if run.status is RunStatus.SUCCEEDED:
            return 0

        failed = run.failed_step
        if failed is not None and MIN_EXIT_CODE <= failed.exit_code <= MAX_EXIT_CODE:
            return failed.exit_code
        return GENERIC_FAILURE_EXIT_CODE

    def format_summary(self, run: PipelineRun) -> str:
        """Format a run as plain text."""
        separator = "=" * 40
        lines = [separator, "  Pipeline Summary"]
        if run.event is not None:
            branch = f" ({run.event.branch})" if run.event.branch else ""
            lines.append(f"  Event: {run.event.kind}{branch}")
        if run.fingerprint:
            cache = "hit" if run.cache_hit else "miss"
            lines.append(f"  Cache: {run.fingerprint} ({cache})")
        lines.append(separator)

        if run.error:
            lines.append("  provision: FAILED")
            lines.append(f"    error: {run.error}")

        for step in run.steps:
            status = "OK" if step.success else "FAILED"
            lines.append(f"  {step.name}: {status} ({step.duration_seconds}s)")
            if not step.success:
                lines.append(f"    exit code: {step.exit_code}")
                if step.error:
                    lines.append(f"    error: {step.error}")

        overall = "SUCCESS" if run.success else "FAILURE"
        lines.append("")
        lines.append(f"Result: {overall}")
        return "\n".join(lines)

    def archive(self, run: PipelineRun) -> Path:
        """Write the run to the archive directory.

        Raises:
            ArchiveError: If no archive directory is configured or the
                file cannot be written.
        """
        if self._archive_dir is None:
            raise ArchiveError("no archive directory configured")

        stamp = run.started_at.strftime("%Y%m%dT%H%M%S%fZ")
        path = self._archive_dir / f"run-{stamp}.json"
        try:
            self._archive_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(run.to_dict(), indent=2))
        except OSError as e:
            raise ArchiveError(str(e)) from e
        return path

    def finalize(self, run: PipelineRun) -> int:
        """Assign the run's exit code and archive it.

        Archive failures are logged and never change the exit code.

        Returns:
            The process exit code for the run.
        """
        run.exit_code = self.exit_code_for(run)

        if self._archive_dir is not None:
            try:
                path = self.archive(run)
                logger.info("Archived run to %s", path)
            except ArchiveError as e:
                logger.warning("%s", e)

        failed = run.failed_step
        if run.success:
            logger.info("Pipeline succeeded")
        elif failed is not None:
            logger.error(
                "Pipeline failed at step '%s' with exit code %d",
                failed.name,
                run.exit_code,
                extra={"step": failed.name, "exit_code": run.exit_code},
            )
        else:
            logger.error("Pipeline failed before any step ran: %s", run.error)
        return run.exit_code
