"""Centralized logging configuration for the pipeline runner."""

import json
import logging
import os
from datetime import datetime, timezone

# Record attributes passed via ``extra=`` that are copied into JSON output
CONTEXT_FIELDS = ("step", "exit_code", "fingerprint")


class JSONFormatter(logging.Formatter):
    """JSON log formatter for CI log collectors.

    Produces one JSON object per line (NDJSON) with fields:
    timestamp, level, logger, message, any of CONTEXT_FIELDS set on the
    record, and optionally exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level_override: str | None = None) -> None:
    """Configure logging for a pipeline run from environment variables.

    Args:
        level_override: If set, takes precedence over LOG_LEVEL env var.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
            Defaults to INFO. DEBUG also logs every command line run.
        LOG_FORMAT: "json" for JSON lines, anything else for
            human-readable. Defaults to "text".
    """
    level_name = (level_override or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    log_format = os.getenv("LOG_FORMAT", "text").lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    # Step summaries go to stderr so stdout carries only the final report
    handler = logging.StreamHandler()
    handler.setLevel(level)

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root_logger.addHandler(handler)

    # python-dotenv warns on every unparsable .env line
    logging.getLogger("dotenv").setLevel(logging.WARNING)
