"""CLI entry point for the CI pipeline runner."""

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.config import ConfigError, PipelineConfig
from src.logging_config import configure_logging
from src.orchestrator import PipelineOrchestrator
from src.reporter import ResultReporter
from src.trigger import EventKind, TriggerEvent


def _read_event(args: argparse.Namespace) -> TriggerEvent:
    if args.event_file:
        data = json.loads(Path(args.event_file).read_text())
        return TriggerEvent.from_dict(data)
    return TriggerEvent.from_dict({"kind": args.event, "branch": args.branch})


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Run the CI pipeline for a repository event")
    parser.add_argument(
        "--event",
        choices=[kind.value for kind in EventKind],
        default=EventKind.PULL_REQUEST.value,
        help="Triggering event kind (default: pull_request)",
    )
    parser.add_argument(
        "--branch",
        default=None,
        help="Target branch of a push event",
    )
    parser.add_argument(
        "--event-file",
        metavar="PATH",
        help="JSON event record ({\"kind\": ..., \"branch\": ...}); overrides --event/--branch",
    )
    parser.add_argument(
        "--source",
        type=Path,
        default=Path.cwd(),
        help="Source tree to snapshot (default: current directory)",
    )
    parser.add_argument(
        "--pipeline-file",
        type=Path,
        default=None,
        help="JSON pipeline definition (overrides CI_PIPELINE_FILE)",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=None,
        help="Dependency cache directory (overrides CI_CACHE_DIR)",
    )
    parser.add_argument(
        "--keep-workspace",
        action="store_true",
        help="Leave the run workspace in place after the run",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (overrides LOG_LEVEL env var)",
    )
    args = parser.parse_args(argv)
    configure_logging(level_override=args.log_level)

    try:
        config = PipelineConfig.load(pipeline_file=args.pipeline_file)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    if args.cache_dir:
        config = dataclasses.replace(config, cache_dir=args.cache_dir)

    try:
        event = _read_event(args)
    except (OSError, ValueError, AttributeError) as e:
        print(f"ERROR: cannot read event: {e}", file=sys.stderr)
        return 2

    reporter = ResultReporter(archive_dir=config.archive_dir)
    orchestrator = PipelineOrchestrator(
        config=config,
        source_dir=args.source,
        reporter=reporter,
        keep_workspace=args.keep_workspace,
    )
    run = orchestrator.run(event)
    if run is None:
        print(f"Event '{event.kind}' (branch={event.branch}) does not trigger the pipeline")
        return 0

    print()
    print(reporter.format_summary(run))
    return run.exit_code


if __name__ == "__main__":
    sys.exit(main())
