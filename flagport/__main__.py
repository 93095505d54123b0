import argparse
import logging
import signal
import sys

from .core.exceptions import FlagportError
from .core.migration import MigrationOrchestrator, MigrationSettings, PassState
from .core.migration.lanes import DEFAULT_LANE_ID, LaneRegistry

EXIT_DONE = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    """Main entry point for flagport."""
    parser = argparse.ArgumentParser(description="flagport - migrate Statsig SDK usage to LaunchDarkly")
    parser.add_argument(
        "project_root",
        nargs="?",
        help="Root directory of the JavaScript/TypeScript project to migrate"
    )
    parser.add_argument(
        "--lane",
        type=str,
        default=DEFAULT_LANE_ID,
        help=f"Migration lane to run (default: {DEFAULT_LANE_ID})"
    )
    parser.add_argument(
        "--list-lanes",
        action="store_true",
        help="List registered migration lanes and exit"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write the migration summary but leave source files untouched"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path of the migration-summary artifact (default: <project_root>/migration-summary.json)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    args = parser.parse_args(argv)

    if args.list_lanes:
        for lane in LaneRegistry.list_lanes():
            print(f"{lane['lane_id']}  {lane['display_name']}  v{lane['version']}")
            print(f"    from: {', '.join(lane['source_frameworks'])}")
            print(f"    to:   {', '.join(lane['target_frameworks'])}")
        return EXIT_DONE
    if args.project_root is None:
        parser.error("project_root is required")

    setup_logging(args.log_level)
    logger.info(f"Starting flagport - project: {args.project_root}")

    orchestrator = MigrationOrchestrator(
        args.project_root,
        settings=MigrationSettings.from_config(),
        lane_id=args.lane,
        dry_run=args.dry_run,
        output_path=args.output,
    )

    # First Ctrl-C cancels cooperatively; a second one interrupts
    def _on_interrupt(signum, frame):
        if orchestrator.cancelled:
            raise KeyboardInterrupt
        orchestrator.cancel()

    signal.signal(signal.SIGINT, _on_interrupt)

    try:
        result = orchestrator.run()
    except FlagportError as e:
        logger.error(f"Migration failed: {e}")
        return EXIT_FAILED
    except KeyboardInterrupt:
        logger.error("Migration interrupted")
        return EXIT_CANCELLED

    summary = result.summary.summary
    logger.info(
        f"{summary.successfully_migrated} migrated, {summary.blocked_by_experiments} blocked by experiments, "
        f"{summary.failed} failed (of {summary.total_items}); summary at {result.artifact_path}"
    )
    for step in result.summary.next_steps:
        logger.info(f"Next: {step}")

    if result.state is PassState.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_DONE


if __name__ == "__main__":
    sys.exit(main())
