"""
Recalculate facility focus areas for every active facility.

Usage:
    # Nightly run over every state
    recalculate-focus-areas

    # One state, more workers
    recalculate-focus-areas --state CA --workers 8

    # Single facility, re-using an earlier run's timestamp (overwrites that run)
    recalculate-focus-areas --facility 105001 --calculated-at 2024-06-01T02:00:00
"""
import argparse
import logging
import signal
import sys
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from facility_risk.core.config import settings
from facility_risk.core.logging_config import configure_logging
from facility_risk.focus_areas.batch import FocusAreasBatchRunner
from facility_risk.focus_areas.errors import BatchAbortedError, FocusAreasError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Batch recalculate facility focus areas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # All active facilities
  recalculate-focus-areas

  # Only California
  recalculate-focus-areas --state CA

  # Single facility
  recalculate-focus-areas --facility 105001
        """,
    )
    parser.add_argument("--state", type=str, help="Two-letter state code to limit the run")
    parser.add_argument("--facility", type=str, help="Federal provider number of a single facility")
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help=f"Worker threads (default: {settings.FOCUS_AREAS_BATCH_WORKERS})",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=f"Facilities per flush (default: {settings.FOCUS_AREAS_BATCH_SIZE})",
    )
    parser.add_argument(
        "--calculated-at",
        type=datetime.fromisoformat,
        default=None,
        help="Run timestamp (ISO 8601); re-using one overwrites that run",
    )
    return parser


def print_summary(report) -> None:
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"Calculated at:   {report.calculated_at.isoformat()}")
    print(f"Profile:         {report.profile}")
    print(f"Facilities:      {report.total}")
    print(f"✓ Processed:     {report.processed}")
    print(f"⊘ Skipped:       {report.skipped}")
    print(f"✗ Errors:        {report.errors}")
    print(f"Duration:        {report.duration_seconds}s")
    if report.cancelled:
        print("Run was cancelled before completion")
    if report.failed_facility_ids:
        shown = ", ".join(report.failed_facility_ids[:20])
        more = len(report.failed_facility_ids) - 20
        print(f"Failed:          {shown}" + (f" (+{more} more)" if more > 0 else ""))
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    if args.state:
        args.state = args.state.upper()

    try:
        runner = FocusAreasBatchRunner(workers=args.workers, batch_size=args.batch_size)
    except (FocusAreasError, ValueError) as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    # Ctrl-C / SIGTERM stop new work and flush what is already computed
    def _request_cancel(signum, frame):
        logger.warning(f"[FocusAreasBatch] Received signal {signum}, cancelling run")
        runner.cancel()

    signal.signal(signal.SIGINT, _request_cancel)
    signal.signal(signal.SIGTERM, _request_cancel)

    print(f"🔄 Recalculating focus areas (state={args.state or 'ALL'}, facility={args.facility or 'ALL'})")
    try:
        report = runner.run(
            state=args.state,
            facility_id=args.facility,
            calculated_at=args.calculated_at,
        )
    except BatchAbortedError as e:
        print(f"❌ Batch aborted: {e}")
        return 1

    print_summary(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
