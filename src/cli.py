"""Command-line entry point for a load-test SLA validation run.

Usage:
    python -m src.cli --profile stress
    python -m src.cli --skip-k6            # re-validate the last k6 summary
    python -m src.cli --summary path.json  # validate an exported summary
    python -m src.cli --dry-run            # check configuration only

Exit code 0 means every SLA check passed; 1 means an SLA violation or a
pipeline failure.
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

from src.config import get_settings
from src.observability.metrics import write_textfile
from src.pipeline import run_pipeline
from src.sla.errors import SlaError

logger = logging.getLogger(__name__)


def _print_banner(profile: str, target_url: str) -> None:
    print("=" * 60)
    print("Performance & Observability Validation")
    print("=" * 60)
    print(f"Target URL:       {target_url}")
    print(f"Workload profile: {profile.upper()}")
    print(f"Started at:       {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate k6 load-test results against SLA thresholds")
    parser.add_argument("--profile", "-p", default="default", help="Workload profile (default: default)")
    parser.add_argument("--skip-k6", action="store_true", help="Reuse the existing k6 summary")
    parser.add_argument("--dry-run", action="store_true", help="Verify configuration without running k6")
    parser.add_argument("--summary", type=Path, default=None, help="Validate this k6 summary file")
    return parser


async def _run(args: argparse.Namespace) -> int:
    outcome = await run_pipeline(
        args.profile,
        skip_k6=args.skip_k6,
        dry_run=args.dry_run,
        summary_path=args.summary,
    )
    if outcome is None:
        return 0

    passed = sum(1 for r in outcome.results if r.passed)
    print("=" * 60)
    print(f"Profile:  {outcome.profile}")
    print(f"Severity: {outcome.trends.severity.level.value}")
    print(f"Results:  {passed}/{len(outcome.results)} checks passed")
    print("=" * 60)

    if not outcome.passed:
        print("SLA violation detected.", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Parse args, run the pipeline and exit with its status."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s: %(message)s",
    )
    _print_banner(args.profile, settings.target_url)

    try:
        exit_code = asyncio.run(_run(args))
    except SlaError as e:
        print(f"Validation failed: {e}", file=sys.stderr)
        exit_code = 1

    if settings.metrics_textfile:
        write_textfile(settings.metrics_textfile)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
