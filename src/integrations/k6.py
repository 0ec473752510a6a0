"""Run the k6 load generator as a subprocess.

The pipeline only consumes the summary file k6 exports; this module just
starts the process and reports whether a usable summary was produced.
"""

import logging
import subprocess
from pathlib import Path

from src.config import get_settings

logger = logging.getLogger(__name__)

# k6 exits with 99 when its own thresholds are crossed; the summary is still valid.
K6_THRESHOLDS_CROSSED = 99


def k6_version() -> str | None:
    """Return the first line of ``k6 version``, or None if k6 is not installed."""
    try:
        completed = subprocess.run(
            [get_settings().k6_binary, "version"],
            capture_output=True,
            text=True,
            check=True,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    return completed.stdout.splitlines()[0] if completed.stdout else ""


def build_k6_command(profile: str, target_url: str, summary_path: Path, raw_path: Path) -> list[str]:
    settings = get_settings()
    return [
        settings.k6_binary,
        "run",
        "--out",
        f"json={raw_path}",
        f"--summary-export={summary_path}",
        "-e",
        f"TARGET_URL={target_url}",
        "-e",
        f"PROFILE={profile}",
        settings.k6_script_path,
    ]


def run_k6(
    profile: str,
    target_url: str,
    summary_path: Path,
    raw_path: Path,
    *,
    skip: bool = False,
    dry_run: bool = False,
) -> bool:
    """Execute k6 and report whether a summary is available.

    Args:
        profile: Workload profile passed to the k6 script.
        target_url: System under test.
        summary_path: Where k6 exports its end-of-test summary.
        raw_path: Where k6 streams raw JSON samples.
        skip: Reuse an existing summary instead of running k6.
        dry_run: Do nothing and report success.

    Returns:
        True if the run succeeded (or was skipped) and the summary file exists.
    """
    if dry_run:
        logger.info("Dry run mode, skipping k6 execution")
        return True
    if skip:
        logger.info("Skipping k6 (using existing results at %s)", summary_path)
        return summary_path.exists()

    summary_path.parent.mkdir(parents=True, exist_ok=True)
    command = build_k6_command(profile, target_url, summary_path, raw_path)
    logger.info("Running k6 load test (%s profile)", profile)
    try:
        completed = subprocess.run(command, check=False)
    except OSError as exc:
        logger.error("Failed to start k6 process: %s", exc)
        return False

    if completed.returncode == K6_THRESHOLDS_CROSSED:
        logger.warning("k6 finished with thresholds crossed, continuing validation")
    elif completed.returncode != 0:
        logger.error("k6 process exited with code %d", completed.returncode)
        return False
    return summary_path.exists()
