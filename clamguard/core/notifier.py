"""Desktop notifications for ClamGuard (best effort)."""

import logging
import subprocess

from clamguard.config.schema import NotificationConfig
from clamguard.core.models import ScanRun, ScanStatus
from clamguard.utils.deps import find_command

logger = logging.getLogger(__name__)


def build_message(run: ScanRun) -> tuple[str, str, str]:
    """Return (urgency, title, body) for a finished run."""
    if run.status is ScanStatus.INFECTED:
        return (
            "critical",
            "ClamGuard: threats found",
            f"{run.infected_files} infected file(s) out of {run.scanned_files} scanned",
        )
    if run.status is ScanStatus.ERROR:
        return ("normal", "ClamGuard: scan error", f"Scanner exited with status {run.exit_code}")
    return ("low", "ClamGuard: no threats", f"{run.scanned_files} file(s) scanned")


def notify(run: ScanRun, config: NotificationConfig) -> bool:
    """
    Send a desktop notification for the run if enabled.

    Clean runs only notify when ``on_clean`` is set. Failures are logged at
    debug level and never raise.

    Returns:
        True if a notification was sent
    """
    if not config.enabled:
        return False
    if run.status is ScanStatus.CLEAN and not config.on_clean:
        return False

    executable = find_command(config.command)
    if executable is None:
        logger.debug(f"Notification command not found: {config.command}")
        return False

    urgency, title, body = build_message(run)
    try:
        subprocess.run(
            [executable, "-u", urgency, title, body],
            check=True,
            capture_output=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Notification failed: {e}")
        return False
    return True
