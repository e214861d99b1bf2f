"""Plain-text scan report generation for ClamGuard."""

import getpass
import logging
import platform
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from clamguard.core.models import QuarantineResult, ScanRun, ScanStatus, SweepResult
from clamguard.utils.constants import REPORT_FILENAME_FORMAT, REPORT_TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)

RULE = "=" * 60
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class EnvironmentInfo:
    """Environment fingerprint recorded in every report."""

    user: str
    host: str
    os_name: str
    python_version: str
    scanner_version: Optional[str] = None


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def collect_environment(scanner_version: Optional[str] = None) -> EnvironmentInfo:
    """Gather user, host, OS and scanner version."""
    return EnvironmentInfo(
        user=_current_user(),
        host=socket.gethostname(),
        os_name=platform.platform(),
        python_version=platform.python_version(),
        scanner_version=scanner_version,
    )


@dataclass
class QuarantineSummary:
    """Quarantine details shown when infections were found."""

    location: Path
    risk_level: str
    retention_days: dict[str, int] = field(default_factory=dict)
    result: Optional[QuarantineResult] = None
    sweep: Optional[SweepResult] = None
    leftover_dir: Optional[Path] = None

    @property
    def active_retention_days(self) -> int:
        return self.retention_days.get(self.risk_level, 0)


def describe_retention(days: int) -> str:
    """Human-readable retention period (0 = never expire)."""
    return "never expires" if days <= 0 else f"{days} days"


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


class ReportGenerator:
    """Writes the timestamped plain-text report for a run."""

    def __init__(self, report_dir: Path):
        self.report_dir = Path(report_dir)

    def report_path(self, run: ScanRun, attempt: int = 0) -> Path:
        timestamp = run.started_at.strftime(REPORT_TIMESTAMP_FORMAT)
        if attempt:
            timestamp = f"{timestamp}_{attempt}"
        return self.report_dir / REPORT_FILENAME_FORMAT.format(timestamp=timestamp)

    def render(
        self,
        run: ScanRun,
        environment: EnvironmentInfo,
        quarantine: Optional[QuarantineSummary] = None,
    ) -> str:
        """
        Render the report text.

        Args:
            run: Finalized scan run
            environment: Environment fingerprint
            quarantine: Quarantine details (shown only when infections were found)

        Returns:
            Report as a string
        """
        status = run.status
        lines = [
            RULE,
            " ClamGuard Scan Report",
            RULE,
            f"Run ID:         {run.run_id}",
            f"Status:         {status.symbol} {status.value.upper()}",
            f"Started:        {run.started_at.strftime(TIME_FORMAT)}",
            f"Finished:       {run.finished_at.strftime(TIME_FORMAT)}",
            f"Duration:       {format_duration(run.duration_seconds)}",
            f"User:           {environment.user}@{environment.host}",
            f"Exit status:    {run.exit_code}",
            "",
            "Targets:",
        ]
        lines.extend(f"  - {target}" for target in run.targets)

        lines += [
            "",
            "Results:",
            f"  Scanned files:  {run.scanned_files}",
            f"  Infected files: {run.infected_files}",
        ]
        rate = run.scan_rate
        if rate is not None:
            lines.append(f"  Scan rate:      {rate:.1f} files/s")

        lines += [
            "",
            "Environment:",
            f"  OS:             {environment.os_name}",
            f"  Python:         {environment.python_version}",
            f"  Scanner:        {environment.scanner_version or 'unknown'}",
        ]

        if status is ScanStatus.INFECTED or run.detections:
            lines += ["", f"Detections ({len(run.detections)}):"]
            if run.detections:
                lines.extend(f"  {d.file_path}: {d.label}" for d in run.detections)
            else:
                lines.append("  (no detection lines found in scanner output)")

            if quarantine is not None:
                lines += [
                    "",
                    "Quarantine:",
                    f"  Location:       {quarantine.location}",
                ]
                if quarantine.result is not None:
                    lines.append(f"  Archived:       {quarantine.result.archived_count}")
                    if quarantine.result.failed_count:
                        lines.append(f"  Failed moves:   {quarantine.result.failed_count}")
                if quarantine.leftover_dir is not None:
                    lines.append(f"  Unarchived in:  {quarantine.leftover_dir}")
                lines.append(
                    f"  Retention:      {quarantine.risk_level} - "
                    f"{describe_retention(quarantine.active_retention_days)}"
                )
                policy = ", ".join(
                    f"{level}={describe_retention(days)}"
                    for level, days in quarantine.retention_days.items()
                )
                lines.append(f"  Policy table:   {policy}")
                if quarantine.sweep is not None and quarantine.sweep.removed_count:
                    lines.append(f"  Expired now:    {quarantine.sweep.removed_count}")
            else:
                lines += ["", "Quarantine:     disabled (files left in place)"]

        if run.parse_warnings:
            lines += ["", "Warnings:"]
            lines.extend(f"  - {warning}" for warning in run.parse_warnings)

        lines += ["", RULE, ""]
        return "\n".join(lines)

    def write(
        self,
        run: ScanRun,
        environment: EnvironmentInfo,
        quarantine: Optional[QuarantineSummary] = None,
    ) -> Optional[Path]:
        """
        Write the report to ``<report_dir>/scan_report_<timestamp>.txt``.

        An existing report is never overwritten; runs started in the same
        second get a ``_<n>`` suffix. A write failure is logged and returns
        None; it never changes the outcome of the run.
        """
        text = self.render(run, environment, quarantine)
        path = self.report_path(run)
        try:
            self.report_dir.mkdir(parents=True, exist_ok=True)
            attempt = 0
            while True:
                try:
                    with open(path, "x", encoding="utf-8") as f:
                        f.write(text)
                    break
                except FileExistsError:
                    attempt += 1
                    path = self.report_path(run, attempt)
        except OSError as e:
            logger.error(f"Cannot write report {path}: {e}")
            return None

        logger.info(f"Report written to: {path}")
        return path
