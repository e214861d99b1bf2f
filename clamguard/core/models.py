"""Data models for ClamGuard."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Optional


class ScanStatus(Enum):
    """Outcome of a scan run, derived from the scanner exit status."""

    CLEAN = "clean"
    INFECTED = "infected"
    ERROR = "error"

    @classmethod
    def from_exit_code(cls, exit_code: int) -> "ScanStatus":
        if exit_code == 0:
            return cls.CLEAN
        if exit_code == 1:
            return cls.INFECTED
        return cls.ERROR

    @property
    def symbol(self) -> str:
        """Symbolic indicator used in reports."""
        return {
            ScanStatus.CLEAN: "[OK]",
            ScanStatus.INFECTED: "[!!]",
            ScanStatus.ERROR: "[??]",
        }[self]


class RiskLevel(Enum):
    """Risk classification used to select a retention period."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Detection:
    """A single `<path>: <label> FOUND` line from the scanner."""

    file_path: str
    label: str


@dataclass
class ScanCounts:
    """Summary counts parsed from scanner output."""

    scanned_files: int = 0
    infected_files: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True if at least one count could not be parsed."""
        return bool(self.warnings)


@dataclass(frozen=True)
class ScanOutcome:
    """What the scanner subprocess produced."""

    exit_code: int
    duration_seconds: float
    output_path: Path
    command: tuple[str, ...]

    @property
    def status(self) -> ScanStatus:
        return ScanStatus.from_exit_code(self.exit_code)


@dataclass(frozen=True)
class ScanRun:
    """A finalized scan execution.

    Built once the subprocess has exited and never mutated afterwards.
    """

    run_id: str
    started_at: datetime
    finished_at: datetime
    targets: tuple[Path, ...]
    exit_code: int
    scanned_files: int
    infected_files: int
    detections: tuple[Detection, ...] = ()
    engine_version: Optional[str] = None
    parse_warnings: tuple[str, ...] = ()

    @property
    def status(self) -> ScanStatus:
        return ScanStatus.from_exit_code(self.exit_code)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def scan_rate(self) -> Optional[float]:
        """Files scanned per second, or None when duration is zero."""
        duration = self.duration_seconds
        if duration <= 0:
            return None
        return self.scanned_files / duration


@dataclass
class QuarantineEntry:
    """A file archived in the quarantine tree."""

    path: Path
    original_name: str
    quarantined_at: datetime
    size_bytes: int
    risk_level: RiskLevel
    retention_days: int  # 0 = never expire

    @property
    def retention_deadline(self) -> Optional[datetime]:
        """When the entry expires, or None if it never does."""
        if self.retention_days <= 0:
            return None
        return self.quarantined_at + timedelta(days=self.retention_days)

    def age_days(self, now: Optional[datetime] = None) -> int:
        """Whole days since the entry was quarantined."""
        current = now or datetime.now()
        return (current - self.quarantined_at).days

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the entry's age in days exceeds its retention."""
        if self.retention_days <= 0:
            return False
        return self.age_days(now) > self.retention_days


@dataclass
class QuarantineResult:
    """Result of archiving the holding area."""

    archive_dir: Optional[Path] = None
    archived: list[QuarantineEntry] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def archived_count(self) -> int:
        return len(self.archived)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


@dataclass
class SweepResult:
    """Result of a retention sweep."""

    examined: int = 0
    expired: list[Path] = field(default_factory=list)
    evicted: list[Path] = field(default_factory=list)  # Removed by the size cap
    failed: list[tuple[Path, str]] = field(default_factory=list)
    bytes_freed: int = 0

    @property
    def removed_count(self) -> int:
        return len(self.expired) + len(self.evicted)
