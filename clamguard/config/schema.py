"""Configuration schema definitions for ClamGuard."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from clamguard.utils.constants import (
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_RETENTION_DAYS,
    DEFAULT_SCANNER,
    LOG_FILENAME,
    SYSTEM_EXCLUDE_DIRS,
)


def _default_state_dir() -> Path:
    return Path.home() / ".local" / "share" / "clamguard"


@dataclass
class GeneralConfig:
    """General configuration settings."""

    default_targets: list[Path] = field(default_factory=lambda: [Path.home()])
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL


@dataclass
class PathsConfig:
    """Path configuration settings."""

    quarantine_dir: Path = field(default_factory=lambda: _default_state_dir() / "quarantine")
    log_dir: Path = field(default_factory=lambda: _default_state_dir() / "logs")
    temp_dir: Optional[Path] = None  # None = system temp directory


@dataclass
class ScanConfig:
    """Scanner invocation settings."""

    scanner_path: str = DEFAULT_SCANNER
    max_file_size_mb: int = 100
    max_scan_size_mb: int = 400
    exclude_patterns: list[str] = field(
        default_factory=lambda: [
            r"\.git/objects/",
            r"/node_modules/",
        ]
    )
    system_exclude_dirs: list[str] = field(default_factory=lambda: list(SYSTEM_EXCLUDE_DIRS))
    quick_targets: list[Path] = field(
        default_factory=lambda: [
            Path.home() / "Downloads",
            Path.home() / "Desktop",
            Path("/tmp"),
        ]
    )
    extra_args: list[str] = field(default_factory=list)


@dataclass
class QuarantineConfig:
    """Quarantine and retention settings."""

    enabled: bool = True
    risk_level: str = "medium"  # Single policy row applied to every entry
    retention_days: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_RETENTION_DAYS)
    )
    max_size_mb: int = 1024  # 0 = no aggregate cap


@dataclass
class ReportConfig:
    """Report generation settings."""

    enabled: bool = True
    max_detections_shown: int = 20  # Terminal summary only; the report lists all


@dataclass
class NotificationConfig:
    """Desktop notification settings."""

    enabled: bool = False
    on_clean: bool = False
    command: str = "notify-send"


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: str = "info"
    color_output: bool = True
    log_to_file: bool = True


@dataclass
class DiskConfig:
    """Pre-flight disk space settings."""

    min_free_space_mb: int = 500  # 0 = skip the check


@dataclass
class ClamGuardConfig:
    """Root configuration object for ClamGuard."""

    version: str = "1.0"
    general: GeneralConfig = field(default_factory=GeneralConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    quarantine: QuarantineConfig = field(default_factory=QuarantineConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    disk: DiskConfig = field(default_factory=DiskConfig)

    @property
    def active_retention_days(self) -> int:
        """Retention days of the configured risk level (0 = never expire)."""
        return self.quarantine.retention_days[self.quarantine.risk_level]

    @property
    def log_file(self) -> Path:
        """Path of the append-only log file."""
        return self.paths.log_dir / LOG_FILENAME
