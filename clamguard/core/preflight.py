"""Pre-flight checks run before the scanner is started."""

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from clamguard.config.schema import ClamGuardConfig
from clamguard.core.errors import (
    DependencyError,
    LowDiskSpaceError,
    PermissionCheckError,
)
from clamguard.utils.constants import QUARANTINE_DIR_MODE
from clamguard.utils.deps import find_command
from clamguard.utils.path_utils import format_bytes

logger = logging.getLogger(__name__)


@dataclass
class PreflightReport:
    """What the pre-flight checks found."""

    scanner_executable: str = ""
    free_bytes: int = 0
    checked_dirs: list[Path] = field(default_factory=list)


def check_dependencies(scanner_path: str) -> str:
    """
    Ensure the scanner binary can be executed.

    Returns:
        Resolved executable path

    Raises:
        DependencyError: If the scanner is not installed
    """
    executable = find_command(scanner_path)
    if executable is None:
        raise DependencyError(
            f"Scanner '{scanner_path}' not found. Install ClamAV or set scan.scanner_path."
        )
    return executable


def check_disk_space(path: Path, required_bytes: int) -> tuple[bool, int]:
    """
    Check if sufficient disk space is available.

    Args:
        path: Path to check (the volume containing it is used)
        required_bytes: Required space in bytes

    Returns:
        Tuple of (has_space: bool, available_bytes: int)
    """
    try:
        probe = path
        while not probe.exists() and probe != probe.parent:
            probe = probe.parent
        available = shutil.disk_usage(probe).free
    except OSError as e:
        logger.warning(f"Cannot check disk space for {path}: {e}")
        return True, 0  # Assume OK if we can't check

    return available >= required_bytes, available


def ensure_writable_dir(path: Path, label: str, mode: int = 0o755) -> Path:
    """
    Create a directory if needed and verify it is writable.

    Raises:
        PermissionCheckError: If it cannot be created or written
    """
    try:
        path.mkdir(parents=True, exist_ok=True, mode=mode)
    except OSError as e:
        raise PermissionCheckError(f"Cannot create {label} {path}: {e}")

    if not os.access(path, os.W_OK | os.X_OK):
        raise PermissionCheckError(f"{label.capitalize()} is not writable: {path}")
    return path


def run_preflight(config: ClamGuardConfig, quarantine_enabled: bool = True) -> PreflightReport:
    """
    Run every pre-flight check in order: dependencies, permissions, disk.

    Raises:
        DependencyError, PermissionCheckError, LowDiskSpaceError
    """
    report = PreflightReport()
    report.scanner_executable = check_dependencies(config.scan.scanner_path)

    report.checked_dirs.append(ensure_writable_dir(config.paths.log_dir, "log directory"))
    if quarantine_enabled:
        report.checked_dirs.append(
            ensure_writable_dir(
                config.paths.quarantine_dir, "quarantine directory", mode=QUARANTINE_DIR_MODE
            )
        )

    required = config.disk.min_free_space_mb * 1024 * 1024
    if required > 0:
        probe = config.paths.quarantine_dir if quarantine_enabled else config.paths.log_dir
        has_space, available = check_disk_space(probe, required)
        report.free_bytes = available
        if not has_space:
            raise LowDiskSpaceError(
                f"Only {format_bytes(available)} free at {probe}; "
                f"{config.disk.min_free_space_mb} MB required"
            )

    logger.debug(f"Pre-flight checks passed (scanner: {report.scanner_executable})")
    return report
