"""Error taxonomy and process exit codes for ClamGuard."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes."""

    CLEAN = 0
    INFECTED = 1
    SCAN_ERROR = 2
    MISSING_DEPENDENCY = 10
    LOW_DISK_SPACE = 20
    PERMISSION_ERROR = 30
    QUARANTINE_ERROR = 40
    INTERRUPTED = 130


class ClamGuardError(Exception):
    """Base class for fatal ClamGuard errors.

    Every subclass carries the exit code the CLI terminates with.
    """

    exit_code: ExitCode = ExitCode.SCAN_ERROR


class ConfigError(ClamGuardError):
    """Configuration error (malformed option or unreadable config file)."""

    exit_code = ExitCode.SCAN_ERROR


class ScanError(ClamGuardError):
    """Scanner could not be launched or its run failed."""

    exit_code = ExitCode.SCAN_ERROR


class ScanInterrupted(ClamGuardError):
    """The run was cancelled by a signal."""

    exit_code = ExitCode.INTERRUPTED


class DependencyError(ClamGuardError):
    """A required external tool is missing."""

    exit_code = ExitCode.MISSING_DEPENDENCY


class LowDiskSpaceError(ClamGuardError):
    """Not enough free space to run safely."""

    exit_code = ExitCode.LOW_DISK_SPACE


class PermissionCheckError(ClamGuardError):
    """A security directory cannot be created or written."""

    exit_code = ExitCode.PERMISSION_ERROR


class QuarantineError(ClamGuardError):
    """The quarantine holding or archive area cannot be prepared."""

    exit_code = ExitCode.QUARANTINE_ERROR
