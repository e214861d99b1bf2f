"""Constants for ClamGuard."""

# Version
VERSION = "0.4.0"

# Scanner binary looked up on PATH when not configured
DEFAULT_SCANNER = "clamscan"

# Summary labels emitted by the scanner
SCANNED_FILES_LABEL = "Scanned files:"
INFECTED_FILES_LABEL = "Infected files:"
DETECTION_SUFFIX = "FOUND"

# Pseudo-filesystems never handed to the scanner
SYSTEM_EXCLUDE_DIRS = ["/proc", "/sys", "/dev", "/run"]

# Risk levels and their default retention (days, 0 = never expire)
RISK_LEVELS = ["low", "medium", "high", "critical"]
DEFAULT_RETENTION_DAYS = {
    "low": 7,
    "medium": 30,
    "high": 90,
    "critical": 0,
}

# Quarantine layout
ARCHIVE_DIR_FORMAT = "%Y-%m"
ARCHIVE_FILE_MODE = 0o600
QUARANTINE_DIR_MODE = 0o700
UNARCHIVED_DIR_PREFIX = "unarchived_"

# Reports and logs
REPORT_FILENAME_FORMAT = "scan_report_{timestamp}.txt"
REPORT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
LOG_FILENAME = "clamguard.log"

# Configuration
SYSTEM_CONFIG_PATH = "/etc/clamguard/config.yaml"
USER_CONFIG_RELATIVE = "clamguard/config.yaml"
ENV_PREFIX = "CLAMGUARD_"
ENV_SECTION_SEPARATOR = "__"

# Progress display
DEFAULT_PROGRESS_INTERVAL = 0.5
SPINNER_NAME = "dots"

# Seconds to wait after SIGTERM before killing the scanner
TERMINATE_GRACE_SECONDS = 5.0
