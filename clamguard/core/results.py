"""Scanner output parsing for ClamGuard.

The scanner prints one line per detection (``<path>: <label> FOUND``) and a
summary block containing ``Scanned files: N`` and ``Infected files: N``.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from clamguard.core.models import Detection, ScanCounts
from clamguard.utils.constants import (
    DETECTION_SUFFIX,
    INFECTED_FILES_LABEL,
    SCANNED_FILES_LABEL,
)

logger = logging.getLogger(__name__)

DETECTION_PATTERN = re.compile(
    rf"^(?P<path>.+): (?P<label>[^:]+?) {DETECTION_SUFFIX}\s*$"
)


def read_output(path: Path) -> str:
    """Read captured scanner output, tolerating undecodable bytes."""
    return path.read_text(encoding="utf-8", errors="replace")


def _find_count(text: str, label: str) -> tuple[int, Optional[str]]:
    """Locate ``<label> <value>`` and parse the value.

    Returns:
        Tuple of (count, warning); warning is None on success
    """
    pattern = re.compile(rf"^\s*{re.escape(label)}\s*(?P<value>.*)$", re.MULTILINE)
    match = pattern.search(text)
    if match is None:
        return 0, f"'{label}' line not found in scanner output"

    value = match.group("value").strip()
    if not value.isdigit():
        return 0, f"Cannot parse '{label}' value: {value!r}"
    return int(value), None


def parse_counts(text: str) -> ScanCounts:
    """
    Extract scanned and infected file counts.

    Counts that are missing or not non-negative integers default to 0 and
    add a parse warning.

    Args:
        text: Captured scanner output

    Returns:
        ScanCounts with any parse warnings
    """
    counts = ScanCounts()

    counts.scanned_files, warning = _find_count(text, SCANNED_FILES_LABEL)
    if warning:
        counts.warnings.append(warning)

    counts.infected_files, warning = _find_count(text, INFECTED_FILES_LABEL)
    if warning:
        counts.warnings.append(warning)

    for warning in counts.warnings:
        logger.warning(f"Degraded statistics: {warning}")
    return counts


def parse_detections(text: str) -> list[Detection]:
    """
    Extract ``(file path, detection label)`` pairs in output order.

    Args:
        text: Captured scanner output

    Returns:
        List of detections
    """
    detections = []
    for line in text.splitlines():
        match = DETECTION_PATTERN.match(line.rstrip())
        if match:
            detections.append(Detection(match.group("path"), match.group("label")))
    return detections


def parse_engine_version(text: Optional[str]) -> Optional[str]:
    """Return the engine version from ``--version`` output.

    ``ClamAV 1.0.1/26801/Mon Feb  6 08:24:07 2023`` becomes ``ClamAV 1.0.1``.
    """
    if not text:
        return None
    first = text.strip().splitlines()[0].strip()
    return first.split("/", 1)[0].strip() or None
