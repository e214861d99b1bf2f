"""Core modules for ClamGuard."""

from clamguard.core.models import (
    Detection,
    QuarantineEntry,
    RiskLevel,
    ScanOutcome,
    ScanRun,
    ScanStatus,
)

__all__ = [
    "Detection",
    "QuarantineEntry",
    "RiskLevel",
    "ScanOutcome",
    "ScanRun",
    "ScanStatus",
]
