"""ClamGuard - quarantine-aware orchestration for the ClamAV scanner."""

from clamguard.utils.constants import VERSION

__version__ = VERSION

__all__ = ["__version__"]
