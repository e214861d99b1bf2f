"""Configuration management for ClamGuard."""

from clamguard.config.loader import ConfigError, ConfigLoader
from clamguard.config.schema import ClamGuardConfig

__all__ = ["ClamGuardConfig", "ConfigError", "ConfigLoader"]
