"""Configuration loading and validation for ClamGuard."""

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from clamguard.config.schema import (
    ClamGuardConfig,
    DiskConfig,
    GeneralConfig,
    LoggingConfig,
    NotificationConfig,
    PathsConfig,
    QuarantineConfig,
    ReportConfig,
    ScanConfig,
)
from clamguard.core.errors import ConfigError
from clamguard.utils.constants import (
    ENV_PREFIX,
    ENV_SECTION_SEPARATOR,
    RISK_LEVELS,
    SYSTEM_CONFIG_PATH,
    USER_CONFIG_RELATIVE,
)

logger = logging.getLogger(__name__)

__all__ = ["ConfigError", "ConfigLoader"]


def _as_path(value: Any) -> Path:
    return Path(str(value)).expanduser()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class ConfigLoader:
    """Loads layered configuration from YAML files and the environment."""

    SYSTEM_CONFIG_PATH = Path(SYSTEM_CONFIG_PATH)

    @classmethod
    def user_config_path(cls) -> Path:
        """User-specific config file, honouring XDG_CONFIG_HOME."""
        base = os.environ.get("XDG_CONFIG_HOME")
        root = Path(base) if base else Path.home() / ".config"
        return root / USER_CONFIG_RELATIVE

    @classmethod
    def default_config_paths(cls) -> list[Path]:
        """Config files searched on every run, lowest precedence first."""
        return [cls.SYSTEM_CONFIG_PATH, cls.user_config_path()]

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> ClamGuardConfig:
        """
        Load configuration.

        Priority (highest last):
        1. Built-in defaults
        2. System-wide config file
        3. User config file
        4. Explicit config_path argument
        5. CLAMGUARD_<SECTION>__<KEY> environment variables

        Args:
            config_path: Optional explicit path to an extra config file
            environ: Environment mapping (defaults to os.environ)

        Returns:
            ClamGuardConfig object

        Raises:
            ConfigError: If a config file cannot be read or parsed, or the
                merged configuration is invalid
        """
        config_dict: dict[str, Any] = {}

        for default_path in cls.default_config_paths():
            if default_path.is_file():
                logger.debug(f"Loading config from {default_path}")
                cls._merge(config_dict, cls._load_yaml(default_path))

        if config_path:
            if not config_path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
            logger.debug(f"Loading config from {config_path}")
            cls._merge(config_dict, cls._load_yaml(config_path))

        env = os.environ if environ is None else environ
        cls._merge(config_dict, cls._env_overrides(env))

        config = cls._build_config(config_dict)

        errors = cls.validate(config)
        if errors:
            raise ConfigError("; ".join(errors))
        return config

    @classmethod
    def _load_yaml(cls, path: Path) -> dict[str, Any]:
        """Load YAML file and return dict."""
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Top level of {path} must be a mapping")
        return data

    @classmethod
    def _merge(cls, base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
        """Recursively merge override into base (in place)."""
        for key, value in override.items():
            if isinstance(value, Mapping) and isinstance(base.get(key), dict):
                cls._merge(base[key], value)
            elif isinstance(value, Mapping):
                base[key] = cls._merge({}, value)
            else:
                base[key] = value
        return base

    @classmethod
    def _env_overrides(cls, environ: Mapping[str, str]) -> dict[str, Any]:
        """Collect CLAMGUARD_<SECTION>__<KEY>=<yaml value> overrides."""
        overrides: dict[str, Any] = {}
        for name, raw in environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            section, sep, key = name[len(ENV_PREFIX):].partition(ENV_SECTION_SEPARATOR)
            if not sep or not section or not key:
                continue
            try:
                value = yaml.safe_load(raw) if raw else raw
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid value in {name}: {e}")

            # quarantine__retention_days__high style keys nest further
            parts = [section.lower()] + key.lower().split(ENV_SECTION_SEPARATOR)
            current = overrides
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value
            logger.debug(f"Environment override: {name}")
        return overrides

    @classmethod
    def _section(cls, data: dict[str, Any], name: str) -> dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{name}' must be a mapping")
        return section

    @classmethod
    def _build_config(cls, data: dict[str, Any]) -> ClamGuardConfig:
        """Build ClamGuardConfig from dictionary."""
        try:
            return ClamGuardConfig(
                version=str(data.get("version", "1.0")),
                general=cls._build_general(cls._section(data, "general")),
                paths=cls._build_paths(cls._section(data, "paths")),
                scan=cls._build_scan(cls._section(data, "scan")),
                quarantine=cls._build_quarantine(cls._section(data, "quarantine")),
                report=cls._build_report(cls._section(data, "report")),
                notifications=cls._build_notifications(cls._section(data, "notifications")),
                logging=cls._build_logging(cls._section(data, "logging")),
                disk=cls._build_disk(cls._section(data, "disk")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}")

    @classmethod
    def _build_general(cls, data: dict[str, Any]) -> GeneralConfig:
        """Build GeneralConfig from dictionary."""
        config = GeneralConfig()
        if "default_targets" in data:
            config.default_targets = [_as_path(p) for p in (data["default_targets"] or []) if p]
        if "progress_interval" in data:
            config.progress_interval = float(data["progress_interval"])
        return config

    @classmethod
    def _build_paths(cls, data: dict[str, Any]) -> PathsConfig:
        """Build PathsConfig from dictionary."""
        config = PathsConfig()
        if data.get("quarantine_dir"):
            config.quarantine_dir = _as_path(data["quarantine_dir"])
        if data.get("log_dir"):
            config.log_dir = _as_path(data["log_dir"])
        if data.get("temp_dir"):
            config.temp_dir = _as_path(data["temp_dir"])
        return config

    @classmethod
    def _build_scan(cls, data: dict[str, Any]) -> ScanConfig:
        """Build ScanConfig from dictionary."""
        config = ScanConfig()
        if "scanner_path" in data:
            config.scanner_path = str(data["scanner_path"] or "")
        if "max_file_size_mb" in data:
            config.max_file_size_mb = int(data["max_file_size_mb"])
        if "max_scan_size_mb" in data:
            config.max_scan_size_mb = int(data["max_scan_size_mb"])
        if "exclude_patterns" in data:
            config.exclude_patterns = [str(p) for p in (data["exclude_patterns"] or []) if p is not None]
        if "system_exclude_dirs" in data:
            config.system_exclude_dirs = [str(p) for p in (data["system_exclude_dirs"] or [])]
        if "quick_targets" in data:
            config.quick_targets = [_as_path(p) for p in (data["quick_targets"] or []) if p]
        if "extra_args" in data:
            config.extra_args = [str(a) for a in (data["extra_args"] or [])]
        return config

    @classmethod
    def _build_quarantine(cls, data: dict[str, Any]) -> QuarantineConfig:
        """Build QuarantineConfig from dictionary."""
        config = QuarantineConfig()
        if "enabled" in data:
            config.enabled = _as_bool(data["enabled"])
        if "risk_level" in data:
            config.risk_level = str(data["risk_level"]).lower()
        if "retention_days" in data:
            table = data["retention_days"] or {}
            if not isinstance(table, dict):
                raise ConfigError("quarantine.retention_days must be a mapping of risk level to days")
            for level, days in table.items():
                config.retention_days[str(level).lower()] = int(days)
        if "max_size_mb" in data:
            config.max_size_mb = int(data["max_size_mb"])
        return config

    @classmethod
    def _build_report(cls, data: dict[str, Any]) -> ReportConfig:
        """Build ReportConfig from dictionary."""
        config = ReportConfig()
        if "enabled" in data:
            config.enabled = _as_bool(data["enabled"])
        if "max_detections_shown" in data:
            config.max_detections_shown = int(data["max_detections_shown"])
        return config

    @classmethod
    def _build_notifications(cls, data: dict[str, Any]) -> NotificationConfig:
        """Build NotificationConfig from dictionary."""
        config = NotificationConfig()
        if "enabled" in data:
            config.enabled = _as_bool(data["enabled"])
        if "on_clean" in data:
            config.on_clean = _as_bool(data["on_clean"])
        if "command" in data:
            config.command = str(data["command"])
        return config

    @classmethod
    def _build_logging(cls, data: dict[str, Any]) -> LoggingConfig:
        """Build LoggingConfig from dictionary."""
        config = LoggingConfig()
        if "level" in data:
            config.level = str(data["level"])
        if "color_output" in data:
            config.color_output = _as_bool(data["color_output"])
        if "log_to_file" in data:
            config.log_to_file = _as_bool(data["log_to_file"])
        return config

    @classmethod
    def _build_disk(cls, data: dict[str, Any]) -> DiskConfig:
        """Build DiskConfig from dictionary."""
        config = DiskConfig()
        if "min_free_space_mb" in data:
            config.min_free_space_mb = int(data["min_free_space_mb"])
        return config

    @classmethod
    def validate(cls, config: ClamGuardConfig) -> list[str]:
        """
        Validate configuration and return list of errors.

        Args:
            config: Configuration to validate

        Returns:
            List of error messages (empty if valid)
        """
        errors: list[str] = []

        if not config.scan.scanner_path:
            errors.append("scan.scanner_path must not be empty")

        if config.scan.max_file_size_mb <= 0:
            errors.append("scan.max_file_size_mb must be a positive integer")
        if config.scan.max_scan_size_mb <= 0:
            errors.append("scan.max_scan_size_mb must be a positive integer")

        if config.general.progress_interval <= 0:
            errors.append("general.progress_interval must be greater than 0")

        # Every referenced risk level needs a policy row
        if config.quarantine.risk_level not in config.quarantine.retention_days:
            errors.append(
                f"No retention policy for risk level: {config.quarantine.risk_level}"
            )
        for level, days in config.quarantine.retention_days.items():
            if level not in RISK_LEVELS:
                errors.append(f"Unknown risk level in retention_days: {level}")
            if days < 0:
                errors.append(f"retention_days.{level} must be >= 0")

        if config.quarantine.max_size_mb < 0:
            errors.append("quarantine.max_size_mb must be >= 0")

        if config.disk.min_free_space_mb < 0:
            errors.append("disk.min_free_space_mb must be >= 0")

        valid_levels = ["debug", "info", "warning", "error", "critical"]
        if config.logging.level.lower() not in valid_levels:
            errors.append(f"Invalid logging level: {config.logging.level}")

        return errors
