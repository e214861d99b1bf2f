"""Scan target resolution for ClamGuard."""

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from clamguard.utils.path_utils import strip_trailing_separators

logger = logging.getLogger(__name__)


class TargetResolver:
    """Validates and normalizes user-supplied or default scan paths.

    Each path is tried as given, then relative to the working directory,
    then relative to the home directory. Paths that are neither a file nor a
    directory are skipped with a warning.
    """

    def __init__(
        self,
        default_targets: Iterable[Path] = (),
        cwd: Optional[Path] = None,
        home: Optional[Path] = None,
    ):
        """
        Initialize the resolver.

        Args:
            default_targets: Targets used when nothing usable is supplied
            cwd: Directory for relative lookups (default: process cwd)
            home: Home directory for the last lookup (default: Path.home())
        """
        self.default_targets = list(default_targets)
        self.cwd = cwd or Path.cwd()
        self.home = home or Path.home()
        self.skipped: list[str] = []
        self.used_defaults = False

    def _candidates(self, value: str) -> list[Path]:
        direct = Path(value).expanduser()
        if direct.is_absolute():
            return [direct]
        return [self.cwd / direct, direct.absolute(), self.home / direct]

    def resolve_one(self, raw: str) -> Optional[Path]:
        """
        Resolve a single path string.

        Args:
            raw: Path as typed by the user or read from config

        Returns:
            Absolute path, or None if it cannot be resolved
        """
        value = raw.strip()
        if not value:
            return None
        value = strip_trailing_separators(value)

        for candidate in self._candidates(value):
            if candidate.is_dir() or candidate.is_file():
                return candidate.resolve()
        return None

    def _resolve_all(self, raw_paths: Sequence[str], origin: str) -> list[Path]:
        resolved: list[Path] = []
        for raw in raw_paths:
            if not raw or not raw.strip():
                continue
            path = self.resolve_one(raw)
            if path is None:
                logger.warning(f"Skipping {origin} target that does not exist: {raw}")
                self.skipped.append(raw)
                continue
            resolved.append(path)
        return resolved

    def resolve(self, raw_paths: Sequence[str] = ()) -> list[Path]:
        """
        Resolve the targets for a run.

        Falls back to the configured defaults when no argument resolves, and
        to the home directory when the defaults are empty or unusable.

        Args:
            raw_paths: Path strings from the command line

        Returns:
            Ordered list of absolute paths (duplicates kept)
        """
        self.skipped = []
        self.used_defaults = False

        targets = self._resolve_all(raw_paths, "requested")
        if targets:
            return targets

        if raw_paths:
            logger.warning("No requested target could be resolved; using defaults")
        self.used_defaults = True

        targets = self._resolve_all([str(p) for p in self.default_targets], "default")
        if targets:
            return targets

        logger.warning(f"No usable default targets; falling back to {self.home}")
        return [self.home.resolve()]
