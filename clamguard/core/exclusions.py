"""Exclusion pattern handling for ClamGuard."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from clamguard.core.errors import ConfigError
from clamguard.core.run_context import RunContext

logger = logging.getLogger(__name__)


@dataclass
class ExclusionSet:
    """Patterns handed to the scanner, in concatenation order."""

    patterns: list[str] = field(default_factory=list)
    invalid_count: int = 0
    artifact_path: Optional[Path] = None

    def __len__(self) -> int:
        return len(self.patterns)


class ExclusionSetBuilder:
    """Merges default and user exclusion patterns.

    Patterns are concatenated (defaults first) without de-duplication.
    Empty patterns are dropped and counted as invalid.
    """

    def __init__(self, default_patterns: Iterable[str] = ()):
        self.default_patterns = list(default_patterns)

    def build(self, user_patterns: Iterable[str] = ()) -> ExclusionSet:
        """
        Build the exclusion set.

        Args:
            user_patterns: One entry per --exclude occurrence

        Returns:
            ExclusionSet with the valid patterns and the invalid count
        """
        result = ExclusionSet()
        for pattern in [*self.default_patterns, *user_patterns]:
            if pattern is None or not str(pattern).strip():
                result.invalid_count += 1
                continue
            result.patterns.append(str(pattern))

        if result.invalid_count:
            logger.warning(f"Ignored {result.invalid_count} empty exclusion pattern(s)")
        logger.debug(f"Exclusion set has {len(result.patterns)} pattern(s)")
        return result

    def write(self, exclusion_set: ExclusionSet, ctx: RunContext) -> Path:
        """
        Write the patterns one per line into a transient artifact.

        Args:
            exclusion_set: Patterns to write
            ctx: Run context owning the artifact

        Returns:
            Path to the exclusion list

        Raises:
            ConfigError: If the artifact cannot be created
        """
        try:
            path = ctx.create_temp_file("exclude", ".lst")
            content = "".join(f"{pattern}\n" for pattern in exclusion_set.patterns)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot create exclusion list: {e}")

        exclusion_set.artifact_path = path
        return path


def read_exclusion_file(path: Path) -> list[str]:
    """Read an exclusion list written by ExclusionSetBuilder.write."""
    return [line for line in path.read_text(encoding="utf-8").splitlines() if line]
