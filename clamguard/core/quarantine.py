"""Quarantine archive and retention management for ClamGuard.

Lifecycle of a flagged file:

    detected -> moved-to-holding -> archived -> expired

The scanner moves detections into a per-run holding directory. This module
moves them into ``<root>/<YYYY>-<MM>/<original_name>_<unix_timestamp>``
with owner-only permissions and later deletes them once the retention policy
or the aggregate size cap says so. Files that cannot be archived are kept in
``<root>/unarchived_<run_id>``, outside retention.
"""

import logging
import os
import re
import shutil
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from clamguard.core.errors import QuarantineError
from clamguard.core.models import (
    Detection,
    QuarantineEntry,
    QuarantineResult,
    RiskLevel,
    SweepResult,
)
from clamguard.utils.constants import (
    ARCHIVE_DIR_FORMAT,
    ARCHIVE_FILE_MODE,
    QUARANTINE_DIR_MODE,
    UNARCHIVED_DIR_PREFIX,
)

logger = logging.getLogger(__name__)

ARCHIVE_DIR_PATTERN = re.compile(r"^\d{4}-\d{2}$")
ARCHIVE_NAME_PATTERN = re.compile(r"^(?P<name>.+)_(?P<timestamp>\d+)$")
ENGINE_RENAME_PATTERN = re.compile(r"^(?P<name>.+)\.\d{3}$")


def parse_archive_name(name: str) -> Optional[tuple[str, int]]:
    """
    Split an archive file name into original name and unix timestamp.

    Args:
        name: Archived file name, e.g. "a.txt_1700000000"

    Returns:
        Tuple of (original_name, timestamp), or None if not an archive name
    """
    match = ARCHIVE_NAME_PATTERN.match(name)
    if match is None:
        return None
    return match.group("name"), int(match.group("timestamp"))


class QuarantineManager:
    """Moves flagged files into the dated archive and enforces retention.

    Every entry inherits the single configured risk level; there is no
    per-file classification.
    """

    def __init__(
        self,
        root: Path,
        retention_days: Mapping[str, int],
        risk_level: str = "medium",
        max_size_mb: int = 0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the quarantine manager.

        Args:
            root: Quarantine root directory
            retention_days: Risk level -> days (0 = never expire)
            risk_level: Risk level applied to every entry
            max_size_mb: Aggregate size cap in MB (0 = disabled)
            clock: Returns "now"; injectable for tests

        Raises:
            QuarantineError: If the risk level has no retention policy
        """
        if risk_level not in retention_days:
            raise QuarantineError(f"No retention policy for risk level: {risk_level}")

        self.root = Path(root)
        self.retention_days = dict(retention_days)
        self.risk_level = RiskLevel(risk_level)
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.clock = clock or datetime.now

    @property
    def active_retention_days(self) -> int:
        return self.retention_days[self.risk_level.value]

    def ensure_root(self) -> Path:
        """
        Create the quarantine root with owner-only permissions.

        Raises:
            QuarantineError: If the root cannot be created
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self.root.chmod(QUARANTINE_DIR_MODE)
        except OSError as e:
            raise QuarantineError(f"Cannot create quarantine directory {self.root}: {e}")
        return self.root

    def archive_dir_for(self, when: datetime) -> Path:
        """Dated archive directory for a quarantine time."""
        return self.root / when.strftime(ARCHIVE_DIR_FORMAT)

    def archive_name(self, original_name: str, timestamp: int, directory: Path) -> str:
        """
        Pick a collision-free archive name.

        The timestamp is bumped until ``<original_name>_<timestamp>`` is free
        in ``directory``, so two files with the same name never collide.
        """
        candidate = timestamp
        while (directory / f"{original_name}_{candidate}").exists():
            candidate += 1
        return f"{original_name}_{candidate}"

    def _build_entry(self, path: Path, original_name: str, quarantined_at: datetime) -> QuarantineEntry:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return QuarantineEntry(
            path=path,
            original_name=original_name,
            quarantined_at=quarantined_at,
            size_bytes=size,
            risk_level=self.risk_level,
            retention_days=self.active_retention_days,
        )

    def archive(
        self,
        holding_dir: Path,
        when: Optional[datetime] = None,
        detections: Iterable[Detection] = (),
    ) -> QuarantineResult:
        """
        Move every file from the holding directory into the archive.

        A failure to move one file is logged and counted; the remaining
        files are still processed. Files the failure leaves behind stay in
        the holding directory for release_holding().

        Args:
            holding_dir: Directory the scanner moved detections into
            when: Quarantine time (default: now)
            detections: Parsed detections, used to recover the user's file
                name when the engine renamed a file on a name clash

        Returns:
            QuarantineResult with archived entries and failures

        Raises:
            QuarantineError: If the dated archive directory cannot be created
        """
        result = QuarantineResult()
        if not holding_dir.is_dir():
            return result

        pending = sorted(p for p in holding_dir.rglob("*") if p.is_file() or p.is_symlink())
        if not pending:
            logger.debug("Holding directory is empty; nothing to archive")
            return result

        quarantined_at = when or self.clock()
        archive_dir = self.archive_dir_for(quarantined_at)
        try:
            archive_dir.mkdir(parents=True, exist_ok=True)
            archive_dir.chmod(QUARANTINE_DIR_MODE)
        except OSError as e:
            raise QuarantineError(f"Cannot create archive directory {archive_dir}: {e}")
        result.archive_dir = archive_dir

        detected_names = Counter(Path(d.file_path).name for d in detections)
        timestamp = int(quarantined_at.timestamp())
        for source in pending:
            original_name = self.original_name(source.name, detected_names)
            destination = archive_dir / self.archive_name(original_name, timestamp, archive_dir)
            try:
                shutil.move(str(source), str(destination))
                os.chmod(destination, ARCHIVE_FILE_MODE)
            except OSError as e:
                logger.error(f"Failed to quarantine {source.name}: {e}")
                result.failed.append((source, str(e)))
                continue

            entry = self._build_entry(destination, original_name, quarantined_at)
            result.archived.append(entry)
            logger.info(f"Quarantined: {source.name} -> {destination}")

        if result.failed:
            logger.warning(f"{result.failed_count} file(s) could not be quarantined")
        return result

    @staticmethod
    def original_name(held_name: str, detected_names: Counter) -> str:
        """
        Map a holding file name back to the detected file's name.

        The engine appends ``.NNN`` when the move directory already holds a
        file of the same name. Each detected name is consumed once.
        """
        candidates = [held_name]
        match = ENGINE_RENAME_PATTERN.match(held_name)
        if match:
            candidates.append(match.group("name"))
        for name in candidates:
            if detected_names[name] > 0:
                detected_names[name] -= 1
                return name
        return held_name

    def release_holding(self, holding_dir: Path, run_id: str) -> Optional[Path]:
        """
        Dispose of the holding directory at the end of a run.

        Empty directories are removed. Files still held (a failed move, an
        archive error or an interrupted run) are never deleted: the holding
        directory is moved to ``<root>/unarchived_<run_id>``, or left where
        it is if that move fails.

        Returns:
            Directory holding the unarchived files, or None if nothing was left
        """
        if not holding_dir.is_dir():
            return None

        nested = [p for p in holding_dir.rglob("*") if p.is_dir() and not p.is_symlink()]
        for directory in sorted(nested, key=lambda p: len(p.parts), reverse=True):
            try:
                directory.rmdir()
            except OSError:
                pass  # Still holds files
        try:
            holding_dir.rmdir()
            return None
        except OSError:
            pass

        leftovers = [p for p in holding_dir.rglob("*") if p.is_file() or p.is_symlink()]
        kept = self.root / f"{UNARCHIVED_DIR_PREFIX}{run_id}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            shutil.move(str(holding_dir), str(kept))
            kept.chmod(QUARANTINE_DIR_MODE)
        except OSError as e:
            logger.error(f"Cannot move unarchived files to {kept}: {e}")
            kept = holding_dir

        logger.warning(f"{len(leftovers)} detected file(s) were not archived; kept in {kept}")
        return kept

    def list_entries(self) -> list[QuarantineEntry]:
        """
        List archived entries, oldest first.

        Files whose name carries no timestamp fall back to their mtime.
        """
        entries: list[QuarantineEntry] = []
        if not self.root.is_dir():
            return entries

        for archive_dir in sorted(self.root.iterdir()):
            if not archive_dir.is_dir() or not ARCHIVE_DIR_PATTERN.match(archive_dir.name):
                continue
            for path in sorted(archive_dir.iterdir()):
                if not path.is_file():
                    continue
                parsed = parse_archive_name(path.name)
                if parsed is not None:
                    original_name, timestamp = parsed
                    quarantined_at = datetime.fromtimestamp(timestamp)
                else:
                    original_name = path.name
                    quarantined_at = datetime.fromtimestamp(path.stat().st_mtime)
                entries.append(self._build_entry(path, original_name, quarantined_at))

        entries.sort(key=lambda e: e.quarantined_at)
        return entries

    def total_size(self) -> int:
        """Aggregate size of all archived entries in bytes."""
        return sum(entry.size_bytes for entry in self.list_entries())

    def _delete(self, entry: QuarantineEntry, result: SweepResult) -> bool:
        try:
            entry.path.unlink()
        except OSError as e:
            logger.warning(f"Failed to delete quarantined file {entry.path}: {e}")
            result.failed.append((entry.path, str(e)))
            return False
        result.bytes_freed += entry.size_bytes
        return True

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Apply the retention policy and the aggregate size cap.

        Entries whose age in days exceeds their retention are deleted
        (retention 0 never expires). If the cap is enabled and still
        exceeded, the oldest entries are deleted until the total is at or
        under the cap.

        Args:
            now: Reference time (default: clock())

        Returns:
            SweepResult describing what was removed
        """
        current = now or self.clock()
        result = SweepResult()
        remaining: list[QuarantineEntry] = []

        for entry in self.list_entries():
            result.examined += 1
            if entry.is_expired(current):
                if self._delete(entry, result):
                    result.expired.append(entry.path)
                    logger.info(
                        f"Expired quarantine entry {entry.path.name} "
                        f"(age {entry.age_days(current)}d > {entry.retention_days}d)"
                    )
                    continue
            remaining.append(entry)

        if self.max_size_bytes > 0:
            total = sum(entry.size_bytes for entry in remaining)
            for entry in sorted(remaining, key=lambda e: e.quarantined_at):
                if total <= self.max_size_bytes:
                    break
                if self._delete(entry, result):
                    total -= entry.size_bytes
                    result.evicted.append(entry.path)
                    logger.info(f"Evicted quarantine entry {entry.path.name} (size cap)")

        self._prune_empty_dirs()

        if result.removed_count:
            logger.info(
                f"Retention sweep removed {result.removed_count} of {result.examined} entries"
            )
        return result

    def _prune_empty_dirs(self) -> None:
        if not self.root.is_dir():
            return
        for archive_dir in self.root.iterdir():
            if archive_dir.is_dir() and ARCHIVE_DIR_PATTERN.match(archive_dir.name):
                try:
                    archive_dir.rmdir()
                except OSError:
                    pass  # Not empty
