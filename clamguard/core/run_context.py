"""Per-run context for ClamGuard.

A RunContext is created at the start of every scan and handed to each
pipeline component. It owns the run identifier, the cancellation token, the
status channel read by the progress display and every transient artifact the
run creates. Leaving the context removes those artifacts, whatever the exit
path.
"""

import logging
import os
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional

from clamguard.config.schema import ClamGuardConfig

logger = logging.getLogger(__name__)


def generate_run_id(timestamp: Optional[datetime] = None, pid: Optional[int] = None) -> str:
    """Generate a run ID from timestamp and process id.

    Format: YYYYMMDD_HHMMSS_<pid>
    """
    ts = timestamp or datetime.now()
    return f"{ts.strftime('%Y%m%d_%H%M%S')}_{pid if pid is not None else os.getpid()}"


class StatusChannel:
    """Latest-value status message shared with the progress display.

    One writer (the pipeline) and one reader (the progress thread). Reads are
    best-effort; a reader may miss intermediate messages.
    """

    def __init__(self, initial: str = ""):
        self._message = initial

    def publish(self, message: str) -> None:
        self._message = message

    @property
    def latest(self) -> str:
        return self._message


class RunContext:
    """Explicit state of a single ClamGuard run.

    Usage:
        with RunContext(config) as ctx:
            exclude_file = ctx.create_temp_file("exclude", ".txt")
            ...
        # Transient artifacts are removed on exit
    """

    def __init__(
        self,
        config: ClamGuardConfig,
        started_at: Optional[datetime] = None,
        pid: Optional[int] = None,
    ):
        self.config = config
        self.started_at = started_at or datetime.now()
        self.run_id = generate_run_id(self.started_at, pid)
        self.cancel_event = threading.Event()
        self.status = StatusChannel()
        self.interrupt_reason: Optional[str] = None
        self._artifacts: list[Path] = []

    def __enter__(self) -> "RunContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()

    @property
    def temp_root(self) -> Optional[Path]:
        return self.config.paths.temp_dir

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self, reason: str = "interrupted") -> None:
        """Request cancellation of every long-running operation."""
        if not self.cancel_event.is_set():
            self.interrupt_reason = reason
            logger.warning(f"Run {self.run_id} cancelled: {reason}")
            self.status.publish(f"Stopping ({reason})...")
        self.cancel_event.set()

    def register_artifact(self, path: Path) -> Path:
        """Track a transient file or directory for removal on exit."""
        self._artifacts.append(path)
        return path

    def create_temp_file(self, prefix: str, suffix: str = "") -> Path:
        """Create an empty transient file owned by this run.

        Raises:
            OSError: If the file cannot be created
        """
        fd, name = tempfile.mkstemp(
            prefix=f"clamguard_{prefix}_{self.run_id}_",
            suffix=suffix,
            dir=self.temp_root,
        )
        os.close(fd)
        return self.register_artifact(Path(name))

    def create_temp_dir(self, prefix: str, track: bool = True) -> Path:
        """Create a fresh transient directory owned by this run.

        With track=False the caller owns removal; cleanup leaves it alone.

        Raises:
            OSError: If the directory cannot be created
        """
        name = tempfile.mkdtemp(
            prefix=f"clamguard_{prefix}_{self.run_id}_",
            dir=self.temp_root,
        )
        if not track:
            return Path(name)
        return self.register_artifact(Path(name))

    @property
    def artifacts(self) -> list[Path]:
        return self._artifacts.copy()

    def cleanup(self) -> int:
        """Remove every registered artifact.

        Returns:
            Number of artifacts removed
        """
        removed = 0
        for path in reversed(self._artifacts):
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                    removed += 1
                elif path.exists() or path.is_symlink():
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.warning(f"Cannot remove temporary artifact {path}: {e}")
        self._artifacts.clear()
        logger.debug(f"Removed {removed} temporary artifacts")
        return removed
