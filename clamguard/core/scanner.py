"""Scanner invocation for ClamGuard.

Builds the clamscan command line and supervises the single scanner
subprocess for a run. Output is captured to a transient file owned by the
run context; the primary thread polls the child so that cancellation is
observed promptly.
"""

import logging
import subprocess
import time
from pathlib import Path
from typing import Optional, Sequence

from clamguard.core.errors import QuarantineError, ScanError, ScanInterrupted
from clamguard.core.exclusions import read_exclusion_file
from clamguard.core.models import ScanOutcome
from clamguard.core.results import parse_engine_version
from clamguard.core.run_context import RunContext
from clamguard.utils.constants import DETECTION_SUFFIX, TERMINATE_GRACE_SECONDS
from clamguard.utils.deps import get_command_version

logger = logging.getLogger(__name__)


class _OutputTail:
    """Incrementally counts detection lines in the growing output file."""

    def __init__(self, path: Path):
        self.path = path
        self.offset = 0
        self.detections = 0
        self._partial = b""

    def poll(self) -> int:
        try:
            with open(self.path, "rb") as f:
                f.seek(self.offset)
                chunk = f.read()
        except OSError:
            return self.detections

        self.offset += len(chunk)
        lines = (self._partial + chunk).split(b"\n")
        self._partial = lines.pop()
        suffix = f" {DETECTION_SUFFIX}".encode()
        self.detections += sum(1 for line in lines if line.rstrip().endswith(suffix))
        return self.detections


class ScanInvoker:
    """Runs the external scanner for one set of targets."""

    def __init__(
        self,
        scanner_path: str = "clamscan",
        max_file_size_mb: int = 100,
        max_scan_size_mb: int = 400,
        system_exclude_dirs: Sequence[str] = (),
        quarantine_dir: Optional[Path] = None,
        extra_args: Sequence[str] = (),
        poll_interval: float = 0.2,
        terminate_grace: float = TERMINATE_GRACE_SECONDS,
    ):
        """
        Initialize the invoker.

        Args:
            scanner_path: Scanner binary name or path
            max_file_size_mb: Largest single file the engine will scan
            max_scan_size_mb: Largest amount of data scanned per file/archive
            system_exclude_dirs: Pseudo-filesystems never scanned
            quarantine_dir: Quarantine root, always excluded from scanning
            extra_args: Extra scanner options appended before the targets
            poll_interval: Seconds between cancellation checks
            terminate_grace: Seconds to wait after SIGTERM before SIGKILL
        """
        self.scanner_path = scanner_path
        self.max_file_size_mb = max_file_size_mb
        self.max_scan_size_mb = max(max_scan_size_mb, max_file_size_mb)
        self.system_exclude_dirs = list(system_exclude_dirs)
        self.quarantine_dir = quarantine_dir
        self.extra_args = list(extra_args)
        self.poll_interval = poll_interval
        self.terminate_grace = terminate_grace

    def prepare_holding_dir(self, ctx: RunContext) -> Path:
        """
        Create the fresh holding directory the engine moves detections into.

        The directory is not a run artifact: it may end up holding the only
        copy of a flagged file, so the pipeline releases it explicitly.

        Raises:
            QuarantineError: If the directory cannot be created
        """
        try:
            holding = ctx.create_temp_dir("holding", track=False)
            holding.chmod(0o700)
        except OSError as e:
            raise QuarantineError(f"Cannot create quarantine holding directory: {e}")
        logger.debug(f"Holding directory: {holding}")
        return holding

    def build_command(
        self,
        targets: Sequence[Path],
        exclusion_file: Optional[Path] = None,
        holding_dir: Optional[Path] = None,
    ) -> list[str]:
        """
        Build the full scanner argument list.

        Args:
            targets: Resolved scan targets
            exclusion_file: Exclusion list artifact (one pattern per line)
            holding_dir: Move destination for detections; None disables moving

        Returns:
            Command as a list of arguments
        """
        command = [
            self.scanner_path,
            "-r",
            "-i",
            f"--max-filesize={self.max_file_size_mb}M",
            f"--max-scansize={self.max_scan_size_mb}M",
        ]

        for directory in self.system_exclude_dirs:
            command.append(f"--exclude-dir=^{directory}")
        if self.quarantine_dir is not None:
            command.append(f"--exclude-dir=^{self.quarantine_dir}")

        if exclusion_file is not None:
            for pattern in read_exclusion_file(exclusion_file):
                command.append(f"--exclude={pattern}")

        if holding_dir is not None:
            command.append(f"--move={holding_dir}")

        command.extend(self.extra_args)
        command.extend(str(target) for target in targets)
        return command

    def engine_version(self) -> Optional[str]:
        """Scanner version for the environment fingerprint (best effort)."""
        return parse_engine_version(get_command_version(self.scanner_path))

    def run(
        self,
        ctx: RunContext,
        targets: Sequence[Path],
        exclusion_file: Optional[Path] = None,
        holding_dir: Optional[Path] = None,
    ) -> ScanOutcome:
        """
        Run the scanner and wait for it to finish.

        Args:
            ctx: Run context (cancellation token, status channel, artifacts)
            targets: Resolved scan targets
            exclusion_file: Exclusion list artifact
            holding_dir: Move destination, or None when quarantine is off

        Returns:
            ScanOutcome with exit status, duration and captured output path

        Raises:
            ScanError: If the scanner cannot be launched
            ScanInterrupted: If the run is cancelled while scanning
        """
        try:
            output_path = ctx.create_temp_file("output", ".log")
        except OSError as e:
            raise ScanError(f"Cannot create scanner output file: {e}")

        command = self.build_command(targets, exclusion_file, holding_dir)
        logger.info(f"Starting scan of {len(targets)} target(s)")
        logger.debug(f"Scanner command: {' '.join(command)}")
        ctx.status.publish(f"Scanning {len(targets)} target(s)...")

        started = time.monotonic()
        with open(output_path, "wb") as output:
            try:
                process = subprocess.Popen(
                    command,
                    stdout=output,
                    stderr=subprocess.STDOUT,
                    stdin=subprocess.DEVNULL,
                )
            except OSError as e:
                raise ScanError(f"Cannot launch scanner '{self.scanner_path}': {e}")

            try:
                exit_code = self._wait(process, ctx, output_path)
            except BaseException:
                self._terminate(process)
                raise

        duration = time.monotonic() - started
        logger.info(f"Scanner exited with status {exit_code} after {duration:.1f}s")
        return ScanOutcome(
            exit_code=exit_code,
            duration_seconds=duration,
            output_path=output_path,
            command=tuple(command),
        )

    def _wait(self, process: subprocess.Popen, ctx: RunContext, output_path: Path) -> int:
        tail = _OutputTail(output_path)
        while True:
            if ctx.cancelled:
                raise ScanInterrupted(f"Scan {ctx.interrupt_reason or 'interrupted'}")
            try:
                return process.wait(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                found = tail.poll()
                if found:
                    ctx.status.publish(f"Scanning... {found} threat(s) found so far")

    def _terminate(self, process: subprocess.Popen) -> None:
        """Stop the scanner child, escalating to SIGKILL after the grace period."""
        if process.poll() is not None:
            return
        logger.warning(f"Terminating scanner (pid {process.pid})")
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace)
        except subprocess.TimeoutExpired:
            logger.warning(f"Scanner did not exit; killing pid {process.pid}")
            process.kill()
            process.wait()
