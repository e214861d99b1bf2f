"""Background progress display for ClamGuard."""

import logging
import threading
import time
from typing import Optional

from rich.console import Console
from rich.status import Status

from clamguard.core.run_context import StatusChannel
from clamguard.utils.constants import DEFAULT_PROGRESS_INTERVAL, SPINNER_NAME

logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """Format elapsed seconds as H:MM:SS or M:SS."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class ProgressReporter:
    """Renders a spinner and the latest status message while a scan runs.

    Runs in a daemon thread and polls the status channel every ``interval``
    seconds until stopped. Any rendering failure switches the reporter to
    silent mode; the scan itself is never affected.

    Usage:
        with ProgressReporter(ctx.status, console) as reporter:
            ...
            reporter.stop("[yellow]Stopped[/yellow]")
    """

    def __init__(
        self,
        channel: StatusChannel,
        console: Optional[Console] = None,
        interval: float = DEFAULT_PROGRESS_INTERVAL,
        enabled: bool = True,
    ):
        self.channel = channel
        self.console = console
        self.interval = interval
        self.enabled = enabled and console is not None
        self.failed = False
        self.updates = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._started_at = 0.0

    def __enter__(self) -> "ProgressReporter":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the display thread (no-op when disabled)."""
        if not self.enabled or self.running:
            return
        self._stop_event.clear()
        self._started_at = time.monotonic()
        self._thread = threading.Thread(
            target=self._run,
            name="clamguard-progress",
            daemon=True,
        )
        self._thread.start()

    def stop(self, message: Optional[str] = None) -> None:
        """Stop the display thread and optionally print a final message."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=max(self.interval * 4, 1.0))
            self._thread = None
        if message and self.console is not None and not self.failed:
            self.console.print(message)

    def _render_text(self) -> str:
        elapsed = format_elapsed(time.monotonic() - self._started_at)
        latest = self.channel.latest or "Scanning..."
        return f"[bold blue]{latest}[/bold blue] [dim]({elapsed})[/dim]"

    def _run(self) -> None:
        status: Optional[Status] = None
        try:
            status = Status(self._render_text(), console=self.console, spinner=SPINNER_NAME)
            status.start()
            while not self._stop_event.wait(self.interval):
                status.update(self._render_text())
                self.updates += 1
        except Exception as e:  # Display problems must never reach the scan
            self.failed = True
            logger.debug(f"Progress display disabled: {e}")
        finally:
            if status is not None:
                try:
                    status.stop()
                except Exception as e:
                    logger.debug(f"Cannot stop progress display: {e}")
