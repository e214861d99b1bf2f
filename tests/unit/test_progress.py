"""Tests for the background progress reporter."""

import io
import time

from rich.console import Console

import clamguard.core.progress as progress_module
from clamguard.core.progress import ProgressReporter, format_elapsed
from clamguard.core.run_context import StatusChannel


def terminal_console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, force_terminal=True, width=100), buffer


class TestFormatElapsed:

    def test_minutes_and_seconds(self):
        assert format_elapsed(0) == "0:00"
        assert format_elapsed(75.9) == "1:15"

    def test_hours(self):
        assert format_elapsed(3723) == "1:02:03"


class TestProgressReporter:
    """Tests for ProgressReporter."""

    def test_disabled_without_console(self):
        reporter = ProgressReporter(StatusChannel())

        reporter.start()

        assert reporter.enabled is False
        assert reporter.running is False
        reporter.stop()

    def test_disabled_flag(self):
        console, _ = terminal_console()
        reporter = ProgressReporter(StatusChannel(), console, enabled=False)

        reporter.start()

        assert reporter.running is False

    def test_updates_until_stopped(self):
        console, _ = terminal_console()
        channel = StatusChannel("Scanning 1 target(s)...")
        reporter = ProgressReporter(channel, console, interval=0.02)

        reporter.start()
        assert reporter.running is True
        time.sleep(0.2)
        channel.publish("Scanning... 1 threat(s) found so far")
        time.sleep(0.1)
        reporter.stop()

        assert reporter.running is False
        assert reporter.updates >= 1
        assert reporter.failed is False

    def test_context_manager_and_final_message(self):
        console, buffer = terminal_console()

        with ProgressReporter(StatusChannel(), console, interval=0.02) as reporter:
            time.sleep(0.05)
            reporter.stop("Scan stopped.")

        assert "Scan stopped." in buffer.getvalue()

    def test_render_failure_goes_silent(self, monkeypatch):
        class BrokenStatus:
            def __init__(self, *args, **kwargs):
                raise RuntimeError("terminal went away")

        monkeypatch.setattr(progress_module, "Status", BrokenStatus)
        console, buffer = terminal_console()
        reporter = ProgressReporter(StatusChannel(), console, interval=0.02)

        reporter.start()
        time.sleep(0.1)
        reporter.stop("Scan stopped.")

        assert reporter.failed is True
        assert "Scan stopped." not in buffer.getvalue()

    def test_start_twice_keeps_one_thread(self):
        console, _ = terminal_console()
        reporter = ProgressReporter(StatusChannel(), console, interval=0.02)

        reporter.start()
        first = reporter._thread
        reporter.start()

        assert reporter._thread is first
        reporter.stop()
