"""Tests for the clamguard command line."""

import json
import os
import shutil
import signal
import threading

import pytest
from typer.testing import CliRunner

from clamguard import __version__
from clamguard.cli.main import app
from clamguard.core.errors import QuarantineError
from clamguard.core.scanner import ScanInvoker


runner = CliRunner()


def invoke(config_file, *args):
    return runner.invoke(app, ["--config", str(config_file), *[str(a) for a in args]])


def quarantined_files(state_dirs):
    return [p for p in state_dirs["quarantine"].rglob("*") if p.is_file()]


class TestVersionAndHelp:

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"ClamGuard v{__version__}" in result.stdout

    def test_help(self):
        result = runner.invoke(app, ["-h"])

        assert result.exit_code == 0
        assert "--exclude" in result.stdout
        assert "--max-size" in result.stdout


class TestScanCommand:
    """Tests for 'clamguard [PATHS]'."""

    def test_clean_scan(self, config_file, scan_dir, state_dirs):
        result = invoke(config_file, scan_dir)

        assert result.exit_code == 0
        assert "No threats found" in result.stdout
        assert "Scan Summary" in result.stdout
        reports = list(state_dirs["logs"].glob("scan_report_*.txt"))
        assert len(reports) == 1
        assert "[OK] CLEAN" in reports[0].read_text()

    def test_default_targets_used(self, config_file, scan_dir, args_record):
        result = invoke(config_file)

        assert result.exit_code == 0
        assert json.loads(args_record.read_text())[-1] == str(scan_dir.resolve())

    def test_infected_scan_quarantines(self, config_file, infected_dir, state_dirs):
        result = invoke(config_file, infected_dir)

        assert result.exit_code == 1
        assert "Threats detected" in result.stdout
        assert "Quarantined" in result.stdout
        assert not (infected_dir / "a.txt").exists()
        archived = quarantined_files(state_dirs)
        assert len(archived) == 1
        assert archived[0].name.startswith("a.txt_")
        report = next(state_dirs["logs"].glob("scan_report_*.txt")).read_text()
        assert "Eicar-Test-Signature" in report
        assert "Retention:      medium - 30 days" in report

    def test_no_quarantine_leaves_file(self, config_file, infected_dir, state_dirs, args_record):
        result = invoke(config_file, "--no-quarantine", infected_dir)

        assert result.exit_code == 1
        assert (infected_dir / "a.txt").exists()
        assert not state_dirs["quarantine"].exists()
        assert not any(a.startswith("--move=") for a in json.loads(args_record.read_text()))

    def test_summary_only_hides_detections(self, config_file, infected_dir):
        result = invoke(config_file, "--summary-only", infected_dir)

        assert result.exit_code == 1
        assert "Eicar-Test-Signature" not in result.stdout

    def test_quiet_prints_one_line(self, config_file, scan_dir):
        result = invoke(config_file, "-q", scan_dir)

        assert result.exit_code == 0
        assert "2 scanned, 0 infected" in result.stdout
        assert "Scan Summary" not in result.stdout

    def test_missing_target_skipped(self, config_file, scan_dir, args_record):
        result = invoke(config_file, scan_dir, "/no/such/dir")

        assert result.exit_code == 0
        assert "Skipped targets" in result.stdout
        assert json.loads(args_record.read_text())[-1] == str(scan_dir.resolve())

    def test_repeated_exclude_passed_twice(self, config_file, scan_dir, args_record):
        result = invoke(config_file, "--exclude=foo", "--exclude=foo", scan_dir)

        assert result.exit_code == 0
        assert json.loads(args_record.read_text()).count("--exclude=foo") == 2

    def test_max_size(self, config_file, scan_dir, args_record):
        result = invoke(config_file, "--max-size", "5", scan_dir)

        assert result.exit_code == 0
        assert "--max-filesize=5M" in json.loads(args_record.read_text())

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_invalid_max_size_rejected_before_scan(self, config_file, scan_dir, args_record, value):
        result = invoke(config_file, f"--max-size={value}", scan_dir)

        assert result.exit_code == 2
        assert not args_record.exists()

    def test_count_does_not_scan(self, config_file, scan_dir, args_record):
        result = invoke(config_file, "--count", scan_dir)

        assert result.exit_code == 0
        assert "2 file(s) would be scanned" in result.stdout
        assert not args_record.exists()

    def test_unparseable_statistics(self, config_file, scan_dir, monkeypatch):
        monkeypatch.setenv("FAKE_SCANNER_SCANNED", "abc")

        result = invoke(config_file, scan_dir)

        assert result.exit_code == 0
        assert "Statistics may be incomplete" in result.stdout

    def test_scanner_error_exit_status(self, config_file, scan_dir, monkeypatch):
        monkeypatch.setenv("FAKE_SCANNER_EXIT", "2")

        result = invoke(config_file, scan_dir)

        assert result.exit_code == 2
        assert "Scan error" in result.stdout

    def test_unarchived_detection_reported(self, config_file, infected_dir, state_dirs, monkeypatch):
        real_move = shutil.move

        def refuse_archive(src, dst):
            if "unarchived_" not in str(dst):
                raise PermissionError("denied")
            return real_move(src, dst)

        monkeypatch.setattr(shutil, "move", refuse_archive)

        result = invoke(config_file, infected_dir)

        assert result.exit_code == 1
        assert "could not be archived" in result.stdout
        kept = list(state_dirs["quarantine"].glob("unarchived_*"))
        assert len(kept) == 1
        assert [p.name for p in kept[0].rglob("*") if p.is_file()] == ["a.txt"]

    def test_temp_artifacts_removed(self, config_file, scan_dir, state_dirs):
        invoke(config_file, scan_dir)

        assert list(state_dirs["temp"].iterdir()) == []

    def test_log_file_appended(self, config_file, scan_dir, state_dirs):
        invoke(config_file, scan_dir)
        invoke(config_file, scan_dir)

        log = (state_dirs["logs"] / "clamguard.log").read_text()
        assert log.count("started") >= 2


class TestExitCodes:
    """Fatal conditions map to their documented exit codes."""

    def test_missing_config_file(self, tmp_path, scan_dir):
        result = invoke(tmp_path / "missing.yaml", scan_dir)

        assert result.exit_code == 2
        assert "not found" in result.stdout

    def test_missing_scanner(self, config_file, scan_dir, monkeypatch, tmp_path):
        monkeypatch.setenv("CLAMGUARD_SCAN__SCANNER_PATH", str(tmp_path / "no-clamscan"))

        result = invoke(config_file, scan_dir)

        assert result.exit_code == 10
        assert "Error" in result.stdout

    def test_low_disk_space(self, config_file, scan_dir, monkeypatch):
        monkeypatch.setenv("CLAMGUARD_DISK__MIN_FREE_SPACE_MB", str(10**12))

        result = invoke(config_file, scan_dir)

        assert result.exit_code == 20

    def test_unwritable_quarantine_dir(self, config_file, scan_dir, monkeypatch, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        monkeypatch.setenv("CLAMGUARD_PATHS__QUARANTINE_DIR", str(blocker / "q"))

        result = invoke(config_file, scan_dir)

        assert result.exit_code == 30

    def test_quarantine_error(self, config_file, scan_dir, monkeypatch):
        def broken(self, ctx):
            raise QuarantineError("Cannot create quarantine holding directory: denied")

        monkeypatch.setattr(ScanInvoker, "prepare_holding_dir", broken)

        result = invoke(config_file, scan_dir)

        assert result.exit_code == 40
        assert "holding directory" in result.stdout

    def test_interrupt(self, config_file, scan_dir, monkeypatch):
        monkeypatch.setenv("FAKE_SCANNER_SLEEP", "30")
        timer = threading.Timer(1.0, os.kill, args=(os.getpid(), signal.SIGINT))
        timer.start()
        try:
            result = invoke(config_file, scan_dir)
        finally:
            timer.cancel()

        assert result.exit_code == 130
