"""Tests for plain-text report generation."""

from datetime import datetime, timedelta
from pathlib import Path

from clamguard.core.models import Detection, QuarantineResult, ScanRun, SweepResult
from clamguard.core.report import (
    EnvironmentInfo,
    QuarantineSummary,
    ReportGenerator,
    collect_environment,
    describe_retention,
    format_duration,
)
from clamguard.utils.constants import DEFAULT_RETENTION_DAYS

STARTED = datetime(2026, 2, 3, 4, 5, 6)
ENV = EnvironmentInfo(
    user="alice",
    host="box",
    os_name="Linux-6.1",
    python_version="3.12.1",
    scanner_version="ClamAV 1.2.3",
)


def make_run(
    exit_code: int = 0,
    duration: float = 4.0,
    detections: tuple[Detection, ...] = (),
    warnings: tuple[str, ...] = (),
) -> ScanRun:
    return ScanRun(
        run_id="20260203_040506_99",
        started_at=STARTED,
        finished_at=STARTED + timedelta(seconds=duration),
        targets=(Path("/data"), Path("/home/alice")),
        exit_code=exit_code,
        scanned_files=20,
        infected_files=len(detections),
        detections=detections,
        parse_warnings=warnings,
    )


class TestHelpers:

    def test_describe_retention(self):
        assert describe_retention(0) == "never expires"
        assert describe_retention(30) == "30 days"

    def test_format_duration(self):
        assert format_duration(4.0) == "4.0s"
        assert format_duration(125) == "2m 5s"
        assert format_duration(3725) == "1h 2m 5s"

    def test_collect_environment(self):
        env = collect_environment("ClamAV 9")

        assert env.scanner_version == "ClamAV 9"
        assert env.user
        assert env.host is not None
        assert env.python_version


class TestRender:
    """Tests for ReportGenerator.render."""

    def test_clean_report(self, tmp_path):
        text = ReportGenerator(tmp_path).render(make_run(), ENV)

        assert "Run ID:         20260203_040506_99" in text
        assert "[OK] CLEAN" in text
        assert "User:           alice@box" in text
        assert "  - /data" in text
        assert "  - /home/alice" in text
        assert "Scanned files:  20" in text
        assert "Scan rate:      5.0 files/s" in text
        assert "Scanner:        ClamAV 1.2.3" in text
        assert "Detections" not in text
        assert "Quarantine" not in text

    def test_zero_duration_omits_rate(self, tmp_path):
        text = ReportGenerator(tmp_path).render(make_run(duration=0), ENV)

        assert "Scan rate" not in text

    def test_infected_with_quarantine(self, tmp_path):
        run = make_run(
            exit_code=1,
            detections=(Detection("/data/a.txt", "Eicar-Test-Signature"),),
        )
        summary = QuarantineSummary(
            location=Path("/q/2026-02"),
            risk_level="high",
            retention_days=dict(DEFAULT_RETENTION_DAYS),
            result=QuarantineResult(archive_dir=Path("/q/2026-02")),
            sweep=SweepResult(expired=[Path("/q/2025-01/x_1")]),
        )

        text = ReportGenerator(tmp_path).render(run, ENV, summary)

        assert "[!!] INFECTED" in text
        assert "Detections (1):" in text
        assert "/data/a.txt: Eicar-Test-Signature" in text
        assert "Location:       /q/2026-02" in text
        assert "Retention:      high - 90 days" in text
        assert "critical=never expires" in text
        assert "Expired now:    1" in text

    def test_infected_without_quarantine(self, tmp_path):
        run = make_run(exit_code=1, detections=(Detection("/a", "X"),))

        text = ReportGenerator(tmp_path).render(run, ENV)

        assert "disabled (files left in place)" in text

    def test_infected_without_detection_lines(self, tmp_path):
        text = ReportGenerator(tmp_path).render(make_run(exit_code=1), ENV)

        assert "Detections (0):" in text
        assert "no detection lines" in text

    def test_error_status_and_warnings(self, tmp_path):
        run = make_run(exit_code=2, warnings=("Cannot parse 'Scanned files:' value: 'abc'",))

        text = ReportGenerator(tmp_path).render(run, ENV)

        assert "[??] ERROR" in text
        assert "Exit status:    2" in text
        assert "Warnings:" in text
        assert "Cannot parse" in text

    def test_unknown_scanner_version(self, tmp_path):
        env = EnvironmentInfo("u", "h", "os", "3.12", None)

        text = ReportGenerator(tmp_path).render(make_run(), env)

        assert "Scanner:        unknown" in text


class TestWrite:
    """Tests for ReportGenerator.write."""

    def test_timestamped_filename(self, tmp_path):
        generator = ReportGenerator(tmp_path / "reports")

        path = generator.write(make_run(), ENV)

        assert path == tmp_path / "reports" / "scan_report_20260203_040506.txt"
        assert "ClamGuard Scan Report" in path.read_text()

    def test_write_failure_returns_none(self, tmp_path, caplog):
        blocker = tmp_path / "reports"
        blocker.write_text("not a dir")

        path = ReportGenerator(blocker).write(make_run(), ENV)

        assert path is None
        assert "Cannot write report" in caplog.text

    def test_same_second_runs_keep_both_reports(self, tmp_path):
        generator = ReportGenerator(tmp_path)

        first = generator.write(make_run(), ENV)
        second = generator.write(make_run(exit_code=1), ENV)

        assert first == tmp_path / "scan_report_20260203_040506.txt"
        assert second == tmp_path / "scan_report_20260203_040506_1.txt"
        assert "[OK] CLEAN" in first.read_text()
        assert "INFECTED" in second.read_text()

    def test_unarchived_location_reported(self, tmp_path):
        run = make_run(exit_code=1, detections=(Detection("/data/a.txt", "X"),))
        summary = QuarantineSummary(
            location=Path("/q"),
            risk_level="medium",
            retention_days=dict(DEFAULT_RETENTION_DAYS),
            result=QuarantineResult(failed=[(Path("/tmp/hold/a.txt"), "denied")]),
            leftover_dir=Path("/q/unarchived_20260203_040506_99"),
        )

        text = ReportGenerator(tmp_path).render(run, ENV, summary)

        assert "Failed moves:   1" in text
        assert "Unarchived in:  /q/unarchived_20260203_040506_99" in text
