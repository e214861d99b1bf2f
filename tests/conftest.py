"""Pytest configuration and shared fixtures for ClamGuard tests."""

import logging
import os
import stat
import sys
import textwrap
from datetime import datetime
from pathlib import Path

import pytest
import yaml

from clamguard.config.loader import ConfigLoader
from clamguard.config.schema import (
    ClamGuardConfig,
    DiskConfig,
    GeneralConfig,
    LoggingConfig,
    PathsConfig,
    QuarantineConfig,
    ScanConfig,
)


EICAR_MARKER = b"EICAR-STANDARD-ANTIVIRUS-TEST-FILE"


# =============================================================================
# Test Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_environment(tmp_path, monkeypatch):
    """Automatically isolate all tests from the real machine.

    Tests run with tmp_path as cwd, a private HOME, no user or system config
    and no CLAMGUARD_* overrides.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setattr(ConfigLoader, "SYSTEM_CONFIG_PATH", tmp_path / "etc" / "config.yaml")
    for name in list(os.environ):
        if name.startswith("CLAMGUARD_") or name.startswith("FAKE_SCANNER_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach handlers installed by CLI runs so caplog sees every record."""
    yield
    logger = logging.getLogger("clamguard")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    return tmp_path / "home"


@pytest.fixture
def scan_dir(tmp_path: Path) -> Path:
    """Directory with two clean files."""
    directory = tmp_path / "scan"
    directory.mkdir()
    (directory / "readme.txt").write_text("hello")
    (directory / "notes.md").write_text("nothing to see")
    return directory


@pytest.fixture
def infected_dir(scan_dir: Path) -> Path:
    """scan_dir plus one file carrying the test marker."""
    (scan_dir / "a.txt").write_bytes(b"X5O!P%@AP " + EICAR_MARKER)
    return scan_dir


@pytest.fixture
def state_dirs(tmp_path: Path) -> dict[str, Path]:
    dirs = {
        "quarantine": tmp_path / "state" / "quarantine",
        "logs": tmp_path / "state" / "logs",
        "temp": tmp_path / "state" / "tmp",
    }
    dirs["temp"].mkdir(parents=True)
    return dirs


# =============================================================================
# Fake scanner
# =============================================================================


FAKE_SCANNER = textwrap.dedent(
    """\
    #!{python}
    import json
    import os
    import shutil
    import sys
    import time

    MARKER = b"EICAR-STANDARD-ANTIVIRUS-TEST-FILE"
    args = sys.argv[1:]

    if "--version" in args:
        print("ClamAV 1.2.3/27000/Thu Jan  1 00:00:00 2026")
        sys.exit(0)

    record = os.environ.get("FAKE_SCANNER_ARGS")
    if record:
        with open(record, "w") as f:
            json.dump(args, f)

    delay = float(os.environ.get("FAKE_SCANNER_SLEEP", "0"))
    if delay:
        time.sleep(delay)

    move = None
    targets = []
    for arg in args:
        if arg.startswith("--move="):
            move = arg.split("=", 1)[1]
        elif arg.startswith("-"):
            continue
        else:
            targets.append(arg)

    files = []
    for target in targets:
        if os.path.isfile(target):
            files.append(target)
        for root, _dirs, names in os.walk(target):
            files.extend(os.path.join(root, n) for n in sorted(names))

    scanned = infected = 0
    for index, path in enumerate(files):
        scanned += 1
        with open(path, "rb") as f:
            if MARKER not in f.read():
                continue
        infected += 1
        print(path + ": Eicar-Test-Signature FOUND")
        if move:
            slot = os.path.join(move, str(index))
            os.makedirs(slot, exist_ok=True)
            shutil.move(path, os.path.join(slot, os.path.basename(path)))

    linger = float(os.environ.get("FAKE_SCANNER_SLEEP_AFTER_MOVE", "0"))
    if linger:
        time.sleep(linger)

    print()
    print("----------- SCAN SUMMARY -----------")
    print("Known viruses: 8700000")
    print("Scanned files: " + os.environ.get("FAKE_SCANNER_SCANNED", str(scanned)))
    print("Infected files: " + str(infected))
    sys.exit(int(os.environ.get("FAKE_SCANNER_EXIT", 1 if infected else 0)))
    """
)


@pytest.fixture
def fake_scanner(tmp_path: Path) -> Path:
    """Executable script that behaves like clamscan for the options we use."""
    script = tmp_path / "bin" / "fake-clamscan"
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(FAKE_SCANNER.format(python=sys.executable))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def args_record(tmp_path: Path, monkeypatch) -> Path:
    """File the fake scanner writes its argv to."""
    path = tmp_path / "scanner_args.json"
    monkeypatch.setenv("FAKE_SCANNER_ARGS", str(path))
    return path


# =============================================================================
# Config Fixtures
# =============================================================================


@pytest.fixture
def test_config(fake_scanner: Path, state_dirs: dict[str, Path], scan_dir: Path) -> ClamGuardConfig:
    """Configuration pointing every path into tmp_path."""
    return ClamGuardConfig(
        general=GeneralConfig(default_targets=[scan_dir], progress_interval=0.05),
        paths=PathsConfig(
            quarantine_dir=state_dirs["quarantine"],
            log_dir=state_dirs["logs"],
            temp_dir=state_dirs["temp"],
        ),
        scan=ScanConfig(scanner_path=str(fake_scanner), exclude_patterns=[]),
        quarantine=QuarantineConfig(max_size_mb=0),
        logging=LoggingConfig(color_output=False),
        disk=DiskConfig(min_free_space_mb=0),
    )


@pytest.fixture
def config_file(tmp_path: Path, fake_scanner: Path, state_dirs: dict[str, Path], scan_dir: Path) -> Path:
    """YAML config file equivalent to test_config, for CLI tests."""
    data = {
        "general": {"default_targets": [str(scan_dir)], "progress_interval": 0.05},
        "paths": {
            "quarantine_dir": str(state_dirs["quarantine"]),
            "log_dir": str(state_dirs["logs"]),
            "temp_dir": str(state_dirs["temp"]),
        },
        "scan": {"scanner_path": str(fake_scanner), "exclude_patterns": []},
        "quarantine": {"max_size_mb": 0},
        "logging": {"color_output": False},
        "disk": {"min_free_space_mb": 0},
    }
    path = tmp_path / "clamguard-test.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


# =============================================================================
# Helper Functions (available to all tests)
# =============================================================================


def create_archived_file(
    root: Path,
    name: str,
    when: datetime,
    content: bytes = b"x",
) -> Path:
    """Helper to place a file in the quarantine layout by hand."""
    directory = root / when.strftime("%Y-%m")
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}_{int(when.timestamp())}"
    path.write_bytes(content)
    return path


# Make helpers available
pytest.create_archived_file = create_archived_file
