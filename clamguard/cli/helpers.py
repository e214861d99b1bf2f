"""CLI helper functions and component factories for ClamGuard.

This module keeps the scan command small: configuration overrides, component
construction, signal handling and the count-only mode live here.
"""

import logging
import re
import signal
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator, Optional, Sequence

import typer
from rich.console import Console
from rich.markup import escape

from clamguard.config.schema import ClamGuardConfig
from clamguard.core.exclusions import ExclusionSetBuilder
from clamguard.core.pipeline import ScanPipeline
from clamguard.core.quarantine import QuarantineManager
from clamguard.core.report import ReportGenerator
from clamguard.core.run_context import RunContext
from clamguard.core.scanner import ScanInvoker
from clamguard.core.targets import TargetResolver
from clamguard.utils.path_utils import is_within, iter_files

logger = logging.getLogger(__name__)


def apply_cli_overrides(
    cfg: ClamGuardConfig,
    *,
    max_size: Optional[int] = None,
    no_quarantine: bool = False,
) -> ClamGuardConfig:
    """Return a new config with command-line overrides applied.

    Args:
        cfg: Loaded configuration (left untouched)
        max_size: --max-size value in MB, if given
        no_quarantine: --no-quarantine flag

    Returns:
        New ClamGuardConfig
    """
    scan = cfg.scan
    if max_size is not None:
        scan = replace(
            scan,
            max_file_size_mb=max_size,
            max_scan_size_mb=max(scan.max_scan_size_mb, max_size),
        )

    quarantine = cfg.quarantine
    if no_quarantine:
        quarantine = replace(quarantine, enabled=False)

    return replace(cfg, scan=scan, quarantine=quarantine)


def resolve_log_level(cfg: ClamGuardConfig, verbose: bool, quiet: bool) -> str:
    """--verbose wins over --quiet, which wins over the configured level."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return cfg.logging.level.upper()


@dataclass
class ScanComponents:
    """Container for scan-related components created from config."""

    resolver: TargetResolver
    exclusion_builder: ExclusionSetBuilder
    invoker: ScanInvoker
    quarantine: Optional[QuarantineManager]
    reporter: Optional[ReportGenerator]
    cfg: ClamGuardConfig

    def create_pipeline(self, console: Optional[Console], show_progress: bool) -> ScanPipeline:
        """Create a ScanPipeline wired with the stored components."""
        return ScanPipeline(
            config=self.cfg,
            resolver=self.resolver,
            exclusion_builder=self.exclusion_builder,
            invoker=self.invoker,
            quarantine=self.quarantine,
            reporter=self.reporter,
            console=console,
            show_progress=show_progress,
        )


def create_scan_components(cfg: ClamGuardConfig, quick: bool = False) -> ScanComponents:
    """Create all scan-related components from configuration.

    Args:
        cfg: ClamGuard configuration (CLI overrides already applied)
        quick: Use the quick target list as defaults

    Returns:
        ScanComponents dataclass containing all configured components
    """
    defaults = cfg.scan.quick_targets if quick else cfg.general.default_targets
    resolver = TargetResolver(default_targets=defaults)

    exclusion_builder = ExclusionSetBuilder(cfg.scan.exclude_patterns)

    invoker = ScanInvoker(
        scanner_path=cfg.scan.scanner_path,
        max_file_size_mb=cfg.scan.max_file_size_mb,
        max_scan_size_mb=cfg.scan.max_scan_size_mb,
        system_exclude_dirs=cfg.scan.system_exclude_dirs,
        quarantine_dir=cfg.paths.quarantine_dir,
        extra_args=cfg.scan.extra_args,
    )

    quarantine = None
    if cfg.quarantine.enabled:
        quarantine = QuarantineManager(
            root=cfg.paths.quarantine_dir,
            retention_days=cfg.quarantine.retention_days,
            risk_level=cfg.quarantine.risk_level,
            max_size_mb=cfg.quarantine.max_size_mb,
        )

    reporter = ReportGenerator(cfg.paths.log_dir) if cfg.report.enabled else None

    return ScanComponents(
        resolver=resolver,
        exclusion_builder=exclusion_builder,
        invoker=invoker,
        quarantine=quarantine,
        reporter=reporter,
        cfg=cfg,
    )


def count_target_files(
    targets: Sequence[Path],
    patterns: Sequence[str] = (),
    skip_dirs: Sequence[Path] = (),
) -> int:
    """Count regular files under the targets, honouring exclusions.

    Patterns are treated as regular expressions searched in the full path;
    patterns that do not compile are ignored.
    """
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.debug(f"Ignoring exclusion pattern {pattern!r} for counting: {e}")

    total = 0
    for target in targets:
        for path in iter_files(target):
            if any(is_within(path, skip) for skip in skip_dirs):
                continue
            if any(regex.search(str(path)) for regex in compiled):
                continue
            total += 1
    return total


@contextmanager
def handle_signals(ctx: RunContext) -> Iterator[None]:
    """Route SIGINT/SIGTERM to the run's cancellation token while active."""

    def _cancel(signum, _frame):
        ctx.cancel(signal.Signals(signum).name)

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _cancel)
        except ValueError:
            # Not running in the main thread; cancellation stays manual
            logger.debug(f"Cannot install handler for {signal.Signals(signum).name}")
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


def error_exit(console: Console, message: str, code: int = 1) -> None:
    """Print an error message and exit.

    Args:
        console: Rich console for output
        message: Error message to display
        code: Exit code (default: 1)

    Raises:
        typer.Exit: Always raises with the given code
    """
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(code)
