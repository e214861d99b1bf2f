"""Scan command for ClamGuard CLI."""

import logging

import typer
from rich.markup import escape

from clamguard.cli._common import console
from clamguard.cli.helpers import (
    apply_cli_overrides,
    count_target_files,
    create_scan_components,
    error_exit,
    handle_signals,
    resolve_log_level,
)
from clamguard.cli.options import (
    ConfigOpt,
    CountOpt,
    ExcludeOpt,
    MaxSizeOpt,
    NoQuarantineOpt,
    PathsArg,
    QuickOpt,
    QuietOpt,
    SummaryOnlyOpt,
    VerboseOpt,
    VersionOpt,
)
from clamguard.cli.summary import render_summary, render_summary_line
from clamguard.config import ConfigError, ConfigLoader
from clamguard.core.errors import ClamGuardError, ExitCode
from clamguard.core.run_context import RunContext
from clamguard.utils.logging import close_file_handlers, setup_logging

logger = logging.getLogger(__name__)


def register_scan(app: typer.Typer) -> None:
    """Register the scan command with the Typer app."""

    @app.command()
    def scan(
        paths: PathsArg = None,
        version: VersionOpt = False,
        verbose: VerboseOpt = False,
        quiet: QuietOpt = False,
        quick: QuickOpt = False,
        count: CountOpt = False,
        no_quarantine: NoQuarantineOpt = False,
        summary_only: SummaryOnlyOpt = False,
        exclude: ExcludeOpt = None,
        max_size: MaxSizeOpt = None,
        config: ConfigOpt = None,
    ):
        """
        Scan files with ClamAV, quarantine detections and write a report.

        Without PATHS the configured default targets are scanned (or the
        quick list with --quick). Infected files are moved into a dated,
        owner-only quarantine archive unless --no-quarantine is given.

        Exit codes: 0 clean, 1 infections found, 2 scan or configuration
        error, 10 missing dependency, 20 low disk space, 30 permission error,
        40 quarantine error, 130 interrupted.
        """
        try:
            cfg = ConfigLoader.load(config)
        except ConfigError as e:
            error_exit(console, str(e), ExitCode.SCAN_ERROR)

        cfg = apply_cli_overrides(cfg, max_size=max_size, no_quarantine=no_quarantine)

        log_file = cfg.log_file if cfg.logging.log_to_file else None
        try:
            setup_logging(
                level=resolve_log_level(cfg, verbose, quiet),
                log_file=log_file,
                use_colors=cfg.logging.color_output,
            )
        except OSError as e:
            error_exit(console, f"Cannot open log file {log_file}: {e}", ExitCode.PERMISSION_ERROR)

        components = create_scan_components(cfg, quick=quick)
        raw_targets = list(paths or [])
        user_excludes = list(exclude or [])

        if count:
            targets = components.resolver.resolve(raw_targets)
            exclusions = components.exclusion_builder.build(user_excludes)
            with console.status("[bold blue]Counting files..."):
                total = count_target_files(
                    targets,
                    exclusions.patterns,
                    skip_dirs=[cfg.paths.quarantine_dir],
                )
            for target in targets:
                console.print(f"[blue]Target:[/blue] {escape(str(target))}")
            console.print(f"[bold]{total}[/bold] file(s) would be scanned")
            close_file_handlers()
            raise typer.Exit(ExitCode.CLEAN)

        show_progress = not quiet and console.is_terminal
        pipeline = components.create_pipeline(console, show_progress=show_progress)

        if not quiet:
            console.print(f"[blue]ClamGuard scan[/blue] [dim]({escape(cfg.scan.scanner_path)})[/dim]")

        exit_code = ExitCode.CLEAN
        with RunContext(cfg) as ctx, handle_signals(ctx):
            logger.info(f"Run {ctx.run_id} started")
            try:
                result = pipeline.run(ctx, raw_targets, user_excludes)
            except ClamGuardError as e:
                logger.error(f"Run {ctx.run_id} failed: {e}")
                console.print(f"[red]Error:[/red] {escape(str(e))}")
                exit_code = e.exit_code
            else:
                if quiet:
                    render_summary_line(console, result)
                else:
                    render_summary(
                        console,
                        result,
                        summary_only=summary_only,
                        max_detections=cfg.report.max_detections_shown,
                    )
                exit_code = result.exit_code

            if ctx.cancelled:
                exit_code = ExitCode.INTERRUPTED

        logger.info(f"Exiting with status {int(exit_code)}")
        close_file_handlers()
        raise typer.Exit(int(exit_code))
