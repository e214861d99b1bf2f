"""Sequential scan pipeline for ClamGuard.

resolve targets -> build exclusions -> invoke scanner (with progress) ->
parse output -> archive and sweep quarantine -> write report -> notify
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from clamguard.config.schema import ClamGuardConfig
from clamguard.core.errors import ExitCode
from clamguard.core.exclusions import ExclusionSet, ExclusionSetBuilder
from clamguard.core.models import QuarantineResult, ScanRun, ScanStatus, SweepResult
from clamguard.core.notifier import notify
from clamguard.core.preflight import run_preflight
from clamguard.core.progress import ProgressReporter
from clamguard.core.quarantine import QuarantineManager
from clamguard.core.report import (
    QuarantineSummary,
    ReportGenerator,
    collect_environment,
)
from clamguard.core.results import parse_counts, parse_detections, read_output
from clamguard.core.run_context import RunContext
from clamguard.core.scanner import ScanInvoker
from clamguard.core.targets import TargetResolver

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything a finished run produced."""

    run: ScanRun
    exclusions: ExclusionSet
    skipped_targets: list[str] = field(default_factory=list)
    quarantine: Optional[QuarantineResult] = None
    sweep: Optional[SweepResult] = None
    report_path: Optional[Path] = None
    leftover_dir: Optional[Path] = None  # Detections that could not be archived
    quarantine_summary: Optional[QuarantineSummary] = None

    @property
    def exit_code(self) -> ExitCode:
        status = self.run.status
        if status is ScanStatus.CLEAN:
            return ExitCode.CLEAN
        if status is ScanStatus.INFECTED:
            return ExitCode.INFECTED
        return ExitCode.SCAN_ERROR


class ScanPipeline:
    """Drives one scan run from target resolution to report."""

    def __init__(
        self,
        config: ClamGuardConfig,
        resolver: TargetResolver,
        exclusion_builder: ExclusionSetBuilder,
        invoker: ScanInvoker,
        quarantine: Optional[QuarantineManager],
        reporter: Optional[ReportGenerator],
        console: Optional[Console] = None,
        show_progress: bool = True,
    ):
        self.config = config
        self.resolver = resolver
        self.exclusion_builder = exclusion_builder
        self.invoker = invoker
        self.quarantine = quarantine
        self.reporter = reporter
        self.console = console
        self.show_progress = show_progress

    def run(
        self,
        ctx: RunContext,
        raw_targets: Sequence[str] = (),
        user_excludes: Sequence[str] = (),
    ) -> PipelineResult:
        """
        Execute the full pipeline.

        Raises:
            ClamGuardError: For any fatal condition (the caller maps it to an
                exit code; ctx removes transient artifacts on exit)
        """
        run_preflight(self.config, quarantine_enabled=self.quarantine is not None)

        targets = self.resolver.resolve(raw_targets)
        for target in targets:
            logger.info(f"Target: {target}")

        exclusions = self.exclusion_builder.build(user_excludes)
        exclusion_file = self.exclusion_builder.write(exclusions, ctx)

        engine_version = self.invoker.engine_version()

        holding_dir = None
        if self.quarantine is not None:
            self.quarantine.ensure_root()
            holding_dir = self.invoker.prepare_holding_dir(ctx)

        reporter = ProgressReporter(
            ctx.status,
            self.console,
            interval=self.config.general.progress_interval,
            enabled=self.show_progress,
        )
        archived = None
        leftover_dir = None
        try:
            reporter.start()
            try:
                outcome = self.invoker.run(ctx, targets, exclusion_file, holding_dir)
            finally:
                reporter.stop("[yellow]Scan stopped.[/yellow]" if ctx.cancelled else None)
            finished_at = datetime.now()

            output = read_output(outcome.output_path)
            counts = parse_counts(output)
            detections = parse_detections(output)

            if holding_dir is not None:
                ctx.status.publish("Archiving quarantined files...")
                archived = self.quarantine.archive(holding_dir, detections=detections)
        finally:
            if holding_dir is not None:
                leftover_dir = self.quarantine.release_holding(holding_dir, ctx.run_id)

        run = ScanRun(
            run_id=ctx.run_id,
            started_at=ctx.started_at,
            finished_at=finished_at,
            targets=tuple(targets),
            exit_code=outcome.exit_code,
            scanned_files=counts.scanned_files,
            infected_files=counts.infected_files,
            detections=tuple(detections),
            engine_version=engine_version,
            parse_warnings=tuple(counts.warnings),
        )

        result = PipelineResult(
            run=run,
            exclusions=exclusions,
            skipped_targets=list(self.resolver.skipped),
            quarantine=archived,
            leftover_dir=leftover_dir,
        )

        if self.quarantine is not None:
            result.sweep = self.quarantine.sweep()
            result.quarantine_summary = QuarantineSummary(
                location=result.quarantine.archive_dir
                if result.quarantine and result.quarantine.archive_dir
                else self.quarantine.root,
                risk_level=self.quarantine.risk_level.value,
                retention_days=dict(self.quarantine.retention_days),
                result=result.quarantine,
                sweep=result.sweep,
                leftover_dir=leftover_dir,
            )

        if self.reporter is not None:
            environment = collect_environment(engine_version)
            result.report_path = self.reporter.write(run, environment, result.quarantine_summary)

        notify(run, self.config.notifications)

        logger.info(
            f"Run {run.run_id} finished: {run.status.value}, "
            f"{run.scanned_files} scanned, {run.infected_files} infected"
        )
        return result
