"""Colorized terminal summary for a finished scan."""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from clamguard.core.models import ScanStatus
from clamguard.core.pipeline import PipelineResult
from clamguard.core.report import describe_retention, format_duration

STATUS_STYLES = {
    ScanStatus.CLEAN: ("green", "No threats found"),
    ScanStatus.INFECTED: ("bold red", "Threats detected"),
    ScanStatus.ERROR: ("yellow", "Scan error"),
}


def recommendation(result: PipelineResult) -> str:
    """Status-dependent advice shown under the summary."""
    status = result.run.status
    if status is ScanStatus.CLEAN:
        return "Your files look clean. Keep virus signatures up to date with freshclam."
    if status is ScanStatus.INFECTED:
        if result.quarantine_summary is not None:
            return (
                f"Infected files were moved to {result.quarantine_summary.location}. "
                "Review them before restoring or deleting."
            )
        return "Infected files were left in place. Remove or quarantine them as soon as possible."
    return "The scanner reported an error. Check the log file and the report for details."


def render_summary_line(console: Console, result: PipelineResult) -> None:
    """One-line summary used in quiet mode."""
    run = result.run
    style, label = STATUS_STYLES[run.status]
    console.print(
        f"[{style}]{run.status.symbol} {label}[/{style}] - "
        f"{run.scanned_files} scanned, {run.infected_files} infected"
    )


def render_summary(
    console: Console,
    result: PipelineResult,
    summary_only: bool = False,
    max_detections: int = 20,
) -> None:
    """
    Print the colorized summary.

    Args:
        console: Rich console for output
        result: Finished pipeline result
        summary_only: Hide the detections and quarantine details
        max_detections: Maximum detections listed before truncating
    """
    run = result.run
    style, label = STATUS_STYLES[run.status]

    console.print()
    console.print(f"[{style}]{run.status.symbol} {label}[/{style}]")
    console.print()

    table = Table(title="Scan Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Targets", str(len(run.targets)))
    table.add_row("Scanned files", str(run.scanned_files))
    table.add_row(
        "Infected files",
        f"[red]{run.infected_files}[/red]" if run.infected_files else "0",
    )
    table.add_row("Duration", format_duration(run.duration_seconds))
    rate = run.scan_rate
    if rate is not None:
        table.add_row("Scan rate", f"{rate:.1f} files/s")
    if result.exclusions.patterns:
        table.add_row("Exclusions", str(len(result.exclusions.patterns)))

    console.print(table)

    if not summary_only:
        if run.detections:
            console.print()
            detections = Table(title="Detections", show_header=True)
            detections.add_column("File", style="cyan", overflow="fold")
            detections.add_column("Detection", style="red")
            for detection in run.detections[:max_detections]:
                detections.add_row(escape(detection.file_path), escape(detection.label))
            console.print(detections)
            if len(run.detections) > max_detections:
                console.print(f"  ... and {len(run.detections) - max_detections} more (see report)")

        summary = result.quarantine_summary
        if summary is not None and summary.result is not None and summary.result.archived_count:
            console.print()
            console.print(f"[bold]Quarantined:[/bold] {summary.result.archived_count} file(s)")
            console.print(f"  Location: {escape(str(summary.location))}")
            console.print(
                f"  Retention: {summary.risk_level} - "
                f"{describe_retention(summary.active_retention_days)}"
            )
            if summary.result.failed_count:
                console.print(
                    f"  [yellow]Failed to quarantine: {summary.result.failed_count}[/yellow]"
                )

        if result.sweep is not None and result.sweep.removed_count:
            console.print(
                f"[dim]Retention sweep removed {result.sweep.removed_count} old entr"
                f"{'y' if result.sweep.removed_count == 1 else 'ies'}[/dim]"
            )

        if result.skipped_targets:
            console.print()
            console.print(f"[yellow]Skipped targets ({len(result.skipped_targets)}):[/yellow]")
            for raw in result.skipped_targets[:5]:
                console.print(f"  • {escape(raw)}")

        if run.parse_warnings:
            console.print()
            console.print("[yellow]Statistics may be incomplete:[/yellow]")
            for warning in run.parse_warnings:
                console.print(f"  • {escape(warning)}")

    if result.leftover_dir is not None:
        console.print()
        console.print(
            f"[yellow]Detected files that could not be archived were kept in "
            f"{escape(str(result.leftover_dir))}[/yellow]"
        )

    if result.report_path is not None:
        console.print()
        console.print(f"[dim]Report: {escape(str(result.report_path))}[/dim]")

    console.print()
    console.print(f"[{style}]→[/{style}] {escape(recommendation(result))}")
