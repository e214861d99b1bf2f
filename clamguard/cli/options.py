"""Shared CLI option definitions."""

from pathlib import Path
from typing import Annotated, Optional

import typer

from clamguard import __version__
from clamguard.cli._common import console


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ClamGuard v{__version__}")
        raise typer.Exit()


PathsArg = Annotated[
    Optional[list[str]],
    typer.Argument(
        help="Files or directories to scan (default: configured targets)",
        show_default=False,
    ),
]
VersionOpt = Annotated[
    bool,
    typer.Option(
        "--version", "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
]
VerboseOpt = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable verbose output"),
]
QuietOpt = Annotated[
    bool,
    typer.Option("--quiet", "-q", help="Only print the final summary line"),
]
QuickOpt = Annotated[
    bool,
    typer.Option("--quick", help="Scan the quick target list when no paths are given"),
]
CountOpt = Annotated[
    bool,
    typer.Option("--count", "-c", help="Count files that would be scanned and exit"),
]
NoQuarantineOpt = Annotated[
    bool,
    typer.Option("--no-quarantine", help="Leave infected files in place"),
]
SummaryOnlyOpt = Annotated[
    bool,
    typer.Option("--summary-only", help="Hide per-detection details in the terminal"),
]
ExcludeOpt = Annotated[
    Optional[list[str]],
    typer.Option(
        "--exclude",
        metavar="PATTERN",
        help="Exclude paths matching PATTERN (repeatable)",
        show_default=False,
    ),
]
MaxSizeOpt = Annotated[
    Optional[int],
    typer.Option(
        "--max-size",
        metavar="N",
        min=1,
        help="Skip files larger than N MB",
        show_default=False,
    ),
]
ConfigOpt = Annotated[
    Optional[Path],
    typer.Option("--config", help="Extra config file layered over system/user config"),
]
