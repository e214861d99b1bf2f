"""Main CLI application for ClamGuard.

This module builds the Typer application and registers its command. With a
single registered command Typer runs it directly, so the tool is invoked as
``clamguard [OPTIONS] [PATHS]...``.
"""

import typer

from clamguard.cli.scan_cmd import register_scan


app = typer.Typer(
    name="clamguard",
    help="ClamGuard - scan, quarantine and report with ClamAV.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

register_scan(app)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
