"""Allow ``python -m clamguard``."""

from clamguard.cli.main import main

main()
