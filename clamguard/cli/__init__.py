"""Command-line interface for ClamGuard."""
