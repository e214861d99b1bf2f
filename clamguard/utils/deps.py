"""External command availability helpers for ClamGuard.

Used by the pre-flight checks, the notifier and the report's environment
fingerprint.
"""

import logging
import shutil
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)


def find_command(command: str) -> Optional[str]:
    """Resolve a command name or path to an executable path.

    Args:
        command: Command name (looked up on PATH) or explicit path

    Returns:
        Absolute executable path, or None if not found
    """
    return shutil.which(command)


def is_command_available(command: str) -> bool:
    """Check if a command can be executed."""
    return find_command(command) is not None


def get_command_version(command: str, timeout: float = 10.0) -> Optional[str]:
    """Get the first line printed by ``<command> --version``.

    Args:
        command: Command name or path
        timeout: Seconds to wait for the command

    Returns:
        Version line, or None if the command is missing or fails
    """
    if not is_command_available(command):
        return None

    try:
        result = subprocess.run(
            [command, "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Cannot query version of {command}: {e}")
        return None

    output = (result.stdout or result.stderr).strip()
    if not output:
        return None
    return output.splitlines()[0].strip()
