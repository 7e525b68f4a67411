"""
External command helpers.

Every analyzer except the tag writers is an external program. This module
runs them and checks up front that they are installed.
"""

import logging
import shutil
import subprocess
from typing import Iterable, List, Sequence

logger = logging.getLogger(__name__)


class ToolError(Exception):
    """Raised when an external command cannot be run or exits non-zero."""

    def __init__(self, command: Sequence[str], returncode: int = -1, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"{command[0]} exited with {returncode}{detail}")


class MissingToolError(Exception):
    """Raised when a required external command is not on PATH."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Required tools not found: {', '.join(missing)}. Please install them.")


def run_tool(command: Sequence[str]) -> subprocess.CompletedProcess:
    """
    Run an external command and capture its text output.

    Args:
        command: Program and arguments.

    Returns:
        The completed process (returncode == 0).

    Raises:
        ToolError: If the program is missing or exits non-zero.
    """
    logger.debug(f"Running: {' '.join(str(c) for c in command)}")
    try:
        result = subprocess.run(
            [str(c) for c in command],
            capture_output=True,
            text=True,
        )
    except FileNotFoundError:
        raise ToolError(command, returncode=127, stderr=f"{command[0]} not found in PATH")

    if result.returncode != 0:
        raise ToolError(command, returncode=result.returncode, stderr=result.stderr or "")

    return result


def check_dependencies(tools: Iterable[str]) -> None:
    """
    Verify that every required tool is available.

    Raises:
        MissingToolError: Listing every tool that could not be found.
    """
    missing = []
    for tool in tools:
        location = shutil.which(tool)
        if location is None:
            logger.error(f"Error: {tool} not found. Please install it.")
            missing.append(tool)
        else:
            logger.debug(f"Found {tool} at {location}")

    if missing:
        raise MissingToolError(missing)
