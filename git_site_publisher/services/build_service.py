"""Runs the site generator before publishing."""

import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from git_site_publisher.exceptions import BuildError
from git_site_publisher.logging_config import get_logger

logger = get_logger(__name__)


class BuildRunner:
    """Runs the configured build commands, in order, from the project root.

    Commands are split with shlex and run without a shell, so shell operators
    and variable references reach the program as literal arguments.
    """

    def __init__(self, commands: List[str], cwd: Path, timeout: Optional[int] = None):
        self.commands = commands
        self.cwd = cwd
        self.timeout = timeout

    def run(self) -> None:
        """Run every command, stopping at the first failure.

        Raises:
            BuildError: a command could not be started, exited non-zero, or timed out
        """
        for command in self.commands:
            logger.info(f"Running build command: {command}")
            try:
                result = subprocess.run(
                    shlex.split(command),
                    cwd=str(self.cwd),
                    check=False,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as e:
                raise BuildError(command, message=f"command not found ({e.filename})") from e
            except subprocess.TimeoutExpired as e:
                raise BuildError(command, message=f"timed out after {e.timeout} seconds") from e
            except ValueError as e:
                # shlex could not parse the command line
                raise BuildError(command, message=str(e)) from e

            if result.stdout.strip():
                logger.debug(result.stdout.strip())
            if result.returncode != 0:
                raise BuildError(command, result.returncode, result.stderr.strip() or result.stdout.strip() or None)
