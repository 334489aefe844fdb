"""Shell command execution."""

import asyncio
import logging
from pathlib import Path

from .errors import CommandExecutionError
from .logs import VERBOSE
from .models import CommandResult

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs shell commands to completion inside the project directory."""

    def __init__(self, cwd: Path):
        """Initialize command runner.

        Args:
            cwd: Directory every command is started in
        """
        self.cwd = cwd

    async def run(self, command: str) -> CommandResult:
        """Run a command and wait for it to exit.

        A non-zero exit status is reported in the result, never raised.

        Args:
            command: Shell command line

        Returns:
            Exit code and captured output

        Raises:
            CommandExecutionError: If the process could not be started
        """
        logger.log(VERBOSE, command)
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("'%s' could not be started: %s", command, e)
            raise CommandExecutionError(command, str(e)) from e

        stdout, stderr = await process.communicate()
        result = CommandResult(
            command=command,
            exit_code=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

        if result.stdout:
            logger.debug("%s stdout:\n%s", command, result.stdout.rstrip())
        if result.stderr:
            logger.debug("%s stderr:\n%s", command, result.stderr.rstrip())
        if not result.ok:
            logger.error("'%s' failed with exit code %d", command, result.exit_code)
        return result
