"""The clean, install and test cycle shared by baseline and task validation."""

import logging
import shutil
from pathlib import Path

from .errors import TestExecutionFailure
from .models import CommandResult, EffectiveConfig

logger = logging.getLogger(__name__)

OUTPUT_TAIL_LINES = 20


def _output_tail(result: CommandResult) -> str:
    lines = (result.stderr or result.stdout).strip().splitlines()
    return "\n".join(lines[-OUTPUT_TAIL_LINES:])


def clean_install_area(project_dir: Path, install_dir: str) -> None:
    """Remove installed dependencies from the project directory."""
    target = project_dir / install_dir
    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.exists():
        logger.debug("removing %s", target)
        shutil.rmtree(target)


async def run_checked(runner, command: str) -> CommandResult:
    """Run a command, raising TestExecutionFailure on a non-zero exit."""
    result = await runner.run(command)
    if not result.ok:
        raise TestExecutionFailure(command, result.exit_code, _output_tail(result))
    return result


async def install(config: EffectiveConfig, runner) -> None:
    """Perform a fresh install of the current manifest."""
    await run_checked(runner, config.install_command)


async def run_test_cycle(config: EffectiveConfig, runner) -> None:
    """Reinstall from scratch and run every test command in order.

    The install area is cleaned before installing and again afterwards,
    whatever the outcome.

    Raises:
        TestExecutionFailure: On the first install or test command to fail
        CommandExecutionError: If a command could not be started
    """
    clean_install_area(runner.cwd, config.install_dir)
    try:
        await install(config, runner)
        for command in config.test_commands:
            await run_checked(runner, command)
    finally:
        clean_install_area(runner.cwd, config.install_dir)
