"""Baseline validation of the unmodified project."""

import logging

from .cycle import run_test_cycle
from .errors import BaselineTestFailure, CommandExecutionError, TestExecutionFailure
from .models import EffectiveConfig

logger = logging.getLogger(__name__)


async def validate_baseline(config: EffectiveConfig, runner) -> None:
    """Run the project's tests against the untouched manifest.

    Raises:
        BaselineTestFailure: If the project does not pass before any change
    """
    logger.info("running initial tests on project")
    try:
        await run_test_cycle(config, runner)
    except TestExecutionFailure as e:
        logger.error("running initial tests on project failed: %s", e)
        raise BaselineTestFailure(e.command, e.exit_code) from e
    except CommandExecutionError as e:
        logger.error("running initial tests on project failed: %s", e)
        raise BaselineTestFailure(e.command, -1) from e
    logger.info("initial tests passed")
