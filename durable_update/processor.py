"""Attempting, validating and accepting update tasks one at a time."""

import copy
import json
import logging

from .cycle import run_test_cycle
from .errors import (
    CommandExecutionError,
    ManifestWriteFailure,
    TaskFailure,
    TestExecutionFailure,
)
from .logs import VERBOSE
from .manifest import detect_indent, dump_manifest, write_manifest
from .models import EffectiveConfig, RunState, TaskOutcome, UpdateTask

logger = logging.getLogger(__name__)


def should_continue(config: EffectiveConfig, accepted: int) -> bool:
    """Whether another task may be attempted after ``accepted`` successes."""
    return config.upgrade_type == "all" or accepted == 0


def _apply_edit(state: RunState, task: UpdateTask) -> tuple[dict, str]:
    working = copy.deepcopy(state.manifest)
    section = working.get(task.manifest_key)
    if not isinstance(section, dict):
        section = working[task.manifest_key] = {}
    section[task.package_name] = task.target_version
    return working, dump_manifest(working, detect_indent(state.manifest_text))


async def attempt_task(
    task: UpdateTask, state: RunState, config: EffectiveConfig, runner
) -> Exception | None:
    """Apply one task to the manifest and keep it only if the tests pass.

    On success the state advances to the edited manifest. On failure the
    task is rejected and the last accepted manifest is written back. An
    interruption also restores the manifest before it propagates.

    Returns:
        The failure that rejected the task, or None if it was accepted

    Raises:
        ManifestWriteFailure: If the last accepted manifest cannot be restored
    """
    task.original_version = (state.manifest.get(task.manifest_key) or {}).get(task.package_name)
    logger.info(
        "updating '%s' dependency '%s' from version '%s' to version '%s'",
        task.category, task.package_name, task.original_version, task.target_version,
    )

    working, working_text = _apply_edit(state, task)
    logger.log(VERBOSE, "new manifest: %s", json.dumps(working, indent=2))

    try:
        write_manifest(state.manifest_path, working_text)
        logger.info("running tests on project")
        await run_test_cycle(config, runner)
    except (TestExecutionFailure, ManifestWriteFailure, CommandExecutionError, OSError) as e:
        task.outcome = TaskOutcome.REJECTED
        task.error = str(e)
        logger.error("updating dependency '%s' failed: %s", task.package_name, e)
        write_manifest(state.manifest_path, state.manifest_text)
        return e
    except BaseException as e:
        task.outcome = TaskOutcome.REJECTED
        task.error = f"interrupted: {e!r}"
        logger.error("updating dependency '%s' interrupted, restoring manifest", task.package_name)
        write_manifest(state.manifest_path, state.manifest_text)
        raise

    task.outcome = TaskOutcome.ACCEPTED
    state.manifest = working
    state.manifest_text = working_text
    logger.info("updated '%s' dependency '%s' to '%s'", task.category, task.package_name, task.target_version)
    return None


async def process_tasks(
    tasks: list[UpdateTask],
    state: RunState,
    config: EffectiveConfig,
    runner,
) -> int:
    """Attempt tasks in order under the configured upgrade and failure policies.

    Args:
        tasks: Pending tasks in processing order
        state: Last accepted manifest, advanced on every success
        config: Effective configuration
        runner: Command runner for install and test commands

    Returns:
        Number of accepted tasks

    Raises:
        TaskFailure: If a task is rejected while onFailure is 'abort'
        ManifestWriteFailure: If the manifest cannot be restored after a rejection
    """
    accepted = 0
    for index, task in enumerate(tasks):
        if not should_continue(config, accepted):
            logger.info(
                "single upgrade applied, leaving %d remaining task(s) pending",
                len(tasks) - index,
            )
            break

        failure = await attempt_task(task, state, config, runner)

        if task.outcome is TaskOutcome.ACCEPTED:
            accepted += 1
        elif config.on_failure == "abort":
            raise TaskFailure(task, failure) from failure
        else:
            logger.warning("skipping failed update of '%s'", task.package_name)
    return accepted
