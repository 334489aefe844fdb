"""Recording accepted updates in source control."""

import logging
import re
import shlex

from .errors import CommandExecutionError, ScmCommandFailure
from .logs import VERBOSE
from .models import CommitRecord, EffectiveConfig, RunState, TaskOutcome, UpdateTask

logger = logging.getLogger(__name__)

MESSAGE_FILE = ".durable-update-message"

PLACEHOLDER_PATTERN = re.compile(r"%(message|manifest|file)\b")


def describe_task(task: UpdateTask) -> str:
    """Commit message line for one accepted task."""
    return (
        f"Durable update of {task.category} dependency '{task.package_name}' "
        f"version {task.original_version} >>> {task.target_version}"
    )


def compose_commit_message(tasks: list[UpdateTask]) -> str:
    """One line per accepted task, in processing order."""
    return "\n".join(
        describe_task(task) for task in tasks if task.outcome is TaskOutcome.ACCEPTED
    )


def render_command(template: str, values: dict[str, str]) -> str:
    """Substitute ``%message``, ``%file`` and ``%manifest`` in one pass.

    Values are shell-quoted and are never themselves scanned for placeholders.
    """
    return PLACEHOLDER_PATTERN.sub(lambda match: shlex.quote(values[match.group(1)]), template)


async def run_scm_commands(commands: list[str], runner) -> bool:
    """Run rendered SCM commands in order, stopping at the first failure.

    Failures are logged, never raised.

    Returns:
        True if every command succeeded
    """
    for command in commands:
        logger.log(VERBOSE, "SCM command: %s", command)
        try:
            result = await runner.run(command)
        except CommandExecutionError as e:
            failure = ScmCommandFailure(command, None, str(e))
        else:
            if result.ok:
                continue
            detail = (result.stderr or result.stdout).strip()
            failure = ScmCommandFailure(command, result.exit_code, detail)
        logger.error("%s; manifest changes are kept", failure)
        return False
    return True


async def record_changes(
    tasks: list[UpdateTask],
    state: RunState,
    config: EffectiveConfig,
    runner,
) -> CommitRecord:
    """Commit the accepted tasks using the configured SCM commands.

    Args:
        tasks: All tasks of the run, with outcomes
        state: Final run state, locating the manifest
        config: Effective configuration
        runner: Command runner

    Returns:
        The message written and whether every SCM command succeeded
    """
    message = compose_commit_message(tasks)
    if not message:
        logger.info("no dependency updates were accepted, nothing to commit")
        return CommitRecord()

    for line in message.splitlines():
        logger.info(line)

    message_file = state.project_dir / MESSAGE_FILE
    try:
        message_file.write_text(message + "\n", encoding="utf-8")
    except OSError as e:
        logger.error("could not write commit message to %s: %s; manifest changes are kept", message_file, e)
        return CommitRecord(message=message)

    values = {
        "message": message,
        "file": MESSAGE_FILE,
        "manifest": state.manifest_path.name,
    }
    commands = [render_command(template, values) for template in config.scm_commands]
    committed = await run_scm_commands(commands, runner)
    return CommitRecord(message=message, message_file=message_file, committed=committed)
