"""End-to-end durable update run."""

import logging
from pathlib import Path

from .baseline import validate_baseline
from .config import resolve_config
from .manifest import load_manifest
from .models import RunResult, RunState
from .outdated import build_update_tasks, fetch_outdated
from .processor import process_tasks
from .recorder import record_changes
from .resolve_node import NpmRegistryGateway
from .runner import CommandRunner

logger = logging.getLogger(__name__)


async def durable_update(
    manifest_path: Path,
    gateway=None,
    runner=None,
) -> RunResult:
    """Upgrade outdated dependencies one validated change at a time.

    Stages run strictly in sequence: configuration, baseline tests, outdated
    dependency discovery, task processing and finally the SCM commit.
    Fatal problems are raised as DurableUpdateError subclasses.

    Args:
        manifest_path: Path to package.json
        gateway: Metadata gateway, an npm registry gateway by default
        runner: Command runner, started in the manifest's directory by default

    Returns:
        Tasks with their outcomes and what was committed
    """
    manifest_path = Path(manifest_path)
    gateway = gateway or NpmRegistryGateway()
    runner = runner or CommandRunner(manifest_path.parent)

    manifest_text, manifest = load_manifest(manifest_path)
    config = resolve_config(manifest)

    await validate_baseline(config, runner)

    outdated = await fetch_outdated(config, manifest, gateway, runner)
    tasks = build_update_tasks(config, outdated, manifest)
    if not tasks:
        logger.info("nothing to update")
        return RunResult()

    state = RunState(manifest_path=manifest_path, manifest=manifest, manifest_text=manifest_text)
    accepted = await process_tasks(tasks, state, config, runner)
    logger.info("%d of %d dependency update(s) accepted", accepted, len(tasks))

    commit = await record_changes(tasks, state, config, runner)
    logger.info("durable update complete")
    return RunResult(tasks=tasks, commit=commit)
