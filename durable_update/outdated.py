"""Discovery of outdated dependencies and assembly of update tasks."""

import json
import logging

from .cycle import install
from .errors import (
    CommandExecutionError,
    InstallFailure,
    MetadataFetchFailure,
    RegistryError,
    TestExecutionFailure,
)
from .logs import VERBOSE
from .models import CATEGORY_KEYS, AvailableVersions, EffectiveConfig, GatewayFlags, UpdateTask

logger = logging.getLogger(__name__)


def gateway_flags(config: EffectiveConfig, category: str) -> GatewayFlags:
    """Gateway flags for one dependency category."""
    return GatewayFlags(
        is_dev=category == "dev",
        is_optional=category == "optional",
        prefer_stable=config.target_version[category].tag == "stable",
        allow_loose=True,
        tolerate_not_found=True,
    )


async def fetch_outdated(
    config: EffectiveConfig,
    manifest: dict,
    gateway,
    runner,
) -> dict[str, dict[str, AvailableVersions]]:
    """Install the current manifest and query outdated dependencies per category.

    Categories are queried one after another, in configured order.

    Raises:
        InstallFailure: If the fresh install fails
        MetadataFetchFailure: If any category cannot be queried
    """
    logger.info("calculating updated dependencies")
    logger.log(VERBOSE, "manifest: %s", json.dumps(manifest, indent=2))

    try:
        await install(config, runner)
    except TestExecutionFailure as e:
        raise InstallFailure(e.command, e.exit_code) from e
    except CommandExecutionError as e:
        raise InstallFailure(e.command, -1) from e

    outdated: dict[str, dict[str, AvailableVersions]] = {}
    for category in config.order:
        logger.log(VERBOSE, "getting %s dependencies", category)
        try:
            outdated[category] = await gateway.fetch_updates(manifest, gateway_flags(config, category))
        except RegistryError as e:
            logger.error("getting %s dependencies failed: %s", category, e)
            raise MetadataFetchFailure(category, str(e)) from e
        logger.log(VERBOSE, "got %d outdated %s dependencies", len(outdated[category]), category)

    logger.info("candidate dependencies: %s", {
        category: {name: versions.for_tag(config.target_version[category].tag)
                   for name, versions in packages.items()}
        for category, packages in outdated.items()
    })
    return outdated


def build_update_tasks(
    config: EffectiveConfig,
    outdated: dict[str, dict[str, AvailableVersions]],
    manifest: dict | None = None,
) -> list[UpdateTask]:
    """Flatten outdated dependencies into ordered update tasks.

    Tasks follow category order first, then the order the gateway reported
    packages in. Ignored packages are left out, as are packages without a
    version for the targeted tag or whose target equals the current range.

    Args:
        config: Effective configuration
        outdated: Per-category gateway results
        manifest: Current manifest, used to drop no-op changes

    Returns:
        Pending update tasks
    """
    tasks: list[UpdateTask] = []
    for category in config.order:
        target = config.target_version[category]
        current = (manifest or {}).get(CATEGORY_KEYS[category]) or {}

        for name, versions in outdated.get(category, {}).items():
            if name in config.ignore:
                logger.log(VERBOSE, "ignoring %s dependency '%s'", category, name)
                continue

            version = versions.for_tag(target.tag)
            if not version:
                logger.warning("no %s version of '%s' available, skipping", target.tag, name)
                continue

            target_version = target.prefix + version
            if current.get(name) == target_version:
                logger.debug("'%s' already at %s", name, target_version)
                continue

            tasks.append(UpdateTask(category=category, package_name=name, target_version=target_version))
    return tasks
