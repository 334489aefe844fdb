"""Resolution of the manifest-embedded durable update configuration."""

import logging
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any

from .errors import ConfigDisabled
from .models import CATEGORIES, SEMVER_PREFIXES, TAGS, EffectiveConfig, TargetVersion

logger = logging.getLogger(__name__)

CONFIG_KEY = "durable-update"
IGNORE_KEY = "davidjs"

UPGRADE_TYPES = ("single", "all")
FAILURE_POLICIES = ("skip", "abort")

DEFAULT_ORDER = ("standard", "dev", "optional")
DEFAULT_TAG = "stable"
DEFAULT_SEMVER = "minimum"
DEFAULT_UPGRADE_TYPE = "single"
DEFAULT_ON_FAILURE = "abort"
DEFAULT_TEST_COMMANDS = ("npm test",)
DEFAULT_SCM_COMMANDS = ("git add %manifest", "git commit -F %file")
DEFAULT_INSTALL_COMMAND = "npm install"
DEFAULT_INSTALL_DIR = "node_modules"


def _fallback(field: str, value: Any, default: Any) -> Any:
    logger.warning("invalid '%s' option %r, using default %r", field, value, default)
    return default


def _string_list(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, list):
        return None
    if not all(isinstance(item, str) and item.strip() for item in value):
        return None
    return tuple(value)


def _resolve_order(options: dict) -> tuple[str, ...]:
    if "order" not in options:
        return DEFAULT_ORDER
    order = _string_list(options["order"])
    if (
        not order
        or any(category not in CATEGORIES for category in order)
        or len(set(order)) != len(order)
    ):
        return _fallback("order", options["order"], DEFAULT_ORDER)
    return order


def _resolve_target(category: str, value: Any) -> TargetVersion:
    if value is None:
        return TargetVersion(DEFAULT_TAG, DEFAULT_SEMVER)
    if not isinstance(value, dict):
        _fallback(f"targetVersion.{category}", value, "defaults")
        return TargetVersion(DEFAULT_TAG, DEFAULT_SEMVER)

    tag = value.get("tag", DEFAULT_TAG)
    if not isinstance(tag, str) or tag not in TAGS:
        tag = _fallback(f"targetVersion.{category}.tag", tag, DEFAULT_TAG)
    semver = value.get("semver", DEFAULT_SEMVER)
    if not isinstance(semver, str) or semver not in SEMVER_PREFIXES:
        semver = _fallback(f"targetVersion.{category}.semver", semver, DEFAULT_SEMVER)
    return TargetVersion(tag, semver)


def _resolve_target_versions(options: dict) -> dict[str, TargetVersion]:
    raw = options.get("targetVersion")
    if raw is not None and not isinstance(raw, dict):
        _fallback("targetVersion", raw, "defaults")
        raw = None
    raw = raw or {}
    return {category: _resolve_target(category, raw.get(category)) for category in CATEGORIES}


def _resolve_choice(options: dict, field: str, choices: tuple[str, ...], default: str) -> str:
    value = options.get(field, default)
    if value not in choices:
        return _fallback(field, value, default)
    return value


def _resolve_commands(options: dict, field: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if field not in options:
        return default
    commands = _string_list(options[field])
    if commands is None:
        return _fallback(field, options[field], default)
    return commands


def _resolve_install_command(options: dict) -> str:
    value = options.get("installCommand", DEFAULT_INSTALL_COMMAND)
    if not isinstance(value, str) or not value.strip():
        return _fallback("installCommand", value, DEFAULT_INSTALL_COMMAND)
    return value


def _is_contained(path: str) -> bool:
    for flavour in (PurePosixPath, PureWindowsPath):
        pure = flavour(path)
        if pure.is_absolute() or pure.drive or ".." in pure.parts:
            return False
    return pure.parts not in ((), (".",))


def _resolve_install_dir(options: dict) -> str:
    value = options.get("installDir", DEFAULT_INSTALL_DIR)
    if not isinstance(value, str) or not value.strip() or not _is_contained(value):
        return _fallback("installDir", value, DEFAULT_INSTALL_DIR)
    return value


def _merge_ignore(options: dict, manifest: dict) -> tuple[str, ...]:
    names: list[str] = []
    configured = options.get("ignore", [])
    if isinstance(configured, list):
        names.extend(name for name in configured if isinstance(name, str))
    else:
        _fallback("ignore", configured, [])

    embedded = manifest.get(IGNORE_KEY)
    if isinstance(embedded, dict) and isinstance(embedded.get("ignore"), list):
        names.extend(name for name in embedded["ignore"] if isinstance(name, str))

    return tuple(dict.fromkeys(names))


def resolve_config(manifest: dict) -> EffectiveConfig:
    """Build the effective configuration from a parsed manifest.

    Each recognised option is validated on its own; an invalid or missing
    option is replaced by its default without affecting the others.

    Args:
        manifest: The parsed package.json object

    Returns:
        The validated configuration

    Raises:
        ConfigDisabled: If the manifest has no configuration object
    """
    options = manifest.get(CONFIG_KEY)
    if not isinstance(options, dict):
        raise ConfigDisabled(CONFIG_KEY)

    config = EffectiveConfig(
        order=_resolve_order(options),
        target_version=_resolve_target_versions(options),
        upgrade_type=_resolve_choice(options, "upgradeType", UPGRADE_TYPES, DEFAULT_UPGRADE_TYPE),
        on_failure=_resolve_choice(options, "onFailure", FAILURE_POLICIES, DEFAULT_ON_FAILURE),
        test_commands=_resolve_commands(options, "testCommands", DEFAULT_TEST_COMMANDS),
        scm_commands=_resolve_commands(options, "scmCommands", DEFAULT_SCM_COMMANDS),
        install_command=_resolve_install_command(options),
        install_dir=_resolve_install_dir(options),
        ignore=_merge_ignore(options, manifest),
    )
    logger.debug("effective config: %s", config)
    return config
