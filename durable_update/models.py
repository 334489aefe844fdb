"""Core data models for durable updates."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

CATEGORIES = ("standard", "dev", "optional")

CATEGORY_KEYS = {
    "standard": "dependencies",
    "dev": "devDependencies",
    "optional": "optionalDependencies",
}

SEMVER_PREFIXES = {
    "exact": "",
    "minimum": "^",
    "loose": "~",
}

TAGS = ("stable", "latest")


class TaskOutcome(str, Enum):
    """Resolution state of an update task."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TargetVersion:
    """Which published version to target and how to constrain it."""

    tag: str = "stable"  # stable, latest
    semver: str = "minimum"  # exact, minimum, loose

    @property
    def prefix(self) -> str:
        return SEMVER_PREFIXES[self.semver]


@dataclass(frozen=True)
class EffectiveConfig:
    """Validated, fully defaulted run configuration."""

    order: tuple[str, ...]
    target_version: Mapping[str, TargetVersion]
    upgrade_type: str  # single, all
    on_failure: str  # skip, abort
    test_commands: tuple[str, ...]
    scm_commands: tuple[str, ...]
    install_command: str
    install_dir: str
    ignore: tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.target_version, MappingProxyType):
            object.__setattr__(
                self, "target_version", MappingProxyType(dict(self.target_version))
            )


@dataclass(frozen=True)
class GatewayFlags:
    """Category-specific flags passed to the metadata gateway."""

    is_dev: bool = False
    is_optional: bool = False
    prefer_stable: bool = True
    allow_loose: bool = True
    tolerate_not_found: bool = True


@dataclass(frozen=True)
class AvailableVersions:
    """Published versions of an outdated package."""

    required: str
    stable: str | None = None
    latest: str | None = None

    def for_tag(self, tag: str) -> str | None:
        return self.stable if tag == "stable" else self.latest


@dataclass
class UpdateTask:
    """One proposed single-package version change."""

    category: str
    package_name: str
    target_version: str
    original_version: str | None = None
    outcome: TaskOutcome = TaskOutcome.PENDING
    error: str | None = None

    @property
    def manifest_key(self) -> str:
        return CATEGORY_KEYS[self.category]


@dataclass
class RunState:
    """The last accepted manifest, in memory and as written on disk."""

    manifest_path: Path
    manifest: dict
    manifest_text: str

    @property
    def project_dir(self) -> Path:
        return self.manifest_path.parent


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of one command."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass
class CommitRecord:
    """What the change recorder did with the accepted tasks."""

    message: str | None = None
    message_file: Path | None = None
    committed: bool = False


@dataclass
class RunResult:
    """Outcome of a whole run."""

    tasks: list[UpdateTask] = field(default_factory=list)
    commit: CommitRecord = field(default_factory=CommitRecord)

    @property
    def accepted(self) -> list[UpdateTask]:
        return [task for task in self.tasks if task.outcome is TaskOutcome.ACCEPTED]
