"""Error taxonomy for durable updates."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes reported by the CLI."""

    OK = 0
    FAILURE = 1
    CONFIG_DISABLED = 2
    BASELINE_FAILED = 3
    METADATA_FAILED = 4
    TASK_FAILED = 5
    MANIFEST_ERROR = 6


class DurableUpdateError(Exception):
    """Base class for errors that end a run."""

    exit_code = ExitCode.FAILURE


class ConfigDisabled(DurableUpdateError):
    """The manifest does not enable durable updates."""

    exit_code = ExitCode.CONFIG_DISABLED

    def __init__(self, key: str):
        super().__init__(f"'{key}' is not enabled in manifest")
        self.key = key


class ManifestError(DurableUpdateError):
    """The manifest could not be read or parsed."""

    exit_code = ExitCode.MANIFEST_ERROR


class CommandExecutionError(Exception):
    """A command could not be launched."""

    def __init__(self, command: str, reason: str):
        super().__init__(f"could not run '{command}': {reason}")
        self.command = command


class TestExecutionFailure(Exception):
    """An install or test command exited non-zero."""

    __test__ = False

    def __init__(self, command: str, exit_code: int, output: str = ""):
        message = f"'{command}' exited with code {exit_code}"
        if output:
            message += f"\n{output}"
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.output = output


class ManifestWriteFailure(DurableUpdateError):
    """A working copy of the manifest could not be persisted."""

    exit_code = ExitCode.MANIFEST_ERROR

    def __init__(self, path, reason: str):
        super().__init__(f"could not write manifest {path}: {reason}")
        self.path = path


class BaselineTestFailure(DurableUpdateError):
    """The project fails its own tests before anything was changed."""

    exit_code = ExitCode.BASELINE_FAILED

    def __init__(self, command: str, exit_code: int):
        super().__init__(
            f"baseline tests failed: '{command}' exited with code {exit_code}"
        )
        self.command = command
        self.command_exit_code = exit_code


class InstallFailure(DurableUpdateError):
    """Installing the current manifest failed before metadata lookup."""

    def __init__(self, command: str, exit_code: int):
        super().__init__(f"install failed: '{command}' exited with code {exit_code}")
        self.command = command
        self.command_exit_code = exit_code


class RegistryError(Exception):
    """The package registry could not answer a metadata query."""


class MetadataFetchFailure(DurableUpdateError):
    """Dependency metadata for a category could not be fetched."""

    exit_code = ExitCode.METADATA_FAILED

    def __init__(self, category: str, reason: str):
        super().__init__(f"fetching {category} dependency metadata failed: {reason}")
        self.category = category


class TaskFailure(DurableUpdateError):
    """An update task failed while the failure policy is 'abort'."""

    exit_code = ExitCode.TASK_FAILED

    def __init__(self, task, cause: Exception):
        super().__init__(
            f"updating {task.category} dependency '{task.package_name}' "
            f"to {task.target_version} failed: {cause}"
        )
        self.task = task
        self.cause = cause


class ScmCommandFailure(Exception):
    """A source control command failed; logged, never fatal."""

    def __init__(self, command: str, exit_code: int | None, detail: str = ""):
        message = f"SCM command '{command}' failed"
        if exit_code is not None:
            message += f" with code {exit_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
