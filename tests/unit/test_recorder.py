"""Tests for commit message composition and SCM commands."""

import shlex

import pytest

from durable_update.config import resolve_config
from durable_update.errors import CommandExecutionError
from durable_update.models import RunState, TaskOutcome, UpdateTask
from durable_update.recorder import (
    MESSAGE_FILE,
    compose_commit_message,
    record_changes,
    render_command,
)


def task(category, name, original, target, outcome=TaskOutcome.ACCEPTED):
    return UpdateTask(
        category=category,
        package_name=name,
        target_version=target,
        original_version=original,
        outcome=outcome,
    )


@pytest.fixture
def state(manifest_file, sample_manifest):
    return RunState(manifest_path=manifest_file, manifest=sample_manifest, manifest_text=manifest_file.read_text())


class TestCommitMessage:
    """Test commit message composition."""

    def test_two_accepted_tasks(self):
        """Should write one line per accepted task in order."""
        tasks = [
            task("standard", "pkgX", "1.0.0", "^1.2.0"),
            task("dev", "pkgY", "2.0.0", "~2.1.0"),
        ]

        assert compose_commit_message(tasks) == (
            "Durable update of standard dependency 'pkgX' version 1.0.0 >>> ^1.2.0\n"
            "Durable update of dev dependency 'pkgY' version 2.0.0 >>> ~2.1.0"
        )

    def test_only_accepted_tasks(self):
        tasks = [
            task("standard", "express", "^4.17.0", "^4.21.1", TaskOutcome.REJECTED),
            task("standard", "lodash", "~4.17.0", "^4.17.21"),
            task("dev", "mocha", None, "^10.7.3", TaskOutcome.PENDING),
        ]

        assert compose_commit_message(tasks) == (
            "Durable update of standard dependency 'lodash' version ~4.17.0 >>> ^4.17.21"
        )

    def test_no_accepted_tasks(self):
        assert compose_commit_message([task("dev", "mocha", "^9.0.0", "^10.7.3", TaskOutcome.REJECTED)]) == ""


class TestRenderCommand:
    """Test placeholder substitution."""

    def test_all_placeholders(self):
        values = {"message": "Durable update", "file": ".durable-update-message", "manifest": "package.json"}

        command = render_command("git add %manifest && git commit -m %message -F %file", values)

        assert command == (
            "git add package.json && git commit -m 'Durable update' -F .durable-update-message"
        )

    def test_values_are_shell_quoted(self):
        values = {"message": "update 'lodash' version 1 >>> 2", "file": "m", "manifest": "p"}

        command = render_command("git commit -m %message", values)

        assert shlex.split(command) == ["git", "commit", "-m", "update 'lodash' version 1 >>> 2"]

    def test_no_double_substitution(self):
        """Should not expand placeholders that appear inside substituted values."""
        values = {"message": "see %manifest and %file", "file": "msg.txt", "manifest": "package.json"}

        command = render_command("echo %message", values)

        assert shlex.split(command) == ["echo", "see %manifest and %file"]

    def test_unknown_tokens_untouched(self):
        values = {"message": "m", "file": "f", "manifest": "p"}
        assert render_command("date +%s", values) == "date +%s"


class TestRecordChanges:
    """Test persisting accepted tasks through SCM commands."""

    @pytest.mark.asyncio
    async def test_commit_accepted(self, state, make_runner, tmp_path):
        config = resolve_config({"durable-update": {}})
        tasks = [task("standard", "express", "^4.17.0", "^4.21.1")]
        runner = make_runner()

        record = await record_changes(tasks, state, config, runner)

        assert record.committed
        assert record.message_file == tmp_path / MESSAGE_FILE
        assert (tmp_path / MESSAGE_FILE).read_text() == record.message + "\n"
        assert runner.commands == ["git add package.json", f"git commit -F {MESSAGE_FILE}"]

    @pytest.mark.asyncio
    async def test_nothing_accepted(self, state, make_runner, tmp_path):
        """Should neither write a message file nor run commands."""
        config = resolve_config({"durable-update": {}})
        runner = make_runner()

        record = await record_changes(
            [task("dev", "mocha", "^9.0.0", "^10.7.3", TaskOutcome.REJECTED)], state, config, runner
        )

        assert record.message is None
        assert not record.committed
        assert runner.commands == []
        assert not (tmp_path / MESSAGE_FILE).exists()

    @pytest.mark.asyncio
    async def test_scm_failure_not_fatal(self, state, make_runner, manifest_file, caplog):
        """Should log a failing SCM command and keep the manifest changes."""
        config = resolve_config({"durable-update": {}})
        text_before = manifest_file.read_text()
        runner = make_runner(lambda command, cwd: 128 if command.startswith("git add") else 0)

        record = await record_changes([task("standard", "express", "^4.17.0", "^4.21.1")], state, config, runner)

        assert not record.committed
        assert record.message
        assert runner.commands == ["git add package.json"]
        assert manifest_file.read_text() == text_before
        assert "git add package.json" in caplog.text

    @pytest.mark.asyncio
    async def test_scm_launch_failure_not_fatal(self, state, make_runner):
        config = resolve_config({"durable-update": {"scmCommands": ["hg commit -l %file"]}})

        def handler(command, cwd):
            raise CommandExecutionError(command, "hg: not found")

        record = await record_changes(
            [task("standard", "express", "^4.17.0", "^4.21.1")], state, config, make_runner(handler)
        )

        assert not record.committed
