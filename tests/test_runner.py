"""Tests for the fail-fast command runner (stackinit.runner)."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from stackinit.runner import CommandError, CommandRunner


class TestCommandError:
    @pytest.mark.unit
    def test_message_includes_command_and_code(self):
        err = CommandError("npm install", 2, "ENOENT")
        assert err.command == "npm install"
        assert err.returncode == 2
        assert "exit 2" in str(err)
        assert "npm install" in str(err)
        assert "ENOENT" in str(err)

    @pytest.mark.unit
    def test_message_without_stderr(self):
        assert str(CommandError("ls", 1)) == "Command failed (exit 1): ls"


class TestCommandRunnerMocked:
    @pytest.mark.unit
    async def test_returns_stdout(self):
        runner = CommandRunner(timeout=5)
        with patch(
            "stackinit.runner.run_command", AsyncMock(return_value=(0, "out", ""))
        ) as mocked:
            output = await runner.run(["echo", "out"], cwd="/tmp")

        assert output == "out"
        mocked.assert_awaited_once()
        assert mocked.await_args.kwargs["cwd"] == "/tmp"
        assert mocked.await_args.kwargs["timeout"] == 5
        assert runner.history[0].returncode == 0

    @pytest.mark.unit
    async def test_raises_on_failure(self):
        runner = CommandRunner()
        with patch(
            "stackinit.runner.run_command", AsyncMock(return_value=(127, "", "not found"))
        ):
            with pytest.raises(CommandError) as exc_info:
                await runner.run("missing-tool")

        assert exc_info.value.returncode == 127
        assert exc_info.value.stderr == "not found"
        assert runner.history[0].returncode == 127

    @pytest.mark.unit
    async def test_dry_run_never_executes(self):
        runner = CommandRunner(dry_run=True)
        with patch("stackinit.runner.run_command", AsyncMock()) as mocked:
            output = await runner.run(["apt-get", "update"])

        assert output == ""
        mocked.assert_not_awaited()
        assert runner.commands == ["apt-get update"]
        assert runner.history[0].returncode is None

    @pytest.mark.unit
    async def test_env_merged(self):
        runner = CommandRunner(env={"A": "1"})
        with patch(
            "stackinit.runner.run_command", AsyncMock(return_value=(0, "", ""))
        ) as mocked:
            await runner.run(["true"], env={"B": "2"})

        assert mocked.await_args.kwargs["env"] == {"A": "1", "B": "2"}

    @pytest.mark.unit
    async def test_no_env_passes_none(self):
        runner = CommandRunner()
        with patch(
            "stackinit.runner.run_command", AsyncMock(return_value=(0, "", ""))
        ) as mocked:
            await runner.run(["true"])

        assert mocked.await_args.kwargs["env"] is None

    @pytest.mark.unit
    async def test_run_shell_uses_bash_c(self):
        runner = CommandRunner(dry_run=True)
        await runner.run_shell("nvm install --lts")
        assert runner.commands == ["bash -c nvm install --lts"]

    @pytest.mark.unit
    async def test_run_script_pipes_stdin(self):
        runner = CommandRunner()
        with patch(
            "stackinit.runner.run_command", AsyncMock(return_value=(0, "", ""))
        ) as mocked:
            await runner.run_script("echo hi", env={"NVM_DIR": "/opt/nvm"})

        assert mocked.await_args.args[0] == ["bash"]
        assert mocked.await_args.kwargs["input"] == "echo hi"
        assert mocked.await_args.kwargs["env"] == {"NVM_DIR": "/opt/nvm"}


@pytest.mark.integration
class TestCommandRunnerReal:
    async def test_real_command(self, tmp_path: Path):
        runner = CommandRunner(timeout=30)
        output = await runner.run(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert Path(output).resolve() == tmp_path.resolve()

    async def test_real_failure(self):
        runner = CommandRunner(timeout=30)
        with pytest.raises(CommandError):
            await runner.run([sys.executable, "-c", "import sys; sys.exit(3)"])

    async def test_real_stdin(self):
        runner = CommandRunner(timeout=30)
        output = await runner.run(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            input="piped",
        )
        assert output == "PIPED"
