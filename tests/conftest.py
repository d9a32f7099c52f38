"""Shared pytest fixtures for the stackinit test suite.

Provides reusable fixtures for:
- Temporary project directories with backend/ and frontend/ folders
- Configs pointing at those directories
- A generated Django settings.py as produced by ``startproject``
- A recording command runner that never spawns processes
- Mock subprocess helpers
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from stackinit.config import Config, ToolchainConfig
from stackinit.runner import CommandError, CommandRecord, CommandRunner

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Recording runner
# ---------------------------------------------------------------------------


class RecordingRunner(CommandRunner):
    """CommandRunner that records commands instead of executing them.

    ``outputs`` maps a substring of the command to the stdout returned for it;
    any command containing a substring from ``failures`` raises
    ``CommandError``.
    """

    def __init__(
        self,
        outputs: dict[str, str] | None = None,
        failures: set[str] | None = None,
        dry_run: bool = False,
    ) -> None:
        super().__init__(timeout=30, dry_run=dry_run)
        self.outputs = outputs or {}
        self.failures = failures or set()
        self.inputs: list[str | None] = []
        self.captures: list[bool] = []

    async def run(
        self,
        cmd: str | list[str],
        cwd: str | Path | None = None,
        *,
        capture: bool = True,
        input: str | None = None,
        env: dict[str, str] | None = None,
    ) -> str:
        cmd_str = cmd if isinstance(cmd, str) else " ".join(cmd)
        self.history.append(CommandRecord(command=cmd_str, cwd=Path(cwd) if cwd else None))
        self.inputs.append(input)
        self.captures.append(capture)
        if self.dry_run:
            return ""
        for needle in self.failures:
            if needle in cmd_str:
                raise CommandError(cmd_str, 1, f"{needle} failed")
        for needle, output in self.outputs.items():
            if needle in cmd_str:
                return output
        return ""


@pytest.fixture
def recording_runner() -> RecordingRunner:
    """A runner that records commands and returns empty output."""
    return RecordingRunner(outputs={"get_random_secret_key": "generated-secret-key"})


@pytest.fixture
def make_runner():
    """Factory for RecordingRunner with custom outputs/failures."""

    def factory(**kwargs: Any) -> RecordingRunner:
        return RecordingRunner(**kwargs)

    return factory


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project root containing empty backend/ and frontend/ directories."""
    root = tmp_path / "my-app"
    (root / "backend").mkdir(parents=True)
    (root / "frontend").mkdir()
    yield root


@pytest.fixture
def config(project_dir: Path, tmp_path: Path) -> Config:
    """Config pointing at ``project_dir`` with NVM in a temp directory."""
    return Config(
        project_dir=project_dir,
        toolchain=ToolchainConfig(nvm_dir=tmp_path / "nvm", use_sudo=False),
    )


@pytest.fixture
def settings_text() -> str:
    """settings.py exactly as generated by ``django-admin startproject config .``."""
    return (FIXTURES_DIR / "django_settings.py.txt").read_text(encoding="utf-8")


@pytest.fixture
def generated_backend(config: Config, settings_text: str) -> Path:
    """Backend directory after ``startproject`` and venv creation have run."""
    backend = config.backend_path
    (backend / "manage.py").write_text("#!/usr/bin/env python\n", encoding="utf-8")
    (backend / "config").mkdir()
    config.settings_path.write_text(settings_text, encoding="utf-8")
    venv_bin = config.venv_path / "bin"
    venv_bin.mkdir(parents=True)
    (venv_bin / "python").write_text("", encoding="utf-8")
    return backend


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """

    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
