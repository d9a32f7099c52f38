"""Fail-fast command execution for the setup steps.

Every external tool (apt-get, pip, django-admin, npm, nvm) is invoked through
``CommandRunner`` so that the first non-zero exit aborts the step, and so that
a dry run can print the exact command sequence without touching the system.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .utils import format_command, print_command, run_command


class CommandError(Exception):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed (exit {returncode}): {command}"
        if stderr:
            message += f"\n{stderr}"
        super().__init__(message)


@dataclass
class CommandRecord:
    """One executed (or, in dry-run mode, announced) command."""

    command: str
    cwd: Path | None = None
    returncode: int | None = None


@dataclass
class CommandRunner:
    """Runs commands one at a time and raises on the first failure.

    Attributes:
        timeout: Per-command timeout in seconds.
        dry_run: When set, commands are printed and recorded but not executed.
        env: Extra environment variables applied to every command.
        history: Every command passed to the runner, in order.
    """

    timeout: int = 900
    dry_run: bool = False
    env: dict[str, str] = field(default_factory=dict)
    history: list[CommandRecord] = field(default_factory=list)

    async def run(
        self,
        cmd: str | list[str],
        cwd: str | Path | None = None,
        *,
        capture: bool = True,
        input: str | None = None,
        env: dict[str, str] | None = None,
    ) -> str:
        """Run *cmd* and return its stripped stdout.

        Raises:
            CommandError: If the command exits non-zero or times out.
        """
        cmd_str = format_command(cmd)
        record = CommandRecord(command=cmd_str, cwd=Path(cwd) if cwd else None)
        self.history.append(record)
        print_command(cmd, dry_run=self.dry_run)

        if self.dry_run:
            return ""

        returncode, stdout, stderr = await run_command(
            cmd,
            cwd=cwd,
            timeout=self.timeout,
            capture=capture,
            env={**self.env, **(env or {})} or None,
            input=input,
        )
        record.returncode = returncode
        if returncode != 0:
            raise CommandError(cmd_str, returncode, stderr)
        return stdout

    async def run_shell(
        self,
        script: str,
        cwd: str | Path | None = None,
        *,
        capture: bool = True,
        env: dict[str, str] | None = None,
    ) -> str:
        """Run *script* with ``bash -c`` (for shell functions such as ``nvm``)."""
        return await self.run(["bash", "-c", script], cwd=cwd, capture=capture, env=env)

    async def run_script(
        self,
        body: str,
        cwd: str | Path | None = None,
        *,
        env: dict[str, str] | None = None,
    ) -> str:
        """Pipe a script body into ``bash`` on stdin (``curl ... | bash``)."""
        return await self.run(["bash"], cwd=cwd, input=body, env=env)

    @property
    def commands(self) -> list[str]:
        """The command strings seen so far."""
        return [record.command for record in self.history]
