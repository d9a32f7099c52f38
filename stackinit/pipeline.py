"""stackinit setup pipeline.

Runs the five setup steps in order, stopping at the first failure:

Step 1: SYSTEM   -- apt packages for Python and virtualenvs.
Step 2: NODE     -- NVM and a Node.js LTS release.
Step 3: BACKEND  -- Django + DRF project, .env, patched settings.
Step 4: FRONTEND -- Vite React app, npm packages, ESLint, .env.
Step 5: DOCS     -- starter README files and .gitignore.

Usage::

    stackinit
    stackinit --project-dir ./my-app --steps 3,4,5
    python -m stackinit --dry-run
"""

from __future__ import annotations

import asyncio
import json
import sys
import time
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from rich.panel import Panel

from stackinit.config import Config, normalise_steps
from stackinit.runner import CommandError, CommandRunner
from stackinit.scaffolder import (
    BackendScaffolder,
    DocsGenerator,
    EnvFileError,
    FrontendScaffolder,
    SettingsPatchError,
    TemplateRenderer,
    build_context,
)
from stackinit.toolchain import NodeInstaller, SystemInstaller, ToolchainError
from stackinit.utils import (
    STEP_NAMES,
    DirectoryNotFoundError,
    console,
    format_duration,
    load_json,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
    save_json,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SetupError(Exception):
    """Raised when a setup step fails irrecoverably."""

    def __init__(self, step: int, message: str) -> None:
        self.step = step
        label = "Pre-flight" if step == 0 else f"Step {step} ({STEP_NAMES.get(step, '?')})"
        super().__init__(f"{label}: {message}")


# Failures raised by the step implementations; anything else is a bug and is
# reported with its traceback.
_EXPECTED_ERRORS = (
    SetupError,
    CommandError,
    DirectoryNotFoundError,
    EnvFileError,
    SettingsPatchError,
    ToolchainError,
    FileNotFoundError,
)


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Drives the setup steps and records their outcome.

    Attributes:
        config: Global configuration.
        runner: Fail-fast command runner shared by every step.
        state: Mutable dictionary that accumulates results from each step.
    """

    def __init__(self, config: Config, runner: CommandRunner | None = None) -> None:
        self.config = config
        self.runner = runner or CommandRunner(
            timeout=config.command_timeout, dry_run=config.dry_run
        )
        self.renderer = TemplateRenderer()
        self.node = NodeInstaller(config.toolchain, self.runner)
        self.context = build_context(config)
        self.state: dict[str, Any] = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "steps_completed": [],
            "steps_failed": [],
            "success": False,
        }

    # ------------------------------------------------------------------
    # State persistence
    # ------------------------------------------------------------------

    async def _save_state(self) -> None:
        """Persist the current state to ``.stackinit/state.json``."""
        if self.config.dry_run:
            return
        self.state["updated_at"] = datetime.now(timezone.utc).isoformat()
        await save_json(self.state, self.config.state_path)

    async def _load_state(self) -> dict[str, Any]:
        """Return the state of a previous run, if one was recorded."""
        if not self.config.state_path.exists():
            return {}
        try:
            return load_json(self.config.state_path)
        except (json.JSONDecodeError, OSError) as exc:
            print_warning(f"Ignoring unreadable state file {self.config.state_path}: {exc}")
            return {}

    # ------------------------------------------------------------------
    # Pre-flight checks
    # ------------------------------------------------------------------

    async def _preflight(self) -> None:
        """Check the project directory before any step runs.

        Raises:
            SetupError: If the project directory does not exist.
        """
        console.print(Panel("[bold]Running pre-flight checks...[/bold]", style="cyan"))

        project_dir = self.config.project_dir
        if not project_dir.is_dir():
            raise SetupError(0, f"Project directory {project_dir} does not exist.")
        console.print(f"  [green]+[/green] Project directory {project_dir.resolve()}")

        for label, path, step in (
            ("Backend", self.config.backend_path, 3),
            ("Frontend", self.config.frontend_path, 4),
        ):
            if path.is_dir():
                console.print(f"  [green]+[/green] {label} directory found")
            elif step in self.config.steps:
                print_warning(f"  {label} directory {path} is missing -- step {step} will fail.")

        previous = await self._load_state()
        if previous.get("steps_completed"):
            done = ", ".join(str(s) for s in previous["steps_completed"])
            console.print(f"  [dim]Previous run completed steps: {done}[/dim]")

        if not self.config.dry_run:
            self.config.ensure_directories()
        console.print()

    # ------------------------------------------------------------------
    # Step dispatch
    # ------------------------------------------------------------------

    _STEP_METHODS: dict[int, str] = {
        1: "step1_system",
        2: "step2_node",
        3: "step3_backend",
        4: "step4_frontend",
        5: "step5_docs",
    }

    async def run(self) -> dict[str, Any]:
        """Execute the selected steps.

        Returns:
            The final state dictionary, including a top-level ``success``
            boolean.
        """
        run_start = time.monotonic()

        console.print(
            Panel(
                f"[bold bright_cyan]stackinit[/bold bright_cyan]\n"
                f"Project : {self.config.project_dir.resolve()}\n"
                f"Steps   : {', '.join(str(s) for s in self.config.steps)}\n"
                f"Dry run : {'yes' if self.config.dry_run else 'no'}",
                title="[bold]Setup Start[/bold]",
                border_style="bright_cyan",
            )
        )

        try:
            await self._preflight()
        except SetupError as exc:
            print_error(str(exc))
            self.state["error"] = str(exc)
            return self.state

        all_success = True

        for step_num in sorted(self.config.steps):
            method_name = self._STEP_METHODS[step_num]
            step_name = STEP_NAMES.get(step_num, "UNKNOWN")
            print_step_header(step_num, step_name)

            step_start = time.monotonic()
            try:
                result = await getattr(self, method_name)()
                elapsed = time.monotonic() - step_start
                self.state[f"step{step_num}"] = result
                self.state["steps_completed"].append(step_num)
                print_success(
                    f"Step {step_num} ({step_name}) completed in {format_duration(elapsed)}"
                )

            except _EXPECTED_ERRORS as exc:
                elapsed = time.monotonic() - step_start
                all_success = False
                self.state["steps_failed"].append(step_num)
                self.state[f"step{step_num}_error"] = str(exc)
                print_error(
                    f"Step {step_num} ({step_name}) FAILED after "
                    f"{format_duration(elapsed)}: {exc}"
                )
                # Later steps depend on earlier ones.
                break

            except Exception as exc:
                elapsed = time.monotonic() - step_start
                all_success = False
                self.state["steps_failed"].append(step_num)
                tb = traceback.format_exc()
                self.state[f"step{step_num}_error"] = tb
                print_error(
                    f"Step {step_num} ({step_name}) FAILED after "
                    f"{format_duration(elapsed)}: {exc}"
                )
                console.print(f"[dim]{tb}[/dim]")
                break

            finally:
                await self._save_state()

        total_elapsed = time.monotonic() - run_start
        self.state["success"] = all_success
        self.state["total_duration"] = format_duration(total_elapsed)
        self.state["finished_at"] = datetime.now(timezone.utc).isoformat()
        self.state["commands_run"] = len(self.runner.history)
        await self._save_state()

        self._print_final_summary()
        return self.state

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def step1_system(self) -> dict[str, Any]:
        packages = await SystemInstaller(self.config.toolchain, self.runner).install()
        return {"packages": packages}

    async def step2_node(self) -> dict[str, Any]:
        return await self.node.install()

    async def step3_backend(self) -> dict[str, Any]:
        scaffolder = BackendScaffolder(self.config, self.runner, self.renderer)
        return await scaffolder.setup(self.context)

    async def step4_frontend(self) -> dict[str, Any]:
        scaffolder = FrontendScaffolder(self.config, self.runner, self.node, self.renderer)
        return await scaffolder.setup(self.context)

    async def step5_docs(self) -> dict[str, Any]:
        generator = DocsGenerator(self.config, self.renderer)
        written = await generator.generate(self.context, dry_run=self.config.dry_run)
        return {"written": [str(p) for p in written]}

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def _print_final_summary(self) -> None:
        summary: dict[str, str] = {}
        for step_num in sorted(self.config.steps):
            name = STEP_NAMES.get(step_num, "UNKNOWN")
            if step_num in self.state["steps_completed"]:
                status = "[green]done[/green]"
            elif step_num in self.state["steps_failed"]:
                status = "[red]failed[/red]"
            else:
                status = "[dim]not run[/dim]"
            summary[f"{step_num}. {name}"] = status
        summary["Commands"] = str(len(self.runner.history))
        summary["Duration"] = self.state.get("total_duration", "?")
        print_summary_table(summary, title="Setup Summary")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _parse_steps(value: str) -> list[int]:
    """Parse ``"1,3,5"`` into ``[1, 3, 5]``.

    Raises:
        ValueError: On non-integers, an empty selection or numbers outside 1-5.
    """
    return normalise_steps([int(s.strip()) for s in value.split(",") if s.strip()])


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``stackinit`` / ``python -m stackinit``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="stackinit",
        description="Bootstrap a Django REST + React (Vite) project skeleton",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Steps:\n"
            + "".join(f"  {num}  {name}\n" for num, name in STEP_NAMES.items())
            + "\nExamples:\n"
            "  stackinit\n"
            "  stackinit --project-dir ./my-app --steps 3,4,5\n"
            "  stackinit --skip-toolchain --dry-run\n"
        ),
    )
    parser.add_argument(
        "--project-dir", "-C",
        default=None,
        help="Project root containing the backend/ and frontend/ directories (default: cwd)",
    )
    parser.add_argument(
        "--steps",
        default=None,
        help="Comma-separated steps to run (default: 1,2,3,4,5)",
    )
    parser.add_argument(
        "--skip-toolchain",
        action="store_true",
        help="Skip steps 1 and 2 (apt packages, NVM/Node)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON or YAML configuration file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the commands without running them or writing files",
    )
    parser.add_argument(
        "--interactive-eslint",
        action="store_true",
        help="Run `npx eslint --init` instead of writing a default ESLint config",
    )

    args = parser.parse_args(argv)

    try:
        config = Config.load(Path(args.config)) if args.config else Config.from_env()
    except FileNotFoundError:
        console.print(f"[bold red]Error:[/bold red] Config file not found: {args.config}")
        sys.exit(1)
    except (ValidationError, ValueError, yaml.YAMLError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        sys.exit(1)

    try:
        if args.steps:
            config.steps = _parse_steps(args.steps)
        if args.skip_toolchain:
            config.steps = normalise_steps([s for s in config.steps if s not in (1, 2)])
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid steps: {exc}")
        sys.exit(1)
    if args.project_dir:
        config.project_dir = Path(args.project_dir)
    if args.dry_run:
        config.dry_run = True
    if args.interactive_eslint:
        config.frontend.interactive_eslint = True

    pipeline = Pipeline(config)
    result = asyncio.run(pipeline.run())

    if result.get("success"):
        console.print("[bold green]Setup complete![/bold green]")
    else:
        console.print("[bold red]Setup failed.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
