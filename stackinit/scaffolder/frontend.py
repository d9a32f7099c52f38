"""React / Vite frontend scaffolding.

All npm/npx commands run through ``NodeInstaller.wrap`` when NVM is available
so they pick up the Node release installed by the NODE step; otherwise the
``npm`` on ``PATH`` is used directly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..config import Config
from ..runner import CommandRunner
from ..toolchain.node import NodeInstaller
from ..utils import check_directory, print_info
from .env_file import EnvFile
from .templates import TemplateRenderer

ESLINT_CONFIG_FILES = (
    "eslint.config.js",
    "eslint.config.mjs",
    "eslint.config.cjs",
    ".eslintrc",
    ".eslintrc.js",
    ".eslintrc.cjs",
    ".eslintrc.json",
    ".eslintrc.yml",
    ".eslintrc.yaml",
)


class FrontendScaffolder:
    """Sets up the Vite React app inside ``<project>/<frontend dir>``."""

    def __init__(
        self,
        config: Config,
        runner: CommandRunner,
        node: NodeInstaller | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.node = node or NodeInstaller(config.toolchain, runner)
        self.renderer = renderer or TemplateRenderer()

    @property
    def root(self) -> Path:
        return self.config.frontend_path

    @property
    def env_path(self) -> Path:
        return self.root / ".env"

    # -- Public API --------------------------------------------------------

    async def setup(self, context: dict[str, Any]) -> dict[str, Any]:
        """Run every frontend step in order, stopping on the first failure.

        Raises:
            DirectoryNotFoundError: If the frontend directory is missing.
            CommandError: If any npm/npx command fails.
        """
        check_directory(self.root)

        created = await self.create_app()
        await self.install_packages()
        eslint = await self.configure_eslint(context)
        env_written = await self.write_env()
        client = await self.write_api_client(context)

        return {
            "frontend_dir": str(self.root),
            "app_created": created,
            "eslint": eslint,
            "env_written": env_written,
            "api_client_written": client,
        }

    async def npm(self, *args: str, capture: bool = True) -> str:
        """Run an npm/npx command in the frontend directory."""
        cmd = list(args)
        if self.runner.dry_run or self.node.nvm_installed():
            return await self.runner.run_shell(
                self.node.wrap(cmd), cwd=self.root, capture=capture
            )
        return await self.runner.run(cmd, cwd=self.root, capture=capture)

    async def create_app(self) -> bool:
        """Generate the Vite app in place (skipped when package.json exists)."""
        if (self.root / "package.json").exists():
            print_info("  Vite app already present (package.json found)")
            return False
        await self.npm(
            "npm", "create", "vite@latest", "./", "--",
            "--template", self.config.frontend.vite_template, "-y",
        )
        return True

    async def install_packages(self) -> None:
        frontend = self.config.frontend
        if frontend.packages:
            await self.npm("npm", "install", *frontend.packages)
        if frontend.dev_packages:
            await self.npm("npm", "install", *frontend.dev_packages, "--save-dev")

    def has_eslint_config(self) -> bool:
        return any((self.root / name).exists() for name in ESLINT_CONFIG_FILES)

    async def configure_eslint(self, context: dict[str, Any]) -> str:
        """Set up ESLint.

        Returns:
            ``"interactive"``, ``"written"``, ``"existing"`` or, in dry-run
            mode, ``"skipped"``.
        """
        if self.config.frontend.interactive_eslint:
            await self.npm("npx", "eslint", "--init", capture=False)
            return "interactive"
        if self.has_eslint_config():
            return "existing"
        if self.runner.dry_run:
            print_info(f"  Would write {self.root / 'eslint.config.js'}")
            return "skipped"
        await self.renderer.render_to_file(
            "frontend/eslint.config.js.j2", self.root / "eslint.config.js", context
        )
        return "written"

    async def write_env(self) -> bool:
        """Add ``VITE_API_URL`` to ``.env`` unless it is already set."""
        env = EnvFile(self.env_path)
        if "VITE_API_URL" in env:
            return False
        if self.runner.dry_run:
            print_info(f"  Would write {self.env_path}")
            return False
        await env.add_missing({"VITE_API_URL": self.config.frontend.api_url})
        return True

    async def write_api_client(self, context: dict[str, Any]) -> bool:
        if self.runner.dry_run:
            return False
        written = await self.renderer.render_to_file(
            "frontend/src/api/client.js.j2",
            self.root / "src" / "api" / "client.js",
            context,
            overwrite=False,
        )
        return written is not None
