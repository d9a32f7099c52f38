"""Django backend scaffolding.

Creates a virtualenv in the backend directory, installs Django and the REST
stack into it, generates the project with ``django-admin startproject`` and
then rewires the generated settings to read from ``.env``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..config import Config
from ..runner import CommandRunner
from ..utils import check_directory, print_info
from .env_file import EnvFile
from .settings_patch import SettingsPatcher
from .templates import TemplateRenderer

SECRET_KEY_SNIPPET = (
    "from django.core.management.utils import get_random_secret_key; "
    "print(get_random_secret_key())"
)


class BackendScaffolder:
    """Sets up the Django / DRF backend inside ``<project>/<backend dir>``."""

    def __init__(
        self,
        config: Config,
        runner: CommandRunner,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.renderer = renderer or TemplateRenderer()
        self.patcher = SettingsPatcher(self.renderer)

    # -- Paths -------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self.config.backend_path

    def venv_bin(self, name: str) -> str:
        return str(self.config.venv_path / "bin" / name)

    @property
    def env_path(self) -> Path:
        return self.root / ".env"

    # -- Public API --------------------------------------------------------

    async def setup(self, context: dict[str, Any]) -> dict[str, Any]:
        """Run every backend step in order, stopping on the first failure.

        Raises:
            DirectoryNotFoundError: If the backend directory is missing.
            CommandError: If any external command fails.
            SettingsPatchError: If the generated settings lack an anchor line.
        """
        check_directory(self.root)

        await self.create_venv()
        await self.install_packages()
        created = await self.start_project()
        env_written = await self.write_env()
        patched = await self.patch_settings(context)

        return {
            "backend_dir": str(self.root),
            "project_created": created,
            "env_written": env_written,
            "settings_patched": patched,
        }

    async def create_venv(self) -> bool:
        if (self.config.venv_path / "bin" / "python").exists():
            print_info(f"  Virtualenv already exists at {self.config.venv_path}")
            return False
        await self.runner.run(
            ["python3", "-m", "venv", self.config.backend.venv_dir], cwd=self.root
        )
        return True

    async def install_packages(self) -> None:
        pip = self.venv_bin("pip")
        await self.runner.run([pip, "install", "--upgrade", "pip"], cwd=self.root)
        if self.config.backend.packages:
            await self.runner.run(
                [pip, "install", *self.config.backend.packages], cwd=self.root
            )

    async def start_project(self) -> bool:
        """Generate the Django project into the backend directory itself."""
        if (self.root / "manage.py").exists():
            print_info("  Django project already present (manage.py found)")
            return False
        await self.runner.run(
            [self.venv_bin("django-admin"), "startproject", self.config.backend.django_project, "."],
            cwd=self.root,
        )
        return True

    async def generate_secret_key(self) -> str:
        return await self.runner.run(
            [self.venv_bin("python"), "-c", SECRET_KEY_SNIPPET], cwd=self.root
        )

    def default_env(self) -> dict[str, str]:
        backend = self.config.backend
        return {
            "DEBUG": str(backend.debug),
            "ALLOWED_HOSTS": " ".join(backend.allowed_hosts),
            "CORS_ALLOWED_ORIGINS": " ".join(backend.cors_allowed_origins),
        }

    async def write_env(self) -> bool:
        """Add the missing keys to ``.env``; lines already there are left alone.

        ``SECRET_KEY`` is only generated when the file does not define one.

        Returns:
            ``True`` if any key was added.
        """
        env = EnvFile(self.env_path)
        values: dict[str, str] = {}
        if "SECRET_KEY" not in env:
            values["SECRET_KEY"] = await self.generate_secret_key()
        values.update(self.default_env())

        if self.runner.dry_run:
            print_info(f"  Would write {self.env_path}")
            return False
        added = await env.add_missing(values)
        if not added:
            print_info(f"  {self.env_path.name} already configured")
        return bool(added)

    async def patch_settings(self, context: dict[str, Any]) -> bool:
        settings_path = self.config.settings_path
        if self.runner.dry_run:
            print_info(f"  Would patch {settings_path}")
            return False
        changed = await self.patcher.patch(settings_path, context)
        if not changed:
            print_info(f"  {settings_path.name} already configured")
        return changed
