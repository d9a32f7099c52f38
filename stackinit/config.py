"""stackinit configuration.

Centralised, typed configuration for the whole setup run. All settings use
Pydantic v2 models so they can be validated at construction time and serialised
to/from JSON, YAML or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from stackinit.utils import STEP_NAMES


def _default_use_sudo() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() != 0


def _default_nvm_dir() -> Path:
    return Path(os.environ.get("NVM_DIR") or Path.home() / ".nvm")


class ToolchainConfig(BaseModel):
    """System packages and the Node toolchain installed before scaffolding."""

    system_packages: list[str] = Field(
        default_factory=lambda: ["python3", "python3-pip", "python3-venv"]
    )
    use_sudo: bool = Field(
        default_factory=_default_use_sudo,
        description="Prefix apt-get with sudo (off when already running as root)",
    )
    nvm_version: str = Field(default="v0.40.3", pattern=r"^v\d+\.\d+\.\d+$")
    nvm_dir: Path = Field(default_factory=_default_nvm_dir)
    node_version: str = Field(default="--lts", min_length=1)

    @property
    def nvm_install_url(self) -> str:
        """Raw GitHub URL of the NVM install script for ``nvm_version``."""
        return f"https://raw.githubusercontent.com/nvm-sh/nvm/{self.nvm_version}/install.sh"


class BackendConfig(BaseModel):
    """Django backend layout and the values written into its settings/.env."""

    dir_name: str = Field(default="backend", min_length=1)
    venv_dir: str = Field(default=".venv", min_length=1)
    django_project: str = Field(default="config", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    packages: list[str] = Field(
        default_factory=lambda: [
            "Django",
            "django-cors-headers",
            "djangorestframework",
            "djangorestframework-simplejwt",
            "python-decouple",
        ]
    )
    debug: bool = True
    allowed_hosts: list[str] = Field(
        default_factory=lambda: ["localhost", "127.0.0.1", "[::1]"]
    )
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"]
    )
    access_token_minutes: int = Field(default=60, ge=1)
    refresh_token_days: int = Field(default=7, ge=1)
    rotate_refresh_tokens: bool = True


class FrontendConfig(BaseModel):
    """Vite frontend template, npm packages and its .env values."""

    dir_name: str = Field(default="frontend", min_length=1)
    vite_template: str = Field(default="react", min_length=1)
    packages: list[str] = Field(default_factory=lambda: ["axios", "react-dom"])
    dev_packages: list[str] = Field(
        default_factory=lambda: [
            "eslint",
            "eslint-plugin-react",
            "eslint-plugin-react-hooks",
        ]
    )
    api_url: str = Field(default="http://localhost:8000/api")
    interactive_eslint: bool = Field(
        default=False,
        description="Run `npx eslint --init` in the terminal instead of writing a config",
    )


class Config(BaseModel):
    """Global stackinit configuration.

    Holds every tuneable parameter and derived path used by the setup steps.
    Instances are typically created once by the CLI entry point and passed to
    ``Pipeline``, which hands the relevant sections to each step.
    """

    project_dir: Path = Field(default_factory=Path.cwd)
    state_dir_name: str = Field(default=".stackinit")
    steps: list[int] = Field(default=[1, 2, 3, 4, 5])
    dry_run: bool = False
    command_timeout: int = Field(default=900, ge=10, description="Per-command timeout in seconds")
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    frontend: FrontendConfig = Field(default_factory=FrontendConfig)

    @field_validator("steps")
    @classmethod
    def _check_steps(cls, value: list[int]) -> list[int]:
        return normalise_steps(value)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def backend_path(self) -> Path:
        return self.project_dir / self.backend.dir_name

    @property
    def frontend_path(self) -> Path:
        return self.project_dir / self.frontend.dir_name

    @property
    def venv_path(self) -> Path:
        """Virtualenv created inside the backend directory."""
        return self.backend_path / self.backend.venv_dir

    @property
    def settings_path(self) -> Path:
        """The generated Django ``settings.py``."""
        return self.backend_path / self.backend.django_project / "settings.py"

    @property
    def state_dir(self) -> Path:
        return self.project_dir / self.state_dir_name

    @property
    def state_path(self) -> Path:
        """Path to the persisted run state JSON file."""
        return self.state_dir / "state.json"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON or YAML file.

        Args:
            path: Destination file. Defaults to ``<state_dir>/config.json``.
                A ``.yaml``/``.yml`` suffix selects YAML output.

        Returns:
            The path where the file was written.
        """
        target = Path(path) if path else self.state_dir / "config.json"
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.suffix in (".yaml", ".yml"):
            content = yaml.safe_dump(self.model_dump(mode="json"), sort_keys=False)
        else:
            content = self.model_dump_json(indent=2)
        target.write_text(content, encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a configuration file (JSON, or YAML by suffix).

        Raises:
            FileNotFoundError: If *path* does not exist.
            pydantic.ValidationError: If the content does not validate.
        """
        path = Path(path)
        raw = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            return cls.model_validate(yaml.safe_load(raw) or {})
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STACKINIT_PROJECT_DIR, STACKINIT_STEPS, STACKINIT_DRY_RUN,
            STACKINIT_COMMAND_TIMEOUT, STACKINIT_NVM_VERSION, STACKINIT_NODE_VERSION,
            STACKINIT_USE_SUDO, STACKINIT_API_URL, STACKINIT_CORS_ALLOWED_ORIGINS,
            STACKINIT_ALLOWED_HOSTS.
        """
        toolchain_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKINIT_NVM_VERSION"):
            toolchain_kwargs["nvm_version"] = os.environ["STACKINIT_NVM_VERSION"]
        if os.environ.get("STACKINIT_NODE_VERSION"):
            toolchain_kwargs["node_version"] = os.environ["STACKINIT_NODE_VERSION"]
        if os.environ.get("STACKINIT_USE_SUDO"):
            toolchain_kwargs["use_sudo"] = _env_flag("STACKINIT_USE_SUDO")

        backend_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKINIT_ALLOWED_HOSTS"):
            backend_kwargs["allowed_hosts"] = os.environ["STACKINIT_ALLOWED_HOSTS"].split()
        if os.environ.get("STACKINIT_CORS_ALLOWED_ORIGINS"):
            backend_kwargs["cors_allowed_origins"] = (
                os.environ["STACKINIT_CORS_ALLOWED_ORIGINS"].split()
            )

        frontend_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKINIT_API_URL"):
            frontend_kwargs["api_url"] = os.environ["STACKINIT_API_URL"]

        kwargs: dict[str, Any] = {}
        if os.environ.get("STACKINIT_PROJECT_DIR"):
            kwargs["project_dir"] = Path(os.environ["STACKINIT_PROJECT_DIR"])
        if os.environ.get("STACKINIT_COMMAND_TIMEOUT"):
            kwargs["command_timeout"] = int(os.environ["STACKINIT_COMMAND_TIMEOUT"])

        steps_str = os.environ.get("STACKINIT_STEPS", "1,2,3,4,5")
        steps = [int(s.strip()) for s in steps_str.split(",") if s.strip()]

        return cls(
            steps=steps,
            dry_run=_env_flag("STACKINIT_DRY_RUN"),
            toolchain=ToolchainConfig(**toolchain_kwargs),
            backend=BackendConfig(**backend_kwargs),
            frontend=FrontendConfig(**frontend_kwargs),
            **kwargs,
        )

    def ensure_directories(self) -> None:
        """Create the state directory used to record run progress."""
        self.state_dir.mkdir(parents=True, exist_ok=True)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def normalise_steps(steps: list[int]) -> list[int]:
    """Return *steps* sorted and de-duplicated.

    Raises:
        ValueError: If no step is selected or a number is outside 1-5.
    """
    if not steps:
        raise ValueError("No steps selected")
    for step in steps:
        if step not in STEP_NAMES:
            raise ValueError(f"Invalid step number: {step} (must be 1-{len(STEP_NAMES)})")
    return sorted(set(steps))
