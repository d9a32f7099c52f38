"""Template context shared by the backend, frontend and docs scaffolders."""

from __future__ import annotations

from typing import Any

from ..config import Config


def build_context(config: Config) -> dict[str, Any]:
    """Build the Jinja2 template context from the setup configuration."""
    backend = config.backend
    frontend = config.frontend
    return {
        "project_name": config.project_dir.resolve().name or "project",
        "state_dir": config.state_dir_name,
        # Backend
        "backend_dir": backend.dir_name,
        "venv_dir": backend.venv_dir,
        "django_project": backend.django_project,
        "packages": backend.packages,
        "debug": backend.debug,
        "allowed_hosts": backend.allowed_hosts,
        "cors_allowed_origins": backend.cors_allowed_origins,
        "access_token_minutes": backend.access_token_minutes,
        "refresh_token_days": backend.refresh_token_days,
        "rotate_refresh_tokens": backend.rotate_refresh_tokens,
        # Frontend
        "frontend_dir": frontend.dir_name,
        "vite_template": frontend.vite_template,
        "api_url": frontend.api_url,
    }
