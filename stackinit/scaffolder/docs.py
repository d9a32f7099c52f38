"""Starter README and .gitignore files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..config import Config
from ..utils import print_info
from .templates import TemplateRenderer


class DocsGenerator:
    """Writes the starter docs; existing files are never overwritten."""

    def __init__(self, config: Config, renderer: TemplateRenderer | None = None) -> None:
        self.config = config
        self.renderer = renderer or TemplateRenderer()

    def targets(self) -> list[tuple[str, Path]]:
        """``(template, output path)`` pairs in write order."""
        root = self.config.project_dir
        return [
            ("README.md.j2", root / "README.md"),
            ("gitignore.j2", root / ".gitignore"),
            ("backend/README.md.j2", self.config.backend_path / "README.md"),
            ("frontend/README.md.j2", self.config.frontend_path / "README.md"),
        ]

    async def generate(self, context: dict[str, Any], *, dry_run: bool = False) -> list[Path]:
        """Render every starter file that does not exist yet.

        Returns:
            The paths written (or that would be written in dry-run mode).
        """
        written: list[Path] = []
        for template_name, output in self.targets():
            if output.exists():
                print_info(f"  Keeping existing {output}")
                continue
            if dry_run:
                print_info(f"  Would write {output}")
                written.append(output)
                continue
            await self.renderer.render_to_file(template_name, output, context)
            print_info(f"  Wrote {output}")
            written.append(output)
        return written
