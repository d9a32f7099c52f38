"""Line-oriented edits of the generated Django ``settings.py``.

Each function takes the file text and returns the edited text.  All edits are
idempotent: applying one to its own output returns the text unchanged, so a
second setup run over an already patched project is a no-op.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any

from .templates import TemplateRenderer

PATHLIB_IMPORT = "from pathlib import Path"
DECOUPLE_IMPORTS = ["from decouple import config", "import os"]

SETTING_OVERRIDES: dict[str, str] = {
    "SECRET_KEY": "config('SECRET_KEY')",
    "DEBUG": "config('DEBUG', default=False, cast=bool)",
    "ALLOWED_HOSTS": "config('ALLOWED_HOSTS', default='').split()",
}

EXTRA_APPS = ["corsheaders", "rest_framework"]
CORS_MIDDLEWARE = "corsheaders.middleware.CorsMiddleware"

SETTINGS_BLOCK_TEMPLATE = "backend/settings_block.py.j2"


class SettingsPatchError(Exception):
    """Raised when an anchor line the patch relies on is missing."""


# ---------------------------------------------------------------------------
# Individual edits
# ---------------------------------------------------------------------------


def add_imports(text: str) -> str:
    """Insert the decouple/os imports after ``from pathlib import Path``."""
    lines = text.splitlines(keepends=True)
    if any(line.strip() == DECOUPLE_IMPORTS[0] for line in lines):
        return text
    for index, line in enumerate(lines):
        if line.strip() == PATHLIB_IMPORT:
            if not line.endswith("\n"):
                lines[index] = line + "\n"
            insert = ["\n"] + [f"{imp}\n" for imp in DECOUPLE_IMPORTS]
            lines[index + 1:index + 1] = insert
            return "".join(lines)
    raise SettingsPatchError(f"Anchor not found: {PATHLIB_IMPORT!r}")


def replace_setting(text: str, name: str, expression: str) -> str:
    """Replace the whole ``NAME = ...`` line with ``NAME = <expression>``."""
    pattern = re.compile(rf"^{re.escape(name)}\s*=.*$", re.MULTILINE)
    new_text, count = pattern.subn(lambda _: f"{name} = {expression}", text, count=1)
    if count == 0:
        raise SettingsPatchError(f"Setting not found: {name}")
    return new_text


def add_installed_apps(text: str, apps: list[str] | None = None) -> str:
    """Append *apps* before the closing bracket of ``INSTALLED_APPS``."""
    return _extend_list(
        text, "INSTALLED_APPS", EXTRA_APPS if apps is None else apps, at_start=False
    )


def prepend_middleware(text: str, entry: str = CORS_MIDDLEWARE) -> str:
    """Make *entry* the first item of ``MIDDLEWARE``."""
    return _extend_list(text, "MIDDLEWARE", [entry], at_start=True)


def append_block(text: str, block: str) -> str:
    """Append the rendered CORS / REST framework / JWT configuration block."""
    if re.search(r"^CORS_ALLOWED_ORIGINS\s*=", text, re.MULTILINE):
        return text
    if not text.endswith("\n"):
        text += "\n"
    return text + "\n" + block.lstrip("\n")


def render_settings_block(
    context: dict[str, Any], renderer: TemplateRenderer | None = None
) -> str:
    """Render the CORS / REST framework / JWT block for *context*."""
    return (renderer or TemplateRenderer()).render(SETTINGS_BLOCK_TEMPLATE, context)


def patch_settings(
    text: str, context: dict[str, Any], renderer: TemplateRenderer | None = None
) -> str:
    """Apply every settings edit in order."""
    block = render_settings_block(context, renderer)
    text = add_imports(text)
    for name, expression in SETTING_OVERRIDES.items():
        text = replace_setting(text, name, expression)
    text = add_installed_apps(text)
    text = prepend_middleware(text)
    return append_block(text, block)


# ---------------------------------------------------------------------------
# File-level patcher
# ---------------------------------------------------------------------------


class SettingsPatcher:
    """Renders the settings block and patches ``settings.py`` in place."""

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def render_block(self, context: dict[str, Any]) -> str:
        return render_settings_block(context, self.renderer)

    async def patch(self, settings_path: str | Path, context: dict[str, Any]) -> bool:
        """Patch *settings_path*.

        Returns:
            ``True`` if the file changed, ``False`` if it was already patched.

        Raises:
            FileNotFoundError: If the settings file does not exist.
            SettingsPatchError: If an anchor line is missing.
        """
        path = Path(settings_path)
        original = await asyncio.to_thread(path.read_text, encoding="utf-8")
        patched = patch_settings(original, context, self.renderer)
        if patched == original:
            return False
        await asyncio.to_thread(path.write_text, patched, encoding="utf-8")
        return True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _extend_list(text: str, name: str, items: list[str], *, at_start: bool) -> str:
    """Insert string *items* into the multi-line list literal assigned to *name*."""
    lines = text.splitlines(keepends=True)
    start = next(
        (i for i, line in enumerate(lines) if re.match(rf"^{name}\s*=\s*\[\s*$", line)),
        None,
    )
    if start is None:
        raise SettingsPatchError(f"Anchor not found: {name} = [")
    end = next(
        (i for i in range(start + 1, len(lines)) if lines[i].strip().startswith("]")),
        None,
    )
    if end is None:
        raise SettingsPatchError(f"Unterminated list: {name}")

    body = lines[start + 1:end]
    existing = {_list_item(line) for line in body}
    missing = [item for item in items if item not in existing]
    if not missing:
        return text

    indent, quote = _list_style(body)
    new_lines = [f"{indent}{quote}{item}{quote},\n" for item in missing]
    at = start + 1 if at_start else end
    lines[at:at] = new_lines
    return "".join(lines)


def _list_item(line: str) -> str:
    return line.strip().rstrip(",").strip("'\"")


def _list_style(body: list[str]) -> tuple[str, str]:
    """Indentation and quote character of the first entry (default 4 spaces, ')."""
    for line in body:
        stripped = line.lstrip()
        if stripped and stripped[0] in ("'", '"'):
            return line[: len(line) - len(stripped)], stripped[0]
    return "    ", "'"
