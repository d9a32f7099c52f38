"""``.env`` files read with python-dotenv and extended key by key.

Keys are only ever added: lines already in the file (comments, quoting,
values the user changed) are written back exactly as they were.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path

from dotenv import dotenv_values, set_key

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EnvFileError(ValueError):
    """Raised for keys or values that cannot be written to a ``.env`` file."""


class EnvFile:
    """A ``.env`` file on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def values(self) -> dict[str, str | None]:
        """Parsed ``KEY -> value`` pairs (``None`` for a bare ``KEY`` line).

        A missing file reads as empty.
        """
        if not self.path.exists():
            return {}
        return dict(dotenv_values(self.path, interpolate=False, encoding="utf-8"))

    def get(self, key: str, default: str | None = None) -> str | None:
        value = self.values().get(key)
        return default if value is None else value

    def __contains__(self, key: object) -> bool:
        return key in self.values()

    async def add_missing(self, values: dict[str, str]) -> list[str]:
        """Append the entries of *values* whose key is not in the file yet.

        Returns:
            The keys that were added, in order.

        Raises:
            EnvFileError: If a key is not a valid variable name or a value
                spans several lines.
        """
        for key, value in values.items():
            if not _KEY_RE.match(key):
                raise EnvFileError(f"Invalid environment key: {key!r}")
            if "\n" in value or "\r" in value:
                raise EnvFileError(f"Value for {key} spans multiple lines")

        present = self.values()
        missing = {key: value for key, value in values.items() if key not in present}
        if not missing:
            return []

        def _write() -> None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
            for key, value in missing.items():
                set_key(
                    self.path, key, value,
                    quote_mode=_quote_mode(value), encoding="utf-8",
                )

        await asyncio.to_thread(_write)
        return list(missing)


def _quote_mode(value: str) -> str:
    """Single-quote values that would change when read back unquoted."""
    if (
        value != value.strip()
        or value[:1] in ("'", '"')
        or re.search(r"\s#", value)
    ):
        return "always"
    return "never"
