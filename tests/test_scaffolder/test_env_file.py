"""Tests for .env reading/extending (stackinit.scaffolder.env_file)."""

from __future__ import annotations

from pathlib import Path

import pytest

from stackinit.scaffolder.env_file import EnvFile, EnvFileError

pytestmark = pytest.mark.unit


def _env(tmp_path: Path, text: str | None = None) -> EnvFile:
    path = tmp_path / ".env"
    if text is not None:
        path.write_text(text, encoding="utf-8")
    return EnvFile(path)


class TestRead:
    def test_simple_pairs(self, tmp_path: Path):
        env = _env(tmp_path, "DEBUG=True\nALLOWED_HOSTS=localhost 127.0.0.1 [::1]\n")
        assert env.values() == {
            "DEBUG": "True",
            "ALLOWED_HOSTS": "localhost 127.0.0.1 [::1]",
        }

    def test_missing_file_is_empty(self, tmp_path: Path):
        env = _env(tmp_path)
        assert env.values() == {}
        assert "SECRET_KEY" not in env

    def test_comments_and_quotes(self, tmp_path: Path):
        env = _env(tmp_path, "# comment\n\nA='one'\nB=\"  two  \"\n")
        assert env.get("A") == "one"
        assert env.get("B") == "  two  "

    def test_inline_comment_is_not_part_of_value(self, tmp_path: Path):
        assert _env(tmp_path, "DEBUG=True  # dev only\n").get("DEBUG") == "True"

    def test_bare_key_counts_as_present(self, tmp_path: Path):
        env = _env(tmp_path, "FOO\nBAR=1\n")
        assert "FOO" in env
        assert env.get("FOO", "fallback") == "fallback"
        assert env.get("BAR") == "1"

    def test_export_prefix(self, tmp_path: Path):
        env = _env(tmp_path, "export VITE_API_URL=http://x\n")
        assert env.get("VITE_API_URL") == "http://x"

    def test_dollar_not_interpolated(self, tmp_path: Path):
        env = _env(tmp_path, "SECRET_KEY=ab${HOME}c\n")
        assert env.get("SECRET_KEY") == "ab${HOME}c"


class TestAddMissing:
    async def test_creates_file_and_parents(self, tmp_path: Path):
        env = EnvFile(tmp_path / "nested" / ".env")

        added = await env.add_missing({"VITE_API_URL": "http://localhost:8000/api"})

        assert added == ["VITE_API_URL"]
        assert env.path.read_text(encoding="utf-8") == (
            "VITE_API_URL=http://localhost:8000/api\n"
        )

    async def test_plain_values_left_bare(self, tmp_path: Path):
        env = _env(tmp_path)

        await env.add_missing({
            "SECRET_KEY": "ab=c#d$e!",
            "ALLOWED_HOSTS": "localhost 127.0.0.1 [::1]",
        })

        assert env.path.read_text(encoding="utf-8") == (
            "SECRET_KEY=ab=c#d$e!\n"
            "ALLOWED_HOSTS=localhost 127.0.0.1 [::1]\n"
        )
        assert env.get("SECRET_KEY") == "ab=c#d$e!"

    async def test_values_quoted_when_needed(self, tmp_path: Path):
        env = _env(tmp_path)
        values = {"GREETING": "  hi  ", "NOTE": "a #b", "QUOTED": "'x'"}

        await env.add_missing(values)

        assert env.values() == values

    async def test_keeps_existing_lines_verbatim(self, tmp_path: Path):
        original = "# keep me\nVITE_OTHER='1'  # note\n\nVITE_API_URL=https://api.example.com\n"
        env = _env(tmp_path, original)

        added = await env.add_missing({
            "VITE_API_URL": "http://localhost:8000/api",
            "VITE_FLAG": "on",
        })

        assert added == ["VITE_FLAG"]
        assert env.path.read_text(encoding="utf-8") == original + "VITE_FLAG=on\n"

    async def test_missing_trailing_newline(self, tmp_path: Path):
        env = _env(tmp_path, "A=1")
        await env.add_missing({"B": "2"})
        assert env.path.read_text(encoding="utf-8") == "A=1\nB=2\n"

    async def test_nothing_missing_leaves_file_untouched(self, tmp_path: Path):
        env = _env(tmp_path, "A=1\n")
        assert await env.add_missing({"A": "2"}) == []
        assert env.path.read_text(encoding="utf-8") == "A=1\n"

    async def test_rejects_bad_key(self, tmp_path: Path):
        with pytest.raises(EnvFileError):
            await _env(tmp_path).add_missing({"has space": "x"})

    async def test_rejects_multiline_value(self, tmp_path: Path):
        env = _env(tmp_path)
        with pytest.raises(EnvFileError):
            await env.add_missing({"A": "one\ntwo"})
        assert not env.path.exists()
