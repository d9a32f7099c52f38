"""NVM and Node.js installation.

NVM is a shell function, not an executable: every command that needs it (or
the node/npm binaries it selects) runs in a fresh ``bash`` that sources
``$NVM_DIR/nvm.sh`` first.  ``NodeInstaller.wrap`` builds that prelude for the
frontend step as well.
"""

from __future__ import annotations

import shlex
from pathlib import Path

import httpx

from ..config import ToolchainConfig
from ..runner import CommandRunner
from ..utils import print_info


class ToolchainError(Exception):
    """Raised when a toolchain component cannot be fetched or installed."""


class NodeInstaller:
    """Installs NVM and the configured Node.js version."""

    def __init__(
        self,
        config: ToolchainConfig,
        runner: CommandRunner,
        http_timeout: float = 30.0,
    ) -> None:
        self.config = config
        self.runner = runner
        self.http_timeout = http_timeout

    @property
    def nvm_script(self) -> Path:
        return self.config.nvm_dir / "nvm.sh"

    def nvm_installed(self) -> bool:
        return self.nvm_script.is_file()

    # -- NVM ---------------------------------------------------------------

    async def fetch_install_script(self) -> str:
        """Download the NVM install script for the configured version.

        Raises:
            ToolchainError: On HTTP errors or an empty response body.
        """
        url = self.config.nvm_install_url
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.http_timeout, connect=10.0),
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ToolchainError(f"Failed to download NVM installer from {url}: {exc}") from exc

        if not response.text.strip():
            raise ToolchainError(f"NVM installer at {url} is empty")
        return response.text

    async def install_nvm(self) -> bool:
        """Install NVM into ``nvm_dir`` unless it is already there.

        Returns:
            ``True`` if the installer ran, ``False`` if NVM was already present.
        """
        if self.nvm_installed():
            print_info(f"  NVM already installed at {self.config.nvm_dir}")
            return False

        body = ""
        if not self.runner.dry_run:
            body = await self.fetch_install_script()
            # The installer refuses to create NVM_DIR itself.
            self.config.nvm_dir.mkdir(parents=True, exist_ok=True)
        await self.runner.run_script(body, env={"NVM_DIR": str(self.config.nvm_dir)})
        return True

    # -- Node --------------------------------------------------------------

    def _prelude(self) -> str:
        nvm_dir = shlex.quote(str(self.config.nvm_dir))
        return (
            f"export NVM_DIR={nvm_dir}; "
            '[ -s "$NVM_DIR/nvm.sh" ] && . "$NVM_DIR/nvm.sh"; '
            '[ -s "$NVM_DIR/bash_completion" ] && . "$NVM_DIR/bash_completion"; '
        )

    def nvm_command(self, *args: str) -> str:
        """A bash script that loads NVM and runs ``nvm <args>``."""
        return self._prelude() + "nvm " + " ".join(shlex.quote(a) for a in args)

    def wrap(self, cmd: list[str]) -> str:
        """A bash script running *cmd* with the configured Node version active."""
        version = shlex.quote(self.config.node_version)
        return (
            self._prelude()
            + f"nvm use {version} >/dev/null && "
            + " ".join(shlex.quote(part) for part in cmd)
        )

    async def install_node(self) -> str:
        """Install and select the configured Node version.

        Returns:
            The output of ``node --version`` (empty in dry-run mode).
        """
        await self.runner.run_shell(self.nvm_command("install", self.config.node_version))
        await self.runner.run_shell(self.nvm_command("use", self.config.node_version))
        return await self.runner.run_shell(self.wrap(["node", "--version"]))

    async def install(self) -> dict[str, str]:
        installed = await self.install_nvm()
        node_version = await self.install_node()
        return {
            "nvm_dir": str(self.config.nvm_dir),
            "nvm_installed": "yes" if installed else "already present",
            "node_version": node_version,
        }
