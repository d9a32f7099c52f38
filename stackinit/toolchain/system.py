"""OS package installation through apt-get."""

from __future__ import annotations

from ..config import ToolchainConfig
from ..runner import CommandRunner


class SystemInstaller:
    """Installs the Python toolchain the backend virtualenv is built from."""

    def __init__(self, config: ToolchainConfig, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner

    def _apt(self, *args: str) -> list[str]:
        cmd = ["apt-get", *args]
        return ["sudo", *cmd] if self.config.use_sudo else cmd

    async def install(self) -> list[str]:
        """Refresh the package index and install ``system_packages``.

        Returns:
            The installed package names.
        """
        await self.runner.run(self._apt("update"))
        packages = list(self.config.system_packages)
        if packages:
            await self.runner.run(self._apt("install", "-y", *packages))
        return packages
