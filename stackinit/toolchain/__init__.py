"""Toolchain installers run before any scaffolding.

``SystemInstaller`` installs the OS Python packages through apt-get and
``NodeInstaller`` installs NVM plus a Node.js release.
"""

from stackinit.toolchain.node import NodeInstaller, ToolchainError
from stackinit.toolchain.system import SystemInstaller

__all__ = [
    "NodeInstaller",
    "SystemInstaller",
    "ToolchainError",
]
