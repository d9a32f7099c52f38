"""stackinit scaffolders -- generate and wire up the two application tiers.

The backend scaffolder drives ``django-admin startproject`` and patches the
generated settings; the frontend scaffolder drives ``npm create vite``; the
docs generator writes the starter README and ``.gitignore`` files.

Quick usage::

    from stackinit.config import Config
    from stackinit.runner import CommandRunner
    from stackinit.scaffolder import BackendScaffolder, build_context

    config = Config(project_dir=Path("/work/my-app"))
    runner = CommandRunner(timeout=config.command_timeout)
    await BackendScaffolder(config, runner).setup(build_context(config))
"""

from stackinit.scaffolder.backend import BackendScaffolder
from stackinit.scaffolder.context import build_context
from stackinit.scaffolder.docs import DocsGenerator
from stackinit.scaffolder.env_file import EnvFile, EnvFileError
from stackinit.scaffolder.frontend import FrontendScaffolder
from stackinit.scaffolder.settings_patch import SettingsPatchError, SettingsPatcher
from stackinit.scaffolder.templates import TemplateRenderer

__all__ = [
    "BackendScaffolder",
    "DocsGenerator",
    "EnvFile",
    "EnvFileError",
    "FrontendScaffolder",
    "SettingsPatchError",
    "SettingsPatcher",
    "TemplateRenderer",
    "build_context",
]
