"""
Shared state for phasekit commands.

The top-level group stores a CliContext in click's ctx.obj; commands pull the
project manager out of it instead of building their own.
"""

from dataclasses import dataclass
from pathlib import Path

import click

from phasekit.constants import ConfigManager
from phasekit.exceptions import StateNotFoundError
from phasekit.managers.project_manager import ProjectManager, manager_for_fs
from phasekit.models.project import Project
from phasekit.registry import Registry


@dataclass
class CliContext:
    """Paths, settings and registry resolved once per invocation."""

    root: Path
    settings: ConfigManager
    registry: Registry

    @property
    def state_dir(self) -> Path:
        return self.settings.config_path.parent

    def manager(self) -> ProjectManager:
        return manager_for_fs(self.state_dir, self.registry, self.settings.state_path)


pass_cli_context = click.make_pass_decorator(CliContext)


def load_project(cli_ctx: CliContext) -> Project:
    """Load the active project, turning a missing one into a friendly error."""
    try:
        return cli_ctx.manager().load()
    except StateNotFoundError:
        raise click.ClickException("No active project. Run 'phasekit new' first.")
