"""
Command-line interface for phasekit.

Project state lives under <root>/.phasekit/. The built-in project types are
registered at startup; callers embedding the CLI can pass their own Registry
as click's ``obj``.
"""
import logging
from pathlib import Path

import click

from phasekit.commands.advance import advance
from phasekit.commands.context import CliContext
from phasekit.commands.new import new
from phasekit.commands.status import status
from phasekit.commands.validate import validate
from phasekit.constants import DEFAULT_ROOT_DIR, ConfigManager
from phasekit.registry import Registry, build_registry


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Repository root holding the .phasekit/ folder.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx, root, verbose):
    """Drive a project through its phase lifecycle."""
    settings = ConfigManager(root_dir=root / DEFAULT_ROOT_DIR)
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    registry = ctx.obj if isinstance(ctx.obj, Registry) else build_registry()
    ctx.obj = CliContext(root=root, settings=settings, registry=registry)


cli.add_command(new)
cli.add_command(advance)
cli.add_command(status)
cli.add_command(validate)


if __name__ == '__main__':
    cli()
