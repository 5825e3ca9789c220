"""
New command: create the active project.
"""

import click

from phasekit.commands.context import pass_cli_context
from phasekit.exceptions import NotFoundError, PhasekitError, ValidationError


@click.command(name="new")
@click.argument("description")
@click.option("--branch", default="main", show_default=True, help="Branch the work happens on.")
@click.option(
    "--type",
    "project_type",
    help="Project type. Detected from the branch prefix when omitted.",
)
@click.option("--name", help="Project name. Derived from DESCRIPTION when omitted.")
@pass_cli_context
def new(cli_ctx, description, branch, project_type, name):
    """Creates a new project from DESCRIPTION."""
    manager = cli_ctx.manager()
    if manager.exists():
        raise click.ClickException(
            "A project already exists. Finish or delete it before starting another."
        )

    try:
        project = manager.create(
            description, branch=branch, project_type=project_type, name=name
        )
    except NotFoundError as e:
        raise click.ClickException(str(e))
    except ValidationError as e:
        raise click.ClickException(f"Validation Error: {e}")
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")

    click.echo(f"Project '{project.name}' created ({project.type}).")
    click.echo(f"Current state: {project.current_state}")
