"""
Validate command: check the stored project against its type.
"""

import click

from phasekit.commands.context import load_project, pass_cli_context
from phasekit.exceptions import PhasekitError, ProjectValidationError
from phasekit.validation import Validator


@click.command(name="validate")
@pass_cli_context
def validate(cli_ctx):
    """Validates the stored project's structure and phase contents."""
    try:
        project = load_project(cli_ctx)
    except ProjectValidationError as e:
        for error in e.errors:
            click.echo(f"- {error}", err=True)
        raise click.ClickException(f"Project is invalid ({len(e.errors)} problem(s)).")
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")

    errors = Validator(project.config).validate(project)
    if errors:
        for error in errors:
            click.echo(f"- {error}", err=True)
        raise click.ClickException(f"Project is invalid ({len(errors)} problem(s)).")

    click.echo(f"Project '{project.name}' is valid.")
