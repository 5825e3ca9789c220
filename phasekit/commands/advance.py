"""
Advance command: move the active project to its next state.

    phasekit advance               fire whatever the current state determines
    phasekit advance EVENT         fire EVENT explicitly
    phasekit advance --list        show every transition from here
    phasekit advance EVENT --dry-run
                                   check EVENT without firing it
"""

import click

from phasekit.advance import AdvanceEngine, AdvanceResult
from phasekit.commands.context import load_project, pass_cli_context
from phasekit.exceptions import (
    EventNotConfiguredError,
    GuardBlockedError,
    NoDeterminerError,
    PhasekitError,
    UnsavedTransitionError,
    UsageError,
)


def display_transitions(state, options):
    """Print the discovery listing for ``state``."""
    click.echo(f"Current state: {state}")
    click.echo()

    if not options:
        click.echo("No transitions available from current state.")
        click.echo("This may be a terminal state.")
        return

    click.echo("Available transitions:")
    click.echo()
    for option in options:
        blocked = "  [BLOCKED]" if option.blocked else ""
        click.echo(f"  phasekit advance {option.event}{blocked}")
        click.echo(f"    → {option.to_state}")
        if option.description:
            click.echo(f"    {option.description}")
        if option.guard_description:
            click.echo(f"    Requires: {option.guard_description}")
        click.echo()

    if not any(o.permitted for o in options):
        click.echo("(All configured transitions are currently blocked by guard conditions)")


def display_dry_run(result: AdvanceResult):
    """Print the verdict of a dry run. Returns False when the guard blocks."""
    click.echo(f"Validating transition: {result.from_state} -> {result.event}")
    click.echo()

    if not result.permitted:
        click.echo("✗ Transition blocked by guard condition")
        click.echo()
        click.echo(f"Guard description: {result.blocked_reason}")
        click.echo("Current status: Guard not satisfied")
        click.echo()
        click.echo("Fix the guard condition, then try again.")
        return False

    click.echo("✓ Transition is valid and can be executed")
    click.echo()
    click.echo(f"Target state: {result.to_state}")
    if result.description:
        click.echo(f"Description: {result.description}")
    click.echo()
    click.echo(f"To execute: phasekit advance {result.event}")
    return True


@click.command(name="advance")
@click.argument("event", required=False)
@click.option("--list", "list_only", is_flag=True, help="List available transitions.")
@click.option("--dry-run", is_flag=True, help="Check EVENT without firing it.")
@pass_cli_context
def advance(cli_ctx, event, list_only, dry_run):
    """Advance the project to its next state."""
    try:
        manager = cli_ctx.manager()
        project = load_project(cli_ctx)
        engine = AdvanceEngine(project, manager)
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")
    state = engine.current_state

    try:
        if list_only or dry_run or event is None:
            result = engine.run(event, list_only=list_only, dry_run=dry_run)
        else:
            click.echo(f"Current state: {state}")
            result = engine.fire(event)
    except UsageError as e:
        raise click.UsageError(str(e))
    except EventNotConfiguredError as e:
        if dry_run:
            click.echo(f"Validating transition: {state} -> {event}")
            click.echo()
            click.echo(f"✗ Event '{event}' is not configured for state {state}")
            click.echo()
            click.echo("Use 'phasekit advance --list' to see available transitions.")
        raise click.ClickException(str(e))
    except GuardBlockedError as e:
        raise click.ClickException(
            f"cannot advance from {e.state} to {e.to_state} via {e.event!r}: "
            f"{e.reason}\nRun 'phasekit advance {e.event} --dry-run' for details."
        )
    except NoDeterminerError as e:
        raise click.ClickException(
            f"{e}\nUse 'phasekit advance --list' to see available transitions."
        )
    except UnsavedTransitionError as e:
        raise click.ClickException(
            f"{e}\nThe transition was applied in memory only; the stored project is unchanged."
        )
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")

    if list_only:
        display_transitions(state, result)
        return
    if dry_run:
        if not display_dry_run(result):
            raise click.ClickException(
                f"transition {state} -> {result.to_state} blocked by guard: {result.blocked_reason}"
            )
        return

    if event is None:
        click.echo(f"Current state: {state}")
    click.echo(f"Advanced to: {result.to_state}")
