"""
Status command: summarize the active project.
"""

import json

import click

from phasekit.commands.context import load_project, pass_cli_context
from phasekit.constants import PHASE_COMPLETED, PHASE_FAILED, PHASE_IN_PROGRESS
from phasekit.exceptions import PhasekitError


def get_status_data(project):
    """Get status data in a structured format for JSON output."""
    phases = []
    for name, phase in project.phases.items():
        phases.append({
            "name": name,
            "status": phase.status,
            "iteration": phase.iteration,
            "inputs": len(phase.inputs),
            "outputs": len(phase.outputs),
            "tasks": len(phase.tasks),
            "tasks_done": sum(1 for t in phase.tasks if t.is_terminal),
        })

    machine = project.machine
    return {
        "name": project.name,
        "type": project.type,
        "branch": project.branch,
        "description": project.description,
        "current_state": project.current_state,
        "phases": phases,
        "permitted_events": machine.permitted_events() if machine else [],
    }


def status_indicator(status):
    if status == PHASE_COMPLETED:
        return " ✓"
    if status == PHASE_IN_PROGRESS:
        return " ⏳"
    if status == PHASE_FAILED:
        return " ✗"
    return ""


@click.command(name="status")
@click.option(
    "-j",
    "--json",
    "json_output",
    is_flag=True,
    help="Output status in JSON format for AI agents.",
)
@click.option("--prompt", "show_prompt", is_flag=True, help="Print the prompt for the current state.")
@pass_cli_context
def status(cli_ctx, json_output, show_prompt):
    """Displays the project's state and phase progress."""
    try:
        project = load_project(cli_ctx)
    except PhasekitError as e:
        raise click.ClickException(f"Error: {e}")

    data = get_status_data(project)

    if json_output:
        click.echo(json.dumps(data, indent=2))
        return

    if show_prompt:
        click.echo(project.machine.prompt())
        return

    click.echo(f"Project: {data['name']} ({data['type']})")
    click.echo("=========================")
    click.echo(f"Branch: {data['branch']}")
    click.echo(f"Current state: {data['current_state']}")
    click.echo()
    click.echo("Phases:")
    for phase in data["phases"]:
        line = f"- {phase['name']}: {phase['status']}{status_indicator(phase['status'])}"
        if phase["iteration"] > 1:
            line += f" (iteration {phase['iteration']})"
        if phase["tasks"]:
            line += f" [{phase['tasks_done']}/{phase['tasks']} tasks]"
        click.echo(line)

    click.echo()
    if data["permitted_events"]:
        click.echo("Ready: " + ", ".join(data["permitted_events"]))
    else:
        click.echo("No transitions are currently permitted. Run 'phasekit advance --list'.")
