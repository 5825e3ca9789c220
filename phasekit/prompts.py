"""
Building blocks for state prompts.

Prompt generators are plain functions of the project returning markdown.
These helpers render the sections most generators share so each project
type only writes its state-specific guidance.
"""

from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

from phasekit.constants import (
    TASK_ABANDONED,
    TASK_COMPLETED,
    TASK_IN_PROGRESS,
    TASK_NEEDS_REVIEW,
    TASK_PENDING,
)
from phasekit.models.state import ArtifactState, TaskState

if TYPE_CHECKING:
    from phasekit.models.project import Project


def project_header(project: "Project") -> str:
    """Render the project name, branch and description."""
    lines = [f"# Project: {project.name}", f"Branch: {project.branch}"]
    if project.description:
        lines.append(f"Description: {project.description}")
    return "\n".join(lines) + "\n"


def artifact_list(title: str, artifacts: Iterable[ArtifactState], show_status: bool = True) -> str:
    """Render a bullet list of artifacts, or an empty string if there are none."""
    artifacts = list(artifacts)
    if not artifacts:
        return ""
    lines = [f"## {title}", ""]
    for artifact in artifacts:
        if show_status:
            status = "approved" if artifact.approved else "pending"
            lines.append(f"- {artifact.path} ({status})")
        else:
            lines.append(f"- {artifact.path}")
    return "\n".join(lines) + "\n"


def task_summary(tasks: Iterable[TaskState]) -> str:
    """Render task counts per status. Statuses with no tasks are omitted."""
    tasks = list(tasks)
    if not tasks:
        return ""
    labels = [
        (TASK_COMPLETED, "completed"),
        (TASK_IN_PROGRESS, "in progress"),
        (TASK_NEEDS_REVIEW, "needs review"),
        (TASK_PENDING, "pending"),
        (TASK_ABANDONED, "abandoned"),
    ]
    lines = [f"## Tasks ({len(tasks)} total)", ""]
    for status, label in labels:
        count = sum(1 for t in tasks if t.status == status)
        if count:
            lines.append(f"- {count} {label}")
    return "\n".join(lines) + "\n"


def phase_summary(project: "Project") -> str:
    """Render one line per phase with its status and iteration."""
    if not project.phases:
        return ""
    lines = ["## Phases", ""]
    for name, phase in project.phases.items():
        line = f"- {name}: {phase.status}"
        if phase.iteration > 1:
            line += f" (iteration {phase.iteration})"
        lines.append(line)
    return "\n".join(lines) + "\n"


def available_transitions(project: "Project") -> str:
    """Render the transitions leaving the current state and what blocks them."""
    machine = project.machine
    if machine is None:
        return ""
    transitions = machine.transitions()
    if not transitions:
        return ""
    lines = ["## Next Steps", ""]
    for bt in transitions:
        line = f"- {bt.event} -> {bt.to_state}"
        if bt.config.description:
            line += f": {bt.config.description}"
        reason = machine.blocked_reason(bt.event)
        if reason:
            line += f" (requires: {reason})"
        lines.append(line)
    return "\n".join(lines) + "\n"


def compose(*sections: Optional[str]) -> str:
    """Join non-empty sections with blank lines."""
    parts: List[str] = [s.rstrip("\n") for s in sections if s]
    return "\n\n".join(parts) + "\n" if parts else ""


def sectioned(*builders: Callable[["Project"], str]) -> Callable[["Project"], str]:
    """Make a prompt generator out of section builders applied in order."""
    def generate(project: "Project") -> str:
        return compose(*(build(project) for build in builders))
    return generate
