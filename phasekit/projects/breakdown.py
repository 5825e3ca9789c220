"""
The breakdown project type.

Lifecycle:
    Active -> Publishing -> NoProject

A large feature is decomposed into work units, one task each. A work unit
task links its `work_unit_spec` output through ``artifact_path`` and may list
the ids of the work units it depends on under ``dependencies``. Publishing
starts once every unit is resolved and the dependencies form a DAG over the
completed units. The project finishes when every completed unit carries
``published: true``.

There is a single phase; no separate finalization.
"""

from enum import Enum
from typing import TYPE_CHECKING, Dict, List

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.config import ProjectTypeConfig
from phasekit.constants import TASK_COMPLETED
from phasekit.models.state import TaskState
from phasekit.options import (
    with_description,
    with_end_state,
    with_guard,
    with_outputs,
    with_start_state,
    with_tasks,
)
from phasekit.projects import phase_initializer, resolved_with_output
from phasekit.prompts import (
    artifact_list,
    available_transitions,
    compose,
    phase_summary,
    project_header,
    task_summary,
)

if TYPE_CHECKING:
    from phasekit.models.project import Project


PROJECT_TYPE = "breakdown"


class State(str, Enum):
    ACTIVE = "Active"
    PUBLISHING = "Publishing"
    NO_PROJECT = "NoProject"


class Event(str, Enum):
    BEGIN_PUBLISHING = "begin_publishing"
    COMPLETE_BREAKDOWN = "complete_breakdown"


PHASE_NAMES = ["breakdown"]


# =============================================================================
# Guards
# =============================================================================


def task_dependencies(task: TaskState) -> List[str]:
    """Return the string ids listed under the task's ``dependencies`` metadata."""
    deps = task.metadata.get("dependencies")
    if not isinstance(deps, list):
        return []
    return [d for d in deps if isinstance(d, str)]


def completed_units(project: "Project") -> List[TaskState]:
    return [t for t in project.tasks("breakdown") if t.status == TASK_COMPLETED]


def all_work_units_approved(project: "Project") -> bool:
    return resolved_with_output(project, "breakdown")


def dependencies_valid(project: "Project") -> bool:
    """True if the completed units' dependencies only name completed units and have no cycle.

    Pending and abandoned units are ignored.
    """
    graph: Dict[str, List[str]] = {t.id: task_dependencies(t) for t in completed_units(project)}
    for deps in graph.values():
        if any(dep not in graph for dep in deps):
            return False

    done = set()
    for root in graph:
        if root in done:
            continue
        on_path = {root}
        stack = [(root, iter(graph[root]))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                on_path.discard(node)
                done.add(node)
            elif child in on_path:
                return False
            elif child not in done:
                on_path.add(child)
                stack.append((child, iter(graph[child])))
    return True


def ready_to_publish(project: "Project") -> bool:
    return all_work_units_approved(project) and dependencies_valid(project)


def is_published(task: TaskState) -> bool:
    return task.metadata.get("published") is True


def all_work_units_published(project: "Project") -> bool:
    units = completed_units(project)
    return bool(units) and all(is_published(t) for t in units)


def count_unpublished(project: "Project") -> int:
    return sum(1 for t in completed_units(project) if not is_published(t))


# =============================================================================
# Prompts
# =============================================================================


def active_prompt(project: "Project") -> str:
    breakdown = project.phase("breakdown")
    warning = ""
    if not dependencies_valid(project):
        warning = "Dependencies are invalid: a unit depends on an unknown or unfinished unit, or they form a cycle."
    lines = []
    for task in breakdown.tasks:
        deps = task_dependencies(task)
        after = f" after {', '.join(deps)}" if deps else ""
        lines.append(f"- [{task.id}] {task.name} ({task.status}){after}")
    return compose(
        project_header(project),
        "## Breakdown\n\nDecompose the work into units. Give each unit a task, write its "
        "`work_unit_spec` output and link it through `artifact_path`. List prerequisite "
        "unit ids under `dependencies`.",
        artifact_list("Inputs", breakdown.inputs, show_status=False),
        task_summary(breakdown.tasks),
        "\n".join(lines),
        warning,
        available_transitions(project),
    )


def publishing_prompt(project: "Project") -> str:
    units = completed_units(project)
    return compose(
        project_header(project),
        "## Publishing\n\nCreate an issue for every approved work unit in dependency "
        "order and set `published` on its task.",
        "\n".join(
            f"- [{'x' if is_published(t) else ' '}] {t.name}" for t in units
        ),
        f"{count_unpublished(project)} of {len(units)} work units left to publish.",
        available_transitions(project),
    )


def orchestrator_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "This is a breakdown project: split a feature into specified work units, "
        "then publish them as issues.",
        phase_summary(project),
    )


# =============================================================================
# Configuration
# =============================================================================


def configure_phases(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return builder.with_phase(
        "breakdown",
        with_start_state(State.ACTIVE),
        with_end_state(State.PUBLISHING),
        with_outputs("work_unit_spec"),
        with_tasks(),
    )


def configure_transitions(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .set_initial_state(State.ACTIVE)
        .add_transition(
            State.ACTIVE,
            State.PUBLISHING,
            Event.BEGIN_PUBLISHING,
            with_guard("all work units approved and dependencies valid", ready_to_publish),
            with_description("Work units approved - publish them"),
        )
        .add_transition(
            State.PUBLISHING,
            State.NO_PROJECT,
            Event.COMPLETE_BREAKDOWN,
            with_guard("all work units published", all_work_units_published),
            with_description("Breakdown finished"),
        )
    )


def configure_event_determiners(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .on_advance(State.ACTIVE, lambda _project: Event.BEGIN_PUBLISHING)
        .on_advance(State.PUBLISHING, lambda _project: Event.COMPLETE_BREAKDOWN)
    )


def configure_prompts(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_prompt(State.ACTIVE, active_prompt)
        .with_prompt(State.PUBLISHING, publishing_prompt)
        .with_orchestrator_prompt(orchestrator_prompt)
    )


def new_breakdown_project_config() -> ProjectTypeConfig:
    """Build the configuration for the breakdown project type."""
    builder = ProjectTypeConfigBuilder(PROJECT_TYPE)
    configure_phases(builder)
    configure_transitions(builder)
    configure_event_determiners(builder)
    configure_prompts(builder)
    builder.with_initializer(phase_initializer(PHASE_NAMES))
    return builder.build()
