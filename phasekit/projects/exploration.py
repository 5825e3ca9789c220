"""
The exploration project type.

Lifecycle:
    Active -> Summarizing -> Finalizing -> NoProject

Research topics are tracked as exploration tasks. Once every topic is
resolved the findings are summarized, and once every summary is approved
the finalization phase opens a pull request and cleans up.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.config import ProjectTypeConfig
from phasekit.constants import TASK_ABANDONED, TASK_COMPLETED
from phasekit.options import (
    with_description,
    with_end_state,
    with_guard,
    with_metadata_schema,
    with_outputs,
    with_start_state,
    with_tasks,
)
from phasekit.projects import all_tasks_completed, phase_initializer
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


PROJECT_TYPE = "exploration"


class State(str, Enum):
    ACTIVE = "Active"
    SUMMARIZING = "Summarizing"
    FINALIZING = "Finalizing"
    NO_PROJECT = "NoProject"


class Event(str, Enum):
    BEGIN_SUMMARIZING = "begin_summarizing"
    COMPLETE_SUMMARIZING = "complete_summarizing"
    COMPLETE_FINALIZATION = "complete_finalization"


PHASE_NAMES = ["exploration", "finalization"]


class FinalizationMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pr_url: Optional[str] = None


# =============================================================================
# Guards
# =============================================================================


def all_topics_resolved(project: "Project") -> bool:
    """True once there is at least one research topic and none is still open."""
    return project.all_tasks_complete("exploration")


def all_summaries_approved(project: "Project") -> bool:
    summaries = [a for a in project.phase("exploration").outputs if a.type == "summary"]
    return bool(summaries) and all(a.approved for a in summaries)


def all_finalization_tasks_complete(project: "Project") -> bool:
    return all_tasks_completed(project, "finalization")


def count_unresolved_topics(project: "Project") -> int:
    return sum(1 for t in project.tasks("exploration") if not t.is_terminal)


# =============================================================================
# Prompts
# =============================================================================


def active_prompt(project: "Project") -> str:
    topics = project.tasks("exploration")
    if not topics:
        progress = "No research topics identified yet. Create topics to investigate."
    elif all_topics_resolved(project):
        progress = "All research topics resolved. Ready to summarize."
    else:
        progress = f"Continue research ({count_unresolved_topics(project)} topics remaining)."
    return compose(
        project_header(project),
        "## Active Research\n\nAdd a task per research topic, investigate it and record "
        "`findings` outputs. Mark each topic completed or abandoned.",
        task_summary(topics),
        "\n".join(f"- [{t.id}] {t.name} ({t.status})" for t in topics),
        progress,
        available_transitions(project),
    )


def summarizing_prompt(project: "Project") -> str:
    topics = project.tasks("exploration")
    completed = [t.name for t in topics if t.status == TASK_COMPLETED]
    abandoned = [t.name for t in topics if t.status == TASK_ABANDONED]
    sections = [
        project_header(project),
        "## Summarizing Findings\n\nSynthesize the findings into one or more `summary` "
        "outputs and get every summary approved.",
        f"### Completed Topics: {len(completed)}\n\n" + "\n".join(f"- {n}" for n in completed),
    ]
    if abandoned:
        sections.append(f"### Abandoned Topics: {len(abandoned)}\n\n" + "\n".join(f"- {n}" for n in abandoned))
    sections.extend([
        artifact_list("Summaries", [a for a in project.phase("exploration").outputs if a.type == "summary"]),
        available_transitions(project),
    ])
    return compose(*sections)


def finalizing_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "## Finalization\n\nMove the summaries into the knowledge base, open a pull "
        "request and record it as a `pr` output. Track each step as a finalization task.",
        task_summary(project.tasks("finalization")),
        available_transitions(project),
    )


def orchestrator_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "This is an exploration project: research topics, summarize the findings, "
        "then publish them.",
        phase_summary(project),
    )


# =============================================================================
# Configuration
# =============================================================================


def configure_phases(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_phase(
            "exploration",
            with_start_state(State.ACTIVE),
            with_end_state(State.SUMMARIZING),
            with_outputs("summary", "findings"),
            with_tasks(),
        )
        .with_phase(
            "finalization",
            with_start_state(State.FINALIZING),
            with_end_state(State.FINALIZING),
            with_outputs("pr"),
            with_tasks(),
            with_metadata_schema(FinalizationMetadata),
        )
    )


def configure_transitions(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .set_initial_state(State.ACTIVE)
        .add_transition(
            State.ACTIVE,
            State.SUMMARIZING,
            Event.BEGIN_SUMMARIZING,
            with_guard("all research topics completed or abandoned", all_topics_resolved),
            with_description("Research done - summarize the findings"),
        )
        .add_transition(
            State.SUMMARIZING,
            State.FINALIZING,
            Event.COMPLETE_SUMMARIZING,
            with_guard("all summaries approved", all_summaries_approved),
            with_description("Summaries approved - finalize"),
        )
        .add_transition(
            State.FINALIZING,
            State.NO_PROJECT,
            Event.COMPLETE_FINALIZATION,
            with_guard("all finalization tasks completed", all_finalization_tasks_complete),
            with_description("Exploration finished"),
        )
    )


def configure_event_determiners(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    linear = {
        State.ACTIVE: Event.BEGIN_SUMMARIZING,
        State.SUMMARIZING: Event.COMPLETE_SUMMARIZING,
        State.FINALIZING: Event.COMPLETE_FINALIZATION,
    }
    for state, event in linear.items():
        builder.on_advance(state, lambda _project, event=event: event)
    return builder


def configure_prompts(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_prompt(State.ACTIVE, active_prompt)
        .with_prompt(State.SUMMARIZING, summarizing_prompt)
        .with_prompt(State.FINALIZING, finalizing_prompt)
        .with_orchestrator_prompt(orchestrator_prompt)
    )


def new_exploration_project_config() -> ProjectTypeConfig:
    """Build the configuration for the exploration project type."""
    builder = ProjectTypeConfigBuilder(PROJECT_TYPE)
    configure_phases(builder)
    configure_transitions(builder)
    configure_event_determiners(builder)
    configure_prompts(builder)
    builder.with_initializer(phase_initializer(PHASE_NAMES))
    return builder.build()
