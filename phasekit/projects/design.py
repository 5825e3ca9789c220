"""
The design project type.

Lifecycle:
    Active -> Finalizing -> NoProject

Each design task plans one document (design, adr, architecture, diagram or
spec). A task names its document through the ``artifact_path`` key of its
metadata. The design phase ends once every task is resolved and at least one
produced a document; finalization then moves the documents into place and
opens a pull request.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.config import ProjectTypeConfig
from phasekit.options import (
    with_description,
    with_end_state,
    with_guard,
    with_metadata_schema,
    with_outputs,
    with_start_state,
    with_tasks,
)
from phasekit.projects import all_tasks_completed, phase_initializer, resolved_with_output
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


PROJECT_TYPE = "design"


class State(str, Enum):
    ACTIVE = "Active"
    FINALIZING = "Finalizing"
    NO_PROJECT = "NoProject"


class Event(str, Enum):
    COMPLETE_DESIGN = "complete_design"
    COMPLETE_FINALIZATION = "complete_finalization"


PHASE_NAMES = ["design", "finalization"]

DOCUMENT_TYPES = ["design", "adr", "architecture", "diagram", "spec"]


class FinalizationMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pr_url: Optional[str] = None


# =============================================================================
# Guards
# =============================================================================


def all_documents_approved(project: "Project") -> bool:
    return resolved_with_output(project, "design")


def all_finalization_tasks_complete(project: "Project") -> bool:
    return all_tasks_completed(project, "finalization")


# =============================================================================
# Prompts
# =============================================================================


def active_prompt(project: "Project") -> str:
    design = project.phase("design")
    return compose(
        project_header(project),
        "## Design\n\nPlan one task per document. Set `artifact_path` on each task, "
        "register the document as an output of type "
        f"{', '.join(DOCUMENT_TYPES)}, then complete the task.",
        artifact_list("Inputs", design.inputs, show_status=False),
        task_summary(design.tasks),
        artifact_list("Documents", design.outputs),
        available_transitions(project),
    )


def finalizing_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "## Finalization\n\nMove the approved documents to their final location, "
        "open a pull request and record it as a `pr` output.",
        task_summary(project.tasks("finalization")),
        available_transitions(project),
    )


def orchestrator_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "This is a design project: write and approve design documents, then publish them.",
        phase_summary(project),
    )


# =============================================================================
# Configuration
# =============================================================================


def configure_phases(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_phase(
            "design",
            with_start_state(State.ACTIVE),
            with_end_state(State.ACTIVE),
            with_outputs(*DOCUMENT_TYPES),
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
            State.FINALIZING,
            Event.COMPLETE_DESIGN,
            with_guard("all documents approved", all_documents_approved),
            with_description("Documents approved - finalize"),
        )
        .add_transition(
            State.FINALIZING,
            State.NO_PROJECT,
            Event.COMPLETE_FINALIZATION,
            with_guard("all finalization tasks completed", all_finalization_tasks_complete),
            with_description("Design finished"),
        )
    )


def configure_event_determiners(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .on_advance(State.ACTIVE, lambda _project: Event.COMPLETE_DESIGN)
        .on_advance(State.FINALIZING, lambda _project: Event.COMPLETE_FINALIZATION)
    )


def configure_prompts(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_prompt(State.ACTIVE, active_prompt)
        .with_prompt(State.FINALIZING, finalizing_prompt)
        .with_orchestrator_prompt(orchestrator_prompt)
    )


def new_design_project_config() -> ProjectTypeConfig:
    """Build the configuration for the design project type."""
    builder = ProjectTypeConfigBuilder(PROJECT_TYPE)
    configure_phases(builder)
    configure_transitions(builder)
    configure_event_determiners(builder)
    configure_prompts(builder)
    builder.with_initializer(phase_initializer(PHASE_NAMES))
    return builder.build()
