"""
The standard project type.

Lifecycle:
    NoProject -> PlanningActive -> ImplementationPlanning
    -> ImplementationExecuting -> ReviewActive
    -> FinalizeDocumentation -> FinalizeChecks -> FinalizeDelete -> NoProject

ReviewActive branches on the assessment of the latest approved review
artifact. "pass" moves on to finalization. "fail" sends the project back to
implementation planning with the review marked failed, the implementation
iteration bumped and the failed review attached as an implementation input.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.config import ProjectTypeConfig
from phasekit.constants import PHASE_COMPLETED, PHASE_FAILED
from phasekit.models.state import ArtifactState
from phasekit.options import (
    branch_on,
    when,
    with_description,
    with_end_state,
    with_failed_phase,
    with_guard,
    with_inputs,
    with_metadata_schema,
    with_on_entry,
    with_outputs,
    with_start_state,
    with_tasks,
)
from phasekit.projects import phase_initializer
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


PROJECT_TYPE = "standard"


class State(str, Enum):
    NO_PROJECT = "NoProject"
    PLANNING_ACTIVE = "PlanningActive"
    IMPLEMENTATION_PLANNING = "ImplementationPlanning"
    IMPLEMENTATION_EXECUTING = "ImplementationExecuting"
    REVIEW_ACTIVE = "ReviewActive"
    FINALIZE_DOCUMENTATION = "FinalizeDocumentation"
    FINALIZE_CHECKS = "FinalizeChecks"
    FINALIZE_DELETE = "FinalizeDelete"


class Event(str, Enum):
    PROJECT_INIT = "project_init"
    COMPLETE_PLANNING = "complete_planning"
    TASKS_APPROVED = "tasks_approved"
    ALL_TASKS_COMPLETE = "all_tasks_complete"
    REVIEW_PASS = "review_pass"
    REVIEW_FAIL = "review_fail"
    DOCUMENTATION_DONE = "documentation_done"
    CHECKS_DONE = "checks_done"
    PROJECT_DELETE = "project_delete"


PHASE_NAMES = ["planning", "implementation", "review", "finalize"]


# =============================================================================
# Metadata schemas
# =============================================================================


class ImplementationMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tasks_approved: Optional[bool] = None


class FinalizeMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project_deleted: Optional[bool] = None
    pr_url: Optional[str] = None
    documentation_updated: Optional[bool] = None
    checks_passed: Optional[bool] = None


# =============================================================================
# Guards and discriminators
# =============================================================================


def latest_review(project: "Project") -> Optional[ArtifactState]:
    return project.latest_output("review", "review")


def latest_review_approved(project: "Project") -> bool:
    """True if the newest review artifact exists and is approved."""
    review = latest_review(project)
    return review is not None and review.approved


def review_assessment(project: "Project") -> str:
    """Assessment of the latest approved review, or "" if there is none."""
    review = project.latest_approved_output("review", "review")
    if review is None:
        return ""
    assessment = review.metadata.get("assessment")
    return assessment if isinstance(assessment, str) else ""


def planning_approved(project: "Project") -> bool:
    return project.phase_output_approved("planning", "task_list")


def tasks_approved(project: "Project") -> bool:
    return project.phase_metadata_bool("implementation", "tasks_approved") and bool(
        project.tasks("implementation")
    )


def implementation_done(project: "Project") -> bool:
    return project.all_tasks_complete("implementation")


def project_deleted(project: "Project") -> bool:
    return project.phase_metadata_bool("finalize", "project_deleted")


# =============================================================================
# Actions
# =============================================================================


def start_review_round(project: "Project") -> None:
    """Reopen the review phase when implementation comes back for another look."""
    review = project.phase("review")
    if review.status in (PHASE_COMPLETED, PHASE_FAILED):
        project.reopen_phase("review")
    project.increment_phase_iteration("review")


def rework_after_failed_review(project: "Project") -> None:
    """Return to implementation with the failed review attached as an input."""
    project.reopen_phase("implementation")
    project.increment_phase_iteration("implementation")
    project.phase("implementation").metadata.pop("tasks_approved", None)
    project.add_phase_input_from_output(
        "review",
        "implementation",
        "review",
        lambda a: a.approved and a.metadata.get("assessment") == "fail",
    )


initialize = phase_initializer(PHASE_NAMES)


# =============================================================================
# Prompts
# =============================================================================


def planning_prompt(project: "Project") -> str:
    planning = project.phases.get("planning")
    return compose(
        project_header(project),
        "## Planning\n\nGather context, confirm requirements with the user and "
        "produce a task list. Register it as a `task_list` output and get it approved.",
        artifact_list("Planning Artifacts", planning.outputs if planning else []),
        available_transitions(project),
    )


def implementation_planning_prompt(project: "Project") -> str:
    planning = project.phases.get("planning")
    implementation = project.phases.get("implementation")
    return compose(
        project_header(project),
        artifact_list("Planning Context", planning.outputs if planning else [], show_status=False),
        artifact_list("Rework Inputs", implementation.inputs if implementation else [], show_status=False),
        "## Implementation Planning\n\nBreak the approved plan into concrete tasks. "
        "Set `tasks_approved` once the user signs off on the task breakdown.",
        task_summary(project.tasks("implementation")),
        available_transitions(project),
    )


def implementation_executing_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        task_summary(project.tasks("implementation")),
        "## Implementation\n\nWork through the pending tasks. Every task must end "
        "completed or abandoned before review can start.",
        available_transitions(project),
    )


def review_prompt(project: "Project") -> str:
    review = project.phases.get("review")
    iteration = max(review.iteration, 1) if review else 1
    sections = [project_header(project), f"## Review Iteration: {iteration}"]
    if review and iteration > 1:
        previous = [a for a in review.outputs if a.type == "review"]
        if previous:
            last = previous[-1]
            sections.append(
                "### Previous Review\n\n"
                f"Assessment: {last.metadata.get('assessment', 'unknown')}\n"
                f"Report: {last.path}"
            )
    sections.extend([
        task_summary(project.tasks("implementation")),
        "Review the implementation against the plan. Add a `review` output with an "
        "`assessment` of `pass` or `fail` and approve it.",
        available_transitions(project),
    ])
    return compose(*sections)


def finalize_documentation_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "## Documentation\n\nUpdate documentation affected by the change, or confirm none is needed.",
        available_transitions(project),
    )


def finalize_checks_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "## Final Checks\n\nRun the test suite, linters and build. Fix anything that fails.",
        available_transitions(project),
    )


def finalize_delete_prompt(project: "Project") -> str:
    finalize = project.phases.get("finalize")
    pr_url = finalize.metadata.get("pr_url") if finalize else None
    return compose(
        project_header(project),
        f"## Pull Request\n\n{pr_url}" if pr_url else "",
        "## Cleanup\n\nDelete the project state and set `project_deleted` to finish.",
        available_transitions(project),
    )


def orchestrator_prompt(project: "Project") -> str:
    return compose(
        project_header(project),
        "This is a standard project: plan, implement, review, then finalize. "
        "A failed review sends the work back to implementation planning.",
        phase_summary(project),
    )


# =============================================================================
# Configuration
# =============================================================================


def configure_phases(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_phase(
            "planning",
            with_start_state(State.PLANNING_ACTIVE),
            with_end_state(State.PLANNING_ACTIVE),
            with_inputs("context"),
            with_outputs("task_list"),
        )
        .with_phase(
            "implementation",
            with_start_state(State.IMPLEMENTATION_PLANNING),
            with_end_state(State.IMPLEMENTATION_EXECUTING),
            with_inputs("review", "context"),
            with_tasks(),
            with_metadata_schema(ImplementationMetadata),
        )
        .with_phase(
            "review",
            with_start_state(State.REVIEW_ACTIVE),
            with_end_state(State.REVIEW_ACTIVE),
            with_outputs("review"),
        )
        .with_phase(
            "finalize",
            with_start_state(State.FINALIZE_DOCUMENTATION),
            with_end_state(State.FINALIZE_DELETE),
            with_metadata_schema(FinalizeMetadata),
        )
    )


def configure_transitions(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .set_initial_state(State.PLANNING_ACTIVE)
        .add_transition(
            State.NO_PROJECT,
            State.PLANNING_ACTIVE,
            Event.PROJECT_INIT,
            with_description("Start a new project"),
        )
        .add_transition(
            State.PLANNING_ACTIVE,
            State.IMPLEMENTATION_PLANNING,
            Event.COMPLETE_PLANNING,
            with_guard("planning task_list output approved", planning_approved),
            with_description("Planning done - break the plan into tasks"),
        )
        .add_transition(
            State.IMPLEMENTATION_PLANNING,
            State.IMPLEMENTATION_EXECUTING,
            Event.TASKS_APPROVED,
            with_guard("tasks created and tasks_approved set", tasks_approved),
            with_description("Tasks approved - start executing them"),
        )
        .add_transition(
            State.IMPLEMENTATION_EXECUTING,
            State.REVIEW_ACTIVE,
            Event.ALL_TASKS_COMPLETE,
            with_guard("all implementation tasks completed or abandoned", implementation_done),
            with_on_entry(start_review_round),
            with_description("Implementation done - review it"),
        )
        .add_branch(
            State.REVIEW_ACTIVE,
            branch_on(review_assessment),
            when(
                "pass",
                Event.REVIEW_PASS,
                State.FINALIZE_DOCUMENTATION,
                with_guard("latest review approved", latest_review_approved),
                with_description("Review passed - proceed to finalization"),
            ),
            when(
                "fail",
                Event.REVIEW_FAIL,
                State.IMPLEMENTATION_PLANNING,
                with_guard("latest review approved", latest_review_approved),
                with_on_entry(rework_after_failed_review),
                with_failed_phase("review"),
                with_description("Review failed - return to implementation planning"),
            ),
        )
        .add_transition(
            State.FINALIZE_DOCUMENTATION,
            State.FINALIZE_CHECKS,
            Event.DOCUMENTATION_DONE,
            with_description("Documentation updated - run final checks"),
        )
        .add_transition(
            State.FINALIZE_CHECKS,
            State.FINALIZE_DELETE,
            Event.CHECKS_DONE,
            with_description("Checks done - clean up the project"),
        )
        .add_transition(
            State.FINALIZE_DELETE,
            State.NO_PROJECT,
            Event.PROJECT_DELETE,
            with_guard("finalize project_deleted set", project_deleted),
            with_description("Project finished"),
        )
    )


def configure_event_determiners(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    linear = {
        State.PLANNING_ACTIVE: Event.COMPLETE_PLANNING,
        State.IMPLEMENTATION_PLANNING: Event.TASKS_APPROVED,
        State.IMPLEMENTATION_EXECUTING: Event.ALL_TASKS_COMPLETE,
        State.FINALIZE_DOCUMENTATION: Event.DOCUMENTATION_DONE,
        State.FINALIZE_CHECKS: Event.CHECKS_DONE,
        State.FINALIZE_DELETE: Event.PROJECT_DELETE,
    }
    for state, event in linear.items():
        builder.on_advance(state, lambda _project, event=event: event)
    return builder


def configure_prompts(builder: ProjectTypeConfigBuilder) -> ProjectTypeConfigBuilder:
    return (
        builder
        .with_prompt(State.PLANNING_ACTIVE, planning_prompt)
        .with_prompt(State.IMPLEMENTATION_PLANNING, implementation_planning_prompt)
        .with_prompt(State.IMPLEMENTATION_EXECUTING, implementation_executing_prompt)
        .with_prompt(State.REVIEW_ACTIVE, review_prompt)
        .with_prompt(State.FINALIZE_DOCUMENTATION, finalize_documentation_prompt)
        .with_prompt(State.FINALIZE_CHECKS, finalize_checks_prompt)
        .with_prompt(State.FINALIZE_DELETE, finalize_delete_prompt)
        .with_orchestrator_prompt(orchestrator_prompt)
    )


def new_standard_project_config() -> ProjectTypeConfig:
    """Build the configuration for the standard project type."""
    builder = ProjectTypeConfigBuilder(PROJECT_TYPE)
    configure_phases(builder)
    configure_transitions(builder)
    configure_event_determiners(builder)
    configure_prompts(builder)
    builder.with_initializer(initialize)
    return builder.build()
