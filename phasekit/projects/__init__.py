"""
Built-in project types.

Each module exposes PROJECT_TYPE and a function returning its
ProjectTypeConfig; build_registry() registers them. The helpers here are
shared by more than one type.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

from phasekit.constants import TASK_COMPLETED
from phasekit.exceptions import NotFoundError, ValidationError
from phasekit.models.state import ArtifactState, PhaseState

if TYPE_CHECKING:
    from phasekit.models.project import Project


def phase_initializer(phase_names: Sequence[str]) -> Callable[..., None]:
    """Return an initializer creating ``phase_names`` as pending phases.

    Initial inputs are looked up by phase name and may be ArtifactState
    objects or plain dicts.
    """
    def initialize(project: "Project", initial_inputs: Optional[Dict[str, Any]] = None) -> None:
        initial_inputs = initial_inputs or {}
        for name in phase_names:
            inputs: List[ArtifactState] = [
                a if isinstance(a, ArtifactState) else ArtifactState.model_validate(a)
                for a in initial_inputs.get(name, [])
            ]
            project.phases[name] = PhaseState(inputs=inputs)
    return initialize


def resolved_with_output(project: "Project", phase_name: str) -> bool:
    """True if every task in the phase is resolved and at least one was completed."""
    tasks = project.tasks(phase_name)
    if not tasks or not all(t.is_terminal for t in tasks):
        return False
    return any(t.status == TASK_COMPLETED for t in tasks)


def all_tasks_completed(project: "Project", phase_name: str) -> bool:
    """True if the phase has tasks and every one is completed. Abandoned does not count."""
    tasks = project.tasks(phase_name)
    return bool(tasks) and all(t.status == TASK_COMPLETED for t in tasks)


def linked_artifact(project: "Project", phase_name: str, task_id: str) -> ArtifactState:
    """Return the phase output a task points at through its ``artifact_path`` metadata.

    Raises:
        NotFoundError: If the task or its artifact does not exist.
        ValidationError: If the task has no usable ``artifact_path``.
    """
    phase = project.phase(phase_name)
    task = next((t for t in phase.tasks if t.id == task_id), None)
    if task is None:
        raise NotFoundError(f"task {task_id} not found in phase {phase_name}")
    path = task.metadata.get("artifact_path")
    if not isinstance(path, str) or not path:
        raise ValidationError(
            f"task {task_id} has no artifact_path in metadata; link an artifact before completing it",
            phase=phase_name,
        )
    for artifact in phase.outputs:
        if artifact.path == path:
            return artifact
    raise NotFoundError(f"artifact not found at {path}; add it before completing task {task_id}")


def complete_artifact_task(project: "Project", phase_name: str, task_id: str) -> ArtifactState:
    """Mark a task completed and approve the artifact it is linked to.

    Nothing changes when the link is broken.
    """
    artifact = linked_artifact(project, phase_name, task_id)
    task = next(t for t in project.phase(phase_name).tasks if t.id == task_id)
    task.status = TASK_COMPLETED
    artifact.approved = True
    return artifact
