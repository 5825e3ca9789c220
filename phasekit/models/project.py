"""
Runtime project wrapper.

A Project couples a persisted ProjectState with the ProjectTypeConfig that
governs it and the Machine bound to it. Guards receive the Project and call
its read-only helpers; actions call its mutation helpers.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from phasekit.constants import (
    PHASE_COMPLETED,
    PHASE_FAILED,
    PHASE_IN_PROGRESS,
    PHASE_PENDING,
)
from phasekit.exceptions import NotFoundError
from phasekit.models.state import ArtifactState, PhaseState, ProjectState, TaskState

if TYPE_CHECKING:
    from phasekit.config import ProjectTypeConfig
    from phasekit.machine import Machine


class Project:
    """
    A live project: persisted state plus its type's behaviour.

    Attributes:
        state: The persisted ProjectState, mutated in place.
        config: Governing ProjectTypeConfig, if attached.
        machine: Machine bound to this project, if built.
        services: Collaborator objects (VCS, issue tracker, ...) that guards
            and prompts may use. Never persisted.
    """

    def __init__(
        self,
        state: ProjectState,
        config: Optional["ProjectTypeConfig"] = None,
        services: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.state = state
        self.config = config
        self.machine: Optional["Machine"] = None
        self.services: Dict[str, Any] = dict(services or {})

    def __repr__(self) -> str:
        return f"Project(name={self.name!r}, type={self.type!r}, current_state={self.current_state!r})"

    # =========================================================================
    # State accessors
    # =========================================================================

    @property
    def name(self) -> str:
        return self.state.name

    @property
    def type(self) -> str:
        return self.state.type

    @property
    def branch(self) -> str:
        return self.state.branch

    @property
    def description(self) -> str:
        return self.state.description

    @property
    def phases(self) -> Dict[str, PhaseState]:
        return self.state.phases

    @property
    def current_state(self) -> str:
        """Machine state if a machine is bound, otherwise the stored state."""
        if self.machine is not None:
            return self.machine.state
        return self.state.statechart.current_state

    def phase(self, name: str) -> PhaseState:
        """Return the named phase.

        Raises:
            NotFoundError: If the project has no such phase.
        """
        phase = self.state.phases.get(name)
        if phase is None:
            raise NotFoundError(f"phase {name} not found")
        return phase

    def sync_state(self) -> None:
        """Copy the machine's current state into the persisted statechart."""
        if self.machine is None or self.state.statechart.current_state == self.machine.state:
            return
        self.state.statechart.current_state = self.machine.state
        self.state.statechart.updated_at = datetime.now()

    # =========================================================================
    # Guard helpers (read-only)
    # =========================================================================

    def phase_output_approved(self, phase_name: str, artifact_type: str) -> bool:
        """True if the phase has an approved output of ``artifact_type``."""
        phase = self.state.phases.get(phase_name)
        if phase is None:
            return False
        return any(a.type == artifact_type and a.approved for a in phase.outputs)

    def phase_metadata_bool(self, phase_name: str, key: str) -> bool:
        """True only if the phase's metadata holds the boolean ``True`` under ``key``."""
        phase = self.state.phases.get(phase_name)
        if phase is None:
            return False
        return phase.metadata.get(key) is True

    def all_tasks_complete(self, phase_name: str) -> bool:
        """True if the phase has tasks and every one is completed or abandoned."""
        phase = self.state.phases.get(phase_name)
        if phase is None or not phase.tasks:
            return False
        return all(task.is_terminal for task in phase.tasks)

    def latest_output(self, phase_name: str, artifact_type: str) -> Optional[ArtifactState]:
        """Return the most recently added output of ``artifact_type``."""
        phase = self.state.phases.get(phase_name)
        if phase is None:
            return None
        for artifact in reversed(phase.outputs):
            if artifact.type == artifact_type:
                return artifact
        return None

    def latest_approved_output(self, phase_name: str, artifact_type: str) -> Optional[ArtifactState]:
        """Return the most recently added approved output of ``artifact_type``."""
        phase = self.state.phases.get(phase_name)
        if phase is None:
            return None
        for artifact in reversed(phase.outputs):
            if artifact.type == artifact_type and artifact.approved:
                return artifact
        return None

    def tasks(self, phase_name: str) -> List[TaskState]:
        phase = self.state.phases.get(phase_name)
        return list(phase.tasks) if phase else []

    # =========================================================================
    # Mutation helpers (for actions)
    # =========================================================================

    def mark_phase_in_progress(self, phase_name: str) -> None:
        """Move a pending phase to in_progress. Other statuses are left alone."""
        phase = self.phase(phase_name)
        if phase.status != PHASE_PENDING:
            return
        phase.status = PHASE_IN_PROGRESS
        phase.started_at = datetime.now()

    def mark_phase_completed(self, phase_name: str) -> None:
        """Mark a phase completed unless it was already marked failed."""
        phase = self.phase(phase_name)
        if phase.status == PHASE_FAILED:
            return
        phase.status = PHASE_COMPLETED
        phase.completed_at = datetime.now()

    def mark_phase_failed(self, phase_name: str) -> None:
        phase = self.phase(phase_name)
        phase.status = PHASE_FAILED
        phase.failed_at = datetime.now()

    def reopen_phase(self, phase_name: str) -> None:
        """Put a completed or failed phase back to in_progress for another iteration."""
        phase = self.phase(phase_name)
        phase.status = PHASE_IN_PROGRESS
        phase.started_at = datetime.now()
        phase.completed_at = None
        phase.failed_at = None

    def increment_phase_iteration(self, phase_name: str) -> int:
        """Bump the phase's iteration counter and return the new value."""
        phase = self.phase(phase_name)
        phase.iteration += 1
        return phase.iteration

    def add_phase_input_from_output(
        self,
        source_phase: str,
        target_phase: str,
        artifact_type: str,
        predicate: Optional[Callable[[ArtifactState], bool]] = None,
    ) -> ArtifactState:
        """Copy the latest matching output of one phase into another phase's inputs.

        Args:
            source_phase: Phase whose outputs are searched, newest first.
            target_phase: Phase receiving the artifact as an input.
            artifact_type: Type the artifact must have.
            predicate: Optional extra filter over candidate artifacts.

        Returns:
            The copy appended to the target phase's inputs.

        Raises:
            NotFoundError: If either phase is missing or no artifact matches.
        """
        source = self.phase(source_phase)
        target = self.phase(target_phase)
        for artifact in reversed(source.outputs):
            if artifact.type == artifact_type and (predicate is None or predicate(artifact)):
                copied = artifact.model_copy(deep=True)
                target.inputs.append(copied)
                return copied
        raise NotFoundError(
            f"no matching artifact of type {artifact_type} found in {source_phase} outputs"
        )
