"""
Configuration records and the option functions that mutate them.

Options are small callables applied by ProjectTypeConfigBuilder. Phase
options take a PhaseConfig, transition options a TransitionConfig and branch
options a BranchConfig. Later options on the same field win.

Example:
    builder.with_phase(
        "planning",
        with_start_state("PlanningActive"),
        with_end_state("PlanningActive"),
        with_outputs("task_list"),
    )
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from phasekit.types import (
    Action,
    Discriminator,
    EventLike,
    Guard,
    GuardTemplate,
    StateLike,
    to_name,
)


@dataclass
class PhaseConfig:
    """Static description of one phase of a project type.

    An empty ``allowed_inputs`` or ``allowed_outputs`` list means any
    artifact type is accepted.
    """

    name: str
    start_state: Optional[str] = None
    end_state: Optional[str] = None
    allowed_inputs: List[str] = field(default_factory=list)
    allowed_outputs: List[str] = field(default_factory=list)
    supports_tasks: bool = False
    metadata_schema: Optional[Any] = None


@dataclass
class TransitionConfig:
    """One transition between two states, fired by an event."""

    from_state: str
    to_state: str
    event: str
    guard: Optional[GuardTemplate] = None
    on_entry: Optional[Action] = None
    on_exit: Optional[Action] = None
    description: str = ""
    failed_phase: Optional[str] = None

    @property
    def guard_description(self) -> str:
        return self.guard.description if self.guard else ""


@dataclass
class BranchPath:
    """Destination taken when a branch discriminator returns ``value``."""

    value: str
    event: str
    to_state: str
    guard: Optional[GuardTemplate] = None
    on_entry: Optional[Action] = None
    on_exit: Optional[Action] = None
    description: str = ""
    failed_phase: Optional[str] = None


@dataclass
class BranchConfig:
    """A state whose outgoing event is chosen by a discriminator."""

    from_state: str
    discriminator: Optional[Discriminator] = None
    paths: Dict[str, BranchPath] = field(default_factory=dict)

    def values(self) -> List[str]:
        """Return the path keys in sorted order."""
        return sorted(self.paths)


PhaseOption = Callable[[PhaseConfig], None]
TransitionOption = Callable[[TransitionConfig], None]
BranchOption = Callable[[BranchConfig], None]


# =============================================================================
# Phase options
# =============================================================================


def with_start_state(state: StateLike) -> PhaseOption:
    """Set the state in which the phase begins."""
    def apply(pc: PhaseConfig) -> None:
        pc.start_state = to_name(state)
    return apply


def with_end_state(state: StateLike) -> PhaseOption:
    """Set the state whose exit completes the phase."""
    def apply(pc: PhaseConfig) -> None:
        pc.end_state = to_name(state)
    return apply


def with_inputs(*artifact_types: str) -> PhaseOption:
    """Restrict the artifact types allowed as phase inputs."""
    def apply(pc: PhaseConfig) -> None:
        pc.allowed_inputs = list(artifact_types)
    return apply


def with_outputs(*artifact_types: str) -> PhaseOption:
    """Restrict the artifact types allowed as phase outputs."""
    def apply(pc: PhaseConfig) -> None:
        pc.allowed_outputs = list(artifact_types)
    return apply


def with_tasks() -> PhaseOption:
    """Allow the phase to hold tasks."""
    def apply(pc: PhaseConfig) -> None:
        pc.supports_tasks = True
    return apply


def with_metadata_schema(schema: Any) -> PhaseOption:
    """Declare the shape of the phase's metadata map.

    Args:
        schema: A pydantic model class, or any type pydantic's TypeAdapter
            accepts (e.g. ``Dict[str, int]`` or a TypedDict).
    """
    def apply(pc: PhaseConfig) -> None:
        pc.metadata_schema = schema
    return apply


# =============================================================================
# Transition options
# =============================================================================


def with_guard(description: str, func: Guard) -> TransitionOption:
    """Gate the transition on ``func``.

    The description is what discovery and error messages show when the guard
    blocks, so phrase it as the requirement ("all tasks complete").
    """
    def apply(tc: TransitionConfig) -> None:
        tc.guard = GuardTemplate(description=description, func=func)
    return apply


def with_on_entry(action: Action) -> TransitionOption:
    def apply(tc: TransitionConfig) -> None:
        tc.on_entry = action
    return apply


def with_on_exit(action: Action) -> TransitionOption:
    def apply(tc: TransitionConfig) -> None:
        tc.on_exit = action
    return apply


def with_description(description: str) -> TransitionOption:
    """Describe what the transition does, shown by discovery."""
    def apply(tc: TransitionConfig) -> None:
        tc.description = description
    return apply


def with_failed_phase(phase_name: str) -> TransitionOption:
    """Mark ``phase_name`` failed instead of completed when this transition exits its end state."""
    def apply(tc: TransitionConfig) -> None:
        tc.failed_phase = phase_name
    return apply


# =============================================================================
# Branch options
# =============================================================================


def branch_on(discriminator: Discriminator) -> BranchOption:
    """Set the function whose return value selects a branch path.

    The discriminator must only read the project.
    """
    def apply(bc: BranchConfig) -> None:
        bc.discriminator = discriminator
    return apply


def when(
    value: str,
    event: EventLike,
    to_state: StateLike,
    *options: TransitionOption,
) -> BranchOption:
    """Add a branch path taken when the discriminator returns ``value``.

    Standard transition options (guards, actions, description, failed phase)
    configure the transition generated for this path. A repeated value
    replaces the earlier path.
    """
    def apply(bc: BranchConfig) -> None:
        scratch = TransitionConfig(from_state=bc.from_state, to_state=to_name(to_state), event=to_name(event))
        for option in options:
            option(scratch)
        bc.paths[value] = BranchPath(
            value=value,
            event=scratch.event,
            to_state=scratch.to_state,
            guard=scratch.guard,
            on_entry=scratch.on_entry,
            on_exit=scratch.on_exit,
            description=scratch.description,
            failed_phase=scratch.failed_phase,
        )
    return apply
