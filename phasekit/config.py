"""
Immutable project type configuration.

A ProjectTypeConfig is produced by ProjectTypeConfigBuilder.build() and
describes one kind of project lifecycle: its phases, transitions (explicit
and branch-generated), initial state, event determiners and prompts. It
holds no project data and is safe to share between threads once built.
"""

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from phasekit.exceptions import EventDeterminationError, NoDeterminerError, TransitionError
from phasekit.options import BranchConfig, PhaseConfig, TransitionConfig
from phasekit.types import (
    EventDeterminer,
    EventLike,
    Initializer,
    PromptGenerator,
    StateLike,
    to_name,
)

if TYPE_CHECKING:
    from phasekit.models.project import Project

logger = logging.getLogger(__name__)


class ProjectTypeConfig:
    """Read-only description of a project type."""

    def __init__(
        self,
        name: str,
        initial_state: str,
        phases: Dict[str, PhaseConfig],
        transitions: List[TransitionConfig],
        determiners: Dict[str, EventDeterminer],
        prompts: Dict[str, PromptGenerator],
        branches: Dict[str, BranchConfig],
        orchestrator_prompt: Optional[PromptGenerator] = None,
        initializer: Optional[Initializer] = None,
    ) -> None:
        self._name = name
        self._initial_state = initial_state
        self._phases = MappingProxyType(dict(phases))
        self._transitions: Tuple[TransitionConfig, ...] = tuple(transitions)
        self._determiners = MappingProxyType(dict(determiners))
        self._prompts = MappingProxyType(dict(prompts))
        self._branches = MappingProxyType(dict(branches))
        self._orchestrator_prompt = orchestrator_prompt
        self._initializer = initializer

    def __repr__(self) -> str:
        return (
            f"ProjectTypeConfig(name={self._name!r}, initial_state={self._initial_state!r}, "
            f"phases={list(self._phases)}, transitions={len(self._transitions)})"
        )

    # =========================================================================
    # Basic accessors
    # =========================================================================

    @property
    def name(self) -> str:
        return self._name

    @property
    def initial_state(self) -> str:
        return self._initial_state

    @property
    def phases(self) -> Mapping[str, PhaseConfig]:
        """Phase configs keyed by name, in declaration order."""
        return self._phases

    def phase(self, name: str) -> Optional[PhaseConfig]:
        return self._phases.get(name)

    @property
    def transitions(self) -> Tuple[TransitionConfig, ...]:
        """All transitions, branch-generated ones included, in declaration order."""
        return self._transitions

    @property
    def branches(self) -> Mapping[str, BranchConfig]:
        return self._branches

    def states(self) -> List[str]:
        """Return every state mentioned by the config, initial state first."""
        seen = [self._initial_state]
        for tc in self._transitions:
            for state in (tc.from_state, tc.to_state):
                if state not in seen:
                    seen.append(state)
        return seen

    # =========================================================================
    # Transition lookup
    # =========================================================================

    def transitions_from(self, state: StateLike) -> List[TransitionConfig]:
        """Return the transitions leaving ``state`` in declaration order."""
        state = to_name(state)
        return [tc for tc in self._transitions if tc.from_state == state]

    def find_transition(self, state: StateLike, event: EventLike) -> Optional[TransitionConfig]:
        """Return the transition fired by ``event`` from ``state``, if any."""
        state, event = to_name(state), to_name(event)
        for tc in self._transitions:
            if tc.from_state == state and tc.event == event:
                return tc
        return None

    def get_transition(
        self, from_state: StateLike, to_state: StateLike, event: EventLike
    ) -> Optional[TransitionConfig]:
        """Return the transition matching all three of ``from_state``, ``to_state`` and ``event``."""
        tc = self.find_transition(from_state, event)
        if tc is not None and tc.to_state == to_name(to_state):
            return tc
        return None

    # =========================================================================
    # Event determination
    # =========================================================================

    def get_event_determiner(self, state: StateLike) -> Optional[EventDeterminer]:
        return self._determiners.get(to_name(state))

    def determine_event(self, project: "Project", state: Optional[StateLike] = None) -> str:
        """Pick the event to fire from ``state`` (default: the project's current state).

        Raises:
            NoDeterminerError: If the state has no determiner.
            BranchUnmatchedError: If a branch discriminator returned an unknown value.
            EventDeterminationError: If the determiner failed for any other reason.
        """
        state = to_name(state) if state is not None else project.current_state
        determiner = self._determiners.get(state)
        if determiner is None:
            raise NoDeterminerError(state)

        try:
            event = determiner(project)
        except TransitionError:
            raise
        except Exception as e:
            raise EventDeterminationError(
                f"failed to determine event from state {state}: {e}", state=state
            ) from e

        if event is None or to_name(event) == "":
            raise EventDeterminationError(
                f"event determiner for state {state} returned no event", state=state
            )
        event = to_name(event)
        logger.debug("Determined event %s from state %s", event, state)
        return event

    # =========================================================================
    # Prompts and initialization
    # =========================================================================

    def get_state_prompt(self, state: StateLike, project: "Project") -> str:
        """Return the guidance for ``state``, or an empty string if none is configured."""
        generator = self._prompts.get(to_name(state))
        if generator is None:
            return ""
        return generator(project)

    def has_prompt(self, state: StateLike) -> bool:
        return to_name(state) in self._prompts

    def orchestrator_prompt(self, project: "Project") -> str:
        if self._orchestrator_prompt is None:
            return ""
        return self._orchestrator_prompt(project)

    def initialize(self, project: "Project", initial_inputs: Optional[Dict[str, Any]] = None) -> None:
        """Run the configured initializer, if any."""
        if self._initializer is None:
            return
        self._initializer(project, initial_inputs)

    # =========================================================================
    # Phase introspection
    # =========================================================================

    def get_task_supporting_phases(self) -> List[str]:
        """Return the names of phases that support tasks, sorted."""
        return sorted(name for name, pc in self._phases.items() if pc.supports_tasks)

    def phase_supports_tasks(self, phase_name: str) -> bool:
        pc = self._phases.get(phase_name)
        return bool(pc and pc.supports_tasks)

    def get_default_task_phase(self, current_state: StateLike) -> Optional[str]:
        """Return the phase task commands should target from ``current_state``.

        A task-supporting phase whose start or end state is the current state
        wins; otherwise the first task-supporting phase by name.
        """
        current_state = to_name(current_state)
        for name, pc in self._phases.items():
            if pc.supports_tasks and current_state in (pc.start_state, pc.end_state):
                return name
        supporting = self.get_task_supporting_phases()
        return supporting[0] if supporting else None

    def get_phase_for_state(self, state: StateLike) -> Optional[str]:
        """Return the first phase (declaration order) that starts or ends at ``state``."""
        state = to_name(state)
        for name, pc in self._phases.items():
            if state in (pc.start_state, pc.end_state):
                return name
        return None

    def is_phase_start_state(self, phase_name: str, state: StateLike) -> bool:
        pc = self._phases.get(phase_name)
        return pc is not None and pc.start_state == to_name(state)

    def is_phase_end_state(self, phase_name: str, state: StateLike) -> bool:
        pc = self._phases.get(phase_name)
        return pc is not None and pc.end_state == to_name(state)

    def phases_starting_at(self, state: StateLike) -> List[str]:
        state = to_name(state)
        return [name for name, pc in self._phases.items() if pc.start_state == state]

    def phases_ending_at(self, state: StateLike) -> List[str]:
        state = to_name(state)
        return [name for name, pc in self._phases.items() if pc.end_state == state]
