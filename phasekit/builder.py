"""
Fluent builder for project type configurations.

Example:
    config = (
        ProjectTypeConfigBuilder("review_loop")
        .with_phase("draft", with_start_state("Drafting"), with_end_state("Drafting"))
        .set_initial_state("Drafting")
        .add_branch(
            "Drafting",
            branch_on(lambda p: p.phases["draft"].metadata.get("outcome")),
            when("approved", "approve", "Approved"),
            when("rejected", "reject", "Drafting"),
        )
        .build()
    )

Nothing is validated until build(). The builder can be built repeatedly;
each ProjectTypeConfig gets its own copies of the accumulated records.
"""

import logging
from collections import deque
from dataclasses import replace
from typing import Dict, List, Optional, Set, Union

from phasekit.config import ProjectTypeConfig
from phasekit.exceptions import BranchUnmatchedError, ConfigurationError
from phasekit.options import (
    BranchConfig,
    BranchOption,
    PhaseConfig,
    PhaseOption,
    TransitionConfig,
    TransitionOption,
)
from phasekit.types import (
    EventDeterminer,
    EventLike,
    Initializer,
    PromptGenerator,
    State,
    StateLike,
    to_name,
)

logger = logging.getLogger(__name__)


class BranchDeterminer:
    """Event determiner generated for a branch.

    Looks the discriminator's return value up in a table of path keys and
    returns the matching event.
    """

    def __init__(self, branch: BranchConfig) -> None:
        self.from_state = branch.from_state
        self.discriminator = branch.discriminator
        self.table: Dict[str, str] = {value: path.event for value, path in branch.paths.items()}

    def __call__(self, project) -> str:
        value = self.discriminator(project)
        key = "" if value is None else to_name(value)
        if key not in self.table:
            raise BranchUnmatchedError(self.from_state, key, list(self.table))
        return self.table[key]

    def __repr__(self) -> str:
        return f"BranchDeterminer(from_state={self.from_state!r}, values={sorted(self.table)})"


class ProjectTypeConfigBuilder:
    """Accumulates phases, transitions, branches and prompts for a project type."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._phases: Dict[str, PhaseConfig] = {}
        self._initial_state: Optional[str] = None
        # TransitionConfig and BranchConfig entries, in call order
        self._entries: List[Union[TransitionConfig, BranchConfig]] = []
        self._determiners: Dict[str, EventDeterminer] = {}
        self._prompts: Dict[str, PromptGenerator] = {}
        self._orchestrator_prompt: Optional[PromptGenerator] = None
        self._initializer: Optional[Initializer] = None

    # =========================================================================
    # Chained configuration calls
    # =========================================================================

    def with_phase(self, name: str, *options: PhaseOption) -> "ProjectTypeConfigBuilder":
        """Create the named phase, or update it if it already exists."""
        pc = self._phases.get(name)
        if pc is None:
            pc = PhaseConfig(name=name)
            self._phases[name] = pc
        for option in options:
            option(pc)
        return self

    def set_initial_state(self, state: StateLike) -> "ProjectTypeConfigBuilder":
        self._initial_state = to_name(state)
        return self

    def add_transition(
        self,
        from_state: StateLike,
        to_state: StateLike,
        event: EventLike,
        *options: TransitionOption,
    ) -> "ProjectTypeConfigBuilder":
        tc = TransitionConfig(
            from_state=to_name(from_state),
            to_state=to_name(to_state),
            event=to_name(event),
        )
        for option in options:
            option(tc)
        self._entries.append(tc)
        return self

    def add_branch(self, from_state: StateLike, *options: BranchOption) -> "ProjectTypeConfigBuilder":
        """Declare that the event leaving ``from_state`` is chosen by a discriminator.

        Use branch_on() for the discriminator and one when() per path. At
        build time every path becomes an ordinary transition and the state
        gets a lookup-table event determiner.
        """
        bc = BranchConfig(from_state=to_name(from_state))
        for option in options:
            option(bc)
        self._entries.append(bc)
        return self

    def on_advance(self, state: StateLike, determiner: EventDeterminer) -> "ProjectTypeConfigBuilder":
        """Register the function that picks the event for automatic advance from ``state``."""
        self._determiners[to_name(state)] = determiner
        return self

    def with_prompt(self, state: StateLike, generator: PromptGenerator) -> "ProjectTypeConfigBuilder":
        self._prompts[to_name(state)] = generator
        return self

    def with_orchestrator_prompt(self, generator: PromptGenerator) -> "ProjectTypeConfigBuilder":
        self._orchestrator_prompt = generator
        return self

    def with_initializer(self, initializer: Initializer) -> "ProjectTypeConfigBuilder":
        self._initializer = initializer
        return self

    # =========================================================================
    # Build
    # =========================================================================

    def build(self) -> ProjectTypeConfig:
        """Validate the accumulated configuration and return an immutable copy.

        Raises:
            ConfigurationError: If the initial state is missing, a branch is
                incomplete, a state has both a branch and an on_advance
                determiner, an event is declared twice from one state, or a
                transition leaves a state the initial state cannot reach.
        """
        if not self._initial_state:
            raise ConfigurationError(f"project type {self.name}: initial state not set")

        transitions: List[TransitionConfig] = []
        branches: Dict[str, BranchConfig] = {}
        determiners: Dict[str, EventDeterminer] = dict(self._determiners)

        for entry in self._entries:
            if isinstance(entry, TransitionConfig):
                transitions.append(replace(entry))
                continue

            branch = self._check_branch(entry, branches)
            branch = replace(branch, paths={v: replace(p) for v, p in branch.paths.items()})
            for value in branch.values():
                path = branch.paths[value]
                transitions.append(
                    TransitionConfig(
                        from_state=branch.from_state,
                        to_state=path.to_state,
                        event=path.event,
                        guard=path.guard,
                        on_entry=path.on_entry,
                        on_exit=path.on_exit,
                        description=path.description,
                        failed_phase=path.failed_phase,
                    )
                )
            branches[branch.from_state] = branch
            determiners[branch.from_state] = BranchDeterminer(branch)

        self._check_transitions(transitions)

        phases = {
            name: replace(
                pc,
                allowed_inputs=list(pc.allowed_inputs),
                allowed_outputs=list(pc.allowed_outputs),
            )
            for name, pc in self._phases.items()
        }

        logger.debug(
            "Built project type %s: %d phases, %d transitions, %d branches",
            self.name, len(phases), len(transitions), len(branches),
        )
        return ProjectTypeConfig(
            name=self.name,
            initial_state=self._initial_state,
            phases=phases,
            transitions=transitions,
            determiners=determiners,
            prompts=dict(self._prompts),
            branches=branches,
            orchestrator_prompt=self._orchestrator_prompt,
            initializer=self._initializer,
        )

    def _check_branch(self, branch: BranchConfig, seen: Dict[str, BranchConfig]) -> BranchConfig:
        state = branch.from_state
        prefix = f"project type {self.name}: branch from state {state}"
        if branch.discriminator is None:
            raise ConfigurationError(f"{prefix}: no discriminator provided, use branch_on()")
        if not branch.paths:
            raise ConfigurationError(f"{prefix}: no branch paths provided, use when()")
        if "" in branch.paths:
            raise ConfigurationError(f"{prefix}: empty string is not allowed as a discriminator value")
        if state in seen:
            raise ConfigurationError(f"{prefix}: state already has a branch")
        if state in self._determiners:
            raise ConfigurationError(
                f"{prefix}: state also has an on_advance determiner, use one or the other"
            )
        return branch

    def _check_transitions(self, transitions: List[TransitionConfig]) -> None:
        reachable = self._reachable_states(transitions)
        declared = set()
        for tc in transitions:
            key = (tc.from_state, tc.event)
            if key in declared:
                raise ConfigurationError(
                    f"project type {self.name}: event {tc.event!r} declared more than once "
                    f"from state {tc.from_state}"
                )
            declared.add(key)
            if tc.from_state not in reachable:
                raise ConfigurationError(
                    f"project type {self.name}: transition {tc.from_state} -> {tc.to_state} "
                    f"via {tc.event!r} leaves state {tc.from_state}, which is not reachable "
                    f"from the initial state {self._initial_state}"
                )

    def _reachable_states(self, transitions: List[TransitionConfig]) -> Set[State]:
        """Walk the transition graph breadth-first from the initial state."""
        targets: Dict[State, List[State]] = {}
        for tc in transitions:
            targets.setdefault(tc.from_state, []).append(tc.to_state)

        reachable = {self._initial_state}
        queue = deque([self._initial_state])
        while queue:
            for to_state in targets.get(queue.popleft(), ()):
                if to_state not in reachable:
                    reachable.add(to_state)
                    queue.append(to_state)
        return reachable
