"""
State machine bound to a live project.

build_machine() takes an immutable ProjectTypeConfig and a Project and binds
every guard and action to that project with functools.partial. The bound
callables are created fresh on each build, so two machines built for two
projects never share state.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from phasekit.constants import DEFAULT_GUARD_DESCRIPTION
from phasekit.exceptions import (
    ActionError,
    EventNotConfiguredError,
    GuardBlockedError,
    TransitionError,
)
from phasekit.options import TransitionConfig
from phasekit.types import EventLike, StateLike, to_name

if TYPE_CHECKING:
    from phasekit.config import ProjectTypeConfig
    from phasekit.models.project import Project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundTransition:
    """A TransitionConfig whose guard and actions are bound to one project."""

    config: TransitionConfig
    guard: Optional[Callable[[], bool]] = None
    on_entry: Optional[Callable[[], None]] = None
    on_exit: Optional[Callable[[], None]] = None

    @property
    def event(self) -> str:
        return self.config.event

    @property
    def to_state(self) -> str:
        return self.config.to_state

    @property
    def guard_reason(self) -> str:
        return self.config.guard_description or DEFAULT_GUARD_DESCRIPTION


def _bind(tc: TransitionConfig, project: "Project") -> BoundTransition:
    return BoundTransition(
        config=tc,
        guard=partial(tc.guard.func, project) if tc.guard else None,
        on_entry=partial(tc.on_entry, project) if tc.on_entry else None,
        on_exit=partial(tc.on_exit, project) if tc.on_exit else None,
    )


class Machine:
    """
    Runnable state machine for one project.

    Firing an event that is not configured from the current state raises
    EventNotConfiguredError. Firing one whose guard is false raises
    GuardBlockedError and changes nothing.
    """

    def __init__(
        self,
        config: "ProjectTypeConfig",
        project: "Project",
        initial_state: str,
        table: Dict[Tuple[str, str], BoundTransition],
    ) -> None:
        self.config = config
        self.project = project
        self._state = initial_state
        self._table = table

    def __repr__(self) -> str:
        return f"Machine(type={self.config.name!r}, state={self._state!r})"

    @property
    def state(self) -> str:
        return self._state

    def transitions(self) -> List[BoundTransition]:
        """Return every transition leaving the current state, in declaration order."""
        return [bt for (state, _), bt in self._table.items() if state == self._state]

    def lookup(self, event: EventLike) -> Optional[BoundTransition]:
        return self._table.get((self._state, to_name(event)))

    def _require(self, event: str) -> BoundTransition:
        bt = self._table.get((self._state, event))
        if bt is None:
            raise EventNotConfiguredError(
                self._state, event, [t.event for t in self.transitions()]
            )
        return bt

    def _guard_passes(self, bt: BoundTransition) -> bool:
        if bt.guard is None:
            return True
        try:
            return bool(bt.guard())
        except Exception as e:
            raise TransitionError(
                f"guard for {self._state} -> {bt.to_state} via {bt.event!r} raised: {e}",
                state=self._state,
                event=bt.event,
            ) from e

    def can_fire(self, event: EventLike) -> bool:
        """True if ``event`` is configured from the current state and its guard passes."""
        bt = self.lookup(event)
        return bt is not None and self._guard_passes(bt)

    def blocked_reason(self, event: EventLike) -> Optional[str]:
        """Return the guard description if ``event`` is blocked, None if it would fire.

        Raises:
            EventNotConfiguredError: If ``event`` has no transition from the current state.
        """
        bt = self._require(to_name(event))
        if self._guard_passes(bt):
            return None
        return bt.guard_reason

    def permitted_events(self) -> List[str]:
        """Return the events whose guards currently pass."""
        return [bt.event for bt in self.transitions() if self._guard_passes(bt)]

    def fire(self, event: EventLike) -> TransitionConfig:
        """Fire ``event`` from the current state.

        The exit action runs before the state changes and the entry action
        after it. If the entry action fails the machine returns to the source
        state; changes the actions already made to the project remain.

        Returns:
            The TransitionConfig that fired.

        Raises:
            EventNotConfiguredError: If the event has no transition from here.
            GuardBlockedError: If the transition's guard is false.
            ActionError: If an entry or exit action raised.
        """
        event = to_name(event)
        bt = self._require(event)
        source = self._state

        if not self._guard_passes(bt):
            logger.debug("Transition %s -> %s via %s blocked: %s", source, bt.to_state, event, bt.guard_reason)
            raise GuardBlockedError(source, event, bt.to_state, bt.guard_reason)

        if bt.on_exit is not None:
            try:
                bt.on_exit()
            except Exception as e:
                raise ActionError(
                    f"exit action for {source} -> {bt.to_state} via {event!r} failed: {e}",
                    state=source,
                    event=event,
                ) from e

        self._state = bt.to_state

        if bt.on_entry is not None:
            try:
                bt.on_entry()
            except Exception as e:
                self._state = source
                raise ActionError(
                    f"entry action for {source} -> {bt.to_state} via {event!r} failed: {e}",
                    state=source,
                    event=event,
                ) from e

        logger.info("Transitioned %s -> %s via %s", source, bt.to_state, event)
        return bt.config

    def prompt(self) -> str:
        """Return the configured guidance for the current state."""
        return self.config.get_state_prompt(self._state, self.project)


def build_machine(
    config: "ProjectTypeConfig",
    project: "Project",
    initial_state: Optional[StateLike] = None,
) -> Machine:
    """Bind ``config`` to ``project`` and attach the resulting machine to it.

    Args:
        config: Project type configuration.
        project: Project whose guards and actions the machine will run against.
        initial_state: Starting state. Defaults to the project's stored
            state, or the config's initial state if the project has none.

    Returns:
        The new Machine, also assigned to ``project.machine``.
    """
    if initial_state is None:
        initial_state = project.state.statechart.current_state or config.initial_state
    initial_state = to_name(initial_state)

    table: Dict[Tuple[str, str], BoundTransition] = {}
    for tc in config.transitions:
        table[(tc.from_state, tc.event)] = _bind(tc, project)

    project.config = config
    project.machine = Machine(config, project, initial_state, table)
    logger.debug("Built machine for %s at state %s", config.name, initial_state)
    return project.machine
