"""
Advance engine: decides and executes a project's next transition.

Four modes:
- discover(): list every transition from the current state, read-only
- dry_run(event): report whether ``event`` would fire, read-only
- fire(event): fire an explicit event
- advance(): ask the state's event determiner which event to fire

Every transition that fires is saved before the call returns, except one
that lands in NoProject: that deletes the stored project instead. If the save
fails the project has still moved; UnsavedTransitionError says so and
save() can be retried without firing again.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Union

from phasekit.constants import NO_PROJECT
from phasekit.exceptions import (
    EventNotConfiguredError,
    PhasekitError,
    StorageError,
    UnsavedTransitionError,
    UsageError,
    ValidationError,
)
from phasekit.options import TransitionConfig
from phasekit.types import EventLike, to_name

if TYPE_CHECKING:
    from phasekit.managers.project_manager import ProjectManager
    from phasekit.models.project import Project

logger = logging.getLogger(__name__)


@dataclass
class TransitionOption:
    """One transition available from the current state, as reported by discovery."""

    event: str
    to_state: str
    description: str = ""
    guard_description: str = ""
    permitted: bool = True
    blocked_reason: Optional[str] = None

    @property
    def blocked(self) -> bool:
        return not self.permitted


@dataclass
class AdvanceResult:
    """Outcome of a fire, automatic advance or dry run.

    Attributes:
        executed: False for dry runs, True once the transition has fired.
        permitted: For dry runs, whether the guard currently passes.
        blocked_reason: Guard description when not permitted.
    """

    from_state: str
    to_state: str
    event: str
    description: str = ""
    executed: bool = True
    permitted: bool = True
    blocked_reason: Optional[str] = None


class AdvanceEngine:
    """
    Moves one project through its lifecycle and persists each step.

    Args:
        project: Project with a bound machine (see build_machine).
        manager: Used to save the project after each transition.
    """

    def __init__(self, project: "Project", manager: "ProjectManager") -> None:
        if project.machine is None or project.config is None:
            raise PhasekitError(f"project {project.name} has no machine bound")
        self.project = project
        self.manager = manager
        self.machine = project.machine
        self.config = project.config

    @property
    def current_state(self) -> str:
        return self.machine.state

    # =========================================================================
    # Read-only modes
    # =========================================================================

    def discover(self) -> List[TransitionOption]:
        """List every transition from the current state with its guard verdict."""
        options = []
        for bt in self.machine.transitions():
            reason = self.machine.blocked_reason(bt.event)
            options.append(
                TransitionOption(
                    event=bt.event,
                    to_state=bt.to_state,
                    description=bt.config.description,
                    guard_description=bt.config.guard_description,
                    permitted=reason is None,
                    blocked_reason=reason,
                )
            )
        return options

    def dry_run(self, event: EventLike) -> AdvanceResult:
        """Report whether ``event`` would fire now, without firing it.

        Raises:
            EventNotConfiguredError: If ``event`` has no transition from here.
        """
        event = to_name(event)
        bt = self.machine.lookup(event)
        if bt is None:
            raise EventNotConfiguredError(
                self.current_state, event, [t.event for t in self.machine.transitions()]
            )
        reason = self.machine.blocked_reason(event)
        return AdvanceResult(
            from_state=self.current_state,
            to_state=bt.to_state,
            event=event,
            description=bt.config.description,
            executed=False,
            permitted=reason is None,
            blocked_reason=reason,
        )

    # =========================================================================
    # Mutating modes
    # =========================================================================

    def fire(self, event: EventLike) -> AdvanceResult:
        """Fire ``event``, update phase statuses and save.

        Raises:
            EventNotConfiguredError: If ``event`` has no transition from here.
            GuardBlockedError: If the guard is false. Nothing changes.
            ActionError: If an entry or exit action failed.
            UnsavedTransitionError: If the transition fired but saving failed.
        """
        source = self.current_state
        tc = self.machine.fire(event)
        self._update_phase_statuses(source, tc)

        result = AdvanceResult(
            from_state=source,
            to_state=tc.to_state,
            event=tc.event,
            description=tc.description,
        )
        self._persist(result)
        return result

    def advance(self) -> AdvanceResult:
        """Fire whichever event the current state's determiner selects.

        Raises:
            NoDeterminerError: If the state has no determiner.
            BranchUnmatchedError: If a branch discriminator value has no path.
            EventDeterminationError: If the determiner failed.
            plus everything fire() raises.
        """
        event = self.config.determine_event(self.project, self.current_state)
        return self.fire(event)

    def save(self) -> None:
        """Save the project again, e.g. after an UnsavedTransitionError."""
        self._store()

    def run(
        self,
        event: Optional[EventLike] = None,
        list_only: bool = False,
        dry_run: bool = False,
    ) -> Union[List[TransitionOption], AdvanceResult]:
        """Dispatch on the command-surface argument combination.

        - no arguments: automatic advance
        - event: explicit fire
        - list_only: discovery
        - event and dry_run: dry run

        Raises:
            UsageError: For an invalid combination.
        """
        if list_only and dry_run:
            raise UsageError("cannot use --list and --dry-run together")
        if list_only and event is not None:
            raise UsageError("cannot specify event argument with --list flag")
        if dry_run and event is None:
            raise UsageError("--dry-run requires an event argument")

        if list_only:
            return self.discover()
        if dry_run:
            return self.dry_run(event)
        if event is not None:
            return self.fire(event)
        return self.advance()

    # =========================================================================
    # Internals
    # =========================================================================

    def _update_phase_statuses(self, source: str, tc: TransitionConfig) -> None:
        """Apply automatic phase status changes for a transition that just fired.

        Exiting a phase's end state completes it (or fails it when the
        transition names it as failed_phase). Entering a phase's start state
        starts it if it is still pending. Self-transitions change nothing.
        """
        if source == tc.to_state:
            return

        for phase_name in self.config.phases_ending_at(source):
            if phase_name not in self.project.phases:
                continue
            if tc.failed_phase == phase_name:
                self.project.mark_phase_failed(phase_name)
            else:
                self.project.mark_phase_completed(phase_name)

        for phase_name in self.config.phases_starting_at(tc.to_state):
            if phase_name in self.project.phases:
                self.project.mark_phase_in_progress(phase_name)

    def _persist(self, result: AdvanceResult) -> None:
        try:
            self._store()
        except (StorageError, ValidationError) as e:
            logger.warning(
                "Advanced %s -> %s via %s but failed to save: %s",
                result.from_state, result.to_state, result.event, e,
            )
            raise UnsavedTransitionError(result, e) from e

    def _store(self) -> None:
        # NoProject ends the lifecycle; nothing is left stored.
        if self.current_state != NO_PROJECT:
            self.manager.save(self.project)
            return
        if self.manager.exists():
            self.manager.delete()
        logger.info("Project %s finished; removed its stored state", self.project.name)
