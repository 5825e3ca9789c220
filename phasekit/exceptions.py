"""
Custom exceptions for the phasekit toolkit.

Errors fall into a few families:
- configuration errors raised while building or registering project types
- transition errors raised while firing events (guard-blocked, unmatched branch, ...)
- validation errors, aggregated per phase
- storage errors, always kept apart from in-memory transition failures
"""

from typing import Any, List, Optional, Sequence


class PhasekitError(Exception):
    """Base exception for all phasekit errors."""
    pass


class ConfigurationError(PhasekitError):
    """Raised when a project type configuration is invalid."""
    pass


class DuplicateRegistrationError(ConfigurationError):
    """Raised when a project type name is registered twice."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"project type {name!r} is already registered")


class NotFoundError(PhasekitError):
    """Raised when a requested item is not found."""
    pass


class UnknownProjectTypeError(NotFoundError):
    """Raised when a project references a type missing from the registry."""

    def __init__(self, project_type: str, known: Sequence[str] = ()):
        self.project_type = project_type
        self.known = list(known)
        message = f"unknown project type: {project_type}"
        if self.known:
            message += f" (registered: {', '.join(self.known)})"
        super().__init__(message)


class UsageError(PhasekitError):
    """Raised when an operation is requested with an invalid combination of arguments."""
    pass


# =============================================================================
# Transition errors
# =============================================================================


class TransitionError(PhasekitError):
    """Base class for failures while moving a project between states.

    Attributes:
        state: State the machine was in when the failure happened.
        event: Event being fired, if one had been selected.
    """

    def __init__(self, message: str, state: Optional[str] = None, event: Optional[str] = None):
        self.state = state
        self.event = event
        super().__init__(message)


class EventNotConfiguredError(TransitionError):
    """Raised when firing an event that has no transition from the current state."""

    def __init__(self, state: str, event: str, available: Sequence[str] = ()):
        self.available = list(available)
        message = f"event not configured: {event!r} from state {state}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message, state=state, event=event)


class GuardBlockedError(TransitionError):
    """Raised when a transition exists but its guard does not currently allow it.

    This is an expected outcome, not a fault. ``reason`` carries the guard
    description so callers can tell the user what is missing.
    """

    def __init__(self, state: str, event: str, to_state: str, reason: str):
        self.to_state = to_state
        self.reason = reason
        super().__init__(
            f"transition {state} -> {to_state} via {event!r} blocked by guard: {reason}",
            state=state,
            event=event,
        )


class ActionError(TransitionError):
    """Raised when an entry or exit action fails during a transition."""
    pass


class NoDeterminerError(TransitionError):
    """Raised when automatic advance is requested for a state without a determiner."""

    def __init__(self, state: str):
        super().__init__(
            f"no event determiner for state {state}; "
            "list the available transitions and fire one explicitly",
            state=state,
        )


class BranchUnmatchedError(TransitionError):
    """Raised when a branch discriminator returns a value with no matching path."""

    def __init__(self, state: str, value: Any, valid_values: Sequence[str]):
        self.value = value
        self.valid_values = sorted(valid_values)
        available = ", ".join(f'"{v}"' for v in self.valid_values)
        super().__init__(
            f'no branch defined for discriminator value "{value}" from state {state} '
            f"(available values: {available})",
            state=state,
        )


class EventDeterminationError(TransitionError):
    """Raised when an event determiner fails for a reason of its own."""
    pass


# =============================================================================
# Validation errors
# =============================================================================


class ValidationError(PhasekitError):
    """A single validation problem.

    Attributes:
        phase: Name of the phase the problem belongs to, or None for
            project-wide structural problems.
    """

    def __init__(self, message: str, phase: Optional[str] = None):
        self.phase = phase
        self.message = message
        if phase:
            message = f"phase {phase}: {message}"
        super().__init__(message)


class ProjectValidationError(ValidationError):
    """Aggregate of every validation problem found in one pass."""

    def __init__(self, errors: List[ValidationError], context: str = "validation failed"):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{context}: {details}")


# =============================================================================
# Storage errors
# =============================================================================


class StorageError(PhasekitError):
    """Raised when loading, saving or deleting project state fails."""
    pass


class StateNotFoundError(StorageError, NotFoundError):
    """Raised when no persisted project state exists."""
    pass


class InvalidStateError(StorageError):
    """Raised when persisted project state cannot be decoded."""
    pass


class UnsavedTransitionError(StorageError):
    """Raised when a transition fired but the updated project could not be saved.

    The in-memory project already reflects the new state; retry the save
    instead of firing the event again.

    Attributes:
        result: The AdvanceResult describing the transition that fired.
    """

    def __init__(self, result: Any, cause: Exception):
        self.result = result
        self.cause = cause
        super().__init__(
            f"advanced {result.from_state} -> {result.to_state} via {result.event!r} "
            f"but failed to save: {cause}"
        )
