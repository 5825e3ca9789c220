"""
Shared vocabulary for phasekit project types.

States and events are plain strings. Project types may declare them as
``str`` enums; every entry point normalises them with ``to_name`` so the
rest of the toolkit only ever compares strings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

if TYPE_CHECKING:
    from phasekit.models.project import Project


State = str
Event = str

# Anything accepted where a state or event name is expected
StateLike = Union[str, Enum]
EventLike = Union[str, Enum]

# Guards read the project and must not mutate it
Guard = Callable[["Project"], bool]

# Actions run on transition entry or exit and may mutate the project
Action = Callable[["Project"], None]

# Selects which event to fire from a state during automatic advance
EventDeterminer = Callable[["Project"], EventLike]

# Maps a project to the key of one branch path
Discriminator = Callable[["Project"], Any]

# Produces guidance text for one state
PromptGenerator = Callable[["Project"], str]

# Fills in a freshly created project's phases
Initializer = Callable[["Project", Optional[Dict[str, Any]]], None]


def to_name(value: Union[StateLike, EventLike]) -> str:
    """Normalise a state or event to its plain string name."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


@dataclass(frozen=True)
class GuardTemplate:
    """A guard predicate paired with the description shown when it blocks.

    Attributes:
        description: Human readable requirement, e.g. "planning output approved".
        func: Predicate over the bound project.
    """

    description: str
    func: Guard

    def __call__(self, project: "Project") -> bool:
        return bool(self.func(project))
