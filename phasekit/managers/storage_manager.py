"""
Storage backends for project state.

A Backend persists exactly one ProjectState. FileBackend keeps it as an
indented JSON document on a FileSystem; MemoryBackend keeps a private deep
copy and is meant for tests.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from phasekit.constants import DEFAULT_STATE_PATH
from phasekit.exceptions import InvalidStateError, StateNotFoundError, StorageError
from phasekit.fs import FileSystem
from phasekit.models.state import ProjectState

logger = logging.getLogger(__name__)


class Backend(ABC):
    """Load/save/exists/delete contract for one project's state."""

    @abstractmethod
    def load(self) -> ProjectState:
        """Return the stored state.

        Raises:
            StateNotFoundError: If nothing has been saved.
            InvalidStateError: If the stored data cannot be decoded.
            StorageError: For any other I/O failure.
        """

    @abstractmethod
    def save(self, state: ProjectState) -> None:
        """Persist ``state``, replacing what was stored before."""

    @abstractmethod
    def exists(self) -> bool:
        ...

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored state.

        Raises:
            StateNotFoundError: If nothing has been saved.
        """


class FileBackend(Backend):
    """
    Stores project state as JSON on a FileSystem.

    Writes go through FileSystem.write_atomic so a crash never leaves a
    half-written document behind.
    """

    def __init__(self, fs: FileSystem, path: str = DEFAULT_STATE_PATH) -> None:
        """
        Initialize the FileBackend.

        Args:
            fs: File system rooted at the project's working directory.
            path: Relative path of the state document. Defaults to project/state.json.
        """
        self.fs = fs
        self.path = path

    def __repr__(self) -> str:
        return f"FileBackend({self.fs!r}, path={self.path!r})"

    def load(self) -> ProjectState:
        try:
            text = self.fs.read_text(self.path)
        except FileNotFoundError as e:
            raise StateNotFoundError(f"no project state at {self.path}") from e
        except OSError as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        try:
            data = json.loads(text)
            return ProjectState.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise InvalidStateError(f"Failed to decode {self.path}: {e}") from e

    def save(self, state: ProjectState) -> None:
        try:
            text = json.dumps(state.model_dump(mode="json"), indent=2) + "\n"
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to encode project state for {self.path}: {e}") from e

        try:
            self.fs.write_atomic(self.path, text)
        except OSError as e:
            raise StorageError(f"Failed to write to {self.path}: {e}") from e
        logger.debug("Saved project %s to %s", state.name, self.path)

    def exists(self) -> bool:
        try:
            return self.fs.exists(self.path)
        except OSError as e:
            raise StorageError(f"Failed to check {self.path}: {e}") from e

    def delete(self) -> None:
        try:
            self.fs.remove(self.path)
        except FileNotFoundError as e:
            raise StateNotFoundError(f"no project state at {self.path}") from e
        except OSError as e:
            raise StorageError(f"Failed to delete {self.path}: {e}") from e
        logger.debug("Deleted project state at %s", self.path)


class MemoryBackend(Backend):
    """Keeps a deep copy of the state in memory. Callers never share objects with it."""

    def __init__(self, state: Optional[ProjectState] = None) -> None:
        self._state = state.model_copy(deep=True) if state is not None else None
        self.save_count = 0

    def load(self) -> ProjectState:
        if self._state is None:
            raise StateNotFoundError("no project state in memory")
        return self._state.model_copy(deep=True)

    def save(self, state: ProjectState) -> None:
        self._state = state.model_copy(deep=True)
        self.save_count += 1

    def exists(self) -> bool:
        return self._state is not None

    def delete(self) -> None:
        if self._state is None:
            raise StateNotFoundError("no project state in memory")
        self._state = None

    @property
    def state(self) -> Optional[ProjectState]:
        """A copy of the stored state, or None."""
        return self._state.model_copy(deep=True) if self._state is not None else None
