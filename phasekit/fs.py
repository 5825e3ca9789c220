"""
File system abstraction used by the storage backends.

Paths are always relative to the file system's root. Missing files raise
FileNotFoundError, like the builtin open().
"""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Dict, Union


class FileSystem(ABC):
    """Minimal read/write/exists interface over a rooted tree of files."""

    @abstractmethod
    def read_text(self, path: str) -> str:
        ...

    @abstractmethod
    def write_atomic(self, path: str, text: str) -> None:
        """Replace the file at ``path`` with ``text`` in one step, creating parents."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    def remove(self, path: str) -> None:
        ...


class LocalFileSystem(FileSystem):
    """A FileSystem rooted at a directory on disk."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"LocalFileSystem({str(self.root)!r})"

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"path must stay inside {self.root}: {path}")
        return self.root / relative

    def read_text(self, path: str) -> str:
        with open(self._resolve(path), "r") as f:
            return f.read()

    def write_atomic(self, path: str, text: str) -> None:
        """Write ``text`` to a temp file beside the target, then rename it over the target."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=target.parent, prefix=".tmp_phasekit_", suffix=target.suffix
        )
        try:
            with os.fdopen(temp_fd, "w") as temp_file:
                temp_file.write(text)
            os.replace(temp_path, target)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def remove(self, path: str) -> None:
        os.remove(self._resolve(path))


class MemoryFileSystem(FileSystem):
    """A FileSystem held in a dict, for tests."""

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}

    def read_text(self, path: str) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    def write_atomic(self, path: str, text: str) -> None:
        self.files[path] = text

    def exists(self, path: str) -> bool:
        return path in self.files

    def remove(self, path: str) -> None:
        if path not in self.files:
            raise FileNotFoundError(path)
        del self.files[path]
