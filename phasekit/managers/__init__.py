"""
Managers for phasekit.

This package contains the classes that move projects in and out of storage:
- Backend, FileBackend, MemoryBackend: persistence of one ProjectState
- ProjectManager: load/save/create pipelines on top of a Backend
"""

from phasekit.managers.storage_manager import Backend, FileBackend, MemoryBackend
from phasekit.managers.project_manager import (
    ProjectManager,
    create_on_fs,
    generate_project_name,
    load_from_fs,
    manager_for_fs,
)

__all__ = [
    "Backend",
    "FileBackend",
    "MemoryBackend",
    "ProjectManager",
    "create_on_fs",
    "generate_project_name",
    "load_from_fs",
    "manager_for_fs",
]
