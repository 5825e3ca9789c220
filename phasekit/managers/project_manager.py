"""
Project manager: load, save and create projects through a Backend.

Load pipeline:
    backend load -> structural validation -> registry lookup
    -> machine built at the stored state -> metadata validation

Save pipeline:
    sync statechart from machine -> timestamps -> validation -> backend save

Create pipeline:
    new state at the type's initial state -> type initializer -> machine
    -> initial phase marked in_progress -> save
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from phasekit.constants import PROJECT_NAME_MAX_LENGTH
from phasekit.exceptions import PhasekitError, ProjectValidationError, ValidationError
from phasekit.fs import LocalFileSystem
from phasekit.machine import build_machine
from phasekit.managers.storage_manager import Backend, FileBackend
from phasekit.models.project import Project
from phasekit.models.state import ProjectState, StatechartState
from phasekit.registry import Registry
from phasekit.validation import Validator, validate_structure

logger = logging.getLogger(__name__)

# Branch prefixes that select a project type when none is given
BRANCH_TYPE_PREFIXES = {
    "explore/": "exploration",
    "design/": "design",
    "breakdown/": "breakdown",
}
DEFAULT_PROJECT_TYPE = "standard"


def generate_project_name(description: str) -> str:
    """Derive a kebab-case project name from a free-text description.

    The description is truncated before conversion, so the name never
    exceeds PROJECT_NAME_MAX_LENGTH characters.
    """
    name = description[:PROJECT_NAME_MAX_LENGTH].lower()
    name = re.sub(r"[^a-z0-9]+", "-", name)
    name = re.sub(r"-+", "-", name)
    return name.strip("-")


def detect_project_type(branch: str) -> str:
    """Pick a project type from a branch name's prefix."""
    for prefix, project_type in BRANCH_TYPE_PREFIXES.items():
        if branch.startswith(prefix):
            return project_type
    return DEFAULT_PROJECT_TYPE


class ProjectManager:
    """
    Loads, saves, creates and deletes the project stored in one Backend.

    Args:
        registry: Registry used to resolve a project's type.
        backend: Where the project's state lives.
        services: Collaborator objects attached to every Project this
            manager hands out.
    """

    def __init__(
        self,
        registry: Registry,
        backend: Backend,
        services: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.registry = registry
        self.backend = backend
        self.services = dict(services or {})

    def exists(self) -> bool:
        return self.backend.exists()

    def load(self) -> Project:
        """Load the stored project and bind its machine at the stored state.

        Raises:
            StateNotFoundError: If no project is stored.
            InvalidStateError: If the stored document cannot be decoded.
            ProjectValidationError: If the state fails either validation tier.
            UnknownProjectTypeError: If the project's type is not registered.
        """
        state = self.backend.load()

        errors = validate_structure(state)
        if errors:
            raise ProjectValidationError(errors, context="validate structure")

        config = self.registry.require(state.type)
        project = Project(state, config, services=self.services)
        build_machine(config, project, state.statechart.current_state)

        errors = Validator(config).validate_phases(state)
        if errors:
            raise ProjectValidationError(errors, context="validate metadata")

        logger.debug("Loaded project %s at state %s", project.name, project.current_state)
        return project

    def save(self, project: Project) -> None:
        """Validate ``project`` and write it to the backend.

        Invalid projects are never written.

        Raises:
            ProjectValidationError: If the project fails validation.
            StorageError: If the backend write fails.
        """
        project.sync_state()
        project.state.updated_at = datetime.now()

        if project.config is not None:
            Validator(project.config).check(project)
        else:
            errors = validate_structure(project.state)
            if errors:
                raise ProjectValidationError(errors, context="validate structure")

        self.backend.save(project.state)
        logger.debug("Saved project %s at state %s", project.name, project.current_state)

    def create(
        self,
        description: str,
        branch: str = "main",
        project_type: Optional[str] = None,
        initial_inputs: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
    ) -> Project:
        """Create, initialize and save a new project.

        Args:
            description: Free-text description; also the source of the name.
            branch: Branch the work happens on.
            project_type: Registered type name. Detected from the branch
                prefix when omitted.
            initial_inputs: Passed through to the type's initializer.
            name: Explicit project name instead of one derived from the description.

        Returns:
            The saved Project, with its machine at the type's initial state.
        """
        project_type = project_type or detect_project_type(branch)
        config = self.registry.require(project_type)

        project_name = name or generate_project_name(description)
        if not project_name:
            raise ValidationError(f"cannot derive a project name from description {description!r}")

        now = datetime.now()
        state = ProjectState(
            name=project_name,
            type=project_type,
            branch=branch,
            description=description,
            created_at=now,
            updated_at=now,
            statechart=StatechartState(current_state=config.initial_state, updated_at=now),
        )
        project = Project(state, config, services=self.services)

        try:
            config.initialize(project, initial_inputs)
        except PhasekitError:
            raise
        except Exception as e:
            raise PhasekitError(f"initialize project {project_name}: {e}") from e

        build_machine(config, project, config.initial_state)
        for phase_name in config.phases_starting_at(config.initial_state):
            if phase_name in project.phases:
                project.mark_phase_in_progress(phase_name)

        self.save(project)
        logger.info("Created %s project %s", project_type, project_name)
        return project

    def delete(self) -> None:
        self.backend.delete()
        logger.info("Deleted stored project")


# =============================================================================
# File system conveniences
# =============================================================================


def manager_for_fs(
    root: Union[str, Path],
    registry: Registry,
    path: Optional[str] = None,
    services: Optional[Dict[str, Any]] = None,
) -> ProjectManager:
    """Create a ProjectManager backed by a FileBackend rooted at ``root``."""
    fs = LocalFileSystem(root)
    backend = FileBackend(fs, path) if path else FileBackend(fs)
    return ProjectManager(registry, backend, services=services)


def load_from_fs(root: Union[str, Path], registry: Registry, path: Optional[str] = None) -> Project:
    """Load the project stored under ``root``."""
    return manager_for_fs(root, registry, path).load()


def create_on_fs(
    root: Union[str, Path],
    registry: Registry,
    description: str,
    path: Optional[str] = None,
    **kwargs: Any,
) -> Project:
    """Create a project stored under ``root``. Extra keyword arguments go to ProjectManager.create()."""
    return manager_for_fs(root, registry, path).create(description, **kwargs)
