"""
Registry of project types.

The registry is an ordinary object created once at startup and handed to
whatever needs to resolve a project's type. Registration is expected to
happen before any lookups; lookups never block.
"""

import logging
import threading
from typing import Dict, Iterator, List, Optional

from phasekit.config import ProjectTypeConfig
from phasekit.exceptions import DuplicateRegistrationError, UnknownProjectTypeError

logger = logging.getLogger(__name__)


class Registry:
    """Maps project type names to their configurations."""

    def __init__(self) -> None:
        self._configs: Dict[str, ProjectTypeConfig] = {}
        self._lock = threading.Lock()

    def register(self, name: str, config: ProjectTypeConfig) -> None:
        """Register ``config`` under ``name``.

        Raises:
            DuplicateRegistrationError: If ``name`` is already registered.
        """
        with self._lock:
            if name in self._configs:
                raise DuplicateRegistrationError(name)
            self._configs[name] = config
        logger.debug("Registered project type %s", name)

    def get(self, name: str) -> Optional[ProjectTypeConfig]:
        """Return the config registered under ``name``, or None."""
        return self._configs.get(name)

    def require(self, name: str) -> ProjectTypeConfig:
        """Return the config registered under ``name``.

        Raises:
            UnknownProjectTypeError: If nothing is registered under ``name``.
        """
        config = self._configs.get(name)
        if config is None:
            raise UnknownProjectTypeError(name, self.list())
        return config

    def list(self) -> List[str]:
        """Return registered names, sorted."""
        return sorted(self._configs)

    def __contains__(self, name: object) -> bool:
        return name in self._configs

    def __iter__(self) -> Iterator[str]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._configs)


def build_registry() -> Registry:
    """Create a registry holding the built-in project types."""
    from phasekit.projects import breakdown, design, exploration, standard

    registry = Registry()
    registry.register(standard.PROJECT_TYPE, standard.new_standard_project_config())
    registry.register(exploration.PROJECT_TYPE, exploration.new_exploration_project_config())
    registry.register(design.PROJECT_TYPE, design.new_design_project_config())
    registry.register(breakdown.PROJECT_TYPE, breakdown.new_breakdown_project_config())
    return registry
