"""
phasekit: declare a project type's phases and transitions once, then load,
advance, validate and save projects of that type.
"""

from phasekit.advance import AdvanceEngine, AdvanceResult, TransitionOption
from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.config import ProjectTypeConfig
from phasekit.machine import Machine, build_machine
from phasekit.models.project import Project
from phasekit.registry import Registry, build_registry

__version__ = "0.1.0"

__all__ = [
    "AdvanceEngine",
    "AdvanceResult",
    "Machine",
    "Project",
    "ProjectTypeConfig",
    "ProjectTypeConfigBuilder",
    "Registry",
    "TransitionOption",
    "build_machine",
    "build_registry",
]
