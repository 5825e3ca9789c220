"""
Two-tier project validation.

The structural tier re-validates the whole ProjectState through its pydantic
models and is the same for every project type. The metadata tier checks each
phase against what its ProjectTypeConfig declares: the metadata schema, the
permitted artifact types and whether tasks are allowed.

Validation never stops at the first problem. Every call returns the full
list of ValidationError objects, each tagged with the phase it belongs to.
"""

import logging
from typing import TYPE_CHECKING, List

from pydantic import ValidationError as PydanticValidationError

from phasekit.exceptions import ProjectValidationError, ValidationError
from phasekit.models.state import ArtifactState, PhaseState, ProjectState
from phasekit.options import PhaseConfig
from phasekit.schemas import compile_schema

if TYPE_CHECKING:
    from phasekit.config import ProjectTypeConfig
    from phasekit.models.project import Project

logger = logging.getLogger(__name__)


def validate_structure(state: ProjectState) -> List[ValidationError]:
    """Check the whole project document against the shared state models."""
    try:
        ProjectState.model_validate(state.model_dump())
    except PydanticValidationError as e:
        errors = []
        for err in e.errors():
            loc = err.get("loc", ())
            location = ".".join(str(part) for part in loc)
            phase = str(loc[1]) if len(loc) >= 2 and loc[0] == "phases" else None
            errors.append(ValidationError(f"{location}: {err.get('msg')}", phase=phase))
        return errors
    return []


def validate_artifact_types(
    artifacts: List[ArtifactState],
    allowed: List[str],
    phase_name: str,
    category: str,
) -> List[ValidationError]:
    """Report artifacts whose type is not in ``allowed``. An empty list allows all."""
    if not allowed:
        return []
    errors = []
    for index, artifact in enumerate(artifacts):
        if artifact.type not in allowed:
            errors.append(
                ValidationError(
                    f"{category} artifact {index} ({artifact.path}) has type {artifact.type!r}, "
                    f"allowed: {', '.join(allowed)}",
                    phase=phase_name,
                )
            )
    return errors


def validate_metadata(phase: PhaseState, phase_config: PhaseConfig) -> List[ValidationError]:
    """Check a phase's metadata against its declared schema.

    A phase without a schema must not carry any metadata.
    """
    if phase_config.metadata_schema is None:
        if phase.metadata:
            keys = ", ".join(sorted(phase.metadata))
            return [
                ValidationError(
                    f"metadata not allowed, no schema declared (found keys: {keys})",
                    phase=phase_config.name,
                )
            ]
        return []

    checker = compile_schema(phase_config.metadata_schema)
    return [
        ValidationError(f"metadata {problem}", phase=phase_config.name)
        for problem in checker.validate(phase.metadata)
    ]


class Validator:
    """Validates projects against one ProjectTypeConfig."""

    def __init__(self, config: "ProjectTypeConfig") -> None:
        self.config = config

    def validate(self, project: "Project") -> List[ValidationError]:
        """Return every structural and metadata problem found in ``project``."""
        errors = validate_structure(project.state)
        errors.extend(self.validate_phases(project.state))
        if errors:
            logger.debug("Validation of %s found %d problem(s)", project.name, len(errors))
        return errors

    def validate_phases(self, state: ProjectState) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for phase_name, phase in state.phases.items():
            phase_config = self.config.phase(phase_name)
            if phase_config is None:
                errors.append(
                    ValidationError(
                        f"phase not defined by project type {self.config.name}",
                        phase=phase_name,
                    )
                )
                continue

            errors.extend(
                validate_artifact_types(phase.inputs, phase_config.allowed_inputs, phase_name, "input")
            )
            errors.extend(
                validate_artifact_types(phase.outputs, phase_config.allowed_outputs, phase_name, "output")
            )

            if phase.tasks and not self.config.phase_supports_tasks(phase_name):
                errors.append(
                    ValidationError(
                        f"phase does not support tasks ({len(phase.tasks)} found)",
                        phase=phase_name,
                    )
                )

            errors.extend(validate_metadata(phase, phase_config))
        return errors

    def check(self, project: "Project") -> None:
        """Raise ProjectValidationError if ``project`` has any problem."""
        errors = self.validate(project)
        if errors:
            raise ProjectValidationError(errors, context=f"project {project.name} is invalid")
