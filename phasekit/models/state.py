"""
Persisted project state models.

These pydantic models are the on-disk shape of a project. They are shared by
every project type; what differs between types is which phases exist and
what their metadata maps contain, which the Validator checks separately.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from phasekit.constants import (
    PHASE_PENDING,
    PROJECT_NAME_PATTERN,
    TASK_PENDING,
    TERMINAL_TASK_STATUSES,
    VALID_PHASE_STATUSES,
    VALID_TASK_STATUSES,
)


class ArtifactState(BaseModel):
    """A tracked file produced or consumed by a phase."""

    type: str = Field(min_length=1)
    path: str = Field(min_length=1)
    approved: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TaskState(BaseModel):
    """
    A unit of work inside a task-supporting phase.

    Status is one of pending, in_progress, needs_review, completed or
    abandoned. Only completed and abandoned count as finished.
    """

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    phase: str = Field(min_length=1)
    status: str = TASK_PENDING
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    iteration: int = Field(default=1, ge=1)
    assigned_agent: str = "implementer"
    inputs: List[ArtifactState] = Field(default_factory=list)
    outputs: List[ArtifactState] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Validate task status is one of the known values."""
        if v not in VALID_TASK_STATUSES:
            raise ValueError(f"Task status must be one of: {', '.join(VALID_TASK_STATUSES)}")
        return v

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TASK_STATUSES


class PhaseState(BaseModel):
    """One lifecycle stage of a project."""

    status: str = PHASE_PENDING
    enabled: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    iteration: int = Field(default=0, ge=0)
    inputs: List[ArtifactState] = Field(default_factory=list)
    outputs: List[ArtifactState] = Field(default_factory=list)
    tasks: List[TaskState] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Validate phase status is one of the known values."""
        if v not in VALID_PHASE_STATUSES:
            raise ValueError(f"Phase status must be one of: {', '.join(VALID_PHASE_STATUSES)}")
        return v


class StatechartState(BaseModel):
    """Where the project's state machine currently stands."""

    current_state: str = Field(min_length=1)
    updated_at: datetime = Field(default_factory=datetime.now)


class ProjectState(BaseModel):
    """
    Root document persisted for a project.

    Fields:
    - name: kebab-case project name
    - type: registry key of the governing project type
    - branch: branch the work happens on
    - phases: phase states keyed by name, in insertion order
    - statechart: current machine state
    - agent_sessions: agent role -> external session id
    """

    name: str
    type: str
    branch: str = Field(default="main", min_length=1)
    description: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    phases: Dict[str, PhaseState] = Field(default_factory=dict)
    statechart: StatechartState
    agent_sessions: Dict[str, str] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate project name is kebab-case."""
        if not re.match(PROJECT_NAME_PATTERN, v):
            raise ValueError("Project name must be lowercase alphanumeric words separated by single hyphens")
        return v

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Validate project type is a plain identifier."""
        if not re.match(r"^[a-z0-9_]+$", v):
            raise ValueError("Project type must be lowercase alphanumeric with underscores")
        return v
