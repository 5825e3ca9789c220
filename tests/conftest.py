"""
Test fixtures for the phasekit test suite.

Provides:
- Temporary directory fixtures (isolated from any real .phasekit/)
- Mock data builders for artifacts, tasks, phases and project states
- Small project types exercising branches and guards
- Registry, backend and manager fixtures
"""

import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pytest
from pydantic import BaseModel, ConfigDict

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.config import ProjectTypeConfig
from phasekit.machine import build_machine
from phasekit.managers.project_manager import ProjectManager
from phasekit.managers.storage_manager import MemoryBackend
from phasekit.models.project import Project
from phasekit.models.state import (
    ArtifactState,
    PhaseState,
    ProjectState,
    StatechartState,
    TaskState,
)
from phasekit.options import (
    branch_on,
    when,
    with_description,
    with_end_state,
    with_guard,
    with_metadata_schema,
    with_on_entry,
    with_start_state,
)
from phasekit.registry import Registry, build_registry


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test isolation.

    Ensures tests don't touch a real .phasekit/ directory.
    """
    temp_path = Path(tempfile.mkdtemp(prefix="phasekit_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def phasekit_dir(temp_dir: Path) -> Path:
    """Create an empty .phasekit/ directory and return its path."""
    path = temp_dir / ".phasekit"
    path.mkdir(parents=True)
    return path


# =============================================================================
# Mock Data Builders
# =============================================================================


class MockDataBuilder:
    """Helper class for building phasekit state objects for testing."""

    @staticmethod
    def create_artifact(
        type: str = "review",
        path: str = "docs/review.md",
        approved: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ArtifactState:
        """Create an artifact for testing."""
        return ArtifactState(type=type, path=path, approved=approved, metadata=metadata or {})

    @staticmethod
    def create_task(
        id: str = "010",
        name: str = "Test Task",
        phase: str = "implementation",
        status: str = "pending",
    ) -> TaskState:
        """Create a task for testing."""
        return TaskState(id=id, name=name, phase=phase, status=status)

    @staticmethod
    def create_phase(
        status: str = "pending",
        inputs: Optional[List[ArtifactState]] = None,
        outputs: Optional[List[ArtifactState]] = None,
        tasks: Optional[List[TaskState]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        iteration: int = 0,
    ) -> PhaseState:
        """Create a phase for testing."""
        return PhaseState(
            status=status,
            inputs=inputs or [],
            outputs=outputs or [],
            tasks=tasks or [],
            metadata=metadata or {},
            iteration=iteration,
        )

    @staticmethod
    def create_project_state(
        name: str = "test-project",
        type: str = "standard",
        current_state: str = "PlanningActive",
        phases: Optional[Dict[str, PhaseState]] = None,
        description: str = "Test project",
    ) -> ProjectState:
        """Create a project state for testing."""
        now = datetime.now()
        return ProjectState(
            name=name,
            type=type,
            description=description,
            created_at=now,
            updated_at=now,
            phases=phases or {},
            statechart=StatechartState(current_state=current_state, updated_at=now),
        )


@pytest.fixture
def mock_data() -> MockDataBuilder:
    """Provide mock data builder for test state creation."""
    return MockDataBuilder()


# =============================================================================
# Project Type Fixtures
# =============================================================================


class DraftMetadata(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: Optional[str] = None


def init_review_loop(project: Project, initial_inputs: Optional[Dict[str, Any]]) -> None:
    for name in ("draft", "approve"):
        project.phases[name] = PhaseState()


def record_rejection(project: Project) -> None:
    project.increment_phase_iteration("draft")


def new_review_loop_config() -> ProjectTypeConfig:
    """A draft that is either approved or sent back for another revision.

    Drafting --approve--> Approved
    Drafting --reject---> Drafting (draft iteration + 1)
    """
    return (
        ProjectTypeConfigBuilder("review_loop")
        .with_phase(
            "draft",
            with_start_state("Drafting"),
            with_end_state("Drafting"),
            with_metadata_schema(DraftMetadata),
        )
        .with_phase("approve", with_start_state("Approved"))
        .set_initial_state("Drafting")
        .add_branch(
            "Drafting",
            branch_on(lambda p: p.phases["draft"].metadata.get("outcome")),
            when("approved", "approve", "Approved", with_description("Draft accepted")),
            when(
                "rejected",
                "reject",
                "Drafting",
                with_on_entry(record_rejection),
                with_description("Draft sent back"),
            ),
        )
        .with_initializer(init_review_loop)
        .build()
    )


def new_workbench_config(tests_passing: bool = False) -> ProjectTypeConfig:
    """Three transitions out of Working; ``ship`` is blocked unless tests pass."""
    return (
        ProjectTypeConfigBuilder("workbench")
        .set_initial_state("Working")
        .add_transition(
            "Working", "Done", "finish",
            with_guard("work finished", lambda p: True),
            with_description("Finish the work"),
        )
        .add_transition("Working", "Paused", "pause", with_description("Pause the work"))
        .add_transition(
            "Working", "Shipped", "ship",
            with_guard("tests passing", lambda p: tests_passing),
            with_description("Ship it"),
        )
        .add_transition("Paused", "Working", "resume")
        .build()
    )


@pytest.fixture
def review_loop_config() -> ProjectTypeConfig:
    return new_review_loop_config()


@pytest.fixture
def workbench_config() -> ProjectTypeConfig:
    return new_workbench_config()


@pytest.fixture
def registry() -> Registry:
    """Registry holding the built-in types plus the test types."""
    registry = build_registry()
    registry.register("review_loop", new_review_loop_config())
    registry.register("workbench", new_workbench_config())
    return registry


@pytest.fixture
def standard_config(registry: Registry) -> ProjectTypeConfig:
    return registry.require("standard")


# =============================================================================
# Project and Manager Fixtures
# =============================================================================


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def manager(registry: Registry, memory_backend: MemoryBackend) -> ProjectManager:
    return ProjectManager(registry, memory_backend)


@pytest.fixture
def draft_project(review_loop_config: ProjectTypeConfig, mock_data: MockDataBuilder) -> Project:
    """A review_loop project in Drafting with an in-progress draft phase."""
    state = mock_data.create_project_state(
        name="draft-project",
        type="review_loop",
        current_state="Drafting",
        phases={
            "draft": mock_data.create_phase(status="in_progress"),
            "approve": mock_data.create_phase(),
        },
    )
    project = Project(state)
    build_machine(review_loop_config, project)
    return project


@pytest.fixture
def workbench_project(workbench_config: ProjectTypeConfig, mock_data: MockDataBuilder) -> Project:
    state = mock_data.create_project_state(
        name="workbench-project", type="workbench", current_state="Working"
    )
    project = Project(state)
    build_machine(workbench_config, project)
    return project


@pytest.fixture
def make_workbench():
    """Factory for workbench configs with the ``ship`` guard set either way."""
    return new_workbench_config
