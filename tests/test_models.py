"""
Tests for the persisted state models and the runtime Project helpers.
"""

import pytest
from pydantic import ValidationError

from phasekit.exceptions import NotFoundError
from phasekit.models.project import Project
from phasekit.models.state import PhaseState, ProjectState, StatechartState, TaskState


class TestStateModels:

    def test_project_name_must_be_kebab_case(self):
        with pytest.raises(ValidationError):
            ProjectState(name="Bad Name", type="standard", statechart=StatechartState(current_state="A"))

    def test_project_type_pattern(self):
        with pytest.raises(ValidationError):
            ProjectState(name="ok", type="Standard-Type", statechart=StatechartState(current_state="A"))

    def test_phase_status_is_checked(self):
        with pytest.raises(ValidationError):
            PhaseState(status="done")

    def test_task_defaults(self):
        task = TaskState(id="010", name="Write code", phase="implementation")

        assert task.status == "pending"
        assert task.iteration == 1
        assert task.assigned_agent == "implementer"
        assert task.is_terminal is False

    def test_task_status_is_checked(self):
        with pytest.raises(ValidationError):
            TaskState(id="010", name="Write code", phase="implementation", status="done")

    def test_statechart_needs_state(self):
        with pytest.raises(ValidationError):
            StatechartState(current_state="")


@pytest.fixture
def project(mock_data):
    return Project(
        mock_data.create_project_state(
            phases={
                "planning": mock_data.create_phase(
                    outputs=[
                        mock_data.create_artifact(type="task_list", path="v1.md", approved=True),
                        mock_data.create_artifact(type="task_list", path="v2.md"),
                    ],
                    metadata={"ready": True, "flag": "yes"},
                ),
                "implementation": mock_data.create_phase(),
            }
        )
    )


class TestGuardHelpers:

    def test_phase_output_approved(self, project):
        assert project.phase_output_approved("planning", "task_list")
        assert not project.phase_output_approved("planning", "design")
        assert not project.phase_output_approved("missing", "task_list")

    def test_phase_metadata_bool_requires_true(self, project):
        assert project.phase_metadata_bool("planning", "ready")
        assert not project.phase_metadata_bool("planning", "flag")
        assert not project.phase_metadata_bool("planning", "absent")

    def test_latest_outputs(self, project):
        assert project.latest_output("planning", "task_list").path == "v2.md"
        assert project.latest_approved_output("planning", "task_list").path == "v1.md"
        assert project.latest_output("planning", "design") is None

    def test_all_tasks_complete(self, project, mock_data):
        assert not project.all_tasks_complete("implementation")

        tasks = project.phases["implementation"].tasks
        tasks.append(mock_data.create_task(id="010", status="completed"))
        tasks.append(mock_data.create_task(id="020", status="in_progress"))
        assert not project.all_tasks_complete("implementation")

        tasks[1].status = "abandoned"
        assert project.all_tasks_complete("implementation")

    def test_current_state_without_machine(self, project):
        assert project.machine is None
        assert project.current_state == "PlanningActive"


class TestMutationHelpers:

    def test_phase_lifecycle(self, project):
        project.mark_phase_in_progress("implementation")
        phase = project.phase("implementation")
        assert phase.status == "in_progress"
        assert phase.started_at is not None

        project.mark_phase_completed("implementation")
        assert phase.status == "completed"

        # Only pending phases are started
        project.mark_phase_in_progress("implementation")
        assert phase.status == "completed"

    def test_failed_phase_is_not_completed(self, project):
        project.mark_phase_failed("implementation")
        project.mark_phase_completed("implementation")

        phase = project.phase("implementation")
        assert phase.status == "failed"
        assert phase.failed_at is not None

    def test_reopen_phase(self, project):
        project.mark_phase_failed("implementation")
        project.reopen_phase("implementation")

        phase = project.phase("implementation")
        assert phase.status == "in_progress"
        assert phase.failed_at is None

    def test_increment_iteration(self, project):
        assert project.increment_phase_iteration("planning") == 1
        assert project.increment_phase_iteration("planning") == 2

    def test_unknown_phase(self, project):
        with pytest.raises(NotFoundError):
            project.phase("missing")
        with pytest.raises(NotFoundError):
            project.mark_phase_failed("missing")

    def test_add_phase_input_from_output(self, project):
        copied = project.add_phase_input_from_output(
            "planning", "implementation", "task_list", lambda a: a.approved
        )

        assert copied.path == "v1.md"
        assert project.phases["implementation"].inputs[-1] is copied
        # The input is a copy, not the same object
        copied.path = "renamed.md"
        assert project.phases["planning"].outputs[0].path == "v1.md"

    def test_add_phase_input_without_match(self, project):
        with pytest.raises(NotFoundError, match="no matching artifact"):
            project.add_phase_input_from_output("planning", "implementation", "design")
