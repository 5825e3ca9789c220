"""
Tests for the bound state machine.
"""

import pytest

from phasekit.builder import ProjectTypeConfigBuilder
from phasekit.exceptions import (
    ActionError,
    EventNotConfiguredError,
    GuardBlockedError,
    TransitionError,
)
from phasekit.machine import build_machine
from phasekit.models.project import Project
from phasekit.options import with_guard, with_on_entry, with_on_exit


@pytest.fixture
def project(mock_data):
    state = mock_data.create_project_state(
        name="machine-project",
        type="machine",
        current_state="A",
        phases={"work": mock_data.create_phase()},
    )
    return Project(state)


class TestBuildMachine:

    def test_starts_at_stored_state(self, workbench_config, mock_data):
        state = mock_data.create_project_state(type="workbench", current_state="Paused")
        project = Project(state)
        machine = build_machine(workbench_config, project)

        assert machine.state == "Paused"
        assert project.machine is machine
        assert project.config is workbench_config
        assert project.current_state == "Paused"

    def test_explicit_initial_state_wins(self, workbench_config, mock_data):
        project = Project(mock_data.create_project_state(type="workbench", current_state="Paused"))
        machine = build_machine(workbench_config, project, "Working")
        assert machine.state == "Working"

    def test_machines_do_not_share_bindings(self, mock_data):
        seen = []
        config = (
            ProjectTypeConfigBuilder("machine")
            .set_initial_state("A")
            .add_transition("A", "B", "go", with_on_entry(lambda p: seen.append(p.name)))
            .build()
        )
        first = Project(mock_data.create_project_state(name="first", type="machine", current_state="A"))
        second = Project(mock_data.create_project_state(name="second", type="machine", current_state="A"))
        build_machine(config, first)
        build_machine(config, second)

        second.machine.fire("go")
        first.machine.fire("go")

        assert seen == ["second", "first"]


class TestFire:

    def test_fire_moves_state(self, workbench_project):
        tc = workbench_project.machine.fire("pause")

        assert tc.to_state == "Paused"
        assert workbench_project.current_state == "Paused"
        # Persisted statechart is only updated on sync
        assert workbench_project.state.statechart.current_state == "Working"
        workbench_project.sync_state()
        assert workbench_project.state.statechart.current_state == "Paused"

    def test_unconfigured_event(self, workbench_project):
        with pytest.raises(EventNotConfiguredError) as exc_info:
            workbench_project.machine.fire("resume")

        err = exc_info.value
        assert err.state == "Working"
        assert err.event == "resume"
        assert err.available == ["finish", "pause", "ship"]
        assert "event not configured" in str(err)

    def test_blocked_guard_changes_nothing(self, workbench_project):
        before = workbench_project.state.model_dump()

        for _ in range(2):
            with pytest.raises(GuardBlockedError) as exc_info:
                workbench_project.machine.fire("ship")
            err = exc_info.value
            assert err.reason == "tests passing"
            assert err.to_state == "Shipped"
            assert "blocked by guard" in str(err)

        assert workbench_project.current_state == "Working"
        assert workbench_project.state.model_dump() == before

    def test_guard_sees_live_project(self, project):
        config = (
            ProjectTypeConfigBuilder("machine")
            .set_initial_state("A")
            .add_transition(
                "A", "B", "go",
                with_guard("work completed", lambda p: p.phases["work"].status == "completed"),
            )
            .build()
        )
        machine = build_machine(config, project)

        assert not machine.can_fire("go")
        project.phases["work"].status = "completed"
        assert machine.can_fire("go")
        assert machine.fire("go").to_state == "B"

    def test_guard_that_raises(self, project):
        def broken(p):
            raise RuntimeError("boom")

        config = (
            ProjectTypeConfigBuilder("machine")
            .set_initial_state("A")
            .add_transition("A", "B", "go", with_guard("never", broken))
            .build()
        )
        machine = build_machine(config, project)

        with pytest.raises(TransitionError, match="boom"):
            machine.fire("go")
        assert machine.state == "A"

    def test_actions_run_in_order(self, project):
        calls = []
        config = (
            ProjectTypeConfigBuilder("machine")
            .set_initial_state("A")
            .add_transition(
                "A", "B", "go",
                with_on_exit(lambda p: calls.append(("exit", p.machine.state))),
                with_on_entry(lambda p: calls.append(("entry", p.machine.state))),
            )
            .build()
        )
        build_machine(config, project).fire("go")

        assert calls == [("exit", "A"), ("entry", "B")]

    def test_failed_entry_action_restores_state(self, project):
        def entry(p):
            p.increment_phase_iteration("work")
            raise RuntimeError("disk full")

        config = (
            ProjectTypeConfigBuilder("machine")
            .set_initial_state("A")
            .add_transition("A", "B", "go", with_on_entry(entry))
            .build()
        )
        machine = build_machine(config, project)

        with pytest.raises(ActionError, match="disk full") as exc_info:
            machine.fire("go")

        assert exc_info.value.state == "A"
        assert machine.state == "A"
        # Changes made by the action before it failed are kept
        assert project.phases["work"].iteration == 1

    def test_failed_exit_action_keeps_state(self, project):
        config = (
            ProjectTypeConfigBuilder("machine")
            .set_initial_state("A")
            .add_transition("A", "B", "go", with_on_exit(lambda p: 1 / 0))
            .build()
        )
        machine = build_machine(config, project)

        with pytest.raises(ActionError):
            machine.fire("go")
        assert machine.state == "A"


class TestIntrospection:

    def test_transitions_and_permitted_events(self, workbench_project):
        machine = workbench_project.machine

        assert [bt.event for bt in machine.transitions()] == ["finish", "pause", "ship"]
        assert machine.permitted_events() == ["finish", "pause"]

    def test_blocked_reason(self, workbench_project):
        machine = workbench_project.machine

        assert machine.blocked_reason("finish") is None
        assert machine.blocked_reason("ship") == "tests passing"
        with pytest.raises(EventNotConfiguredError):
            machine.blocked_reason("resume")

    def test_prompt_defaults_to_empty(self, workbench_project):
        assert workbench_project.machine.prompt() == ""
