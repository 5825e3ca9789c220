"""
Tests for ProjectTypeConfigBuilder and the configs it builds.
"""

from enum import Enum

import pytest

from phasekit.builder import BranchDeterminer, ProjectTypeConfigBuilder
from phasekit.exceptions import BranchUnmatchedError, ConfigurationError
from phasekit.options import (
    branch_on,
    when,
    with_description,
    with_end_state,
    with_guard,
    with_inputs,
    with_outputs,
    with_start_state,
    with_tasks,
)


class Color(str, Enum):
    RED = "Red"
    GREEN = "Green"


class TestBuildErrors:
    """Configurations that must be rejected by build()."""

    def test_missing_initial_state(self):
        builder = ProjectTypeConfigBuilder("broken").add_transition("A", "B", "go")
        with pytest.raises(ConfigurationError, match="initial state not set"):
            builder.build()

    def test_branch_without_discriminator(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_branch("A", when("x", "go_x", "X"))
        )
        with pytest.raises(ConfigurationError, match="no discriminator"):
            builder.build()

    def test_branch_without_paths(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_branch("A", branch_on(lambda p: "x"))
        )
        with pytest.raises(ConfigurationError, match="no branch paths"):
            builder.build()

    def test_empty_branch_value(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_branch("A", branch_on(lambda p: ""), when("", "go", "B"))
        )
        with pytest.raises(ConfigurationError, match="empty string"):
            builder.build()

    def test_two_branches_on_one_state(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_branch("A", branch_on(lambda p: "x"), when("x", "go_x", "X"))
            .add_branch("A", branch_on(lambda p: "y"), when("y", "go_y", "Y"))
        )
        with pytest.raises(ConfigurationError, match="already has a branch"):
            builder.build()

    def test_branch_and_on_advance_on_one_state(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .on_advance("A", lambda p: "go_x")
            .add_branch("A", branch_on(lambda p: "x"), when("x", "go_x", "X"))
        )
        with pytest.raises(ConfigurationError, match="on_advance"):
            builder.build()

    def test_duplicate_event_from_state(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_transition("A", "B", "go")
            .add_transition("A", "C", "go")
        )
        with pytest.raises(ConfigurationError, match="declared more than once"):
            builder.build()

    def test_branch_event_clashes_with_transition(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_transition("A", "B", "go")
            .add_branch("A", branch_on(lambda p: "x"), when("x", "go", "X"))
        )
        with pytest.raises(ConfigurationError, match="declared more than once"):
            builder.build()

    def test_unreachable_from_state(self):
        builder = (
            ProjectTypeConfigBuilder("broken")
            .set_initial_state("A")
            .add_transition("A", "B", "go")
            .add_transition("Nowhere", "B", "jump")
        )
        with pytest.raises(ConfigurationError, match="not reachable from the initial state A"):
            builder.build()

    def test_disconnected_cycle_is_unreachable(self):
        builder = (
            ProjectTypeConfigBuilder("island")
            .set_initial_state("Start")
            .add_transition("Start", "Done", "finish")
            .add_transition("Left", "Right", "cross")
            .add_transition("Right", "Left", "back")
        )
        with pytest.raises(ConfigurationError, match="leaves state Left, which is not reachable"):
            builder.build()

    def test_states_reached_through_branches_count(self):
        config = (
            ProjectTypeConfigBuilder("forked")
            .set_initial_state("Start")
            .add_branch("Start", branch_on(lambda p: "left"), when("left", "go_left", "Left"))
            .add_transition("Left", "Done", "finish")
            .build()
        )
        assert [tc.to_state for tc in config.transitions_from("Left")] == ["Done"]


class TestBuiltConfig:
    """The immutable config produced by a successful build."""

    def test_phases_are_created_and_updated(self):
        config = (
            ProjectTypeConfigBuilder("phased")
            .with_phase("plan", with_start_state("A"), with_outputs("doc"))
            .with_phase("plan", with_end_state("B"), with_tasks())
            .with_phase("build", with_inputs("doc"))
            .set_initial_state("A")
            .add_transition("A", "B", "go")
            .build()
        )

        plan = config.phase("plan")
        assert plan.start_state == "A"
        assert plan.end_state == "B"
        assert plan.allowed_outputs == ["doc"]
        assert plan.supports_tasks is True
        assert list(config.phases) == ["plan", "build"]
        assert config.get_task_supporting_phases() == ["plan"]
        assert config.phase("missing") is None

    def test_phase_introspection(self):
        config = (
            ProjectTypeConfigBuilder("phased")
            .with_phase("plan", with_start_state("A"), with_end_state("B"))
            .with_phase("build", with_start_state("B"), with_end_state("C"), with_tasks())
            .set_initial_state("A")
            .add_transition("A", "B", "go")
            .add_transition("B", "C", "next")
            .build()
        )

        assert config.phases_ending_at("B") == ["plan"]
        assert config.phases_starting_at("B") == ["build"]
        assert config.get_phase_for_state("C") == "build"
        assert config.is_phase_start_state("plan", "A")
        assert config.is_phase_end_state("build", "C")
        assert config.get_default_task_phase("A") == "build"
        assert config.states() == ["A", "B", "C"]

    def test_enum_states_and_events_are_normalised(self):
        config = (
            ProjectTypeConfigBuilder("colors")
            .set_initial_state(Color.RED)
            .add_transition(Color.RED, Color.GREEN, "go")
            .build()
        )

        assert config.initial_state == "Red"
        assert config.find_transition("Red", "go").to_state == "Green"
        assert config.get_transition(Color.RED, Color.GREEN, "go") is not None
        assert config.get_transition(Color.RED, Color.RED, "go") is None

    def test_config_collections_are_read_only(self):
        config = (
            ProjectTypeConfigBuilder("frozen")
            .with_phase("plan", with_start_state("A"))
            .set_initial_state("A")
            .add_transition("A", "B", "go")
            .build()
        )

        with pytest.raises(TypeError):
            config.phases["other"] = None
        assert isinstance(config.transitions, tuple)

    def test_builder_can_be_reused(self):
        builder = (
            ProjectTypeConfigBuilder("reuse")
            .with_phase("plan", with_outputs("doc"))
            .set_initial_state("A")
            .add_transition("A", "B", "go")
        )
        first = builder.build()
        builder.with_phase("plan", with_outputs("other"))
        second = builder.build()

        assert first.phase("plan").allowed_outputs == ["doc"]
        assert second.phase("plan").allowed_outputs == ["other"]

    def test_guard_description_is_kept(self):
        config = (
            ProjectTypeConfigBuilder("guarded")
            .set_initial_state("A")
            .add_transition("A", "B", "go", with_guard("ready", lambda p: True))
            .build()
        )
        assert config.find_transition("A", "go").guard_description == "ready"


class TestBranches:
    """Branch synthesis into transitions and a lookup-table determiner."""

    def build(self, discriminator):
        return (
            ProjectTypeConfigBuilder("branchy")
            .set_initial_state("Review")
            .add_branch(
                "Review",
                branch_on(discriminator),
                when("pass", "approve", "Done", with_description("Looks good")),
                when("fail", "reject", "Rework"),
            )
            .build()
        )

    def test_paths_become_transitions_in_value_order(self):
        config = self.build(lambda p: "pass")

        events = [tc.event for tc in config.transitions_from("Review")]
        assert events == ["reject", "approve"]
        assert config.find_transition("Review", "approve").description == "Looks good"
        assert config.branches["Review"].values() == ["fail", "pass"]

    def test_determiner_maps_value_to_event(self):
        config = self.build(lambda p: "fail")
        assert config.determine_event(None, "Review") == "reject"

    def test_unmatched_value_lists_valid_values(self):
        config = self.build(lambda p: "maybe")

        with pytest.raises(BranchUnmatchedError) as exc_info:
            config.determine_event(None, "Review")

        err = exc_info.value
        assert err.state == "Review"
        assert err.valid_values == ["fail", "pass"]
        assert 'discriminator value "maybe"' in str(err)
        assert '"fail", "pass"' in str(err)

    def test_none_discriminator_value_is_unmatched(self):
        config = self.build(lambda p: None)
        with pytest.raises(BranchUnmatchedError):
            config.determine_event(None, "Review")

    def test_determiner_is_branch_determiner(self):
        config = self.build(lambda p: "pass")
        assert isinstance(config.get_event_determiner("Review"), BranchDeterminer)

    def test_repeated_value_replaces_path(self):
        config = (
            ProjectTypeConfigBuilder("branchy")
            .set_initial_state("Review")
            .add_branch(
                "Review",
                branch_on(lambda p: "pass"),
                when("pass", "approve", "Done"),
                when("pass", "approve", "Archived"),
            )
            .build()
        )
        assert config.find_transition("Review", "approve").to_state == "Archived"
