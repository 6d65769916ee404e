"""Tests for juggle.balls.ball module."""

import pytest

from juggle.balls.ball import Ball, BallState, parse_ball_id


def make_ball(**kwargs) -> Ball:
    kwargs.setdefault("id", "myapp-1")
    kwargs.setdefault("title", "Do the thing")
    return Ball(**kwargs)


class TestBallIdentity:

    def test_short_id_is_numeric_suffix(self):
        assert make_ball(id="my-app-12").short_id == "12"

    def test_parse_ball_id(self):
        assert parse_ball_id("my-app-12") == ("my-app", 12)
        assert parse_ball_id("noseq") is None

    def test_priority_weight(self):
        assert [make_ball(priority=p).priority_weight for p in ("low", "medium", "high", "urgent")] == [1, 2, 3, 4]

    def test_from_dict_drops_duplicate_dependencies(self):
        ball = Ball.from_dict({"id": "myapp-1", "title": "t", "depends_on": ["myapp-2", "myapp-2", "myapp-3"]})
        assert ball.depends_on == ["myapp-2", "myapp-3"]


class TestBallTransitions:
    """State operations never raise and always record the mutation."""

    def test_start_from_pending(self):
        ball = make_ball()
        assert ball.start() is True
        assert ball.state == BallState.IN_PROGRESS.value
        assert ball.started_at is not None
        assert ball.update_count == 1
        assert ball.last_activity is not None

    @pytest.mark.parametrize("state", ["in_progress", "blocked", "complete"])
    def test_start_elsewhere_is_noop(self, state):
        ball = make_ball(state=state)
        assert ball.start() is False
        assert ball.state == state
        assert ball.update_count == 0

    def test_block_sets_reason(self):
        ball = make_ball(state="in_progress")
        ball.block("needs credentials")
        assert ball.state == "blocked"
        assert ball.blocked_reason == "needs credentials"
        assert ball.update_count == 1

    def test_complete_from_blocked(self):
        ball = make_ball(state="blocked", blocked_reason="waiting")
        ball.complete("done after all")
        assert ball.state == "complete"
        assert ball.completion_note == "done after all"
        assert ball.completed_at is not None
        assert ball.blocked_reason == ""

    def test_complete_from_pending(self):
        ball = make_ball()
        ball.complete()
        assert ball.state == "complete"

    def test_set_state_is_unconditional(self):
        ball = make_ball(state="complete")
        ball.set_state("in_progress")
        assert ball.state == "in_progress"
        assert ball.update_count == 1

    def test_set_state_clears_reason_when_leaving_blocked(self):
        ball = make_ball(state="blocked", blocked_reason="x")
        ball.set_state("pending")
        assert ball.blocked_reason == ""

    def test_set_state_rejects_unknown(self):
        with pytest.raises(ValueError):
            make_ball().set_state("finished")

    def test_reset_clears_completion_but_keeps_metadata(self):
        ball = make_ball(state="complete", completion_note="n", completed_at="2026-01-01T00:00:00",
                         tags=["s1"], acceptance_criteria=["a"], priority="high", update_count=5)
        ball.reset()
        assert ball.state == "pending"
        assert ball.completion_note == ""
        assert ball.completed_at is None
        assert ball.tags == ["s1"]
        assert ball.acceptance_criteria == ["a"]
        assert ball.priority == "high"
        assert ball.update_count == 5

    def test_terminal_and_active(self):
        assert make_ball(state="blocked").is_terminal()
        assert make_ball(state="complete").is_terminal()
        assert make_ball(state="pending").is_active()
        assert not make_ball(state="blocked").is_active()


class TestBallDependencies:

    def test_add_is_idempotent(self):
        ball = make_ball()
        assert ball.add_dependency("myapp-2") is True
        assert ball.add_dependency("myapp-2") is False
        assert ball.depends_on == ["myapp-2"]
        assert ball.update_count == 1

    def test_self_dependency_allowed_at_data_layer(self):
        ball = make_ball()
        assert ball.add_dependency("myapp-1") is True
        assert ball.depends_on == ["myapp-1"]

    def test_remove_reports_result(self):
        ball = make_ball(depends_on=["myapp-2"])
        assert ball.remove_dependency("myapp-3") is False
        assert ball.remove_dependency("myapp-2") is True
        assert not ball.has_dependencies()

    def test_set_dependencies_replaces_and_dedups(self):
        ball = make_ball(depends_on=["myapp-2"])
        ball.set_dependencies(["myapp-3", "myapp-4", "myapp-3"])
        assert ball.depends_on == ["myapp-3", "myapp-4"]

    def test_tags(self):
        ball = make_ball()
        assert ball.add_tag("s1") is True
        assert ball.add_tag("s1") is False
        assert ball.has_tag("s1")
        assert ball.remove_tag("s1") is True
        assert not ball.has_tag("s1")
