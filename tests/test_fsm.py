"""Tests for juggle.workflow.fsm module."""

import pytest

from juggle.workflow.fsm import (
    ACTIVE_STATES,
    STATES,
    TERMINAL_STATES,
    TRANSITIONS,
    TRIGGER_FOR,
    BallFSM,
)


class FakeBall:
    def __init__(self, state="pending"):
        self.id = "myapp-1"
        self.state = state


class TestFSMStates:
    """Tests for FSM state definitions."""

    def test_all_states_defined(self):
        assert set(STATES) == {"pending", "in_progress", "blocked", "complete"}

    def test_terminal_and_active_partition_states(self):
        assert set(TERMINAL_STATES) | set(ACTIVE_STATES) == set(STATES)
        assert not set(TERMINAL_STATES) & set(ACTIVE_STATES)

    def test_wildcard_triggers_expanded(self):
        for state in STATES:
            assert TRIGGER_FOR[(state, "complete")] == "finish"
            assert TRIGGER_FOR[(state, "blocked")] == "block"

    def test_start_only_from_pending(self):
        start = [t for t in TRANSITIONS if t["trigger"] == "start"]
        assert start == [{"trigger": "start", "source": "pending", "dest": "in_progress"}]


class TestBallFSM:
    """Transitions write back onto the ball."""

    def test_start_moves_pending_to_in_progress(self):
        ball = FakeBall()
        BallFSM(ball).start()
        assert ball.state == "in_progress"

    @pytest.mark.parametrize("state", ["in_progress", "blocked", "complete"])
    def test_start_is_noop_outside_pending(self, state):
        ball = FakeBall(state)
        fsm = BallFSM(ball)
        assert not fsm.can("start")
        fsm.start()
        assert ball.state == state

    def test_blocked_can_complete(self):
        ball = FakeBall("blocked")
        BallFSM(ball).finish()
        assert ball.state == "complete"

    def test_resume_from_blocked(self):
        ball = FakeBall("blocked")
        BallFSM(ball).resume()
        assert ball.state == "in_progress"

    def test_callback_receives_transition(self):
        seen = []
        ball = FakeBall()
        BallFSM(ball, on_transition=lambda f, t, trig: seen.append((f, t, trig))).block()
        assert seen == [("pending", "blocked", "block")]

    def test_unknown_state_treated_as_pending(self, caplog):
        ball = FakeBall("bogus")
        fsm = BallFSM(ball)
        assert fsm.state == "pending"
        assert "Unknown state 'bogus'" in caplog.text

    def test_transition_logged(self, caplog):
        caplog.set_level("INFO")
        BallFSM(FakeBall()).start()
        assert "[BALL] myapp-1: pending -> in_progress (start)" in caplog.text


class TestMoveTo:
    """Administrative state changes."""

    def test_uses_named_trigger(self):
        seen = []
        ball = FakeBall()
        BallFSM(ball, on_transition=lambda f, t, trig: seen.append(trig)).move_to("in_progress")
        assert ball.state == "in_progress"
        assert seen == ["start"]

    def test_jumps_without_named_edge(self):
        seen = []
        ball = FakeBall("complete")
        BallFSM(ball, on_transition=lambda f, t, trig: seen.append(trig)).move_to("in_progress")
        assert ball.state == "in_progress"
        assert seen == ["set_state"]

    def test_same_state_returns_false(self):
        assert BallFSM(FakeBall("blocked")).move_to("blocked") is False

    def test_unknown_destination_raises(self):
        with pytest.raises(ValueError):
            BallFSM(FakeBall()).move_to("done")
