"""Tests for juggle.runner.model_selection module."""

import pytest

from juggle.balls.ball import Ball
from juggle.runner.model_selection import (
    REASON_EXPLICIT,
    REASON_NO_ACTIVE,
    count_by_model,
    filter_active,
    prioritize_by_model,
    select_model,
    tier_for,
)


def ball(n, size="", state="pending"):
    return Ball(id=f"myapp-{n}", title=f"ball {n}", model_size=size, state=state)


class TestSelectModel:

    @pytest.mark.parametrize("balls", [[], [ball(1, "small")], [ball(1, "large", "complete")]])
    def test_explicit_model_always_wins(self, balls):
        selection = select_model("sonnet", balls, "small")
        assert selection.model == "sonnet"
        assert selection.reason == REASON_EXPLICIT

    def test_no_active_balls_is_largest(self):
        balls = [ball(1, "small", "complete"), ball(2, "small", "blocked")]
        selection = select_model("", balls)
        assert selection.model == "opus"
        assert selection.reason == REASON_NO_ACTIVE

    def test_empty_is_largest(self):
        assert select_model("", []).model == "opus"

    def test_majority_wins(self):
        balls = [ball(1, "small"), ball(2, "small"), ball(3, "large")]
        selection = select_model("", balls)
        assert selection.model == "haiku"
        assert selection.ball_count == 2

    def test_tie_goes_to_larger(self):
        assert select_model("", [ball(1, "small"), ball(2, "large")]).model == "opus"
        assert select_model("", [ball(1, "small"), ball(2, "medium")]).model == "sonnet"

    def test_only_active_balls_vote(self):
        balls = [ball(1, "large", "complete"), ball(2, "large", "blocked"), ball(3, "small", "in_progress")]
        assert select_model("", balls).model == "haiku"

    def test_blank_preferences_fall_back_to_session_default(self):
        selection = select_model("", [ball(1), ball(2)], "medium")
        assert selection.model == "sonnet"
        assert "session default" in selection.reason

    def test_blank_without_default_is_largest(self):
        assert select_model("", [ball(1)]).model == "opus"

    def test_blank_does_not_vote(self):
        assert select_model("", [ball(1), ball(2), ball(3, "small")], "large").model == "haiku"


class TestHelpers:

    def test_filter_active(self):
        balls = [ball(1), ball(2, state="in_progress"), ball(3, state="blocked"), ball(4, state="complete")]
        assert [b.id for b in filter_active(balls)] == ["myapp-1", "myapp-2"]

    def test_count_by_model(self):
        counts = count_by_model([ball(1, "small"), ball(2, "small"), ball(3), ball(4, "large")])
        assert counts == {"opus": 1, "sonnet": 0, "haiku": 2}

    def test_tier_for(self):
        assert tier_for("large") == "opus"
        assert tier_for("opus") == "opus"


class TestPrioritizeByModel:

    def test_matching_first_order_preserved(self):
        balls = [ball(1, "small"), ball(2, "large"), ball(3, "small"), ball(4, "large")]
        ordered = prioritize_by_model(balls, "opus")
        assert [b.id for b in ordered] == ["myapp-2", "myapp-4", "myapp-1", "myapp-3"]

    def test_blank_matches_through_session_default(self):
        balls = [ball(1, "small"), ball(2), ball(3, "medium")]
        ordered = prioritize_by_model(balls, "sonnet", "medium")
        assert [b.id for b in ordered] == ["myapp-2", "myapp-3", "myapp-1"]

    def test_blank_without_default_goes_after(self):
        balls = [ball(1), ball(2, "large")]
        assert [b.id for b in prioritize_by_model(balls, "opus")] == ["myapp-2", "myapp-1"]
