"""Tests for juggle.balls.deps module."""

import pytest

from juggle.balls.ball import Ball
from juggle.balls.deps import (
    CircularDependencyError,
    detect_circular_dependencies,
    sort_for_agent_export,
    unsatisfied_dependencies,
    would_create_cycle,
)


def ball(n, state="pending", priority="medium", deps=()):
    return Ball(id=f"myapp-{n}", title=f"ball {n}", state=state, priority=priority, depends_on=list(deps))


class TestDetectCircularDependencies:

    def test_no_dependencies(self):
        detect_circular_dependencies([ball(1), ball(2)])

    def test_chain_is_fine(self):
        detect_circular_dependencies([ball(1, deps=["myapp-2"]), ball(2, deps=["myapp-3"]), ball(3)])

    def test_diamond_is_fine(self):
        # 1 -> 2 -> 4, 1 -> 3 -> 4
        balls = [
            ball(1, deps=["myapp-2", "myapp-3"]),
            ball(2, deps=["myapp-4"]),
            ball(3, deps=["myapp-4"]),
            ball(4),
        ]
        detect_circular_dependencies(balls)

    def test_two_node_cycle(self):
        with pytest.raises(CircularDependencyError) as exc_info:
            detect_circular_dependencies([ball(1, deps=["myapp-2"]), ball(2, deps=["myapp-1"])])
        assert str(exc_info.value) == "circular dependency detected: myapp-1 → myapp-2 → myapp-1"
        assert exc_info.value.path == ["myapp-1", "myapp-2", "myapp-1"]

    def test_self_cycle(self):
        with pytest.raises(CircularDependencyError):
            detect_circular_dependencies([ball(1, deps=["myapp-1"])])

    def test_long_cycle(self):
        balls = [ball(1, deps=["myapp-2"]), ball(2, deps=["myapp-3"]), ball(3, deps=["myapp-1"])]
        with pytest.raises(CircularDependencyError) as exc_info:
            detect_circular_dependencies(balls)
        assert len(exc_info.value.path) == 4

    def test_external_dependencies_ignored(self):
        detect_circular_dependencies([ball(1, deps=["other-7"]), ball(2, deps=["myapp-1", "other-8"])])

    @pytest.mark.parametrize("cyclic", [True, False])
    def test_external_edge_never_changes_verdict(self, cyclic):
        base = [ball(1, deps=["myapp-2"]), ball(2, deps=["myapp-1"] if cyclic else [])]
        extended = [ball(1, deps=["myapp-2", "elsewhere-1"]), base[1]]

        def verdict(balls):
            try:
                detect_circular_dependencies(balls)
            except CircularDependencyError:
                return True
            return False

        assert verdict(base) == verdict(extended) == cyclic

    def test_deep_chain_is_fine(self):
        n = 1500
        balls = [ball(i, deps=[f"myapp-{i + 1}"] if i < n else []) for i in range(1, n + 1)]
        detect_circular_dependencies(balls)

    def test_deep_chain_closed_into_cycle(self):
        n = 1500
        balls = [ball(i, deps=[f"myapp-{i % n + 1}"]) for i in range(1, n + 1)]
        with pytest.raises(CircularDependencyError) as exc_info:
            detect_circular_dependencies(balls)
        assert len(exc_info.value.path) == n + 1
        assert exc_info.value.path[0] == exc_info.value.path[-1] == "myapp-1"

    def test_short_id_dependency_in_cycle(self):
        with pytest.raises(CircularDependencyError) as exc_info:
            detect_circular_dependencies([ball(1, deps=["2"]), ball(2, deps=["myapp-1"])])
        assert exc_info.value.path == ["myapp-1", "myapp-2", "myapp-1"]

    def test_ambiguous_short_id_treated_as_external(self):
        balls = [
            Ball(id="myapp-1", title="a", depends_on=["2"]),
            Ball(id="myapp-2", title="b", depends_on=["myapp-1"]),
            Ball(id="other-2", title="c"),
        ]
        detect_circular_dependencies(balls)


class TestWouldCreateCycle:

    def test_detects_closing_edge(self):
        balls = [ball(1, deps=["myapp-2"]), ball(2)]
        err = would_create_cycle(balls, "myapp-2", ["myapp-1"])
        assert isinstance(err, CircularDependencyError)
        # Input balls untouched
        assert balls[1].depends_on == []

    def test_allows_safe_edge(self):
        assert would_create_cycle([ball(1), ball(2)], "myapp-2", ["myapp-1"]) is None


class TestSortForAgentExport:

    def test_bucket_order(self):
        balls = [
            ball(1, state="complete", priority="urgent"),
            ball(2, state="blocked", priority="urgent"),
            ball(3, state="pending", priority="urgent", deps=["myapp-5"]),
            ball(4, state="pending", priority="low"),
            ball(5, state="in_progress", priority="low"),
        ]
        assert [b.id for b in sort_for_agent_export(balls)] == [
            "myapp-5", "myapp-4", "myapp-3", "myapp-2", "myapp-1",
        ]

    def test_priority_within_bucket(self):
        balls = [ball(1, priority="low"), ball(2, priority="urgent"), ball(3, priority="high")]
        assert [b.id for b in sort_for_agent_export(balls)] == ["myapp-2", "myapp-3", "myapp-1"]

    def test_complete_dependency_is_satisfied(self):
        balls = [ball(1, priority="urgent", deps=["myapp-2"]), ball(2, state="complete"), ball(3, priority="low")]
        assert [b.id for b in sort_for_agent_export(balls)][:2] == ["myapp-1", "myapp-3"]

    def test_external_dependency_is_satisfied(self):
        balls = [ball(1, priority="low"), ball(2, priority="urgent", deps=["other-1"])]
        assert [b.id for b in sort_for_agent_export(balls)] == ["myapp-2", "myapp-1"]

    def test_stable_for_equal_keys(self):
        balls = [ball(3), ball(1), ball(2)]
        assert [b.id for b in sort_for_agent_export(balls)] == ["myapp-3", "myapp-1", "myapp-2"]

    def test_complete_always_last_and_in_progress_before_pending(self):
        balls = [ball(i, state=s, priority=p) for i, (s, p) in enumerate([
            ("complete", "urgent"), ("pending", "urgent"), ("in_progress", "low"),
            ("blocked", "high"), ("pending", "low"), ("complete", "low"),
        ])]
        ordered = [b.state for b in sort_for_agent_export(balls)]
        last_active = max(i for i, s in enumerate(ordered) if s != "complete")
        first_complete = ordered.index("complete")
        assert last_active < first_complete
        assert ordered.index("in_progress") < ordered.index("pending")


class TestUnsatisfiedDependencies:

    def test_lists_only_in_set_incomplete(self):
        b = ball(1, deps=["myapp-2", "myapp-3", "other-1"])
        states = {"myapp-2": "complete", "myapp-3": "blocked"}
        assert unsatisfied_dependencies(b, states) == ["myapp-3"]
