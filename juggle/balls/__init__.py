"""Balls: work items, their dependency graph, and the file-backed store."""

from juggle.balls.ball import Ball, BallState, ModelSize, Priority, parse_ball_id
from juggle.balls.deps import (
    CircularDependencyError,
    detect_circular_dependencies,
    sort_for_agent_export,
    unsatisfied_dependencies,
    would_create_cycle,
)
from juggle.balls.store import AmbiguousBallID, BallNotFound, BallStore
