"""
Dependency graph over a set of balls.

Edges run from a ball to each ID in its depends_on list. Only targets that
are part of the given set are considered; anything else may live in another
project and is treated as already satisfied.
"""

from typing import Iterable

from juggle.balls.ball import Ball, BallState


class CircularDependencyError(Exception):
    """A dependency cycle exists among the given balls."""

    def __init__(self, path: list[str]):
        self.path = path
        super().__init__(f"circular dependency detected: {' → '.join(path)}")


# DFS colouring
_VISITING = 1
_VISITED = 2


def _aliases(ids: Iterable[str]) -> dict[str, str]:
    """Map full IDs, and short IDs that are unique in the set, to full IDs."""
    ids = list(ids)
    aliases = {i: i for i in ids}
    shorts: dict[str, list[str]] = {}
    for i in ids:
        _, sep, tail = i.rpartition("-")
        if sep and tail:
            shorts.setdefault(tail, []).append(i)
    for short, owners in shorts.items():
        if len(owners) == 1 and short not in aliases:
            aliases[short] = owners[0]
    return aliases


def detect_circular_dependencies(balls: Iterable[Ball]) -> None:
    """Raise CircularDependencyError if the in-set dependency graph has a cycle.

    Diamonds (two paths to the same ancestor) are fine: only a back edge to a
    node still on the DFS stack counts as a cycle. Dependencies may name a
    ball by its short ID when that suffix is unique in the set.
    """
    raw: dict[str, list[str]] = {}
    for ball in balls:
        raw[ball.id] = ball.depends_on
    aliases = _aliases(raw)
    graph = {
        node: [aliases[dep] for dep in deps if dep in aliases]
        for node, deps in raw.items()
    }

    colour: dict[str, int] = {}

    for root in graph:
        if root in colour:
            continue
        colour[root] = _VISITING
        path = [root]
        frames = [iter(graph[root])]
        while frames:
            for dep in frames[-1]:
                state = colour.get(dep)
                if state == _VISITING:
                    raise CircularDependencyError(path[path.index(dep):] + [dep])
                if state is None:
                    colour[dep] = _VISITING
                    path.append(dep)
                    frames.append(iter(graph[dep]))
                    break
            else:
                frames.pop()
                colour[path.pop()] = _VISITED


def would_create_cycle(balls: Iterable[Ball], ball_id: str, new_deps: Iterable[str]) -> CircularDependencyError | None:
    """Check whether giving ball_id the extra dependencies closes a cycle.

    Returns the error that detect_circular_dependencies would raise, or None.
    The balls themselves are not modified.
    """
    extra = list(new_deps)
    trial = []
    for ball in balls:
        if ball.id == ball_id:
            deps = ball.depends_on + [d for d in extra if d not in ball.depends_on]
            ball = Ball(id=ball.id, title=ball.title, state=ball.state, depends_on=deps)
        trial.append(ball)
    try:
        detect_circular_dependencies(trial)
    except CircularDependencyError as e:
        return e
    return None


def unsatisfied_dependencies(ball: Ball, states: dict[str, str]) -> list[str]:
    """Dependencies of ball that are in the set and not yet complete.

    Args:
        ball: Ball whose dependencies to check
        states: Mapping of ball ID -> state for the current set
    """
    return [
        dep for dep in ball.depends_on
        if dep in states and states[dep] != BallState.COMPLETE.value
    ]


def _bucket(ball: Ball, states: dict[str, str]) -> int:
    if ball.state == BallState.IN_PROGRESS.value:
        return 0
    if ball.state == BallState.PENDING.value:
        return 2 if unsatisfied_dependencies(ball, states) else 1
    if ball.state == BallState.BLOCKED.value:
        return 3
    return 4


def sort_for_agent_export(balls: Iterable[Ball]) -> list[Ball]:
    """Order balls for presentation to the agent.

    Buckets, each sorted by priority weight descending:
        1. in_progress
        2. pending with every dependency satisfied
        3. pending waiting on an unfinished dependency
        4. blocked
        5. complete

    The sort is stable, so equal-priority balls keep their input order.
    """
    balls = list(balls)
    states = {b.id: b.state for b in balls}
    return sorted(balls, key=lambda b: (_bucket(b, states), -b.priority_weight))
