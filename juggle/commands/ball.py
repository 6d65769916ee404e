"""
juggle ball - Create, inspect and update balls.
"""

import logging
from pathlib import Path

from juggle.balls.ball import Ball, BallState
from juggle.balls.deps import sort_for_agent_export, unsatisfied_dependencies, would_create_cycle
from juggle.balls.store import AmbiguousBallID, BallNotFound, BallStore
from juggle.lib.constants import ALL_SESSION
from juggle.lib.validate import ValidationError
from juggle.sessions.store import SessionStore

logger = logging.getLogger(__name__)


def _resolve(store: BallStore, ball_id: str) -> Ball | None:
    try:
        return store.resolve_ball(ball_id)
    except (BallNotFound, AmbiguousBallID) as e:
        print(f"ERROR: {e}")
        return None


def cmd_ball_add(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    tags = list(args.tag or [])
    if args.session:
        if args.session != ALL_SESSION and not SessionStore(project_dir).session_exists(args.session):
            print(f"ERROR: session not found: {args.session}")
            return 2
        if args.session != ALL_SESSION:
            tags.insert(0, args.session)

    depends_on = []
    for dep in args.depends_on or []:
        target = _resolve(store, dep)
        if target is None:
            return 2
        depends_on.append(target.id)

    try:
        ball = store.create_ball(
            title=args.title,
            context=args.context or "",
            priority=args.priority,
            tags=tags,
            acceptance_criteria=args.ac or [],
            depends_on=depends_on,
            model_size=args.model_size or "",
        )
    except ValidationError as e:
        print(f"ERROR: {e}")
        return 2

    print(f"Created {ball.id}: {ball.title}")
    return 0


def cmd_ball_list(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    session_id = args.session or ALL_SESSION
    balls = store.load_scope(session_id)
    if not args.all:
        balls = [b for b in balls if b.state != BallState.COMPLETE.value]

    if not balls:
        print("No balls")
        return 0

    states = {b.id: b.state for b in store.load_balls()}
    print(f"{'ID':<20} {'STATE':<12} {'PRIORITY':<9} {'MODEL':<7} TITLE")
    print("-" * 80)
    for ball in sort_for_agent_export(balls):
        line = f"{ball.id:<20} {ball.state:<12} {ball.priority:<9} {ball.model_size or '-':<7} {ball.title}"
        waiting = unsatisfied_dependencies(ball, states)
        if waiting and ball.state == BallState.PENDING.value:
            line += f"  (waiting on {', '.join(waiting)})"
        print(line)
    print("-" * 80)
    print(f"{len(balls)} ball(s)")
    return 0


def cmd_ball_show(args, project_dir: Path) -> int:
    ball = _resolve(BallStore(project_dir), args.id)
    if ball is None:
        return 2

    print(f"{ball.id}: {ball.title}")
    print(f"  State:    {ball.state}")
    print(f"  Priority: {ball.priority}")
    if ball.model_size:
        print(f"  Model:    {ball.model_size}")
    if ball.tags:
        print(f"  Tags:     {', '.join(ball.tags)}")
    if ball.depends_on:
        print(f"  Depends:  {', '.join(ball.depends_on)}")
    if ball.blocked_reason:
        print(f"  Blocked:  {ball.blocked_reason}")
    if ball.context:
        print(f"\n{ball.context}")
    if ball.acceptance_criteria:
        print("\nAcceptance Criteria")
        for i, ac in enumerate(ball.acceptance_criteria, 1):
            print(f"  {i}. {ac}")
    if ball.completion_note:
        print(f"\nCompleted: {ball.completion_note}")
    return 0


def cmd_ball_start(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    ball = _resolve(store, args.id)
    if ball is None:
        return 2

    if not ball.start():
        print(f"{ball.id} is {ball.state}, not pending; nothing to start")
        return 0
    store.update_ball(ball)
    print(f"Started {ball.id}")
    return 0


def cmd_ball_complete(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    ball = _resolve(store, args.id)
    if ball is None:
        return 2

    ball.complete(args.note or "")
    store.update_ball(ball)
    print(f"Completed {ball.id}")
    return 0


def cmd_ball_block(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    ball = _resolve(store, args.id)
    if ball is None:
        return 2
    if not args.reason.strip():
        print("ERROR: a reason is required to block a ball")
        return 2

    ball.block(args.reason)
    store.update_ball(ball)
    print(f"Blocked {ball.id}: {args.reason}")
    return 0


def cmd_ball_state(args, project_dir: Path) -> int:
    """Set a ball's state directly, for correcting mistakes."""
    store = BallStore(project_dir)
    ball = _resolve(store, args.id)
    if ball is None:
        return 2

    ball.set_state(args.state)
    if args.state == BallState.BLOCKED.value and args.reason:
        ball.blocked_reason = args.reason
    store.update_ball(ball)
    print(f"{ball.id} is now {ball.state}")
    return 0


def cmd_ball_deps(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    ball = _resolve(store, args.id)
    if ball is None:
        return 2

    def resolve_all(ids):
        resolved = []
        for dep_id in ids or []:
            dep = _resolve(store, dep_id)
            if dep is None:
                return None
            resolved.append(dep.id)
        return resolved

    to_add = resolve_all(args.add)
    to_set = resolve_all(args.set) if args.set is not None else None
    if to_add is None or (args.set is not None and to_set is None):
        return 2

    new_deps = (to_set or []) + to_add
    if ball.id in new_deps:
        print(f"ERROR: {ball.id} cannot depend on itself")
        return 2

    balls = store.load_balls()
    if to_set is not None:
        # Replacing the whole list: check against the ball without its old edges
        balls = [Ball(id=b.id, title=b.title, state=b.state, depends_on=[]) if b.id == ball.id else b
                 for b in balls]
    cycle = would_create_cycle(balls, ball.id, new_deps)
    if cycle is not None:
        print(f"ERROR: {cycle}")
        return 2

    changed = False
    if to_set is not None:
        ball.set_dependencies(to_set)
        changed = True
    for dep_id in to_add:
        changed = ball.add_dependency(dep_id) or changed
    for dep_id in args.remove or []:
        changed = ball.remove_dependency(dep_id) or changed

    if changed:
        store.update_ball(ball)

    if ball.depends_on:
        print(f"{ball.id} depends on: {', '.join(ball.depends_on)}")
    else:
        print(f"{ball.id} has no dependencies")
    return 0


def cmd_ball_archive(args, project_dir: Path) -> int:
    store = BallStore(project_dir)

    if args.completed:
        archived = store.archive_completed()
        print(f"Archived {len(archived)} ball(s)")
        return 0

    if not args.id:
        print("ERROR: give a ball ID or --completed")
        return 2

    ball = _resolve(store, args.id)
    if ball is None:
        return 2
    if ball.state != BallState.COMPLETE.value and not args.force:
        print(f"ERROR: {ball.id} is {ball.state}; only complete balls are archived (use --force)")
        return 2

    store.archive_ball(ball.id)
    print(f"Archived {ball.id}")
    return 0


def cmd_ball_unarchive(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    try:
        ball = store.unarchive_ball(args.id)
    except BallNotFound as e:
        print(f"ERROR: {e}")
        return 2
    print(f"Restored {ball.id} as pending")
    return 0


def cmd_ball_delete(args, project_dir: Path) -> int:
    store = BallStore(project_dir)
    ball = _resolve(store, args.id)
    if ball is None:
        return 2

    dependents = [b.id for b in store.load_balls() if ball.id in b.depends_on]
    if dependents and not args.force:
        print(f"ERROR: {', '.join(dependents)} depend on {ball.id} (use --force)")
        return 2

    store.delete_ball(ball.id)
    print(f"Deleted {ball.id}")
    return 0
