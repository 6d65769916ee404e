"""
juggle session / progress / worktree - Session records and their logs.
"""

import logging
from pathlib import Path

from juggle.balls.store import BallStore
from juggle.lib.constants import ALL_SESSION
from juggle.lib.validate import ValidationError
from juggle.lib.worktree import link_worktree, resolve_storage_dir, unlink_worktree
from juggle.runner.prompt import tail_lines
from juggle.sessions.store import SessionNotFound, SessionStore

logger = logging.getLogger(__name__)


def cmd_session_create(args, project_dir: Path) -> int:
    store = SessionStore(project_dir)
    try:
        session = store.create_session(
            args.id,
            description=args.description or "",
            context=args.context or "",
            default_model=args.default_model or "",
            acceptance_criteria=args.ac or [],
        )
    except (ValueError, ValidationError) as e:
        print(f"ERROR: {e}")
        return 2

    print(f"Created session {session.id}")
    return 0


def cmd_session_list(args, project_dir: Path) -> int:
    sessions = SessionStore(project_dir).list_sessions()
    if not sessions:
        print("No sessions")
        return 0

    balls = BallStore(project_dir).load_balls()
    print(f"{'SESSION':<24} {'BALLS':>7} DESCRIPTION")
    print("-" * 70)
    for session in sessions:
        if session.id == ALL_SESSION:
            scope = balls
        else:
            scope = [b for b in balls if b.has_tag(session.id)]
        done = sum(1 for b in scope if b.is_terminal())
        print(f"{session.id:<24} {f'{done}/{len(scope)}':>7} {session.description}")
    return 0


def cmd_session_show(args, project_dir: Path) -> int:
    try:
        session = SessionStore(project_dir).load_session(args.id)
    except SessionNotFound as e:
        print(f"ERROR: {e}")
        return 2

    print(f"Session: {session.id}")
    if session.description:
        print(f"  Description:   {session.description}")
    if session.default_model:
        print(f"  Default model: {session.default_model}")
    print(f"  Created:       {session.created_at[:19].replace('T', ' ')}")
    if session.context:
        print(f"\n{session.context}")
    if session.acceptance_criteria:
        print("\nAcceptance Criteria")
        for i, ac in enumerate(session.acceptance_criteria, 1):
            print(f"  {i}. {ac}")
    return 0


def cmd_session_delete(args, project_dir: Path) -> int:
    try:
        SessionStore(project_dir).delete_session(args.id)
    except SessionNotFound as e:
        print(f"ERROR: {e}")
        return 2
    print(f"Deleted session {args.id}")
    return 0


def cmd_progress_show(args, project_dir: Path) -> int:
    store = SessionStore(project_dir)
    if not store.session_exists(args.session):
        print(f"ERROR: session not found: {args.session}")
        return 2

    progress = store.load_progress(args.session)
    if not progress:
        print("No progress recorded")
        return 0
    print(tail_lines(progress, args.lines) if args.lines else progress.rstrip("\n"))
    return 0


def cmd_progress_append(args, project_dir: Path) -> int:
    store = SessionStore(project_dir)
    if not store.session_exists(args.session):
        print(f"ERROR: session not found: {args.session}")
        return 2
    store.append_progress(args.session, args.text)
    return 0


def cmd_worktree_link(args, project_dir: Path) -> int:
    try:
        link = link_worktree(Path(args.primary), project_dir)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2
    print(f"Linked {project_dir} -> {resolve_storage_dir(project_dir)}")
    logger.debug(f"Wrote {link}")
    return 0


def cmd_worktree_unlink(args, project_dir: Path) -> int:
    if not unlink_worktree(project_dir):
        print("Not a linked worktree")
        return 1
    print(f"Unlinked {project_dir}")
    return 0
