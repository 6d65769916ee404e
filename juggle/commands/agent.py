"""
juggle agent - Run the agent loop and inspect its decisions.
"""

import logging
from datetime import datetime
from pathlib import Path

from juggle.agents import RunnerError, get_runner
from juggle.balls.deps import sort_for_agent_export
from juggle.balls.store import AmbiguousBallID, BallNotFound, BallStore
from juggle.lib.agents_config import check_binary_available, get_provider_binary, load_agents_config
from juggle.lib.config import ConfigError, load_config
from juggle.lib.worktree import resolve_storage_dir
from juggle.runner.locking import SessionLocked, session_lock
from juggle.runner.loop import AgentLoop, AgentLoopConfig, AgentResult
from juggle.runner.model_selection import filter_active, prioritize_by_model, select_model
from juggle.sessions.history import AgentHistoryStore
from juggle.sessions.store import SessionNotFound, SessionStore

logger = logging.getLogger(__name__)


def build_loop_config(args, project_dir: Path) -> AgentLoopConfig:
    """Merge config.env defaults with command line flags."""
    config = load_config(project_dir)

    def pick(name, default):
        value = getattr(args, name, None)
        return default if value is None else value

    return AgentLoopConfig(
        session_id=args.session,
        project_dir=project_dir,
        max_iterations=pick("iterations", config.iterations),
        trust=bool(getattr(args, "trust", False)) or config.trust,
        iteration_delay=pick("delay", config.iteration_delay),
        delay_fuzz=pick("fuzz", config.delay_fuzz),
        timeout=pick("timeout", config.timeout),
        model=pick("model", "") or "",
        max_wait=pick("max_wait", config.max_wait),
        ball_id=pick("ball", "") or "",
        provider=pick("provider", config.provider),
    )


def print_summary(result: AgentResult, output_path: Path) -> None:
    started = datetime.fromisoformat(result.started_at)
    ended = datetime.fromisoformat(result.ended_at) if result.ended_at else datetime.now()

    print()
    print("=== Summary ===")
    print(f"Iterations: {result.iterations}")
    print(f"Balls completed: {result.balls_complete}/{result.balls_total}")
    if result.balls_blocked:
        print(f"Balls blocked: {result.balls_blocked}")
    print(f"Time elapsed: {round((ended - started).total_seconds())}s")
    if result.total_wait_time:
        print(f"Rate limit wait: {result.total_wait_time:g}s")

    if result.complete:
        print("Status: COMPLETE")
    elif result.blocked:
        print(f"Status: BLOCKED ({result.blocked_reason})")
    elif result.timed_out:
        print(f"Status: TIMEOUT ({result.timeout_message})")
    elif result.rate_limit_exceeded:
        print("Status: RATE LIMITED (max wait exceeded)")
    else:
        print("Status: Max iterations reached")

    print(f"\nOutput saved to: {output_path}")


def cmd_agent_run(args, project_dir: Path) -> int:
    """Run the agent loop on a session."""
    try:
        config = build_loop_config(args, project_dir)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 2

    if config.max_iterations < 1:
        print("ERROR: --iterations must be at least 1")
        return 2

    try:
        runner = get_runner(config.provider, project_dir)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2

    binary = get_provider_binary(load_agents_config(project_dir), config.provider)
    if not check_binary_available(binary):
        print(f"ERROR: '{binary}' not found in PATH")
        return 2

    if not SessionStore(project_dir).session_exists(config.session_id):
        print(f"ERROR: {SessionNotFound(config.session_id)}")
        return 2

    if config.trust:
        print("WARNING: Running with --trust. The agent has full system permissions.")
        print()

    print(f"Starting agent for session: {config.session_id}")
    print(f"Max iterations: {config.max_iterations}")
    print()

    loop = AgentLoop(config, runner)
    try:
        with session_lock(resolve_storage_dir(project_dir), config.session_id):
            result = loop.run()
    except SessionLocked as e:
        print(f"ERROR: {e}")
        print("Another agent loop is running on this session")
        return 3
    except (SessionNotFound, BallNotFound, AmbiguousBallID) as e:
        print(f"ERROR: {e}")
        return 2
    except RunnerError as e:
        print(f"ERROR: {e}")
        return 1

    print_summary(result, loop.output_path)

    return 0 if result.complete else 1


def cmd_agent_model(args, project_dir: Path) -> int:
    """Show which model the next iteration would use and the ball order."""
    sessions = SessionStore(project_dir)
    try:
        session = sessions.load_session(args.session)
    except SessionNotFound as e:
        print(f"ERROR: {e}")
        return 2

    balls = BallStore(project_dir).load_scope(args.session)
    selection = select_model(args.model or "", balls, session.default_model)

    print(f"Model: {selection.model}")
    print(f"Reason: {selection.reason}")
    active = filter_active(balls)
    print(f"Active balls: {len(active)}")

    shown = [b for b in balls if not b.is_terminal()]
    ordered = prioritize_by_model(sort_for_agent_export(shown), selection.model, session.default_model)
    if ordered:
        print()
        for ball in ordered:
            size = ball.model_size or "-"
            print(f"  {ball.id:<20} {ball.state:<12} {ball.priority:<8} {size:<7} {ball.title}")
    return 0


def cmd_agent_history(args, project_dir: Path) -> int:
    """List past agent runs, newest first."""
    records = AgentHistoryStore(project_dir).load_history(args.session, args.limit)
    if not records:
        print("No agent runs recorded")
        return 0

    print(f"{'STARTED':<20} {'SESSION':<16} {'RESULT':<15} {'ITER':>6} {'BALLS':>7} {'TIME':>6}")
    print("-" * 76)
    for r in records:
        started = r.started_at[:19].replace("T", " ")
        iters = f"{r.iterations}/{r.max_iterations}"
        balls = f"{r.balls_complete}/{r.balls_total}"
        print(f"{started:<20} {r.session_id:<16} {r.result:<15} {iters:>6} {balls:>7} {r.duration():>5.0f}s")
        if r.blocked_reason:
            print(f"{'':<20} blocked: {r.blocked_reason}")
        if r.error_message:
            print(f"{'':<20} error: {r.error_message}")
    return 0
