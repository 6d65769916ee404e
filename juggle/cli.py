#!/usr/bin/env python3
"""juggle CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from juggle import __version__
from juggle.agents import RUNNERS
from juggle.balls.ball import BallState, ModelSize, Priority
from juggle.commands import agent as cmd_agent_module
from juggle.commands import ball as cmd_ball_module
from juggle.commands import session as cmd_session_module


def get_project_dir(args) -> Path:
    """Project directory from --project-dir, else the current directory."""
    return Path(args.project_dir or Path.cwd()).resolve()


def _dispatch(handler):
    def run(args):
        return handler(args, get_project_dir(args))
    run.__name__ = handler.__name__
    return run


PRIORITIES = [p.value for p in Priority]
MODEL_SIZES = [m.value for m in ModelSize if m.value]
STATES = [s.value for s in BallState]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='juggle', description='Run coding agents against a queue of balls')
    parser.add_argument('--project-dir', '-C', help='Project directory (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    parser.add_argument('--version', action='version', version=f'juggle {__version__}')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # juggle agent
    p_agent = subparsers.add_parser('agent', help='Run and inspect the agent loop')
    agent_sub = p_agent.add_subparsers(dest='agent_command', required=True)

    p_run = agent_sub.add_parser('run', help='Run the agent loop on a session')
    p_run.add_argument('session', help='Session ID, or "all"')
    p_run.add_argument('--iterations', '-n', type=int, help='Max iterations')
    p_run.add_argument('--trust', action='store_true', help='Skip agent permission prompts')
    p_run.add_argument('--delay', type=float, help='Seconds between iterations')
    p_run.add_argument('--fuzz', type=float, help='Random +/- seconds added to --delay')
    p_run.add_argument('--timeout', type=float, help='Overall time limit in seconds')
    p_run.add_argument('--max-wait', dest='max_wait', type=float, help='Max total seconds to wait on rate limits')
    p_run.add_argument('--model', '-m', help='Model to use for every iteration')
    p_run.add_argument('--ball', '-b', help='Work on this ball only')
    p_run.add_argument('--provider', choices=sorted(RUNNERS), help='Agent CLI to run')
    p_run.set_defaults(func=_dispatch(cmd_agent_module.cmd_agent_run))

    p_model = agent_sub.add_parser('model', help='Show model selection for a session')
    p_model.add_argument('session', help='Session ID, or "all"')
    p_model.add_argument('--model', '-m', help='Explicit model override')
    p_model.set_defaults(func=_dispatch(cmd_agent_module.cmd_agent_model))

    p_history = agent_sub.add_parser('history', help='Show past agent runs')
    p_history.add_argument('session', nargs='?', help='Only runs for this session')
    p_history.add_argument('--limit', type=int, default=20, help='Number of runs to show')
    p_history.set_defaults(func=_dispatch(cmd_agent_module.cmd_agent_history))

    # juggle session
    p_session = subparsers.add_parser('session', help='Manage sessions')
    session_sub = p_session.add_subparsers(dest='session_command', required=True)

    p_s_create = session_sub.add_parser('create', help='Create a session')
    p_s_create.add_argument('id', help='Session ID')
    p_s_create.add_argument('--description', '-d', help='Short description')
    p_s_create.add_argument('--context', '-c', help='Background shown to the agent')
    p_s_create.add_argument('--default-model', dest='default_model', choices=MODEL_SIZES,
                            help='Model size when no ball states a preference')
    p_s_create.add_argument('--ac', action='append', help='Acceptance criterion for every ball (repeatable)')
    p_s_create.set_defaults(func=_dispatch(cmd_session_module.cmd_session_create))

    p_s_list = session_sub.add_parser('list', help='List sessions')
    p_s_list.set_defaults(func=_dispatch(cmd_session_module.cmd_session_list))

    p_s_show = session_sub.add_parser('show', help='Show a session')
    p_s_show.add_argument('id', help='Session ID')
    p_s_show.set_defaults(func=_dispatch(cmd_session_module.cmd_session_show))

    p_s_delete = session_sub.add_parser('delete', help='Delete a session and its logs')
    p_s_delete.add_argument('id', help='Session ID')
    p_s_delete.set_defaults(func=_dispatch(cmd_session_module.cmd_session_delete))

    # juggle progress
    p_progress = subparsers.add_parser('progress', help='Session progress log')
    progress_sub = p_progress.add_subparsers(dest='progress_command', required=True)

    p_p_show = progress_sub.add_parser('show', help='Print the progress log')
    p_p_show.add_argument('session', help='Session ID')
    p_p_show.add_argument('--lines', '-n', type=int, default=0, help='Only the last N lines')
    p_p_show.set_defaults(func=_dispatch(cmd_session_module.cmd_progress_show))

    p_p_append = progress_sub.add_parser('append', help='Add an entry to the progress log')
    p_p_append.add_argument('session', help='Session ID')
    p_p_append.add_argument('text', help='Entry text')
    p_p_append.set_defaults(func=_dispatch(cmd_session_module.cmd_progress_append))

    # juggle ball
    p_ball = subparsers.add_parser('ball', help='Manage balls')
    ball_sub = p_ball.add_subparsers(dest='ball_command', required=True)

    p_b_add = ball_sub.add_parser('add', help='Create a ball')
    p_b_add.add_argument('title', help='Ball title')
    p_b_add.add_argument('--session', '-s', help='Session to add the ball to')
    p_b_add.add_argument('--context', '-c', help='Background for the agent')
    p_b_add.add_argument('--priority', '-p', choices=PRIORITIES, default=Priority.MEDIUM.value)
    p_b_add.add_argument('--model-size', dest='model_size', choices=MODEL_SIZES, help='Preferred model size')
    p_b_add.add_argument('--ac', action='append', help='Acceptance criterion (repeatable)')
    p_b_add.add_argument('--tag', '-t', action='append', help='Extra tag (repeatable)')
    p_b_add.add_argument('--depends-on', dest='depends_on', action='append', help='Ball this one waits for (repeatable)')
    p_b_add.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_add))

    p_b_list = ball_sub.add_parser('list', help='List balls in agent order')
    p_b_list.add_argument('session', nargs='?', help='Session ID (default: all)')
    p_b_list.add_argument('--all', '-a', action='store_true', help='Include complete balls')
    p_b_list.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_list))

    p_b_show = ball_sub.add_parser('show', help='Show a ball')
    p_b_show.add_argument('id', help='Ball ID or short ID')
    p_b_show.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_show))

    p_b_start = ball_sub.add_parser('start', help='Mark a pending ball in progress')
    p_b_start.add_argument('id', help='Ball ID or short ID')
    p_b_start.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_start))

    p_b_complete = ball_sub.add_parser('complete', help='Mark a ball complete')
    p_b_complete.add_argument('id', help='Ball ID or short ID')
    p_b_complete.add_argument('--note', '-n', help='Completion note')
    p_b_complete.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_complete))

    p_b_block = ball_sub.add_parser('block', help='Mark a ball blocked')
    p_b_block.add_argument('id', help='Ball ID or short ID')
    p_b_block.add_argument('reason', help='What a human needs to do')
    p_b_block.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_block))

    p_b_state = ball_sub.add_parser('state', help='Set a ball state directly')
    p_b_state.add_argument('id', help='Ball ID or short ID')
    p_b_state.add_argument('state', choices=STATES)
    p_b_state.add_argument('--reason', '-r', help='Blocked reason')
    p_b_state.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_state))

    p_b_deps = ball_sub.add_parser('deps', help='Show or change dependencies')
    p_b_deps.add_argument('id', help='Ball ID or short ID')
    p_b_deps.add_argument('--add', action='append', help='Add a dependency (repeatable)')
    p_b_deps.add_argument('--remove', action='append', help='Remove a dependency (repeatable)')
    p_b_deps.add_argument('--set', nargs='*', help='Replace all dependencies')
    p_b_deps.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_deps))

    p_b_archive = ball_sub.add_parser('archive', help='Move a complete ball to the archive')
    p_b_archive.add_argument('id', nargs='?', help='Ball ID or short ID')
    p_b_archive.add_argument('--completed', action='store_true', help='Archive every complete ball')
    p_b_archive.add_argument('--force', '-f', action='store_true', help='Archive even if not complete')
    p_b_archive.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_archive))

    p_b_unarchive = ball_sub.add_parser('unarchive', help='Restore an archived ball as pending')
    p_b_unarchive.add_argument('id', help='Full ball ID')
    p_b_unarchive.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_unarchive))

    p_b_delete = ball_sub.add_parser('delete', help='Delete a ball')
    p_b_delete.add_argument('id', help='Ball ID or short ID')
    p_b_delete.add_argument('--force', '-f', action='store_true', help='Delete even if other balls depend on it')
    p_b_delete.set_defaults(func=_dispatch(cmd_ball_module.cmd_ball_delete))

    # juggle worktree
    p_worktree = subparsers.add_parser('worktree', help='Share storage with a primary project')
    worktree_sub = p_worktree.add_subparsers(dest='worktree_command', required=True)

    p_w_link = worktree_sub.add_parser('link', help='Use the primary project\'s balls and sessions')
    p_w_link.add_argument('primary', help='Primary project directory')
    p_w_link.set_defaults(func=_dispatch(cmd_session_module.cmd_worktree_link))

    p_w_unlink = worktree_sub.add_parser('unlink', help='Remove the link')
    p_w_unlink.set_defaults(func=_dispatch(cmd_session_module.cmd_worktree_unlink))

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
