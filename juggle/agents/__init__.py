"""Agent runners and the completion signal protocol.

Use get_runner() to build the runner for a configured provider.
"""

from pathlib import Path

from juggle.agents.base import CommandRunner, Runner, RunnerError, RunOptions, RunResult
from juggle.agents.claude import ClaudeRunner
from juggle.agents.opencode import OpenCodeRunner
from juggle.agents.signals import Blocked, Complete, Continue, NoSignal, parse_signal

RUNNERS = {
    "claude": ClaudeRunner,
    "opencode": OpenCodeRunner,
}


def get_runner(provider: str, project_dir: Path | None = None) -> Runner:
    """Runner for provider, with agents.yaml overrides from project_dir."""
    if provider not in RUNNERS:
        raise ValueError(f"Unknown provider: {provider}")
    return RUNNERS[provider](project_dir=project_dir)
