"""Shared fixtures for juggle tests."""

from dataclasses import dataclass, field

import pytest

from juggle.agents.base import Runner, RunOptions, RunResult
from juggle.balls.store import BallStore
from juggle.lib.prompts import clear_cache
from juggle.sessions.store import SessionStore


@dataclass
class ScriptedRunner(Runner):
    """Runner that replays canned results and records every call.

    A step may be a RunResult or a callable taking RunOptions and returning
    one, for agents that mutate balls mid-turn. Once the script runs out
    the last step repeats.
    """
    steps: list = field(default_factory=list)
    calls: list[RunOptions] = field(default_factory=list)

    def run(self, options: RunOptions) -> RunResult:
        self.calls.append(options)
        index = min(len(self.calls), len(self.steps)) - 1
        step = self.steps[index]
        if callable(step):
            return step(options)
        return step


def output(text: str) -> RunResult:
    return RunResult(output=text, exit_code=0)


@pytest.fixture
def project_dir(tmp_path):
    d = tmp_path / "myapp"
    d.mkdir()
    return d


@pytest.fixture
def ball_store(project_dir):
    return BallStore(project_dir)


@pytest.fixture
def session_store(project_dir):
    return SessionStore(project_dir)


@pytest.fixture(autouse=True)
def _fresh_prompt_cache():
    clear_cache()
    yield
    clear_cache()
