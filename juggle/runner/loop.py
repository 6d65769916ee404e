"""
Agent iteration loop.

Each iteration reloads the balls in scope, picks a model, hands the agent
a prompt and reads back its signal. The signal is never taken on its own:
COMPLETE (or silence) only ends the run once every ball in scope is
terminal. BLOCKED always ends it, CONTINUE skips the check for that turn.

Stop conditions are reported through AgentResult flags. Only setup errors
(unknown session, unresolvable ball target) raise.
"""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from juggle.agents import Blocked, Complete, Continue, Runner, RunOptions, RunResult, get_runner, parse_signal
from juggle.balls.ball import Ball, BallState
from juggle.balls.deps import sort_for_agent_export
from juggle.balls.store import BallStore
from juggle.lib.constants import LAST_OUTPUT_FILE, OVERLOAD_BASE_WAIT, OVERLOAD_MAX_WAIT
from juggle.runner.model_selection import prioritize_by_model, select_model
from juggle.runner.prompt import build_agent_prompt
from juggle.sessions.history import (
    RESULT_BLOCKED,
    RESULT_COMPLETE,
    RESULT_ERROR,
    RESULT_MAX_ITERATIONS,
    RESULT_RATE_LIMIT,
    RESULT_TIMEOUT,
    AgentHistoryStore,
    AgentRunRecord,
)
from juggle.sessions.store import Session, SessionStore

logger = logging.getLogger(__name__)

SEPARATOR = "\n" + "-" * 60 + "\n"


@dataclass
class AgentLoopConfig:
    session_id: str
    project_dir: Path
    max_iterations: int = 10
    trust: bool = False
    iteration_delay: float = 0.0
    delay_fuzz: float = 0.0
    timeout: float = 0.0  # Overall budget in seconds, 0 = none
    model: str = ""  # Explicit model, overrides selection
    max_wait: float = 0.0  # Rate-limit waiting budget, 0 = unlimited
    ball_id: str = ""  # Work on this one ball only
    provider: str = "claude"


@dataclass
class AgentResult:
    iterations: int = 0
    complete: bool = False
    blocked: bool = False
    blocked_reason: str = ""
    timed_out: bool = False
    timeout_message: str = ""
    rate_limit_exceeded: bool = False
    balls_complete: int = 0
    balls_blocked: int = 0
    balls_total: int = 0
    total_wait_time: float = 0.0
    overload_retries: int = 0
    commit_message: str = ""
    started_at: str = field(default_factory=lambda: datetime.now().isoformat())
    ended_at: str | None = None

    @property
    def outcome(self) -> str:
        if self.complete:
            return RESULT_COMPLETE
        if self.blocked:
            return RESULT_BLOCKED
        if self.timed_out:
            return RESULT_TIMEOUT
        if self.rate_limit_exceeded:
            return RESULT_RATE_LIMIT
        return RESULT_MAX_ITERATIONS

    def count(self, balls: list[Ball]) -> None:
        """Record terminal-state counts for the balls in scope."""
        self.balls_total = len(balls)
        self.balls_complete = sum(1 for b in balls if b.state == BallState.COMPLETE.value)
        self.balls_blocked = sum(1 for b in balls if b.state == BallState.BLOCKED.value)


def fuzzed_delay(base: float, fuzz: float) -> float:
    """base +/- a uniform random amount up to fuzz, never below zero."""
    if fuzz <= 0:
        return max(base, 0.0)
    return max(base + random.uniform(-fuzz, fuzz), 0.0)


def all_terminal(balls: list[Ball]) -> bool:
    """True when nothing in scope is pending or in progress. Empty scope counts."""
    return all(b.is_terminal() for b in balls)


class AgentLoop:
    """One agent run over a session (or a single targeted ball).

    The runner is injected so tests can script the agent's replies.
    """

    def __init__(
        self,
        config: AgentLoopConfig,
        runner: Runner,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config
        self.runner = runner
        self.ball_store = BallStore(config.project_dir)
        self.session_store = SessionStore(config.project_dir)
        self.history_store = AgentHistoryStore(config.project_dir)
        self._sleep = sleep
        self._clock = clock
        self._deadline: Optional[float] = None
        self._target: str = ""

    @property
    def output_path(self) -> Path:
        return self.session_store.session_dir(self.config.session_id) / LAST_OUTPUT_FILE

    def run(self) -> AgentResult:
        """Run the loop to a stop condition.

        Raises:
            SessionNotFound: the session does not exist
            BallNotFound, AmbiguousBallID: the ball target cannot be resolved
        """
        cfg = self.config
        session = self.session_store.load_session(cfg.session_id)
        if cfg.ball_id:
            self._target = self.ball_store.resolve_ball(cfg.ball_id).id

        if cfg.timeout > 0:
            self._deadline = self._clock() + cfg.timeout

        logger.info(f"[LOOP] starting {cfg.session_id}: max_iterations={cfg.max_iterations} "
                    f"target={self._target or '-'} timeout={cfg.timeout:g}")

        result = AgentResult()
        error = ""
        try:
            self._iterate(session, result)
        except Exception as e:
            error = str(e)
            raise
        finally:
            result.ended_at = datetime.now().isoformat()
            self._save_history(result, error)

        logger.info(f"[LOOP] finished {cfg.session_id}: {result.outcome} after {result.iterations} iteration(s)")
        return result

    def _iterate(self, session: Session, result: AgentResult) -> None:
        cfg = self.config

        for iteration in range(1, cfg.max_iterations + 1):
            if self._remaining() == 0:
                self._stop_deadline(result, iteration)
                return

            if iteration > 1:
                print(SEPARATOR)
            print(f"=== Iteration {iteration}/{cfg.max_iterations} ===")
            result.iterations = iteration

            balls = self._load_scope()
            selection = select_model(cfg.model, balls, session.default_model)
            logger.info(f"[LOOP] iteration {iteration}: model {selection.model} ({selection.reason})")

            prompt = build_agent_prompt(
                session,
                self._prompt_balls(balls, selection.model, session.default_model),
                self.session_store.load_progress(cfg.session_id),
                single_ball=bool(self._target),
            )

            run = self._run_agent(prompt, selection.model, iteration, result)
            if run is None:
                return

            if run.output:
                print(run.output)

            signal = parse_signal(run.output)

            if isinstance(signal, Blocked):
                result.blocked = True
                result.blocked_reason = signal.reason
                result.count(self._load_scope())
                print(f"\nAgent signaled BLOCKED: {signal.reason}")
                return

            if isinstance(signal, Continue):
                if signal.message:
                    result.commit_message = signal.message
                print("\nAgent signaled CONTINUE, moving to next iteration")
                self._pause(iteration)
                continue

            balls = self._load_scope()
            result.count(balls)

            if all_terminal(balls):
                result.complete = True
                if isinstance(signal, Complete) and signal.message:
                    result.commit_message = signal.message
                print(f"\nAll balls terminal: {result.balls_complete} complete, "
                      f"{result.balls_blocked} blocked, {result.balls_total} total")
                return

            if isinstance(signal, Complete):
                active = result.balls_total - result.balls_complete - result.balls_blocked
                message = (f"Iteration {iteration}: agent signaled COMPLETE but "
                           f"{active} ball(s) are still pending or in progress")
                logger.warning(f"[LOOP] {message}")
                print(f"\nWARNING: {message}")
                self.session_store.append_progress(cfg.session_id, f"[WARNING] {message}")

            print(f"Progress: {result.balls_complete}/{result.balls_total} balls complete")
            self._pause(iteration)

    def _load_scope(self) -> list[Ball]:
        if self._target:
            # A target that disappears mid-run leaves an empty scope
            return [b for b in self.ball_store.load_balls() if b.id == self._target]
        return self.ball_store.load_scope(self.config.session_id)

    def _prompt_balls(self, balls: list[Ball], model: str, session_default: str) -> list[Ball]:
        if self._target:
            return balls
        shown = [b for b in balls if not b.is_terminal()]
        return prioritize_by_model(sort_for_agent_export(shown), model, session_default)

    def _remaining(self) -> Optional[float]:
        """Seconds left in the overall budget, None without a timeout."""
        if self._deadline is None:
            return None
        return max(self._deadline - self._clock(), 0.0)

    def _run_agent(self, prompt: str, model: str, iteration: int, result: AgentResult) -> RunResult | None:
        """Invoke the runner, retrying the same iteration while rate limited.

        Returns None when the run must stop (timeout or wait budget spent).
        """
        cfg = self.config
        backoff = OVERLOAD_BASE_WAIT

        while True:
            remaining = self._remaining()
            if remaining == 0:
                self._stop_deadline(result, iteration)
                return None

            run = self.runner.run(RunOptions(
                prompt=prompt,
                model=model,
                trust=cfg.trust,
                timeout=remaining or 0,
                working_dir=Path(cfg.project_dir),
            ))
            self._save_output(run)

            if run.timed_out:
                message = f"Iteration {iteration} timed out"
                if remaining:
                    message += f" after {remaining:.0f}s"
                self.session_store.append_progress(cfg.session_id, f"[TIMEOUT] {message}")
                self._stop_timeout(result, message)
                return None

            if not (run.rate_limited or run.overload_exhausted):
                return run

            wait = run.retry_after
            if wait is None or (wait <= 0 and run.overload_exhausted):
                # No usable duration from the provider
                wait = backoff
                backoff = min(backoff * 2, OVERLOAD_MAX_WAIT)
                if run.overload_exhausted:
                    result.overload_retries += 1

            if cfg.max_wait > 0 and result.total_wait_time + wait > cfg.max_wait:
                message = (f"Iteration {iteration}: rate limit wait of {wait:g}s would exceed "
                           f"max wait of {cfg.max_wait:g}s ({result.total_wait_time:g}s already spent)")
                self.session_store.append_progress(cfg.session_id, f"[RATE_LIMIT] {message}")
                logger.warning(f"[LOOP] {message}")
                print(f"\n{message}")
                result.rate_limit_exceeded = True
                return None

            message = f"Iteration {iteration}: rate limited, retrying in {wait:g}s"
            self.session_store.append_progress(cfg.session_id, f"[RATE_LIMIT] {message}")
            logger.info(f"[LOOP] {message}")
            print(message)
            if wait > 0:
                self._sleep(wait)
            result.total_wait_time += wait

    def _stop_timeout(self, result: AgentResult, message: str) -> None:
        result.timed_out = True
        result.timeout_message = message
        result.count(self._load_scope())
        logger.warning(f"[LOOP] {message}")
        print(f"\nTIMEOUT: {message}")

    def _stop_deadline(self, result: AgentResult, iteration: int) -> None:
        message = f"overall timeout of {self.config.timeout:g}s exceeded"
        self.session_store.append_progress(self.config.session_id, f"[TIMEOUT] Iteration {iteration}: {message}")
        self._stop_timeout(result, message)

    def _pause(self, iteration: int) -> None:
        if iteration >= self.config.max_iterations:
            return
        delay = fuzzed_delay(self.config.iteration_delay, self.config.delay_fuzz)
        if delay > 0:
            print(f"Waiting {delay:.1f}s before next iteration...")
            self._sleep(delay)

    def _save_output(self, run: RunResult) -> None:
        path = self.output_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(run.log_text())
        except OSError as e:
            logger.warning(f"Failed to save agent output to {path}: {e}")

    def _save_history(self, result: AgentResult, error: str) -> None:
        cfg = self.config
        record = AgentRunRecord.new(cfg.session_id, cfg.project_dir, datetime.fromisoformat(result.started_at))
        record.ended_at = result.ended_at
        record.iterations = result.iterations
        record.max_iterations = cfg.max_iterations
        record.result = RESULT_ERROR if error else result.outcome
        record.blocked_reason = result.blocked_reason
        record.timeout_message = result.timeout_message
        record.error_message = error
        record.balls_complete = result.balls_complete
        record.balls_blocked = result.balls_blocked
        record.balls_total = result.balls_total
        record.total_wait_time = result.total_wait_time
        record.output_file = str(self.output_path)
        try:
            self.history_store.append_record(record)
        except OSError as e:
            logger.warning(f"Failed to write agent history: {e}")


def run_agent_loop(config: AgentLoopConfig, runner: Runner | None = None) -> AgentResult:
    """Run the agent loop with config.provider's runner unless one is given."""
    if runner is None:
        runner = get_runner(config.provider, config.project_dir)
    return AgentLoop(config, runner).run()
