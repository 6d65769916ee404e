"""
Runner interface for agent CLIs.

The agent loop only talks to a Runner. Concrete runners wrap a provider
CLI (claude, opencode); tests hand the loop a scripted one instead.
"""

import logging
import os
import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from juggle.agents.output import is_overload_exhausted, is_rate_limited, parse_retry_after
from juggle.lib.agents_config import AgentsConfig, get_provider_command, load_agents_config
from juggle.lib.constants import LARGEST_TIER

logger = logging.getLogger(__name__)

AUTONOMOUS_SYSTEM_PROMPT = (
    "CRITICAL: You are an autonomous agent. DO NOT ask questions. DO NOT summarize. "
    "DO NOT wait for confirmation. START WORKING IMMEDIATELY. "
    "Execute the workflow in the prompt without any preamble."
)


class RunnerError(Exception):
    """The agent command could not be started."""
    pass


@dataclass
class RunOptions:
    prompt: str
    model: str = ""
    trust: bool = False  # Skip permission prompts entirely
    timeout: float = 0  # Seconds, 0 = no limit
    working_dir: Path | None = None
    system_prompt: str = AUTONOMOUS_SYSTEM_PROMPT


@dataclass
class RunResult:
    output: str = ""
    exit_code: int = 0
    timed_out: bool = False
    rate_limited: bool = False
    retry_after: float | None = None  # Seconds suggested by the provider, None if not stated
    overload_exhausted: bool = False
    error: str = ""
    command: list[str] = field(default_factory=list)

    def log_text(self) -> str:
        """Render in the same sectioned format as the run logs."""
        return (
            f"=== COMMAND ===\n{' '.join(self.command)}\n\n"
            f"=== EXIT CODE ===\n{self.exit_code}\n\n"
            f"=== OUTPUT ===\n{self.output}\n"
            + (f"\n=== ERROR ===\n{self.error}\n" if self.error else "")
        )


class Runner(ABC):
    """Runs one agent turn."""

    @abstractmethod
    def run(self, options: RunOptions) -> RunResult:
        ...


class CommandRunner(Runner):
    """Runner backed by a provider CLI command template from agents.yaml.

    Subclasses set `provider` and map canonical model and permission
    values to the provider's flags.
    """

    provider = ""

    def __init__(self, agents_config: AgentsConfig | None = None, project_dir: Path | None = None):
        self.agents_config = agents_config or load_agents_config(project_dir)

    def map_model(self, model: str) -> str:
        return model

    def permission_flags(self, trust: bool) -> list[str]:
        return []

    def child_env(self) -> dict[str, str]:
        return dict(os.environ)

    def build_command(self, options: RunOptions):
        return get_provider_command(self.agents_config, self.provider, {
            "model": self.map_model(options.model or LARGEST_TIER),
            "permission": self.permission_flags(options.trust),
            "system_prompt": options.system_prompt,
            "prompt": options.prompt,
        })

    def run(self, options: RunOptions) -> RunResult:
        command = self.build_command(options)
        timeout = options.timeout if options.timeout and options.timeout > 0 else None

        logger.info(f"[RUNNER] {self.provider}: model={options.model or LARGEST_TIER} trust={options.trust} timeout={timeout}")
        start = time.time()

        try:
            proc = subprocess.run(
                command.cmd,
                cwd=str(options.working_dir) if options.working_dir else None,
                input=command.get_stdin_input(options.prompt),
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self.child_env(),
            )
        except subprocess.TimeoutExpired as e:
            partial = e.stdout or ""
            if isinstance(partial, bytes):
                partial = partial.decode(errors="replace")
            return RunResult(
                output=partial,
                exit_code=-1,
                timed_out=True,
                error=f"iteration timed out after {options.timeout:g}s",
                command=command.cmd,
            )
        except OSError as e:
            raise RunnerError(f"failed to start {command.cmd[0]}: {e}") from e

        duration = time.time() - start
        logger.debug(f"[RUNNER] {self.provider} exited {proc.returncode} after {duration:.1f}s")

        output = proc.stdout
        if proc.stderr:
            output = f"{output}\n{proc.stderr}" if output else proc.stderr

        result = RunResult(output=output, exit_code=proc.returncode, command=command.cmd)
        if proc.returncode != 0:
            result.error = f"{command.cmd[0]} exited with code {proc.returncode}"
        if is_rate_limited(output, proc.returncode):
            result.rate_limited = True
            result.retry_after = parse_retry_after(output)
        result.overload_exhausted = is_overload_exhausted(output, proc.returncode)
        return result
