"""
Claude Code CLI runner.

Runs `claude -p -` headless with the prompt on stdin.
"""

import os

from juggle.agents.base import CommandRunner

MODEL_MAP = {
    "small": "haiku",
    "medium": "sonnet",
    "large": "opus",
}


class ClaudeRunner(CommandRunner):
    provider = "claude"

    def map_model(self, model: str) -> str:
        # Tier names (haiku/sonnet/opus) and full model IDs pass through
        return MODEL_MAP.get(model, model)

    def permission_flags(self, trust: bool) -> list[str]:
        if trust:
            return ["--dangerously-skip-permissions"]
        return ["--permission-mode", "acceptEdits"]

    def child_env(self) -> dict[str, str]:
        # Remove ANTHROPIC_API_KEY so Claude uses OAuth credentials instead
        return {k: v for k, v in os.environ.items() if k != "ANTHROPIC_API_KEY"}
