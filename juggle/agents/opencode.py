"""
OpenCode CLI runner.

OpenCode takes provider/model IDs and uses agents instead of permission
modes: "build" has full access, "plan" is read-only.
"""

from juggle.agents.base import CommandRunner

MODEL_MAP = {
    "small": "anthropic/claude-3-5-haiku-latest",
    "haiku": "anthropic/claude-3-5-haiku-latest",
    "medium": "anthropic/claude-sonnet-4-5",
    "sonnet": "anthropic/claude-sonnet-4-5",
    "large": "anthropic/claude-opus-4-5",
    "opus": "anthropic/claude-opus-4-5",
}


class OpenCodeRunner(CommandRunner):
    provider = "opencode"

    def map_model(self, model: str) -> str:
        return MODEL_MAP.get(model, model)

    def permission_flags(self, trust: bool) -> list[str]:
        # The loop needs edits either way, so trust does not change the agent
        return ["--agent", "build"]
