"""
Agent command configuration.

Loads agents.yaml from the project directory to decide which CLI command
each provider runs. Without the file, DEFAULT_PROVIDER_COMMANDS applies.

COMMAND TEMPLATES
=================

Templates are split with shlex. A token that is exactly a placeholder is
replaced by the value, and list values are spliced in as several
arguments. Placeholders inside a longer token are substituted as text.

Variables:
- {model}: provider-specific model name
- {permission}: permission flags (a list, may be empty)
- {system_prompt}: instructions appended to the agent's system prompt
- {prompt}: the prompt text. If the template has no {prompt}, the prompt
  is written to the command's stdin instead.

Example agents.yaml:

    providers:
      claude: claude --model {model} {permission} -p -
"""

import logging
import re
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_PROVIDER_COMMANDS = {
    "claude": (
        "claude --disable-slash-commands --append-system-prompt {system_prompt}"
        " --model {model} {permission} -p -"
    ),
    # opencode has no stdin mode, the prompt goes on the command line
    "opencode": "opencode run --model {model} {permission} {prompt}",
}

_PLACEHOLDER = re.compile(r'\{(\w+)\}')


@dataclass
class AgentsConfig:
    """Agent configuration from agents.yaml."""
    providers: dict[str, str] = field(default_factory=lambda: DEFAULT_PROVIDER_COMMANDS.copy())


def load_agents_config(project_dir: Optional[Path]) -> AgentsConfig:
    """Load agents.yaml and return AgentsConfig.

    If project_dir is None or the file doesn't exist, returns defaults.
    A file that fails to parse is logged and ignored.
    """
    if project_dir is None:
        return AgentsConfig()

    config_path = Path(project_dir) / "agents.yaml"
    if not config_path.exists():
        return AgentsConfig()

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return AgentsConfig()

    providers = DEFAULT_PROVIDER_COMMANDS.copy()
    if isinstance(data, dict) and isinstance(data.get("providers"), dict):
        for name, template in data["providers"].items():
            if not isinstance(template, str) or not template.strip():
                logger.warning(f"{config_path}: ignoring non-string command for provider '{name}'")
                continue
            providers[name] = template
    return AgentsConfig(providers=providers)


@dataclass
class ProviderCommand:
    """Result of building a provider command."""
    cmd: list[str]  # Command ready for subprocess
    prompt_via_stdin: bool  # True if prompt should be passed via stdin

    def get_stdin_input(self, prompt: str) -> str | None:
        """Return prompt if it should be passed via stdin, else None."""
        return prompt if self.prompt_via_stdin else None


def get_provider_command(
    config: AgentsConfig,
    provider: str,
    context: dict[str, str | list[str]],
) -> ProviderCommand:
    """Build the command list for a provider.

    Args:
        config: AgentsConfig instance
        provider: Provider name ("claude", "opencode")
        context: Variables for substitution

    Raises:
        ValueError: unknown provider, or the template uses a variable
            that context does not supply

    Example:
        >>> cmd = get_provider_command(AgentsConfig(), "opencode",
        ...     {"model": "anthropic/claude-opus-4-5", "permission": ["--agent", "build"], "prompt": "hi"})
        >>> cmd.cmd
        ['opencode', 'run', '--model', 'anthropic/claude-opus-4-5', '--agent', 'build', 'hi']
    """
    if provider not in config.providers:
        raise ValueError(f"Unknown provider: {provider}")

    template = config.providers[provider]
    used = set(_PLACEHOLDER.findall(template))
    missing = sorted(v for v in used if v not in context)
    if missing:
        raise ValueError(f"Provider '{provider}' command needs {missing}, which were not supplied")

    cmd: list[str] = []
    for token in shlex.split(template):
        whole = _PLACEHOLDER.fullmatch(token)
        if whole:
            value = context[whole.group(1)]
            if isinstance(value, list):
                cmd.extend(value)
            else:
                cmd.append(value)
            continue

        def _sub(m):
            value = context[m.group(1)]
            return " ".join(value) if isinstance(value, list) else value

        cmd.append(_PLACEHOLDER.sub(_sub, token))

    return ProviderCommand(cmd=cmd, prompt_via_stdin="prompt" not in used)


def get_provider_binary(config: AgentsConfig, provider: str) -> str:
    """Get the binary name for a provider (first element of command)."""
    if provider not in config.providers:
        raise ValueError(f"Unknown provider: {provider}")
    parts = shlex.split(config.providers[provider])
    return parts[0] if parts else ""


def check_binary_available(binary: str) -> bool:
    """Check if a binary is available in PATH."""
    return shutil.which(binary) is not None
