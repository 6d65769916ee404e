"""
Prompt loader for juggle.

Loads prompt templates from the package's prompts/ directory and
interpolates variables. Templates use Python str.format() syntax:
{variable_name}. Use {{ and }} for literal braces.

HTML comments (<!-- ... -->) are stripped before rendering - use them for
notes that shouldn't be sent to the agent.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

__all__ = ["PromptError", "load_prompt", "render_prompt", "build_section", "clear_cache", "PROMPTS_DIR"]

_HTML_COMMENT_PATTERN = re.compile(r'<!--.*?-->\s*', re.DOTALL)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


class PromptError(Exception):
    """Raised when prompt loading or rendering fails."""
    pass


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """
    Load a prompt template by name (cached).

    Args:
        name: Prompt name without extension (e.g., 'agent', 'task')

    Raises:
        PromptError: If prompt file doesn't exist
    """
    prompt_path = PROMPTS_DIR / f"{name}.md"

    if not prompt_path.exists():
        raise PromptError(
            f"Prompt template '{name}' not found. "
            f"Expected file: {prompt_path}"
        )

    logger.debug(f"Loading prompt template: {name}")
    content = _HTML_COMMENT_PATTERN.sub('', prompt_path.read_text())
    return content.lstrip()


def render_prompt(name: str, **kwargs) -> str:
    """
    Load and render a prompt template with variables.

    Raises:
        PromptError: If template not found or a required variable is missing
    """
    template = load_prompt(name)

    try:
        return template.format(**kwargs)
    except KeyError as e:
        raise PromptError(
            f"Missing required variable {e} in prompt '{name}'. "
            f"Provided: {list(kwargs.keys())}"
        ) from e


def build_section(content: str | None, tag: str, always: bool = False) -> str:
    """
    Wrap content in an <tag>...</tag> block.

    Returns an empty string for empty content unless always is set, in
    which case an empty block is emitted.
    """
    if not content and not always:
        return ""
    body = content or ""
    if body and not body.endswith("\n"):
        body += "\n"
    return f"<{tag}>\n{body}</{tag}>\n\n"


def clear_cache():
    """Clear the prompt cache (useful for testing)."""
    load_prompt.cache_clear()
