"""
Configuration loader for juggle.

Loop defaults come from <project>/.juggle/config.env. Every key is
optional; CLI flags take precedence over whatever is loaded here.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import envparse
from .constants import CONFIG_FILE, JUGGLE_DIR

logger = logging.getLogger(__name__)

VALID_PROVIDERS = ("claude", "opencode")


class ConfigError(Exception):
    """Configuration file could not be used."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


@dataclass
class JuggleConfig:
    """Project-level settings from config.env"""
    iterations: int = 10
    iteration_delay: float = 0.0  # Seconds between iterations
    delay_fuzz: float = 0.0  # +/- random seconds added to iteration_delay
    timeout: float = 0.0  # Overall wall clock budget, 0 = none
    max_wait: float = 0.0  # Cap on total rate-limit waiting, 0 = unlimited
    provider: str = "claude"
    trust: bool = False  # Run the agent without permission prompts


def load_config(project_dir: Path) -> JuggleConfig:
    """Load .juggle/config.env and return JuggleConfig.

    Missing file means defaults. Bad values raise ConfigError.
    """
    path = Path(project_dir) / JUGGLE_DIR / CONFIG_FILE
    try:
        env = envparse.load_env(path)
        config = JuggleConfig(
            iterations=envparse.get_int(env, "JUGGLE_ITERATIONS", 10),
            iteration_delay=envparse.get_float(env, "JUGGLE_ITERATION_DELAY", 0.0),
            delay_fuzz=envparse.get_float(env, "JUGGLE_ITERATION_DELAY_FUZZ", 0.0),
            timeout=envparse.get_float(env, "JUGGLE_TIMEOUT", 0.0),
            max_wait=envparse.get_float(env, "JUGGLE_MAX_WAIT", 0.0),
            provider=env.get("JUGGLE_PROVIDER", "claude").lower(),
            trust=envparse.get_bool(env, "JUGGLE_TRUST", False),
        )
    except ValueError as e:
        raise ConfigError(path, str(e)) from None

    if config.provider not in VALID_PROVIDERS:
        raise ConfigError(path, f"unknown provider '{config.provider}' (expected one of {', '.join(VALID_PROVIDERS)})")
    if config.iterations < 1:
        raise ConfigError(path, "JUGGLE_ITERATIONS must be at least 1")
    for name in ("iteration_delay", "delay_fuzz", "timeout", "max_wait"):
        if getattr(config, name) < 0:
            raise ConfigError(path, f"{name} must not be negative")

    logger.debug(f"Loaded config from {path}: {config}")
    return config
