"""
Safe KEY=value parser for .juggle/config.env.

Values are read literally. Nothing is expanded or executed, and values
that look like shell constructs are rejected outright.
"""

import re
from pathlib import Path

FORBIDDEN_PATTERNS = [
    (r'`', "backtick"),
    (r'\$\(', "command substitution"),
    (r'\$\{', "variable expansion"),
    (r';', "command separator"),
    (r'&&', "'&&'"),
    (r'\|', "pipe"),
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def parse_env(text: str, source: str = "<string>") -> dict[str, str]:
    """
    Parse env-file text into a dict.

    Raises:
        ValueError: on a malformed line, a bad key, or a forbidden pattern
    """
    result = {}

    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue

        if line.startswith("export "):
            line = line[len("export "):].lstrip()

        key, sep, value = line.partition('=')
        if not sep:
            raise ValueError(f"{source}:{lineno}: expected KEY=value")

        key = key.strip()
        if not KEY_PATTERN.match(key):
            raise ValueError(f"{source}:{lineno}: invalid key '{key}'")

        value = _unquote(value.strip())
        for pattern, label in FORBIDDEN_PATTERNS:
            if re.search(pattern, value):
                raise ValueError(f"{source}:{lineno}: {label} not allowed in value of {key}")

        result[key] = value

    return result


def load_env(filepath: Path) -> dict[str, str]:
    """
    Parse an env file. A missing file yields an empty dict.

    Raises:
        ValueError: if the file content is invalid
    """
    path = Path(filepath)
    if not path.exists():
        return {}
    return parse_env(path.read_text(), source=str(path))


def get_int(env: dict, key: str, default: int) -> int:
    """Read an integer value, raising ValueError with the key name on junk."""
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got '{raw}'") from None


def get_float(env: dict, key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got '{raw}'") from None


def get_bool(env: dict, key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    return raw.lower() in ("1", "true", "yes", "on")
