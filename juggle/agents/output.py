"""
Failure classification for agent CLI output.

Both providers report API trouble as free text on a failing exit. These
helpers turn that text into the rate_limited / retry_after /
overload_exhausted fields of RunResult.
"""

import re

RATE_LIMIT_PATTERNS = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "429",
    "overloaded",
    "capacity",
    "try again",
    "throttl",
)

OVERLOAD_PATTERNS = (
    "529",
    "overloaded_error",
    "api is overloaded",
)
OVERLOAD_REGEXES = (
    re.compile(r'exhausted.*retr'),
    re.compile(r'maximum.*retries.*overload'),
)

_UNIT_SECONDS = {
    "sec": 1, "second": 1,
    "min": 60, "minute": 60,
    "hr": 3600, "hour": 3600,
}

_RETRY_HEADER = re.compile(r'retry[-_ ]after["\']?\s*[:=]\s*(\d+)')
_DURATION = re.compile(r'(\d{1,5})\s*(seconds?|secs?|minutes?|mins?|hours?|hrs?)\b')


def is_rate_limited(output: str, exit_code: int) -> bool:
    """True when a failing run mentions any rate-limit phrase."""
    if exit_code == 0:
        return False
    text = output.lower()
    return any(p in text for p in RATE_LIMIT_PATTERNS)


def parse_retry_after(output: str) -> float | None:
    """Seconds to wait as stated in the output, None if not stated.

    Accepts a "retry-after: N" header, or the first "N seconds",
    "N minutes" or "N hours" phrase.
    """
    text = output.lower()

    m = _RETRY_HEADER.search(text)
    if m:
        return float(m.group(1))

    m = _DURATION.search(text)
    if m:
        unit = m.group(2).rstrip("s")
        return float(int(m.group(1)) * _UNIT_SECONDS.get(unit, 1))

    return None


def is_overload_exhausted(output: str, exit_code: int) -> bool:
    """True when the CLI gave up after repeated 529 overload responses."""
    if exit_code == 0:
        return False
    text = output.lower()
    if any(p in text for p in OVERLOAD_PATTERNS):
        return True
    if any(r.search(text) for r in OVERLOAD_REGEXES):
        return True
    return "overloaded" in text
