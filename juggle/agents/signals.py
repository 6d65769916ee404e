"""
Completion signals embedded in agent output.

The agent reports its intent with a single marker:

    <promise>COMPLETE</promise>
    <promise>COMPLETE: commit message</promise>
    <promise>CONTINUE</promise>
    <promise>CONTINUE: commit message</promise>
    <promise>BLOCKED: reason</promise>

parse_signal() scans the output once and returns the first well-formed
marker. Unknown keywords and markers missing their closing tag are
skipped; output with no usable marker yields NoSignal.
"""

import re
from dataclasses import dataclass

MARKER_PATTERN = re.compile(r'<promise>(.*?)</promise>', re.DOTALL)


@dataclass(frozen=True)
class NoSignal:
    """The agent did not report anything usable."""


@dataclass(frozen=True)
class Complete:
    """The agent claims the work is done. Must be confirmed against ball state."""
    message: str = ""


@dataclass(frozen=True)
class Continue:
    """The agent claims there is more work left."""
    message: str = ""


@dataclass(frozen=True)
class Blocked:
    """The agent cannot proceed without a human."""
    reason: str


Signal = NoSignal | Complete | Continue | Blocked


def _split_keyword(content: str, keyword: str) -> tuple[bool, str]:
    """Match "KEYWORD" or "KEYWORD: text". Returns (matched, text)."""
    if content == keyword:
        return True, ""
    if content.startswith(keyword + ":"):
        return True, content[len(keyword) + 1:].strip()
    return False, ""


def _parse_marker(content: str) -> Signal | None:
    content = content.strip()

    matched, reason = _split_keyword(content, "BLOCKED")
    # A bare BLOCKED without a reason is not a valid marker
    if matched and content != "BLOCKED":
        return Blocked(reason=reason)

    matched, message = _split_keyword(content, "COMPLETE")
    if matched:
        return Complete(message=message)

    matched, message = _split_keyword(content, "CONTINUE")
    if matched:
        return Continue(message=message)

    return None


def parse_signal(output: str | None) -> Signal:
    """Return the first well-formed signal in output, or NoSignal()."""
    if not output:
        return NoSignal()
    for match in MARKER_PATTERN.finditer(output):
        signal = _parse_marker(match.group(1))
        if signal is not None:
            return signal
    return NoSignal()
