"""
Agent prompt assembly.

Builds the text sent to the agent each iteration from the session record,
the tail of its progress log and the balls in scope.
"""

from juggle.balls.ball import Ball, BallState
from juggle.lib.constants import PROGRESS_TAIL_LINES
from juggle.lib.prompts import build_section, render_prompt
from juggle.sessions.store import Session


def tail_lines(text: str, n: int) -> str:
    """Last n lines of text, without a trailing newline."""
    lines = text.splitlines()
    return "\n".join(lines[-n:]) if n > 0 else ""


def format_ball(ball: Ball) -> str:
    header = f"## {ball.id} [{ball.state}] (priority: {ball.priority})"
    if ball.model_size:
        header += f" (model: {ball.model_size})"

    lines = [header, f"Title: {ball.title}"]
    if ball.context:
        lines.append(f"Context: {ball.context}")
    if ball.acceptance_criteria:
        lines.append("Acceptance Criteria:")
        lines.extend(f"  {i}. {ac}" for i, ac in enumerate(ball.acceptance_criteria, 1))
    if ball.depends_on:
        lines.append(f"Depends On: {', '.join(ball.depends_on)}")
    if ball.state == BallState.BLOCKED.value and ball.blocked_reason:
        lines.append(f"Blocked: {ball.blocked_reason}")
    if ball.tags:
        lines.append(f"Tags: {', '.join(ball.tags)}")
    return "\n".join(lines) + "\n"


def _context_section(session: Session) -> str:
    body = ""
    if session.description:
        body += f"# {session.description}\n\n"
    body += session.context
    return build_section(body, "context", always=True)


def _criteria_section(session: Session) -> str:
    if not session.acceptance_criteria:
        return ""
    lines = ["These criteria apply to ALL tasks in this session:", ""]
    lines.extend(f"  {i}. {ac}" for i, ac in enumerate(session.acceptance_criteria, 1))
    return build_section("\n".join(lines), "global-acceptance-criteria")


def build_agent_prompt(session: Session, balls: list[Ball], progress: str, single_ball: bool = False) -> str:
    """Render the prompt for one iteration.

    balls must already be filtered and ordered. With single_ball the
    focused task template is used for the one targeted ball.
    """
    sections = (
        _context_section(session)
        + build_section(session.id, "session", always=True)
        + build_section(tail_lines(progress, PROGRESS_TAIL_LINES), "progress", always=True)
        + _criteria_section(session)
    )

    if single_ball and len(balls) == 1:
        sections += build_section("This is your task:\n\n" + format_ball(balls[0]), "task")
        return render_prompt("task", sections=sections, ball_id=balls[0].id)

    sections += build_section("\n".join(format_ball(b) for b in balls), "balls", always=True)
    return render_prompt("agent", sections=sections, session_id=session.id)
