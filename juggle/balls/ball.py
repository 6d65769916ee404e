"""
Ball: a single unit of work.

State changes go through BallFSM so every transition is logged the same
way. None of the mutating methods raise; a transition that does not apply
(e.g. starting a completed ball) leaves the ball untouched.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum

from juggle.lib.constants import BALL_ID_PATTERN, PRIORITY_WEIGHTS
from juggle.workflow.fsm import ACTIVE_STATES, TERMINAL_STATES, BallFSM

logger = logging.getLogger(__name__)


class BallState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETE = "complete"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ModelSize(str, Enum):
    BLANK = ""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


def _now() -> str:
    return datetime.now().isoformat()


def parse_ball_id(ball_id: str) -> tuple[str, int] | None:
    """Split "<project>-<n>" into (project, n). None if not in that form."""
    m = BALL_ID_PATTERN.match(ball_id)
    if not m:
        return None
    return m.group("project"), int(m.group("seq"))


@dataclass
class Ball:
    """A work item. Field names match the on-disk JSON record."""
    id: str
    title: str
    context: str = ""
    priority: str = Priority.MEDIUM.value
    state: str = BallState.PENDING.value
    blocked_reason: str = ""
    acceptance_criteria: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)
    model_size: str = ModelSize.BLANK.value
    working_dir: str = ""
    started_at: str | None = None
    last_activity: str | None = None
    completed_at: str | None = None
    completion_note: str = ""
    update_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> 'Ball':
        ball = cls(**data)
        # Older records may carry duplicate dependencies
        ball.depends_on = list(dict.fromkeys(ball.depends_on))
        return ball

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def short_id(self) -> str:
        """Numeric suffix of the ID ("myapp-5" -> "5")."""
        _, sep, tail = self.id.rpartition("-")
        return tail if sep and tail else self.id

    @property
    def priority_weight(self) -> int:
        return PRIORITY_WEIGHTS.get(self.priority, 0)

    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def touch(self) -> None:
        """Record a mutation: bump the counter and refresh last activity."""
        self.update_count += 1
        self.last_activity = _now()

    def start(self) -> bool:
        """pending -> in_progress. Returns False (and changes nothing) otherwise."""
        fsm = BallFSM(self)
        if not fsm.can("start"):
            logger.debug(f"[BALL] {self.id}: start ignored in state '{self.state}'")
            return False
        fsm.start()
        self.started_at = _now()
        self.touch()
        return True

    def block(self, reason: str) -> None:
        BallFSM(self).block()
        self.blocked_reason = reason
        self.touch()

    def complete(self, note: str = "") -> None:
        BallFSM(self).finish()
        self.blocked_reason = ""
        self.completion_note = note
        self.completed_at = _now()
        self.touch()

    def set_state(self, state: str) -> None:
        """Unconditional transition for administrative correction."""
        state = BallState(state).value
        BallFSM(self).move_to(state)
        if state != BallState.BLOCKED.value:
            self.blocked_reason = ""
        self.touch()

    def reset(self) -> None:
        """Back to pending with completion data cleared (archive restore)."""
        BallFSM(self).reset()
        self.blocked_reason = ""
        self.completed_at = None
        self.completion_note = ""

    def has_dependencies(self) -> bool:
        return len(self.depends_on) > 0

    def add_dependency(self, ball_id: str) -> bool:
        """Add a dependency. Returns False if it was already present."""
        if ball_id in self.depends_on:
            return False
        self.depends_on.append(ball_id)
        self.touch()
        return True

    def remove_dependency(self, ball_id: str) -> bool:
        """Remove a dependency. Returns True if anything was removed."""
        if ball_id not in self.depends_on:
            return False
        self.depends_on.remove(ball_id)
        self.touch()
        return True

    def set_dependencies(self, ball_ids: list[str]) -> None:
        self.depends_on = list(dict.fromkeys(ball_ids))
        self.touch()

    def add_tag(self, tag: str) -> bool:
        if tag in self.tags:
            return False
        self.tags.append(tag)
        self.touch()
        return True

    def remove_tag(self, tag: str) -> bool:
        if tag not in self.tags:
            return False
        self.tags.remove(tag)
        self.touch()
        return True
