"""
Agent run history.

One JSON line per agent loop run in <storage>/.juggle/agent_history.jsonl.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path

from juggle.lib.constants import HISTORY_FILE, JUGGLE_DIR
from juggle.lib.validate import ValidationError, validate_before_write, validate_line
from juggle.lib.worktree import resolve_storage_dir

logger = logging.getLogger(__name__)

RESULT_COMPLETE = "complete"
RESULT_BLOCKED = "blocked"
RESULT_TIMEOUT = "timeout"
RESULT_MAX_ITERATIONS = "max_iterations"
RESULT_RATE_LIMIT = "rate_limit"
RESULT_ERROR = "error"


@dataclass
class AgentRunRecord:
    id: str
    session_id: str
    started_at: str
    ended_at: str | None = None
    iterations: int = 0
    max_iterations: int = 0
    result: str = RESULT_ERROR
    blocked_reason: str = ""
    timeout_message: str = ""
    error_message: str = ""
    balls_complete: int = 0
    balls_blocked: int = 0
    balls_total: int = 0
    total_wait_time: float = 0.0  # Seconds spent waiting on rate limits
    output_file: str = ""
    project_dir: str = ""

    @classmethod
    def new(cls, session_id: str, project_dir: Path, started: datetime) -> 'AgentRunRecord':
        return cls(
            id=started.strftime("%Y%m%d-%H%M%S-%f"),
            session_id=session_id,
            started_at=started.isoformat(),
            project_dir=str(project_dir),
        )

    def duration(self) -> float:
        """Run duration in seconds (up to now if the run hasn't ended)."""
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.ended_at) if self.ended_at else datetime.now()
        return (end - start).total_seconds()


class AgentHistoryStore:
    def __init__(self, project_dir: Path):
        storage_dir = resolve_storage_dir(Path(project_dir))
        self.path = storage_dir / JUGGLE_DIR / HISTORY_FILE

    def append_record(self, record: AgentRunRecord) -> None:
        data = asdict(record)
        validate_before_write(data, "history", self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a") as f:
            f.write(json.dumps(data) + "\n")

    def load_history(self, session_id: str | None = None, limit: int | None = None) -> list[AgentRunRecord]:
        """Records newest first, optionally for one session only.

        Lines that fail validation are skipped with a warning so one bad
        record does not hide the rest of the history.
        """
        if not self.path.exists():
            return []

        records = []
        for lineno, line in enumerate(self.path.read_text().splitlines(), 1):
            if not line.strip():
                continue
            try:
                data = validate_line(line, "history", f"{self.path}:{lineno}")
            except ValidationError as e:
                logger.warning(f"Skipping history record: {e}")
                continue
            if session_id and data["session_id"] != session_id:
                continue
            records.append(AgentRunRecord(**data))

        records.sort(key=lambda r: r.started_at, reverse=True)
        if limit:
            records = records[:limit]
        return records
