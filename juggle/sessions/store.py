"""
Session records and progress logs.

Each session lives in <storage>/.juggle/sessions/<id>/:
    session.json   metadata (description, context, default model, criteria)
    progress.txt   append-only log written by the loop and the agent

Balls join a session by carrying its ID as a tag. The reserved "all"
session has no directory of its own on creation; it spans every ball.
"""

import json
import logging
import shutil
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path

from juggle.lib.constants import (
    ALL_SESSION,
    JUGGLE_DIR,
    PROGRESS_FILE,
    SESSION_FILE,
    SESSION_ID_PATTERN,
    SESSIONS_DIR,
)
from juggle.lib.validate import validate, validate_before_write
from juggle.lib.worktree import resolve_storage_dir
from juggle.runner.locking import file_lock

logger = logging.getLogger(__name__)


class SessionNotFound(Exception):
    """No session with the given ID exists."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"session not found: {session_id}")


@dataclass
class Session:
    """Session metadata from session.json"""
    id: str
    description: str = ""
    context: str = ""
    default_model: str = ""  # "", small, medium or large
    acceptance_criteria: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> dict:
        return asdict(self)


class SessionStore:
    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir).resolve()
        self.storage_dir = resolve_storage_dir(self.project_dir)
        self.sessions_dir = self.storage_dir / JUGGLE_DIR / SESSIONS_DIR

    def session_dir(self, session_id: str) -> Path:
        return self.sessions_dir / session_id

    def _session_file(self, session_id: str) -> Path:
        return self.session_dir(session_id) / SESSION_FILE

    def _progress_file(self, session_id: str) -> Path:
        return self.session_dir(session_id) / PROGRESS_FILE

    def session_exists(self, session_id: str) -> bool:
        if session_id == ALL_SESSION:
            return True
        return self._session_file(session_id).exists()

    def create_session(self, session_id: str, description: str = "", context: str = "",
                       default_model: str = "", acceptance_criteria: list[str] | None = None) -> Session:
        """Create a new session.

        Raises:
            ValueError: bad ID, reserved ID, or the session already exists
        """
        if session_id == ALL_SESSION:
            raise ValueError(f"'{ALL_SESSION}' is reserved")
        if not SESSION_ID_PATTERN.match(session_id):
            raise ValueError(f"invalid session ID '{session_id}'")
        if self.session_exists(session_id):
            raise ValueError(f"session '{session_id}' already exists")

        session = Session(
            id=session_id,
            description=description,
            context=context,
            default_model=default_model,
            acceptance_criteria=list(acceptance_criteria or []),
        )
        self.save_session(session)
        logger.info(f"[SESSION] created {session_id}")
        return session

    def save_session(self, session: Session) -> None:
        path = self._session_file(session.id)
        data = session.to_dict()
        validate_before_write(data, "session", path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n")

    def update_session(self, session: Session) -> None:
        if not self.session_exists(session.id):
            raise SessionNotFound(session.id)
        session.updated_at = datetime.now().isoformat()
        self.save_session(session)

    def load_session(self, session_id: str) -> Session:
        """Load a session.

        The "all" meta-session resolves to its stored record when one
        exists, otherwise to a blank record.

        Raises:
            SessionNotFound: if no such session exists
        """
        path = self._session_file(session_id)
        if not path.exists():
            if session_id == ALL_SESSION:
                return Session(id=ALL_SESSION, description="All balls")
            raise SessionNotFound(session_id)

        data = json.loads(path.read_text())
        validate(data, "session")
        return Session(**data)

    def list_sessions(self) -> list[Session]:
        if not self.sessions_dir.exists():
            return []
        sessions = []
        for d in sorted(self.sessions_dir.iterdir()):
            if d.is_dir() and (d / SESSION_FILE).exists():
                sessions.append(self.load_session(d.name))
        return sessions

    def delete_session(self, session_id: str) -> None:
        d = self.session_dir(session_id)
        if not (d / SESSION_FILE).exists():
            raise SessionNotFound(session_id)
        shutil.rmtree(d)
        logger.info(f"[SESSION] deleted {session_id}")

    def append_progress(self, session_id: str, text: str) -> None:
        """Append a timestamped entry to the session's progress log."""
        path = self._progress_file(session_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        entry = text if text.endswith("\n") else text + "\n"
        with file_lock(path.with_name("progress.lock")):
            with open(path, "a") as f:
                f.write(f"[{timestamp}] {entry}")

    def load_progress(self, session_id: str) -> str:
        path = self._progress_file(session_id)
        if not path.exists():
            return ""
        return path.read_text()
