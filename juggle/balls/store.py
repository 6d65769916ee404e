"""
File-backed ball store.

Layout under <storage>/.juggle/:
    balls.jsonl            active balls, one JSON record per line
    archive/balls.jsonl    archived balls
    balls.lock             flock serializing every write

<storage> is the project directory, or the primary project when the
directory is a linked worktree. Records are schema-checked on every read
and before every write. Rewrites go through a temp file and os.replace.
"""

import json
import logging
import os
from pathlib import Path

from juggle.balls.ball import Ball, BallState, parse_ball_id
from juggle.lib.constants import ALL_SESSION, ARCHIVE_DIR, BALLS_FILE, JUGGLE_DIR
from juggle.lib.validate import validate_before_write, validate_line
from juggle.lib.worktree import resolve_storage_dir
from juggle.runner.locking import file_lock

logger = logging.getLogger(__name__)


class BallNotFound(Exception):
    """No ball matches the given ID."""

    def __init__(self, ball_id: str, where: str = ""):
        self.ball_id = ball_id
        super().__init__(f"ball not found: {ball_id}" + (f" ({where})" if where else ""))


class AmbiguousBallID(Exception):
    """A short ID matches more than one ball."""

    def __init__(self, short_id: str, matches: list[str]):
        self.short_id = short_id
        self.matches = matches
        super().__init__(f"ambiguous ball ID '{short_id}' matches: {', '.join(matches)}")


class BallStore:
    """Reads and writes balls for one project (or its primary, for worktrees)."""

    def __init__(self, project_dir: Path):
        self.project_dir = Path(project_dir).resolve()
        self.storage_dir = resolve_storage_dir(self.project_dir)
        self.juggle_dir = self.storage_dir / JUGGLE_DIR
        self.balls_path = self.juggle_dir / BALLS_FILE
        self.archive_path = self.juggle_dir / ARCHIVE_DIR / BALLS_FILE
        self.lock_path = self.juggle_dir / "balls.lock"

    @property
    def project_name(self) -> str:
        """Ball ID prefix, taken from the primary project directory."""
        return self.storage_dir.name

    def _read(self, path: Path) -> list[Ball]:
        if not path.exists():
            return []
        balls = []
        for lineno, line in enumerate(path.read_text().splitlines(), 1):
            if not line.strip():
                continue
            data = validate_line(line, "ball", f"{path}:{lineno}")
            balls.append(Ball.from_dict(data))
        return balls

    def _write(self, path: Path, balls: list[Ball]) -> None:
        lines = []
        for ball in balls:
            data = ball.to_dict()
            validate_before_write(data, "ball", path)
            lines.append(json.dumps(data))

        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        tmp_path.write_text("".join(line + "\n" for line in lines))
        os.replace(tmp_path, path)

    def _append(self, path: Path, ball: Ball) -> None:
        data = ball.to_dict()
        validate_before_write(data, "ball", path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(json.dumps(data) + "\n")

    def load_balls(self) -> list[Ball]:
        return self._read(self.balls_path)

    def load_archived_balls(self) -> list[Ball]:
        return self._read(self.archive_path)

    def load_scope(self, session_id: str) -> list[Ball]:
        """Balls tagged with session_id, or every ball for the "all" session."""
        balls = self.load_balls()
        if session_id == ALL_SESSION:
            return balls
        return [b for b in balls if b.has_tag(session_id)]

    def _next_sequence(self) -> int:
        highest = 0
        for ball in self.load_balls() + self.load_archived_balls():
            parsed = parse_ball_id(ball.id)
            if parsed and parsed[0] == self.project_name:
                highest = max(highest, parsed[1])
        return highest + 1

    def create_ball(
        self,
        title: str,
        context: str = "",
        priority: str = "medium",
        tags: list[str] | None = None,
        acceptance_criteria: list[str] | None = None,
        depends_on: list[str] | None = None,
        model_size: str = "",
    ) -> Ball:
        """Create and persist a new pending ball with the next free ID."""
        with file_lock(self.lock_path):
            ball_id = f"{self.project_name}-{self._next_sequence()}"
            ball = Ball(
                id=ball_id,
                title=title,
                context=context,
                priority=priority,
                tags=list(dict.fromkeys(tags or [])),
                acceptance_criteria=list(acceptance_criteria or []),
                depends_on=list(dict.fromkeys(depends_on or [])),
                model_size=model_size,
                working_dir=str(self.project_dir),
            )
            ball.touch()
            self._append(self.balls_path, ball)

        logger.info(f"[STORE] created {ball.id}: {title}")
        return ball

    def get_ball(self, ball_id: str) -> Ball:
        for ball in self.load_balls():
            if ball.id == ball_id:
                return ball
        raise BallNotFound(ball_id)

    def resolve_ball(self, ball_id: str) -> Ball:
        """Find a ball by full ID, falling back to its short (numeric) ID.

        Raises:
            BallNotFound: nothing matches
            AmbiguousBallID: several balls share the short ID
        """
        balls = self.load_balls()
        for ball in balls:
            if ball.id == ball_id:
                return ball

        matches = [b for b in balls if b.short_id == ball_id]
        if not matches:
            raise BallNotFound(ball_id)
        if len(matches) > 1:
            raise AmbiguousBallID(ball_id, [b.id for b in matches])
        return matches[0]

    def update_ball(self, updated: Ball) -> None:
        with file_lock(self.lock_path):
            balls = self.load_balls()
            for i, ball in enumerate(balls):
                if ball.id == updated.id:
                    balls[i] = updated
                    break
            else:
                raise BallNotFound(updated.id)
            self._write(self.balls_path, balls)
        logger.debug(f"[STORE] updated {updated.id} (state={updated.state})")

    def delete_ball(self, ball_id: str) -> Ball:
        with file_lock(self.lock_path):
            balls = self.load_balls()
            remaining = [b for b in balls if b.id != ball_id]
            if len(remaining) == len(balls):
                raise BallNotFound(ball_id)
            self._write(self.balls_path, remaining)
        logger.info(f"[STORE] deleted {ball_id}")
        return next(b for b in balls if b.id == ball_id)

    def archive_ball(self, ball_id: str) -> Ball:
        """Move a ball from the active set to the archive unchanged."""
        with file_lock(self.lock_path):
            balls = self.load_balls()
            ball = next((b for b in balls if b.id == ball_id), None)
            if ball is None:
                raise BallNotFound(ball_id)
            self._append(self.archive_path, ball)
            self._write(self.balls_path, [b for b in balls if b.id != ball_id])
        logger.info(f"[STORE] archived {ball_id}")
        return ball

    def archive_completed(self) -> list[Ball]:
        """Archive every complete ball. Returns the archived balls."""
        done = [b for b in self.load_balls() if b.state == BallState.COMPLETE.value]
        return [self.archive_ball(b.id) for b in done]

    def unarchive_ball(self, ball_id: str) -> Ball:
        """Restore an archived ball to the active set as pending.

        Blocked reason, completion time and completion note are cleared.
        Everything else (criteria, tags, priority, start time, update count)
        is kept as it was.
        """
        with file_lock(self.lock_path):
            archived = self.load_archived_balls()
            ball = next((b for b in archived if b.id == ball_id), None)
            if ball is None:
                raise BallNotFound(ball_id, "archive")

            ball.reset()
            self._append(self.balls_path, ball)
            self._write(self.archive_path, [b for b in archived if b.id != ball_id])

        logger.info(f"[STORE] unarchived {ball_id}")
        return ball
