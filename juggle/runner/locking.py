"""
Lock management for juggle.

Uses flock for two kinds of lock:
- short-lived store locks that serialize writes to balls.jsonl and progress.txt
- a per-session agent lock so only one agent loop runs per session
"""

import atexit
import fcntl
import logging
import os
import signal
import sys
import time
from contextlib import contextmanager
from pathlib import Path

from juggle.lib.constants import JUGGLE_DIR, SESSIONS_DIR

logger = logging.getLogger(__name__)

AGENT_LOCK_FILE = "agent.lock"


class LockTimeout(Exception):
    """Lock acquisition timed out."""
    pass


class SessionLocked(Exception):
    """Another agent loop holds the session lock."""

    def __init__(self, session_id: str, pid: int | None):
        self.session_id = session_id
        self.pid = pid
        holder = f"PID {pid}" if pid else "another process"
        super().__init__(f"session '{session_id}' is locked by {holder}")


def _read_pid(lock_file: Path) -> int | None:
    try:
        return int(lock_file.read_text().strip().splitlines()[0])
    except (OSError, ValueError, IndexError):
        return None


@contextmanager
def _acquire_lock(lock_file: Path, timeout: float, lock_name: str):
    """
    Internal helper to acquire a file lock.

    Args:
        lock_file: Path to the lock file
        timeout: Seconds to wait for the lock; 0 means a single attempt
        lock_name: Human-readable name for error messages

    The file is opened without truncation so a waiting process never wipes
    the PID written by the current holder.
    """
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    fd = open(lock_file, 'a+')
    start = time.time()

    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.time() - start >= timeout:
                fd.close()
                raise LockTimeout(f"Could not acquire {lock_name} within {timeout}s")
            time.sleep(0.05)

    try:
        fd.seek(0)
        fd.truncate()
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        yield
    finally:
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()


@contextmanager
def file_lock(lock_file: Path, timeout: float = 10):
    """Serialize writers of a single data file. Blocks up to timeout seconds."""
    with _acquire_lock(lock_file, timeout, f"lock {lock_file.name}"):
        yield


@contextmanager
def session_lock(storage_dir: Path, session_id: str):
    """
    Acquire the agent lock for a session, yield, release on exit.

    Does not wait: if another loop already runs on the session,
    SessionLocked is raised naming the holder's PID.
    """
    lock_file = Path(storage_dir) / JUGGLE_DIR / SESSIONS_DIR / session_id / AGENT_LOCK_FILE

    try:
        ctx = _acquire_lock(lock_file, 0, f"agent lock for {session_id}")
        ctx.__enter__()
    except LockTimeout:
        raise SessionLocked(session_id, _read_pid(lock_file)) from None

    logger.debug(f"[LOCK] acquired {lock_file}")

    def cleanup():
        try:
            ctx.__exit__(None, None, None)
        except (OSError, ValueError):
            pass

    atexit.register(cleanup)
    original_sigterm = signal.signal(signal.SIGTERM, lambda *_: sys.exit(1))

    try:
        yield
    finally:
        atexit.unregister(cleanup)
        signal.signal(signal.SIGTERM, original_sigterm)
        cleanup()
        logger.debug(f"[LOCK] released {lock_file}")
