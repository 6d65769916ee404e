"""
Worktree indirection.

A secondary working directory (usually a git worktree) keeps no records of
its own. Its .juggle/link file holds the path of the primary project, and
all storage and ball ID prefixes resolve through it.
"""

import logging
from pathlib import Path

from .constants import JUGGLE_DIR, LINK_FILE

logger = logging.getLogger(__name__)


def resolve_storage_dir(project_dir: Path) -> Path:
    """Return the directory whose .juggle/ holds the records for project_dir."""
    project_dir = Path(project_dir).resolve()
    link = project_dir / JUGGLE_DIR / LINK_FILE
    if not link.exists():
        return project_dir

    target = Path(link.read_text().strip())
    if not target.is_absolute():
        target = (project_dir / target).resolve()
    if not (target / JUGGLE_DIR).is_dir():
        logger.warning(f"[STORE] {link} points at {target} which has no {JUGGLE_DIR}/, using {project_dir}")
        return project_dir
    return target


def link_worktree(primary_dir: Path, worktree_dir: Path) -> Path:
    """Point worktree_dir at primary_dir. Returns the link file path."""
    primary_dir = Path(primary_dir).resolve()
    worktree_dir = Path(worktree_dir).resolve()
    if primary_dir == worktree_dir:
        raise ValueError("a project cannot be linked to itself")

    (primary_dir / JUGGLE_DIR).mkdir(parents=True, exist_ok=True)
    link = worktree_dir / JUGGLE_DIR / LINK_FILE
    link.parent.mkdir(parents=True, exist_ok=True)
    link.write_text(f"{primary_dir}\n")
    logger.info(f"[STORE] linked {worktree_dir} -> {primary_dir}")
    return link


def unlink_worktree(worktree_dir: Path) -> bool:
    link = Path(worktree_dir) / JUGGLE_DIR / LINK_FILE
    if not link.exists():
        return False
    link.unlink()
    return True
