"""Shared constants for juggle."""

import re

# Storage layout (relative to the project directory)
JUGGLE_DIR = ".juggle"
BALLS_FILE = "balls.jsonl"
ARCHIVE_DIR = "archive"
SESSIONS_DIR = "sessions"
SESSION_FILE = "session.json"
PROGRESS_FILE = "progress.txt"
HISTORY_FILE = "agent_history.jsonl"
LAST_OUTPUT_FILE = "last_output.txt"
LINK_FILE = "link"
CONFIG_FILE = "config.env"

# Reserved meta-session spanning every ball
ALL_SESSION = "all"

# Session IDs double as directory names and tags
SESSION_ID_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_.-]*$')

# Ball IDs are "<project>-<sequence>"
BALL_ID_PATTERN = re.compile(r'^(?P<project>.+)-(?P<seq>\d+)$')

PRIORITY_WEIGHTS = {
    "urgent": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
}

# Model tiers, largest first. Order is the tie-break order for selection.
MODEL_SIZE_TO_TIER = {
    "large": "opus",
    "medium": "sonnet",
    "small": "haiku",
}
LARGEST_TIER = "opus"

# Number of progress lines shown to the agent
PROGRESS_TAIL_LINES = 50

# Overload back-off when the agent gives no retry-after hint
OVERLOAD_BASE_WAIT = 30
OVERLOAD_MAX_WAIT = 300
