"""Sessions: named ball groupings, their progress logs, and agent run history."""

from juggle.sessions.history import AgentHistoryStore, AgentRunRecord
from juggle.sessions.store import Session, SessionNotFound, SessionStore
