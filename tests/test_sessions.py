"""Tests for juggle.sessions.store module."""

import re

import pytest

from juggle.lib.validate import ValidationError
from juggle.sessions.store import Session, SessionNotFound


class TestCreateSession:

    def test_create_and_load(self, session_store):
        session_store.create_session("s1", description="Auth work", context="Use OAuth",
                                     default_model="medium", acceptance_criteria=["lint clean"])
        session = session_store.load_session("s1")
        assert session.description == "Auth work"
        assert session.default_model == "medium"
        assert session.acceptance_criteria == ["lint clean"]

    def test_duplicate_rejected(self, session_store):
        session_store.create_session("s1")
        with pytest.raises(ValueError, match="already exists"):
            session_store.create_session("s1")

    def test_all_is_reserved(self, session_store):
        with pytest.raises(ValueError, match="reserved"):
            session_store.create_session("all")

    @pytest.mark.parametrize("bad", ["", "-x", "a b", "../up"])
    def test_invalid_ids(self, session_store, bad):
        with pytest.raises(ValueError):
            session_store.create_session(bad)

    def test_bad_default_model_rejected(self, session_store):
        with pytest.raises(ValidationError):
            session_store.create_session("s1", default_model="huge")


class TestLoadSession:

    def test_missing_raises(self, session_store):
        with pytest.raises(SessionNotFound) as exc_info:
            session_store.load_session("nope")
        assert str(exc_info.value) == "session not found: nope"

    def test_all_exists_without_file(self, session_store):
        assert session_store.session_exists("all")
        assert session_store.load_session("all").id == "all"

    def test_list_and_delete(self, session_store):
        session_store.create_session("b")
        session_store.create_session("a")
        assert [s.id for s in session_store.list_sessions()] == ["a", "b"]
        session_store.delete_session("a")
        assert [s.id for s in session_store.list_sessions()] == ["b"]
        with pytest.raises(SessionNotFound):
            session_store.delete_session("a")

    def test_update_bumps_timestamp(self, session_store):
        session = session_store.create_session("s1")
        session.updated_at = "2000-01-01T00:00:00"
        session.context = "new"
        session_store.update_session(session)
        loaded = session_store.load_session("s1")
        assert loaded.context == "new"
        assert loaded.updated_at != "2000-01-01T00:00:00"

    def test_update_missing_raises(self, session_store):
        with pytest.raises(SessionNotFound):
            session_store.update_session(Session(id="ghost"))


class TestProgress:

    def test_empty_when_missing(self, session_store):
        assert session_store.load_progress("s1") == ""

    def test_entries_are_timestamped(self, session_store):
        session_store.create_session("s1")
        session_store.append_progress("s1", "did a thing")
        session_store.append_progress("s1", "did another\n")
        lines = session_store.load_progress("s1").splitlines()
        assert len(lines) == 2
        assert re.match(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] did a thing$", lines[0])
        assert lines[1].endswith("did another")
