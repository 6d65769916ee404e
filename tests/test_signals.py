"""Tests for juggle.agents.signals module."""

import pytest

from juggle.agents.signals import Blocked, Complete, Continue, NoSignal, parse_signal


class TestParseSignal:

    def test_complete(self):
        assert parse_signal("work\n<promise>COMPLETE</promise>\n") == Complete()

    def test_complete_with_message(self):
        assert parse_signal("<promise>COMPLETE: feat: add login</promise>") == Complete("feat: add login")

    def test_continue(self):
        assert parse_signal("<promise>CONTINUE</promise>") == Continue()

    def test_blocked_reason(self):
        assert parse_signal("<promise>BLOCKED: waiting on approval</promise>") == Blocked("waiting on approval")

    def test_blocked_reason_spans_lines(self):
        signal = parse_signal("<promise>BLOCKED: need\nAPI key</promise>")
        assert signal == Blocked("need\nAPI key")

    @pytest.mark.parametrize("text", [
        "",
        None,
        "no markers here",
        "<promise>DONE</promise>",
        "<promise>COMPLETE",
        "<promise>BLOCKED</promise>",
        "<promise>COMPLETED</promise>",
    ])
    def test_no_signal(self, text):
        assert parse_signal(text) == NoSignal()

    def test_first_well_formed_marker_wins(self):
        text = "<promise>maybe</promise> <promise>CONTINUE</promise> <promise>COMPLETE</promise>"
        assert parse_signal(text) == Continue()

    def test_whitespace_inside_marker(self):
        assert parse_signal("<promise>  COMPLETE \n</promise>") == Complete()
