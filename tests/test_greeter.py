"""Tests for the member-join greeter."""

from __future__ import annotations

from dentabot.greeter import greet
from dentabot.prompts import WELCOME_TEXT


class TestGreet:
    def test_greets_each_new_member(self):
        assert greet(["alice", "bob"], "bot") == [WELCOME_TEXT, WELCOME_TEXT]

    def test_skips_the_bot_itself(self):
        assert greet(["bot", "alice"], "bot") == [WELCOME_TEXT]

    def test_only_bot_joined(self):
        assert greet(["bot"], "bot") == []

    def test_no_memory_between_calls(self):
        members = ["alice", "bot"]
        assert greet(members, "bot") == greet(members, "bot") == [WELCOME_TEXT]

    def test_welcome_text_mentions_the_clinic(self):
        assert "Contoso Dentistry" in WELCOME_TEXT
