"""Welcome messages for participants joining a conversation."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from dentabot.prompts import WELCOME_TEXT

logger = logging.getLogger(__name__)


def greet(member_ids: Iterable[str], recipient_id: str) -> list[str]:
    """Return one welcome text per joined member other than the bot itself.

    Nothing is remembered between calls, so the same join list greets the
    same members again.
    """
    greetings = [WELCOME_TEXT for member_id in member_ids if member_id != recipient_id]
    logger.debug("Greeting %d new member(s)", len(greetings))
    return greetings
