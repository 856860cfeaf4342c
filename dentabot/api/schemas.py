"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """A single chat message from a web client."""

    message: str = Field(..., min_length=1, max_length=2000, description="The user's message")
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Client-side session identifier, echoed back",
    )


class ChatResponse(BaseModel):
    reply: str = Field(..., description="The assistant's reply")
    decision: str = Field(..., description="Which response path produced the reply")
    session_id: str


class ChannelAccount(BaseModel):
    """A conversation participant (user or bot)."""

    id: str = Field(..., min_length=1)
    name: str | None = None


class Activity(BaseModel):
    """Inbound channel activity.

    ``message`` activities carry ``text``; ``conversationUpdate`` activities
    carry ``membersAdded``.  ``recipient`` is always the bot.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., min_length=1)
    text: str | None = Field(default=None, max_length=2000)
    recipient: ChannelAccount
    members_added: list[ChannelAccount] = Field(default_factory=list, alias="membersAdded")


class ActivityResponse(BaseModel):
    replies: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "contoso-dentistry-bot"
