"""FastAPI route definitions for the Contoso Dentistry assistant."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from dentabot.api.schemas import (
    Activity,
    ActivityResponse,
    ChatRequest,
    ChatResponse,
    HealthResponse,
)
from dentabot.dispatcher import Dispatcher, TurnOutcome
from dentabot.greeter import greet
from dentabot.services.base import ServiceError

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_dispatcher(request: Request) -> Dispatcher:
    """Retrieve the dispatcher built during the FastAPI lifespan."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return dispatcher


async def _dispatch(dispatcher: Dispatcher, text: str, request_id: str) -> TurnOutcome:
    """Run one turn, translating backend failures into HTTP errors.

    Tracebacks are logged server-side only; the client gets a generic detail.
    """
    try:
        return await dispatcher.handle_turn(text)
    except ServiceError as e:
        logger.exception("[%s] Backend %s failed", request_id, e.service)
        raise HTTPException(
            status_code=502,
            detail="An upstream service is unavailable. Please try again.",
        ) from e
    except Exception as e:
        logger.exception("[%s] Error processing message", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Send one message and get the assistant's reply."""
    dispatcher = _get_dispatcher(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    outcome = await _dispatch(dispatcher, request.message, request_id)
    return ChatResponse(
        reply=outcome.reply,
        decision=outcome.decision.value,
        session_id=request.session_id,
    )


@router.post("/messages", response_model=ActivityResponse)
async def messages(activity: Activity, http_request: Request):
    """Handle a channel activity.

    * ``message`` — one reply from the dispatcher
    * ``conversationUpdate`` — a welcome text per newly joined member
    * anything else — no reply
    """
    request_id = getattr(http_request.state, "request_id", "?")

    if activity.type == "message":
        dispatcher = _get_dispatcher(http_request)
        outcome = await _dispatch(dispatcher, activity.text or "", request_id)
        return ActivityResponse(replies=[outcome.reply])

    if activity.type == "conversationUpdate":
        member_ids = [member.id for member in activity.members_added]
        return ActivityResponse(replies=greet(member_ids, activity.recipient.id))

    logger.debug("[%s] Ignoring activity of type %s", request_id, activity.type)
    return ActivityResponse()
