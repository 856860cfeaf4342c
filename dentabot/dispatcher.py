"""Turn dispatcher for the Contoso Dentistry assistant.

Architecture:
  Each inbound message runs once through a LangGraph StateGraph:

    recognize ──(decide)──► answer_from_knowledge_base ─► END
                        ├─► report_availability ────────► END
                        ├─► schedule_appointment ───────► END
                        └─► fallback ───────────────────► END

  ``recognize`` asks the knowledge base and the intent recognizer about the
  utterance at the same time.  ``decide`` walks :data:`RULES` in order and
  the first rule whose predicate holds picks the node that produces the
  reply.  Knowledge-base answers always win over intents.

  Errors from any backend propagate out of :meth:`Dispatcher.handle`
  untouched; no partial reply is produced for that turn.  No state
  survives a turn, so the graph is compiled without a checkpointer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from dentabot.config import Settings
from dentabot.models import (
    NO_ANSWER_SENTINEL,
    Decision,
    IntentResult,
    KnowledgeResult,
)
from dentabot.prompts import FALLBACK_REPLY
from dentabot.services.intent_client import IntentClient, build_intent_client
from dentabot.services.knowledge_client import KnowledgeClient
from dentabot.services.metrics import metrics
from dentabot.services.scheduler_client import SchedulerClient

logger = logging.getLogger(__name__)

GET_AVAILABILITY = "GetAvailability"
SCHEDULE_APPOINTMENT = "ScheduleAppointment"
TIME_ENTITY = "time"

# Strict lower bounds: a score equal to the threshold does not qualify.
AVAILABILITY_THRESHOLD = 0.85
SCHEDULE_THRESHOLD = 0.6


class TurnState(TypedDict, total=False):
    """State for one turn.  Built fresh per message and discarded after."""

    utterance: str
    knowledge: KnowledgeResult
    intent: IntentResult
    decision: str
    reply: str


@dataclass(frozen=True)
class TurnOutcome:
    decision: Decision
    reply: str


# ── Decision rules ───────────────────────────────────────────────────

Predicate = Callable[[KnowledgeResult, IntentResult], bool]


def has_knowledge_answer(knowledge: KnowledgeResult, intent: IntentResult) -> bool:
    best = knowledge.best_answer
    return bool(best) and best != NO_ANSWER_SENTINEL


def wants_availability(knowledge: KnowledgeResult, intent: IntentResult) -> bool:
    return (
        intent.top_intent == GET_AVAILABILITY
        and intent.score(GET_AVAILABILITY) > AVAILABILITY_THRESHOLD
    )


def wants_appointment(knowledge: KnowledgeResult, intent: IntentResult) -> bool:
    # Only the first time occurrence is used, even if several were matched.
    return (
        intent.top_intent == SCHEDULE_APPOINTMENT
        and intent.score(SCHEDULE_APPOINTMENT) > SCHEDULE_THRESHOLD
        and intent.first_entity_text(TIME_ENTITY) is not None
    )


RULES: list[tuple[Decision, Predicate]] = [
    (Decision.ANSWER_FROM_KNOWLEDGE_BASE, has_knowledge_answer),
    (Decision.REPORT_AVAILABILITY, wants_availability),
    (Decision.SCHEDULE_APPOINTMENT, wants_appointment),
]


def decide(knowledge: KnowledgeResult, intent: IntentResult) -> Decision:
    """Return the first decision whose rule matches, else ``FALLBACK``."""
    for decision, predicate in RULES:
        if predicate(knowledge, intent):
            return decision
    return Decision.FALLBACK


def route_decision(state: TurnState) -> str:
    """Conditional edge: name of the node that handles this turn."""
    return decide(state["knowledge"], state["intent"]).value


# ── Dispatcher ───────────────────────────────────────────────────────


class Dispatcher:
    """Routes one utterance to exactly one backend and returns its reply."""

    def __init__(
        self,
        knowledge_client: KnowledgeClient,
        intent_client: IntentClient,
        scheduler_client: SchedulerClient,
    ):
        self._knowledge = knowledge_client
        self._intents = intent_client
        self._scheduler = scheduler_client
        self._graph = self._build_graph()

    # ── Nodes ────────────────────────────────────────────────────────

    async def _recognize(self, state: TurnState) -> dict:
        """Query the knowledge base and the intent recognizer concurrently."""
        utterance = state["utterance"]
        if not utterance.strip():
            return {"knowledge": KnowledgeResult(), "intent": IntentResult()}

        knowledge, intent = await asyncio.gather(
            asyncio.to_thread(self._knowledge.query, utterance),
            asyncio.to_thread(self._intents.classify, utterance),
        )
        logger.debug(
            "Recognized: best answer=%r, top intent=%s (%.2f)",
            knowledge.best_answer, intent.top_intent, intent.score(intent.top_intent),
        )
        return {"knowledge": knowledge, "intent": intent}

    async def _answer_from_knowledge_base(self, state: TurnState) -> dict:
        return {
            "decision": Decision.ANSWER_FROM_KNOWLEDGE_BASE.value,
            "reply": state["knowledge"].best_answer,
        }

    async def _report_availability(self, state: TurnState) -> dict:
        reply = await asyncio.to_thread(self._scheduler.get_availability)
        return {"decision": Decision.REPORT_AVAILABILITY.value, "reply": reply}

    async def _schedule_appointment(self, state: TurnState) -> dict:
        time_text = state["intent"].first_entity_text(TIME_ENTITY)
        reply = await asyncio.to_thread(self._scheduler.schedule_appointment, time_text)
        return {"decision": Decision.SCHEDULE_APPOINTMENT.value, "reply": reply}

    async def _fallback(self, state: TurnState) -> dict:
        return {"decision": Decision.FALLBACK.value, "reply": FALLBACK_REPLY}

    # ── Graph assembly ───────────────────────────────────────────────

    def _build_graph(self):
        graph = StateGraph(TurnState)

        graph.add_node("recognize", self._recognize)
        handlers = {
            Decision.ANSWER_FROM_KNOWLEDGE_BASE: self._answer_from_knowledge_base,
            Decision.REPORT_AVAILABILITY: self._report_availability,
            Decision.SCHEDULE_APPOINTMENT: self._schedule_appointment,
            Decision.FALLBACK: self._fallback,
        }
        for decision, handler in handlers.items():
            graph.add_node(decision.value, handler)
            graph.add_edge(decision.value, END)

        graph.set_entry_point("recognize")
        graph.add_conditional_edges(
            "recognize",
            route_decision,
            {decision.value: decision.value for decision in handlers},
        )
        return graph.compile()

    # ── Public API ───────────────────────────────────────────────────

    async def handle_turn(self, utterance: str) -> TurnOutcome:
        """Run one turn and return the decision taken with its reply."""
        t0 = time.perf_counter()
        result = await self._graph.ainvoke({"utterance": utterance})
        outcome = TurnOutcome(decision=Decision(result["decision"]), reply=result["reply"])
        metrics.record_decision(outcome.decision.value)
        logger.info(
            "Turn dispatched: %s (%.0fms)",
            outcome.decision.value, (time.perf_counter() - t0) * 1000,
        )
        return outcome

    async def handle(self, utterance: str) -> str:
        """Return the single text reply for *utterance*."""
        outcome = await self.handle_turn(utterance)
        return outcome.reply

    def close(self) -> None:
        """Close the HTTP clients of all three backends."""
        self._knowledge.close()
        self._intents.close()
        self._scheduler.close()


def create_dispatcher(settings: Settings) -> Dispatcher:
    """Build a :class:`Dispatcher` with clients wired from *settings*."""
    timeout = settings.request_timeout_seconds
    dispatcher = Dispatcher(
        KnowledgeClient(settings.knowledge_base, timeout=timeout),
        build_intent_client(settings.intent, timeout=timeout),
        SchedulerClient(settings.scheduler, timeout=timeout),
    )
    logger.debug(
        "Dispatcher ready (intent backend: %s, scheduler: %s)",
        settings.intent.backend, settings.scheduler.endpoint,
    )
    return dispatcher
