"""Per-turn data passed between the backend clients and the dispatcher.

Nothing here is persisted: every model is built fresh from one backend
response and discarded at the end of the turn.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

NO_ANSWER_SENTINEL = "No answer found"


class KnowledgeAnswer(BaseModel):
    """One candidate answer from the knowledge base."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    answer: str = ""
    confidence_score: float | None = Field(default=None, alias="confidenceScore")
    id: int | None = None
    questions: list[str] = Field(default_factory=list)
    source: str | None = None


class KnowledgeResult(BaseModel):
    """Ranked candidate answers; the first element is the best match."""

    model_config = ConfigDict(extra="allow")

    answers: list[KnowledgeAnswer] = Field(default_factory=list)

    @property
    def best_answer(self) -> str | None:
        if not self.answers:
            return None
        return self.answers[0].answer

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> KnowledgeResult:
        return cls.model_validate(payload or {})


class EntityOccurrence(BaseModel):
    """A single extracted entity with its matched source text."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    text: str
    offset: int | None = None
    length: int | None = None
    confidence_score: float | None = Field(default=None, alias="confidenceScore")


class IntentResult(BaseModel):
    """Top intent, per-intent confidence scores and extracted entities."""

    top_intent: str = "None"
    scores: dict[str, float] = Field(default_factory=dict)
    entities: dict[str, list[EntityOccurrence]] = Field(default_factory=dict)

    def score(self, intent: str) -> float:
        """Confidence for *intent*, ``0.0`` when the backend did not report it."""
        return self.scores.get(intent, 0.0)

    def first_entity_text(self, kind: str) -> str | None:
        """Matched text of the first *kind* occurrence, if any."""
        occurrences = self.entities.get(kind) or []
        if not occurrences:
            return None
        return occurrences[0].text or None


class Decision(StrEnum):
    """The single response path chosen for a turn."""

    ANSWER_FROM_KNOWLEDGE_BASE = "answer_from_knowledge_base"
    REPORT_AVAILABILITY = "report_availability"
    SCHEDULE_APPOINTMENT = "schedule_appointment"
    FALLBACK = "fallback"
