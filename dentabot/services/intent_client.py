"""Intent recognizers.

Three interchangeable backends produce the same :class:`IntentResult`:

* ``clu``       — Azure Conversational Language Understanding
* ``luis``      — LUIS v3 prediction endpoint
* ``anthropic`` — a Claude classifier with structured output

None of them normalises the extracted entity text; the dispatcher gets
exactly what the backend matched.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Literal

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import HumanMessage
from langchain_core.runnables import Runnable
from pydantic import BaseModel, Field, ValidationError

from dentabot.config import IntentSettings
from dentabot.models import EntityOccurrence, IntentResult
from dentabot.prompts import INTENT_PROMPT
from dentabot.services.base import (
    DEFAULT_TIMEOUT_SECONDS,
    JSONServiceClient,
    ServiceError,
    shape_error,
)
from dentabot.services.metrics import metrics

logger = logging.getLogger(__name__)

CLU_API_VERSION = "2023-04-01"
CLU_PATH = "/language/:analyze-conversations"


class IntentClient(ABC):
    """Classifies one utterance into a top intent plus entities."""

    @abstractmethod
    def classify(self, utterance: str) -> IntentResult:
        """Return the backend's intent/score/entity result for *utterance*."""

    def close(self) -> None:
        """Release network resources; nothing to do by default."""


# ── Azure CLU ────────────────────────────────────────────────────────


class CluIntentClient(JSONServiceClient, IntentClient):
    service_name = "clu"

    def __init__(self, settings: IntentSettings, *, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._settings = settings
        super().__init__(
            settings.endpoint_host,
            headers={"Ocp-Apim-Subscription-Key": settings.auth_key},
            timeout=timeout,
        )

    def classify(self, utterance: str) -> IntentResult:
        body = {
            "kind": "Conversation",
            "analysisInput": {
                "conversationItem": {
                    "id": "1",
                    "participantId": "user",
                    "text": utterance,
                },
            },
            "parameters": {
                "projectName": self._settings.project_name,
                "deploymentName": self._settings.deployment_name,
                "stringIndexType": "TextElement_V8",
            },
        }
        data = self._request_json(
            "POST", CLU_PATH,
            params={"api-version": CLU_API_VERSION},
            json_body=body,
            operation="analyze_conversations",
        )
        logger.debug("CLU response: %s", data)
        try:
            return self.parse_prediction(data["result"]["prediction"])
        except (KeyError, TypeError, AttributeError, ValidationError) as exc:
            raise shape_error(self.service_name, data, exc) from exc

    @staticmethod
    def parse_prediction(prediction: dict[str, Any]) -> IntentResult:
        """Convert a CLU ``prediction`` object into an :class:`IntentResult`."""
        scores = {
            item["category"]: item["confidenceScore"]
            for item in prediction.get("intents", [])
        }
        entities: dict[str, list[EntityOccurrence]] = {}
        for entity in prediction.get("entities", []):
            entities.setdefault(entity["category"], []).append(
                EntityOccurrence(
                    text=entity.get("text", ""),
                    offset=entity.get("offset"),
                    length=entity.get("length"),
                    confidence_score=entity.get("confidenceScore"),
                )
            )
        return IntentResult(
            top_intent=prediction.get("topIntent") or "None",
            scores=scores,
            entities=entities,
        )


# ── LUIS v3 ──────────────────────────────────────────────────────────


class LuisIntentClient(JSONServiceClient, IntentClient):
    service_name = "luis"

    def __init__(self, settings: IntentSettings, *, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._settings = settings
        super().__init__(
            settings.endpoint_host,
            headers={"Ocp-Apim-Subscription-Key": settings.auth_key},
            timeout=timeout,
        )

    def classify(self, utterance: str) -> IntentResult:
        path = f"/luis/prediction/v3.0/apps/{self._settings.luis_app_id}/slots/production/predict"
        data = self._request_json(
            "GET", path,
            params={"query": utterance, "show-all-intents": "true", "verbose": "true"},
            operation="predict",
        )
        logger.debug("LUIS response: %s", data)
        try:
            return self.parse_prediction(data["prediction"])
        except (KeyError, TypeError, AttributeError, ValidationError) as exc:
            raise shape_error(self.service_name, data, exc) from exc

    @staticmethod
    def parse_prediction(prediction: dict[str, Any]) -> IntentResult:
        """Convert a LUIS v3 ``prediction`` object into an :class:`IntentResult`.

        Matched text spans live under ``entities.$instance``; the resolved
        values next to them are ignored.
        """
        scores = {
            name: intent.get("score", 0.0)
            for name, intent in prediction.get("intents", {}).items()
        }
        instance = prediction.get("entities", {}).get("$instance", {})
        entities = {
            kind: [
                EntityOccurrence(
                    text=occurrence.get("text", ""),
                    offset=occurrence.get("startIndex"),
                    length=occurrence.get("length"),
                    confidence_score=occurrence.get("score"),
                )
                for occurrence in occurrences
            ]
            for kind, occurrences in instance.items()
        }
        return IntentResult(
            top_intent=prediction.get("topIntent") or "None",
            scores=scores,
            entities=entities,
        )


# ── Claude classifier ────────────────────────────────────────────────


class IntentPrediction(BaseModel):
    """Structured output requested from the LLM."""

    top_intent: Literal["GetAvailability", "ScheduleAppointment", "None"]
    confidence: float = Field(ge=0.0, le=1.0)
    time: str | None = Field(
        default=None,
        description="The appointment time exactly as written in the message, if any.",
    )


def _build_intent_llm(settings: IntentSettings) -> Runnable:
    """Build a deterministic Haiku classifier bound to :class:`IntentPrediction`."""
    llm = ChatAnthropic(
        model=settings.model_name,
        api_key=settings.anthropic_api_key,
        temperature=0.0,
        max_tokens=256,
    )
    return llm.with_structured_output(IntentPrediction)


class AnthropicIntentClient(IntentClient):
    service_name = "anthropic"

    def __init__(self, settings: IntentSettings):
        self._settings = settings
        self._llm = _build_intent_llm(settings)

    def classify(self, utterance: str) -> IntentResult:
        prompt = INTENT_PROMPT.format(utterance=utterance)
        t0 = time.perf_counter()
        try:
            prediction: IntentPrediction = self._llm.invoke([HumanMessage(content=prompt)])
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                self.service_name, "intent_classify",
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            raise ServiceError(
                f"Intent classification failed: {exc}", service=self.service_name,
            ) from exc

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success(self.service_name, "intent_classify", latency_ms=elapsed)
        logger.debug(
            "Claude (%s) classified as %s (%.2f, time=%r, %.0fms)",
            self._settings.model_name, prediction.top_intent,
            prediction.confidence, prediction.time, elapsed,
        )

        entities: dict[str, list[EntityOccurrence]] = {}
        if prediction.time:
            entities["time"] = [EntityOccurrence(text=prediction.time)]
        return IntentResult(
            top_intent=prediction.top_intent,
            scores={prediction.top_intent: prediction.confidence},
            entities=entities,
        )


def build_intent_client(
    settings: IntentSettings,
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> IntentClient:
    """Return the recognizer selected by ``settings.backend``."""
    if settings.backend == "clu":
        return CluIntentClient(settings, timeout=timeout)
    if settings.backend == "luis":
        return LuisIntentClient(settings, timeout=timeout)
    if settings.backend == "anthropic":
        return AnthropicIntentClient(settings)
    raise ValueError(f"Unknown intent backend: {settings.backend!r}")
