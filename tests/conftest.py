"""Shared test fixtures for the Contoso Dentistry test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

from dentabot.config import (
    IntentSettings,
    KnowledgeBaseSettings,
    SchedulerSettings,
    Settings,
)
from dentabot.models import EntityOccurrence, IntentResult, KnowledgeAnswer, KnowledgeResult

_TEST_ENV = {
    "KB_ENDPOINT_HOST": "https://kb.test.cognitiveservices.azure.com",
    "KB_AUTH_KEY": "test-kb-key-123",
    "KB_PROJECT_NAME": "contoso-faq",
    "INTENT_BACKEND": "clu",
    "CLU_ENDPOINT_HOST": "https://clu.test.cognitiveservices.azure.com",
    "CLU_AUTH_KEY": "test-clu-key-456",
    "CLU_PROJECT_NAME": "contoso-scheduling",
    "SCHEDULER_ENDPOINT": "https://scheduler.test",
}


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts, so the
    server lifespan can load settings without a ``.env`` file.
    """
    for name, value in _TEST_ENV.items():
        os.environ.setdefault(name, value)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        knowledge_base=KnowledgeBaseSettings(
            endpoint_host="https://kb.test.cognitiveservices.azure.com",
            auth_key="test-kb-key-123",
            project_name="contoso-faq",
        ),
        intent=IntentSettings(
            backend="clu",
            endpoint_host="https://clu.test.cognitiveservices.azure.com",
            auth_key="test-clu-key-456",
            project_name="contoso-scheduling",
        ),
        scheduler=SchedulerSettings(endpoint="https://scheduler.test"),
    )


@pytest.fixture
def mock_response():
    """Factory fixture for creating mock HTTP responses."""

    def _make(data, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        if isinstance(data, str):
            mock.json.side_effect = ValueError("not json")
        else:
            mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make


def make_knowledge(*answers: str) -> KnowledgeResult:
    return KnowledgeResult(answers=[KnowledgeAnswer(answer=a) for a in answers])


def make_intent(
    top_intent: str = "None",
    score: float = 0.0,
    times: list[str] | None = None,
) -> IntentResult:
    entities = {}
    if times is not None:
        entities["time"] = [EntityOccurrence(text=t) for t in times]
    return IntentResult(top_intent=top_intent, scores={top_intent: score}, entities=entities)
