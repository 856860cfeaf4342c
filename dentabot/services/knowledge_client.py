"""Client for the custom question answering (knowledge base) endpoint.

API docs: https://learn.microsoft.com/rest/api/language/question-answering/
Requests authenticate with the ``Ocp-Apim-Subscription-Key`` header.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from dentabot.config import KnowledgeBaseSettings
from dentabot.models import KnowledgeResult
from dentabot.services.base import DEFAULT_TIMEOUT_SECONDS, JSONServiceClient, shape_error

logger = logging.getLogger(__name__)

API_VERSION = "2021-10-01"
QUERY_PATH = "/language/:query-knowledgebases"

# ── Query parameters sent with every question ───────────────────────
TOP_ANSWERS = 3
CONFIDENCE_SCORE_THRESHOLD = 0.5
INCLUDE_UNSTRUCTURED_SOURCES = True


class KnowledgeClient(JSONServiceClient):
    """Asks the knowledge base a question and returns its ranked answers.

    Results are never cached; each call hits the service.
    """

    service_name = "knowledge_base"

    def __init__(
        self,
        settings: KnowledgeBaseSettings,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._settings = settings
        super().__init__(
            settings.endpoint_host,
            headers={"Ocp-Apim-Subscription-Key": settings.auth_key},
            timeout=timeout,
        )

    def query(self, question: str) -> KnowledgeResult:
        """Return up to three candidate answers for *question*, best first.

        Raises:
            ValueError: if *question* is empty.
            ServiceError: on transport failure or a non-2xx response.
        """
        if not question or not question.strip():
            raise ValueError("question must be a non-empty string")

        params = {
            "projectName": self._settings.project_name,
            "api-version": API_VERSION,
            "deploymentName": self._settings.deployment_name,
        }
        body = {
            "top": TOP_ANSWERS,
            "question": question,
            "includeUnstructuredSources": INCLUDE_UNSTRUCTURED_SOURCES,
            "confidenceScoreThreshold": CONFIDENCE_SCORE_THRESHOLD,
        }
        logger.debug(
            "Querying knowledge base %s%s params=%s body=%s",
            self._base_url, QUERY_PATH, params, body,
        )
        data = self._request_json(
            "POST", QUERY_PATH,
            params=params, json_body=body, operation="query_knowledgebases",
        )
        logger.debug("Knowledge base response: %s", data)
        try:
            return KnowledgeResult.from_response(data)
        except (TypeError, ValidationError) as exc:
            raise shape_error(self.service_name, data, exc) from exc
