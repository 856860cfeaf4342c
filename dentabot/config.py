"""Centralized configuration for the Contoso Dentistry virtual assistant.

Settings are loaded once into immutable dataclasses and injected into each
client at construction time, so nothing downstream reads ``os.environ``.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/dentabot/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

INTENT_BACKENDS = ("clu", "luis", "anthropic")


# ── Secret resolution ────────────────────────────────────────────────

def _on_aws() -> bool:
    return bool(os.getenv("AWS_EXECUTION_ENV"))


def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 — lazy import to avoid boto3 dep in tests

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/dentabot/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _on_aws():
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /dentabot/{name} (AWS)."
    )


# ── Settings objects ─────────────────────────────────────────────────


@dataclass(frozen=True)
class KnowledgeBaseSettings:
    """Custom question answering project (the knowledge base)."""

    endpoint_host: str
    auth_key: str
    project_name: str
    deployment_name: str = "production"


@dataclass(frozen=True)
class IntentSettings:
    """Intent recognition backend.

    Only the fields of the selected ``backend`` are required; the others
    stay empty.
    """

    backend: str = "clu"
    endpoint_host: str = ""
    auth_key: str = ""
    project_name: str = ""
    deployment_name: str = "production"
    luis_app_id: str = ""
    anthropic_api_key: str = ""
    model_name: str = "claude-haiku-4-5"


@dataclass(frozen=True)
class SchedulerSettings:
    """Dentist scheduler REST backend."""

    endpoint: str


@dataclass(frozen=True)
class Settings:
    knowledge_base: KnowledgeBaseSettings
    intent: IntentSettings
    scheduler: SchedulerSettings
    request_timeout_seconds: float = 15.0


def _load_intent_settings() -> IntentSettings:
    backend = os.getenv("INTENT_BACKEND", "clu").strip().lower()
    if backend not in INTENT_BACKENDS:
        raise OSError(
            f"Unsupported INTENT_BACKEND {backend!r}; "
            f"expected one of: {', '.join(INTENT_BACKENDS)}."
        )

    if backend == "clu":
        return IntentSettings(
            backend=backend,
            endpoint_host=_require_env("CLU_ENDPOINT_HOST"),
            auth_key=_require_env("CLU_AUTH_KEY"),
            project_name=_require_env("CLU_PROJECT_NAME"),
            deployment_name=os.getenv("CLU_DEPLOYMENT_NAME", "production"),
        )
    if backend == "luis":
        return IntentSettings(
            backend=backend,
            endpoint_host=_require_env("LUIS_ENDPOINT_HOST"),
            auth_key=_require_env("LUIS_AUTH_KEY"),
            luis_app_id=_require_env("LUIS_APP_ID"),
        )
    return IntentSettings(
        backend=backend,
        anthropic_api_key=_require_env("ANTHROPIC_API_KEY"),
        model_name=os.getenv("INTENT_MODEL_NAME", "claude-haiku-4-5"),
    )


def load_settings() -> Settings:
    """Build the immutable :class:`Settings` from the environment."""
    settings = Settings(
        knowledge_base=KnowledgeBaseSettings(
            endpoint_host=_require_env("KB_ENDPOINT_HOST"),
            auth_key=_require_env("KB_AUTH_KEY"),
            project_name=_require_env("KB_PROJECT_NAME"),
            deployment_name=os.getenv("KB_DEPLOYMENT_NAME", "production"),
        ),
        intent=_load_intent_settings(),
        scheduler=SchedulerSettings(endpoint=_require_env("SCHEDULER_ENDPOINT")),
        request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "15")),
    )
    logger.debug(
        "Settings loaded — kb project: %s, intent backend: %s",
        settings.knowledge_base.project_name, settings.intent.backend,
    )
    return settings


# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
