"""HTTP client for the dentist scheduler backend.

The scheduler exposes two endpoints:

* ``GET  /availability`` — open slots, as a JSON list of strings
* ``POST /schedule``     — books ``{"time": ...}``

Both methods return human-readable text; the dispatcher relays it as-is.
"""

from __future__ import annotations

import logging
from typing import Any

from dentabot.config import SchedulerSettings
from dentabot.services.base import DEFAULT_TIMEOUT_SECONDS, JSONServiceClient, shape_error

logger = logging.getLogger(__name__)


class SchedulerClient(JSONServiceClient):
    """Reads availability from and books appointments with the scheduler.

    Availability is never cached; it changes with every booking.
    """

    service_name = "scheduler"

    def __init__(self, settings: SchedulerSettings, *, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        super().__init__(settings.endpoint, timeout=timeout)

    @staticmethod
    def _body(response) -> Any:
        """Decoded JSON body, or the raw text when the body is not JSON."""
        try:
            return response.json()
        except ValueError:
            return response.text

    def get_availability(self) -> str:
        """Describe the currently open appointment slots."""
        payload = self._body(self._request("GET", "/availability", operation="get_availability"))
        logger.debug("Scheduler availability: %s", payload)

        if isinstance(payload, str):
            return payload.strip() or "There are no openings at the moment."
        if isinstance(payload, dict):
            payload = payload.get("slots") or []
        if not isinstance(payload, list):
            raise shape_error(
                self.service_name, payload,
                TypeError(f"expected a list of slots, got {type(payload).__name__}"),
            )
        slots = [str(slot) for slot in payload]
        if not slots:
            return "There are no openings at the moment."
        return "Current openings: " + ", ".join(slots)

    def schedule_appointment(self, time_text: str) -> str:
        """Book an appointment for *time_text* exactly as the patient wrote it.

        Parsing and validating the time expression is left to the scheduler.
        """
        if not time_text:
            raise ValueError("time_text must be a non-empty string")

        payload = self._body(
            self._request(
                "POST", "/schedule",
                json_body={"time": time_text},
                operation="schedule_appointment",
            )
        )
        logger.info("Scheduler booked appointment for %r", time_text)

        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        if isinstance(payload, str) and payload.strip():
            return payload.strip()
        return f"An appointment is set for {time_text}."
