"""Tests for the dispatcher's decision rules and turn graph.

Covers:
  - ``decide`` priority chain and strict thresholds
  - End-to-end turns through the compiled graph with mocked clients
  - Fail-fast propagation of backend errors
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_intent, make_knowledge

from dentabot.dispatcher import (
    AVAILABILITY_THRESHOLD,
    RULES,
    SCHEDULE_THRESHOLD,
    Dispatcher,
    create_dispatcher,
    decide,
)
from dentabot.models import Decision, IntentResult, KnowledgeResult
from dentabot.prompts import FALLBACK_REPLY
from dentabot.services.base import ServiceError

# ── Helpers ──────────────────────────────────────────────────────────


def _make_dispatcher(knowledge: KnowledgeResult, intent: IntentResult):
    knowledge_client = MagicMock()
    knowledge_client.query.return_value = knowledge
    intent_client = MagicMock()
    intent_client.classify.return_value = intent
    scheduler = MagicMock()
    scheduler.get_availability.return_value = "Current openings: 9am, 10am"
    scheduler.schedule_appointment.side_effect = lambda t: f"An appointment is set for {t}."
    return Dispatcher(knowledge_client, intent_client, scheduler), scheduler


def _run(dispatcher: Dispatcher, utterance: str):
    return asyncio.run(dispatcher.handle_turn(utterance))


# ── TestDecide ───────────────────────────────────────────────────────


class TestDecide:
    def test_knowledge_answer_wins_over_confident_intent(self):
        decision = decide(
            make_knowledge("We are open 9-5."),
            make_intent("GetAvailability", 0.99),
        )
        assert decision is Decision.ANSWER_FROM_KNOWLEDGE_BASE

    def test_sentinel_answer_falls_through(self):
        decision = decide(
            make_knowledge("No answer found"),
            make_intent("GetAvailability", 0.9),
        )
        assert decision is Decision.REPORT_AVAILABILITY

    def test_only_first_answer_is_checked(self):
        decision = decide(
            make_knowledge("No answer found", "We are open 9-5."),
            make_intent(),
        )
        assert decision is Decision.FALLBACK

    def test_empty_answer_text_falls_through(self):
        assert decide(make_knowledge(""), make_intent()) is Decision.FALLBACK

    def test_availability_threshold_is_strict(self):
        at = make_intent("GetAvailability", AVAILABILITY_THRESHOLD)
        above = make_intent("GetAvailability", 0.851)
        assert decide(make_knowledge(), at) is Decision.FALLBACK
        assert decide(make_knowledge(), above) is Decision.REPORT_AVAILABILITY

    def test_availability_requires_top_intent(self):
        intent = IntentResult(
            top_intent="ScheduleAppointment",
            scores={"ScheduleAppointment": 0.3, "GetAvailability": 0.95},
        )
        assert decide(make_knowledge(), intent) is Decision.FALLBACK

    def test_schedule_threshold_is_strict(self):
        at = make_intent("ScheduleAppointment", SCHEDULE_THRESHOLD, times=["3pm"])
        above = make_intent("ScheduleAppointment", 0.61, times=["3pm"])
        assert decide(make_knowledge(), at) is Decision.FALLBACK
        assert decide(make_knowledge(), above) is Decision.SCHEDULE_APPOINTMENT

    def test_schedule_requires_time_entity(self):
        no_entity = make_intent("ScheduleAppointment", 0.95)
        empty_list = make_intent("ScheduleAppointment", 0.95, times=[])
        empty_text = make_intent("ScheduleAppointment", 0.95, times=[""])
        for intent in (no_entity, empty_list, empty_text):
            assert decide(make_knowledge(), intent) is Decision.FALLBACK

    def test_unknown_intent_falls_back(self):
        assert decide(make_knowledge(), make_intent("Greeting", 0.99)) is Decision.FALLBACK

    def test_rules_are_ordered(self):
        assert [decision for decision, _ in RULES] == [
            Decision.ANSWER_FROM_KNOWLEDGE_BASE,
            Decision.REPORT_AVAILABILITY,
            Decision.SCHEDULE_APPOINTMENT,
        ]


# ── TestDispatcherTurns ──────────────────────────────────────────────


class TestDispatcherTurns:
    def test_hours_question_answered_from_knowledge_base(self):
        dispatcher, scheduler = _make_dispatcher(
            make_knowledge("We are open 9-5."), make_intent("None", 0.9),
        )
        outcome = _run(dispatcher, "What are your hours?")

        assert outcome.decision is Decision.ANSWER_FROM_KNOWLEDGE_BASE
        assert outcome.reply == "We are open 9-5."
        scheduler.get_availability.assert_not_called()
        scheduler.schedule_appointment.assert_not_called()

    def test_openings_question_reports_availability(self):
        dispatcher, scheduler = _make_dispatcher(
            make_knowledge(), make_intent("GetAvailability", 0.9),
        )
        reply = asyncio.run(dispatcher.handle("Any openings this week?"))

        assert reply == "Current openings: 9am, 10am"
        scheduler.get_availability.assert_called_once_with()

    def test_booking_uses_extracted_time_text(self):
        dispatcher, scheduler = _make_dispatcher(
            make_knowledge("No answer found"),
            make_intent("ScheduleAppointment", 0.7, times=["3pm Friday"]),
        )
        outcome = _run(dispatcher, "Book me for 3pm Friday")

        assert outcome.decision is Decision.SCHEDULE_APPOINTMENT
        assert outcome.reply == "An appointment is set for 3pm Friday."
        scheduler.schedule_appointment.assert_called_once_with("3pm Friday")

    def test_booking_uses_first_time_occurrence(self):
        dispatcher, scheduler = _make_dispatcher(
            make_knowledge(),
            make_intent("ScheduleAppointment", 0.7, times=["3pm Friday", "noon Monday"]),
        )
        _run(dispatcher, "Book me for 3pm Friday or noon Monday")

        scheduler.schedule_appointment.assert_called_once_with("3pm Friday")

    def test_gibberish_gets_fallback(self):
        dispatcher, scheduler = _make_dispatcher(
            make_knowledge(), make_intent("None", 0.2),
        )
        outcome = _run(dispatcher, "blorp snarf")

        assert outcome.decision is Decision.FALLBACK
        assert outcome.reply == FALLBACK_REPLY

    def test_both_backends_receive_the_utterance(self):
        dispatcher, _ = _make_dispatcher(make_knowledge(), make_intent())
        _run(dispatcher, "Any openings?")

        dispatcher._knowledge.query.assert_called_once_with("Any openings?")
        dispatcher._intents.classify.assert_called_once_with("Any openings?")

    def test_blank_utterance_skips_backends(self):
        dispatcher, _ = _make_dispatcher(make_knowledge("x"), make_intent())
        outcome = _run(dispatcher, "   ")

        assert outcome.reply == FALLBACK_REPLY
        dispatcher._knowledge.query.assert_not_called()
        dispatcher._intents.classify.assert_not_called()

    def test_turns_are_independent(self):
        dispatcher, _ = _make_dispatcher(make_knowledge(), make_intent("None", 0.1))
        first = _run(dispatcher, "hello")
        dispatcher._knowledge.query.return_value = make_knowledge("We are open 9-5.")
        second = _run(dispatcher, "hours?")

        assert first.decision is Decision.FALLBACK
        assert second.decision is Decision.ANSWER_FROM_KNOWLEDGE_BASE

    @patch("dentabot.dispatcher.metrics")
    def test_decision_is_recorded(self, mock_metrics):
        dispatcher, _ = _make_dispatcher(make_knowledge(), make_intent())
        _run(dispatcher, "hello")
        mock_metrics.record_decision.assert_called_once_with("fallback")


# ── TestFailFast ─────────────────────────────────────────────────────


class TestFailFast:
    def test_knowledge_failure_propagates(self):
        dispatcher, scheduler = _make_dispatcher(make_knowledge(), make_intent())
        dispatcher._knowledge.query.side_effect = ServiceError(
            "Server error 500", status_code=500, service="knowledge_base",
        )

        with pytest.raises(ServiceError):
            _run(dispatcher, "What are your hours?")
        scheduler.get_availability.assert_not_called()

    def test_intent_failure_propagates_even_with_knowledge_answer(self):
        dispatcher, _ = _make_dispatcher(
            make_knowledge("We are open 9-5."), make_intent(),
        )
        dispatcher._intents.classify.side_effect = ServiceError("down", service="clu")

        with pytest.raises(ServiceError):
            _run(dispatcher, "What are your hours?")

    def test_scheduler_failure_propagates(self):
        dispatcher, scheduler = _make_dispatcher(
            make_knowledge(), make_intent("GetAvailability", 0.95),
        )
        scheduler.get_availability.side_effect = ServiceError("down", service="scheduler")

        with pytest.raises(ServiceError):
            _run(dispatcher, "Any openings?")


class TestClose:
    def test_closes_every_backend(self):
        dispatcher, scheduler = _make_dispatcher(make_knowledge(), make_intent())
        dispatcher.close()

        dispatcher._knowledge.close.assert_called_once_with()
        dispatcher._intents.close.assert_called_once_with()
        scheduler.close.assert_called_once_with()


class TestCreateDispatcher:
    def test_wires_clients_from_settings(self, settings):
        dispatcher = create_dispatcher(settings)
        assert dispatcher._knowledge._settings.project_name == "contoso-faq"
        assert dispatcher._scheduler._base_url == "https://scheduler.test"
