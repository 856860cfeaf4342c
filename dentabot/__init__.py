"""Contoso Dentistry Virtual Assistant — a chat front-end for a dental clinic.

Architecture Overview
=====================

Every inbound message is sent to two hosted services at once:

1. **Knowledge base** — custom question answering over the clinic's FAQ.
2. **Intent recognizer** — CLU, LUIS or a Claude classifier, returning a
   top intent, per-intent scores and extracted entities.

The dispatcher then picks exactly one response path, first match wins:

* a real knowledge-base answer → reply with it
* ``GetAvailability`` above 0.85 → ask the scheduler for open slots
* ``ScheduleAppointment`` above 0.6 with a time entity → book that time
* otherwise → a fixed "could you say that differently?" message

New participants get a static welcome message.  No conversation state is
kept between turns.

Package Structure
-----------------
- ``dentabot/config.py`` — immutable settings loaded from env / SSM
- ``dentabot/models.py`` — per-turn result models and the decision enum
- ``dentabot/dispatcher.py`` — LangGraph turn graph and decision rules
- ``dentabot/greeter.py`` — welcome messages on member join
- ``dentabot/prompts.py`` — fixed reply texts and the LLM intent prompt
- ``dentabot/services/`` — backend clients and CloudWatch metrics
- ``dentabot/api/`` — FastAPI routes and Pydantic schemas
- ``dentabot/server.py`` — FastAPI application
- ``dentabot/main.py`` — CLI chat interface
"""
