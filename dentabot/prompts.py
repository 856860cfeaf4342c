"""Prompt and fixed texts used by the Contoso Dentistry assistant."""

FALLBACK_REPLY = "Could you say that differently? I had trouble understanding it."

WELCOME_TEXT = (
    "Hello! I am the Contoso Dentistry Virtual Assistant! "
    "Try asking me for available appointment slots, or book an appointment! "
    "I can also answer some of your questions."
)

INTENT_PROMPT = (
    "You classify messages sent to a dental clinic's scheduling assistant.\n\n"
    "Pick exactly one intent:\n"
    "- GetAvailability: the patient asks which appointment slots are open.\n"
    "- ScheduleAppointment: the patient asks to book an appointment.\n"
    "- None: anything else.\n\n"
    "Give your confidence in the chosen intent between 0 and 1.\n"
    "If the message mentions when the appointment should be, copy that time "
    "expression into `time` exactly as written (e.g. \"3pm Friday\"); "
    "otherwise leave it empty. Never invent a time.\n\n"
    "Message: {utterance}"
)
