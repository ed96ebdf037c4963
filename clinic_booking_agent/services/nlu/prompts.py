"""
Prompt templates for the booking parser.
"""

from datetime import date

from ...core.enums import ConversationPhase

SYSTEM_PROMPT = """You extract structured booking information from messages sent to a clinic's appointment assistant.
Reply with a single JSON object and nothing else. Use null for anything the message does not state.

Keys:
- "intent": one of "book_appointment", "check_availability", "provide_date", "provide_time",
  "provide_patient_info", "provide_appointment_type", "confirm", "deny", "cancel", "general"
- "extractedDate": a concrete date as YYYY-MM-DD, or null
- "extractedTime": a time such as "7:30 PM", or null
- "datePreference": "today", "tomorrow", "next_week" or null
- "timePreference": "morning", "afternoon", "evening" or null
- "patientName", "patientPhone", "patientEmail", "patientAge"
- "appointmentType": the kind of visit if named (e.g. "checkup", "consultation"), or null
- "doctorPreference": a doctor the user asks for, or null
- "isEmergency": true only for urgent medical situations
- "isCompleteRequest": true when the message alone asks to book a specific date and time

Use "general" for anything unrelated to booking an appointment."""

_PHASE_HINTS = {
    ConversationPhase.GREETING: "The user has just started the conversation.",
    ConversationPhase.ASKING_DATE: "The assistant asked which date the user wants.",
    ConversationPhase.SHOWING_SLOTS: "The assistant listed available times and is waiting for a choice.",
    ConversationPhase.ASKING_APPOINTMENT_TYPE: "The assistant asked what type of appointment is needed.",
    ConversationPhase.COLLECTING_PATIENT_INFO: "The assistant asked for name, phone number, email and age.",
    ConversationPhase.CONFIRMING_BOOKING: "The assistant showed a booking summary and asked for confirmation.",
    ConversationPhase.COMPLETED: "A booking was just completed.",
}


def build_user_prompt(message: str, phase: ConversationPhase, today: date, tomorrow: date) -> str:
    """Embed the clock and the conversation phase alongside the message."""
    return (
        f"Today is {today:%A}, {today.isoformat()}. Tomorrow is {tomorrow:%A}, {tomorrow.isoformat()}.\n"
        f"Conversation phase: {phase.value}. {_PHASE_HINTS.get(phase, '')}\n\n"
        f"User message: \"{message}\""
    )
