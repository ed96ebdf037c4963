"""
Shared test doubles and constants.
"""

from datetime import datetime

import pytz

from clinic_booking_agent.core.exceptions import LanguageModelError
from clinic_booking_agent.core.models import ParsedInput

TZ = pytz.timezone("Asia/Kolkata")
# A Wednesday; tomorrow (2025-08-07) is a Thursday.
FIXED_NOW = TZ.localize(datetime(2025, 8, 6, 10, 0))
TODAY = "2025-08-06"
TOMORROW = "2025-08-07"

SLOT_LABELS = [
    "09:00 AM",
    "09:30 AM",
    "10:30 AM",
    "11:00 AM",
    "12:30 PM",
    "02:00 PM",
    "03:30 PM",
    "07:00 PM",
    "07:30 PM",
]

APPOINTMENT_TYPES = ["Consultation", "Routine Checkup", "Follow-up"]


class ScriptedParser:
    """Stands in for the language-model parser with canned results per message."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def script(self, message, **fields):
        self.responses[message] = fields

    async def parse_strict(self, message, phase):
        self.calls.append((message, phase))
        value = self.responses.get(message)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return ParsedInput.default()
        return ParsedInput.model_validate(value)


class FailingParser(ScriptedParser):
    async def parse_strict(self, message, phase):
        self.calls.append((message, phase))
        raise LanguageModelError("all providers failed")


def fixed_clock():
    return FIXED_NOW
