"""
Conversational booking flow.
"""

from .state_machine import ConversationStateMachine, TurnResult
from .commit import CommitGateway, build_booking_idempotency_key
from .service import BookingService

__all__ = [
    "ConversationStateMachine",
    "TurnResult",
    "CommitGateway",
    "build_booking_idempotency_key",
    "BookingService",
]
