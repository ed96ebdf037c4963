"""
Fire-and-forget notification dispatch.
"""

import asyncio
from typing import List, Optional, Sequence, Set

from ...config import Settings
from ...core.exceptions import NotificationError
from ...core.models import Appointment
from ...utils.logging import get_logger
from ..nlu.retry import RetryPolicy, call_with_retry
from .channels import EmailChannel, NotificationChannel, WhatsAppChannel
from .templates import NotificationKind, NotificationRecipient, render_notification

logger = get_logger("clinic.notify")


class NotificationService:
    """Schedules deliveries as background tasks; never raises into the caller."""

    def __init__(
        self,
        channels: Sequence[NotificationChannel],
        clinic_name: str,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.channels: List[NotificationChannel] = list(channels)
        self.clinic_name = clinic_name
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=3, base_delay=1.0, multiplier=2.0)
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationService":
        channels = [
            channel
            for channel in (WhatsAppChannel.from_settings(settings), EmailChannel.from_settings(settings))
            if channel is not None
        ]
        if not channels:
            logger.info("notify: no channels configured; notifications disabled")
        return cls(channels, clinic_name=settings.clinic_name)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(
        self,
        kind: NotificationKind,
        appointment: Appointment,
        recipient: NotificationRecipient,
        previous_slot: Optional[str] = None,
    ) -> int:
        """Schedule delivery on every channel that accepts the recipient.

        Returns the number of deliveries scheduled.
        """
        subject, body = render_notification(
            kind, appointment, recipient, self.clinic_name, previous_slot=previous_slot
        )
        scheduled = 0
        for channel in self.channels:
            if not channel.accepts(recipient):
                continue
            task = asyncio.create_task(self._deliver(channel, kind, recipient, subject, body))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            scheduled += 1
        return scheduled

    async def drain(self) -> None:
        """Wait for all scheduled deliveries to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(
        self,
        channel: NotificationChannel,
        kind: NotificationKind,
        recipient: NotificationRecipient,
        subject: str,
        body: str,
    ) -> bool:
        try:
            await call_with_retry(
                lambda: channel.send(recipient, subject, body),
                self.retry_policy,
                retry_on=(NotificationError,),
                description=f"{channel.name} {kind.value}",
            )
        except NotificationError as e:
            logger.error(f"notify: {kind.value} via {channel.name} failed for {recipient.name}: {e}")
            return False
        except Exception:
            logger.exception(f"notify: unexpected error sending {kind.value} via {channel.name}")
            return False
        logger.info(f"notify: {kind.value} sent via {channel.name} to {recipient.name}")
        return True
