"""
Notification delivery channels.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

import httpx

from ...config import Settings
from ...core.exceptions import NotificationError
from ...utils.logging import get_logger
from .templates import NotificationRecipient

logger = get_logger("clinic.notify")


class NotificationChannel(Protocol):
    name: str

    def accepts(self, recipient: NotificationRecipient) -> bool:
        ...

    async def send(self, recipient: NotificationRecipient, subject: str, body: str) -> None:
        ...


class WhatsAppChannel:
    """WhatsApp Cloud API text messages."""

    name = "whatsapp"

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_base: str = "https://graph.facebook.com/v19.0",
        country_code: str = "91",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_base = api_base.rstrip("/")
        self.country_code = country_code
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["WhatsAppChannel"]:
        if not (settings.whatsapp_access_token and settings.whatsapp_phone_number_id):
            return None
        return cls(
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_base=settings.whatsapp_api_base,
            country_code=settings.whatsapp_country_code,
        )

    @property
    def url(self) -> str:
        return f"{self.api_base}/{self.phone_number_id}/messages"

    def accepts(self, recipient: NotificationRecipient) -> bool:
        return bool(recipient.phone)

    async def send(self, recipient: NotificationRecipient, subject: str, body: str) -> None:
        payload = {
            "messaging_product": "whatsapp",
            "to": f"{self.country_code}{recipient.phone}",
            "type": "text",
            "text": {"body": body},
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NotificationError("WhatsApp request timed out") from e
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"WhatsApp HTTP error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise NotificationError(f"WhatsApp request failed: {e}") from e


class EmailChannel:
    """Plain-text email over SMTP, sent from a worker thread."""

    name = "email"

    def __init__(
        self,
        host: str,
        sender: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        use_tls: bool = True,
    ):
        self.host = host
        self.sender = sender
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["EmailChannel"]:
        if not (settings.smtp_host and settings.smtp_from):
            return None
        return cls(
            host=settings.smtp_host,
            sender=settings.smtp_from,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )

    def accepts(self, recipient: NotificationRecipient) -> bool:
        return bool(recipient.email)

    def _send_sync(self, to_address: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to_address
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(message)

    async def send(self, recipient: NotificationRecipient, subject: str, body: str) -> None:
        try:
            await asyncio.to_thread(self._send_sync, recipient.email, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"email to {recipient.email} failed: {e}") from e
