"""
Post-commit notification dispatch.
"""

from .templates import NotificationKind, NotificationRecipient, render_notification
from .channels import NotificationChannel, WhatsAppChannel, EmailChannel
from .service import NotificationService

__all__ = [
    "NotificationKind",
    "NotificationRecipient",
    "render_notification",
    "NotificationChannel",
    "WhatsAppChannel",
    "EmailChannel",
    "NotificationService",
]
