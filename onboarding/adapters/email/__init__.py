"""Email adapters - Senders and the fire-and-forget dispatcher."""

from .console import ConsoleEmailSender
from .dispatcher import BackgroundNotificationDispatcher
from .http import EmailRequest, HttpEmailSender, WelcomeEmailRequest

__all__ = [
    "BackgroundNotificationDispatcher",
    "ConsoleEmailSender",
    "EmailRequest",
    "HttpEmailSender",
    "WelcomeEmailRequest",
]
