"""
Background notification dispatcher - Implements NotificationDispatcher protocol.

Each send is submitted to a ThreadPoolExecutor owned by the dispatcher and
returns immediately. Delivery failures are logged from the future's done
callback; nothing is retried and nothing reaches the caller.
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from onboarding.domain.ports import EmailSender

logger = logging.getLogger(__name__)


class BackgroundNotificationDispatcher:
    """
    Fire-and-forget wrapper around a blocking EmailSender.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, sender: EmailSender, max_workers: int = 4) -> None:
        self._sender = sender
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="notifications"
        )

    def send_registration_email(self, email: str, name: str, link: str) -> None:
        self._submit("registration", self._sender.send_registration_email, email, name, link)

    def send_welcome_email(self, email: str, name: str) -> None:
        self._submit("welcome", self._sender.send_welcome_email, email, name)

    def send_password_reset_email(self, email: str, name: str, link: str) -> None:
        self._submit("password reset", self._sender.send_password_reset_email, email, name, link)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with wait=True, drain queued emails first."""
        self._executor.shutdown(wait=wait)

    def _submit(self, kind: str, send: Callable[..., None], email: str, *args: str) -> None:
        try:
            future = self._executor.submit(send, email, *args)
        except RuntimeError:
            # Executor already shut down.
            logger.error("Dropped %s email to %s: dispatcher is shut down", kind, email)
            return
        future.add_done_callback(lambda f: _log_outcome(f, kind, email))


def _log_outcome(future: Future, kind: str, email: str) -> None:
    if future.cancelled():
        logger.warning("Cancelled %s email to %s", kind, email)
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Failed to send %s email to %s: %s", kind, email, exc)
