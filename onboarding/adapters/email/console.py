"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging links to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - messages are logged at INFO level
    to be visible in docker-compose logs.
    """

    def send_registration_email(self, email: str, name: str, link: str) -> None:
        logger.info("[REGISTRATION] Email: %s Name: %s Link: %s", email, name, link)

    def send_welcome_email(self, email: str, name: str) -> None:
        logger.info("[WELCOME] Email: %s Name: %s", email, name)

    def send_password_reset_email(self, email: str, name: str, link: str) -> None:
        logger.info("[PASSWORD_RESET] Email: %s Name: %s Link: %s", email, name, link)
