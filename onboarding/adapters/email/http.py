"""
HTTP email sender adapter - Implements EmailSender protocol.

Posts JSON requests to the remote email service, which renders the
templates and delivers the mail. Wire format (camelCase on the wire):

    POST /email/send-registration     EmailRequest {email, firstName, link}
    POST /email/send-password-reset   EmailRequest {email, firstName, link}
    POST /email/send-welcome          WelcomeEmailRequest {email, firstName}
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from onboarding.domain.exceptions import RemoteRejected, ServiceUnavailable

logger = logging.getLogger(__name__)

SERVICE_NAME = "email-service"


class WelcomeEmailRequest(BaseModel):
    """Welcome email payload."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    first_name: str = Field(alias="firstName")


class EmailRequest(WelcomeEmailRequest):
    """Registration and password reset payload."""

    link: str


class HttpEmailSender:
    """
    Implements EmailSender protocol against the email service.

    Owns one httpx.Client (connection pool). Every method blocks until the
    email service answers; wrap in BackgroundNotificationDispatcher to keep
    it off the request path.
    """

    def __init__(self, client: httpx.Client) -> None:
        """
        Args:
            client: httpx.Client with base_url set to the email service
        """
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any) -> "HttpEmailSender":
        client = httpx.Client(
            base_url=settings.email_service_url,
            timeout=settings.remote_timeout_seconds,
        )
        return cls(client)

    def close(self) -> None:
        self._client.close()

    def send_registration_email(self, email: str, name: str, link: str) -> None:
        self._post("/email/send-registration", EmailRequest(email=email, first_name=name, link=link))
        logger.info("Registration email sent to: %s", email)

    def send_welcome_email(self, email: str, name: str) -> None:
        self._post("/email/send-welcome", WelcomeEmailRequest(email=email, first_name=name))
        logger.info("Welcome email sent to: %s", email)

    def send_password_reset_email(self, email: str, name: str, link: str) -> None:
        self._post("/email/send-password-reset", EmailRequest(email=email, first_name=name, link=link))
        logger.info("Password reset email sent to: %s", email)

    def _post(self, path: str, payload: BaseModel) -> None:
        try:
            response = self._client.post(path, json=payload.model_dump(by_alias=True))
        except httpx.TimeoutException as e:
            raise ServiceUnavailable(SERVICE_NAME, f"POST {path} timed out") from e
        except httpx.TransportError as e:
            raise ServiceUnavailable(SERVICE_NAME, f"POST {path} unreachable") from e

        if response.status_code >= 500:
            raise ServiceUnavailable(SERVICE_NAME, f"POST {path} returned {response.status_code}")
        if not response.is_success:
            raise RemoteRejected(
                SERVICE_NAME, f"POST {path} returned {response.status_code}", response.status_code
            )
