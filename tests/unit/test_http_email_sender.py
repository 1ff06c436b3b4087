"""
Unit tests for HttpEmailSender.

The email service is replaced by httpx.MockTransport so requests and
error translation can be checked without a network.
"""

import json

import httpx
import pytest

from onboarding.adapters.email.http import EmailRequest, HttpEmailSender, WelcomeEmailRequest
from onboarding.domain.exceptions import RemoteRejected, ServiceUnavailable


def _sender(handler) -> HttpEmailSender:
    client = httpx.Client(base_url="http://email.test", transport=httpx.MockTransport(handler))
    return HttpEmailSender(client)


class TestWirePayloads:
    """Tests for the request models."""

    def test_email_request_uses_camel_case(self) -> None:
        payload = EmailRequest(email="a@x.com", first_name="Ada", link="https://l")
        assert payload.model_dump(by_alias=True) == {
            "email": "a@x.com",
            "firstName": "Ada",
            "link": "https://l",
        }

    def test_welcome_request_accepts_alias(self) -> None:
        payload = WelcomeEmailRequest.model_validate({"email": "a@x.com", "firstName": "Ada"})
        assert payload.first_name == "Ada"


class TestSend:
    """Tests for the three send methods."""

    def test_registration_email_posts_payload(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        _sender(handler).send_registration_email("a@x.com", "Ada", "https://l?token=t")

        assert seen[0].method == "POST"
        assert seen[0].url.path == "/email/send-registration"
        assert json.loads(seen[0].content) == {
            "email": "a@x.com",
            "firstName": "Ada",
            "link": "https://l?token=t",
        }

    def test_welcome_email_has_no_link(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        _sender(handler).send_welcome_email("a@x.com", "Ada")

        assert seen[0].url.path == "/email/send-welcome"
        assert json.loads(seen[0].content) == {"email": "a@x.com", "firstName": "Ada"}

    def test_password_reset_path(self) -> None:
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(204)

        _sender(handler).send_password_reset_email("a@x.com", "Ada", "https://r")

        assert paths == ["/email/send-password-reset"]


class TestErrorTranslation:
    """Tests for httpx error and status translation."""

    def test_server_error_is_unavailable(self) -> None:
        sender = _sender(lambda request: httpx.Response(503))

        with pytest.raises(ServiceUnavailable):
            sender.send_welcome_email("a@x.com", "Ada")

    def test_client_error_is_rejected(self) -> None:
        sender = _sender(lambda request: httpx.Response(422))

        with pytest.raises(RemoteRejected) as exc_info:
            sender.send_welcome_email("a@x.com", "Ada")

        assert exc_info.value.status_code == 422
        assert exc_info.value.service == "email-service"

    def test_connect_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ServiceUnavailable):
            _sender(handler).send_welcome_email("a@x.com", "Ada")

    def test_timeout_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ServiceUnavailable, match="timed out"):
            _sender(handler).send_welcome_email("a@x.com", "Ada")
