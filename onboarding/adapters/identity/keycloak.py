"""
Keycloak identity provider adapter - Implements IdentityProvider protocol.

Talks to the Keycloak admin REST API through one httpx.Client owned by
the adapter (connection pool reused across requests, closed on shutdown).

Error translation:
- httpx.TimeoutException / httpx.TransportError -> ServiceUnavailable
- 5xx responses                                 -> ServiceUnavailable
- other 4xx responses                           -> RemoteRejected

No call is retried here; the orchestrator owns retry and compensation.
"""

import logging
import threading
import time
from typing import Any

import httpx

from onboarding.domain.exceptions import RemoteRejected, ServiceUnavailable
from onboarding.domain.models import IdentityUser, RegistrationProfile

logger = logging.getLogger(__name__)

SERVICE_NAME = "identity-provider"
DEFAULT_ROLE = "user"
TOKEN_REFRESH_MARGIN_SECONDS = 30


class KeycloakIdentityProvider:
    """
    Implements IdentityProvider protocol via the Keycloak admin API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    An admin access token (password grant on the master realm) is cached
    until shortly before it expires.
    """

    def __init__(
        self,
        client: httpx.Client,
        realm: str,
        admin_client_id: str = "admin-cli",
        admin_username: str = "admin",
        admin_password: str = "admin",
    ) -> None:
        """
        Args:
            client: httpx.Client with base_url set to the Keycloak server
            realm: Realm that holds customer accounts
        """
        self._client = client
        self._realm = realm
        self._admin_client_id = admin_client_id
        self._admin_username = admin_username
        self._admin_password = admin_password
        self._access_token: str | None = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Any) -> "KeycloakIdentityProvider":
        client = httpx.Client(
            base_url=settings.keycloak_url,
            timeout=settings.remote_timeout_seconds,
        )
        return cls(
            client=client,
            realm=settings.keycloak_realm,
            admin_client_id=settings.keycloak_admin_client_id,
            admin_username=settings.keycloak_admin_username,
            admin_password=settings.keycloak_admin_password,
        )

    def close(self) -> None:
        self._client.close()

    def create_user(self, profile: RegistrationProfile) -> str:
        """
        Create a disabled, unverified user and set its password.

        Returns the existing user's id when the email is already present,
        both when found up front and when Keycloak answers 409.
        """
        existing = self.find_user_by_email(profile.email)
        if existing is not None:
            logger.warning("User with email %s already exists in identity provider", profile.email)
            return existing.id

        payload = {
            "username": profile.email,
            "email": profile.email,
            "firstName": profile.first_name,
            "lastName": profile.last_name,
            "enabled": False,
            "emailVerified": False,
            "attributes": _profile_attributes(profile),
        }
        response = self._request("POST", self._users_path(), json=payload, allow={409})
        if response.status_code == 409:
            existing = self.find_user_by_email(profile.email)
            if existing is None:
                raise RemoteRejected(SERVICE_NAME, "user conflict without match", 409)
            return existing.id

        user_id = response.headers.get("Location", "").rstrip("/").rsplit("/", 1)[-1]
        if not user_id:
            raise RemoteRejected(SERVICE_NAME, "create user returned no Location", response.status_code)
        logger.info("Successfully created identity provider user with ID: %s", user_id)

        try:
            self._request(
                "PUT",
                f"{self._users_path()}/{user_id}/reset-password",
                json={"type": "password", "value": profile.password, "temporary": False},
            )
        except (RemoteRejected, ServiceUnavailable):
            # A passwordless user would be reused by the next create_user.
            logger.error("Setting password failed, removing user %s", user_id)
            self._discard_user(user_id)
            raise
        self._assign_default_role(user_id)
        return user_id

    def enable_user(self, email: str) -> None:
        user = self.find_user_by_email(email)
        if user is None:
            raise RemoteRejected(SERVICE_NAME, f"user not found: {email}", 404)
        self._request(
            "PUT",
            f"{self._users_path()}/{user.id}",
            json={"enabled": True, "emailVerified": True},
        )
        logger.info("Enabled identity provider user: %s", email)

    def delete_user(self, email: str) -> None:
        user = self.find_user_by_email(email)
        if user is None:
            logger.info("No identity provider user to delete for: %s", email)
            return
        self._request("DELETE", f"{self._users_path()}/{user.id}", allow={404})
        logger.info("Deleted identity provider user: %s", email)

    def find_user_by_email(self, email: str) -> IdentityUser | None:
        response = self._request(
            "GET", self._users_path(), params={"email": email, "exact": "true"}
        )
        for item in response.json():
            if (item.get("email") or "").lower() == email.lower():
                return IdentityUser(
                    id=item["id"],
                    email=item.get("email", email),
                    enabled=bool(item.get("enabled", False)),
                    email_verified=bool(item.get("emailVerified", False)),
                    attributes=item.get("attributes") or {},
                )
        return None

    def _discard_user(self, user_id: str) -> None:
        """Delete a half-created user. Failure is logged, not raised."""
        try:
            self._request("DELETE", f"{self._users_path()}/{user_id}", allow={404})
        except (RemoteRejected, ServiceUnavailable) as e:
            logger.error("Failed to remove half-created user %s: %s", user_id, e)

    def _assign_default_role(self, user_id: str) -> None:
        """Assign the default realm role. Failure is logged, not raised."""
        try:
            role = self._request("GET", f"/admin/realms/{self._realm}/roles/{DEFAULT_ROLE}").json()
            self._request(
                "POST",
                f"{self._users_path()}/{user_id}/role-mappings/realm",
                json=[role],
            )
            logger.info("Assigned role %s to user %s", DEFAULT_ROLE, user_id)
        except (RemoteRejected, ServiceUnavailable) as e:
            logger.error("Error assigning role to user %s: %s", user_id, e)

    def _users_path(self) -> str:
        return f"/admin/realms/{self._realm}/users"

    def _admin_token(self) -> str:
        with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token
            try:
                response = self._client.post(
                    "/realms/master/protocol/openid-connect/token",
                    data={
                        "grant_type": "password",
                        "client_id": self._admin_client_id,
                        "username": self._admin_username,
                        "password": self._admin_password,
                    },
                )
            except httpx.HTTPError as e:
                raise ServiceUnavailable(SERVICE_NAME, "admin login failed") from e
            _raise_for_status(response)
            body = response.json()
            self._access_token = body["access_token"]
            expires_in = float(body.get("expires_in", 60))
            self._token_expires_at = (
                time.monotonic() + max(expires_in - TOKEN_REFRESH_MARGIN_SECONDS, 0)
            )
            return self._access_token

    def _request(
        self, method: str, path: str, allow: set[int] | None = None, **kwargs: Any
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._admin_token()}"}
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise ServiceUnavailable(SERVICE_NAME, f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise ServiceUnavailable(SERVICE_NAME, f"{method} {path} unreachable") from e

        if response.status_code == 401:
            # Token revoked server-side; force a fresh login next call.
            self._access_token = None
        if allow and response.status_code in allow:
            return response
        _raise_for_status(response)
        return response


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    status = response.status_code
    message = f"{response.request.method} {response.request.url.path} returned {status}"
    if status >= 500:
        raise ServiceUnavailable(SERVICE_NAME, message)
    raise RemoteRejected(SERVICE_NAME, message, status)


def _profile_attributes(profile: RegistrationProfile) -> dict[str, list[str]]:
    attributes = {
        "phone": profile.phone,
        "houseNumber": profile.house_number,
        "streetName": profile.street_name,
        "city": profile.city,
        "state": profile.state,
        "zipCode": profile.zip_code,
        "service": profile.service,
    }
    return {key: [value] for key, value in attributes.items() if value}
