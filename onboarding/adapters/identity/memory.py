"""
In-process identity provider - Implements IdentityProvider protocol in memory.

For local development without Keycloak (identity_backend=memory) and tests.
Mirrors the remote adapter's contract: create_user is idempotent on email,
delete_user ignores unknown emails.
"""

import logging
import threading
import uuid

from onboarding.domain.exceptions import RemoteRejected
from onboarding.domain.models import IdentityUser, RegistrationProfile

logger = logging.getLogger(__name__)


class InMemoryIdentityProvider:
    """Implements IdentityProvider protocol with a dict keyed by lowercase email."""

    def __init__(self) -> None:
        self._users: dict[str, IdentityUser] = {}
        self._lock = threading.Lock()

    def create_user(self, profile: RegistrationProfile) -> str:
        key = profile.email.lower()
        with self._lock:
            existing = self._users.get(key)
            if existing is not None:
                logger.warning("User with email %s already exists in identity provider", key)
                return existing.id
            user = IdentityUser(id=str(uuid.uuid4()), email=key)
            self._users[key] = user
            return user.id

    def enable_user(self, email: str) -> None:
        with self._lock:
            user = self._users.get(email.lower())
            if user is None:
                raise RemoteRejected("identity-provider", f"user not found: {email}", 404)
            user.enabled = True
            user.email_verified = True

    def delete_user(self, email: str) -> None:
        with self._lock:
            self._users.pop(email.lower(), None)

    def find_user_by_email(self, email: str) -> IdentityUser | None:
        with self._lock:
            return self._users.get(email.lower())

    def close(self) -> None:
        pass
