"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the result vocabularies the domain returns.
Adapters implement these protocols via structural subtyping.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from .models import Customer, IdentityUser, RegistrationProfile, VerificationToken


class ResponseStatus(str, Enum):
    """
    Closed status vocabulary returned to callers of the onboarding use cases.

    Callers branch on these values; token-state outcomes are never folded
    into a generic FAILED except for invalid tokens.
    """

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    EXPIRED = "EXPIRED"


class FailureKind(str, Enum):
    """Why a FAILED result failed. Lets the transport choose a status code."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"


class TokenStatus(str, Enum):
    """
    Read-only classification of a verification token.

    Precedence: missing -> INVALID, confirmed -> ALREADY_CONFIRMED,
    past expires_at -> EXPIRED, revoked -> INVALID, otherwise VALID.
    """

    VALID = "valid"
    ALREADY_CONFIRMED = "already_confirmed"
    EXPIRED = "expired"
    INVALID = "invalid"


class ConfirmOutcome(Enum):
    """Result of a confirmation attempt."""

    CONFIRMED = "confirmed"
    ALREADY_CONFIRMED = "already_confirmed"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass
class ConfirmResult:
    """Confirmation outcome; `customer` is set only when CONFIRMED."""

    outcome: ConfirmOutcome
    customer: Customer | None = None


@dataclass
class OnboardingResult:
    """Transport-neutral response of the registration use cases."""

    status: ResponseStatus
    message: str
    token: str | None = None
    customer: Customer | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.status == ResponseStatus.SUCCESS


class CustomerRepository(Protocol):
    """Port interface for customer persistence. Owns email uniqueness."""

    def save(self, customer: Customer) -> Customer:
        """
        Insert a customer (id is None) or update an existing one.

        Returns:
            The stored customer, with id and created_at assigned

        Raises:
            CustomerAlreadyExists: If another row already holds the email
        """
        ...

    def find_by_id(self, customer_id: int) -> Customer | None: ...

    def find_by_email(self, email: str) -> Customer | None:
        """Look up by normalized (lowercase) email."""
        ...

    def enable(self, customer_id: int) -> Customer | None:
        """Set enabled=True. Returns the updated customer, None if missing."""
        ...

    def delete(self, customer_id: int) -> bool:
        """Remove a customer row. Returns True if a row was deleted."""
        ...


class TokenRepository(Protocol):
    """Port interface for verification token persistence. Owns value uniqueness."""

    def save(self, token: VerificationToken) -> VerificationToken: ...

    def find_by_value(self, value: str) -> VerificationToken | None: ...

    def find_valid_by_customer(
        self, customer_id: int, now: datetime
    ) -> VerificationToken | None:
        """Most recent token that is unrevoked, unconfirmed and not expired at `now`."""
        ...

    def revoke_all(self, customer_id: int) -> int:
        """Set revoked=True on every unrevoked token of the customer. Returns count."""
        ...

    def claim_confirmation(self, value: str, now: datetime) -> VerificationToken | None:
        """
        Atomically mark a token confirmed.

        Single conditional write: succeeds only if the token is unconfirmed,
        unrevoked and `expires_at >= now`. Exactly one concurrent caller can
        receive the claimed row; all others get None.

        Returns:
            The claimed token with confirmed_at set, or None if the claim lost
        """
        ...

    def release_confirmation(self, value: str, confirmed_at: datetime) -> bool:
        """Undo a claim made at `confirmed_at`. Used when enabling the customer fails."""
        ...


class IdentityProvider(Protocol):
    """
    Port interface for the remote identity provider.

    All calls are synchronous with no local retry. Failures raise
    ServiceUnavailable (transport, timeout, 5xx) or RemoteRejected (4xx).
    """

    def create_user(self, profile: RegistrationProfile) -> str:
        """
        Create a disabled, unverified user. Idempotent on email.

        Returns:
            External user id; the existing id if the email is already present
        """
        ...

    def enable_user(self, email: str) -> None:
        """Mark the user enabled and email-verified."""
        ...

    def delete_user(self, email: str) -> None:
        """Delete the user. Absent users are ignored. Used for compensation."""
        ...

    def find_user_by_email(self, email: str) -> IdentityUser | None: ...


class EmailSender(Protocol):
    """Port interface for blocking email delivery."""

    def send_registration_email(self, email: str, name: str, link: str) -> None: ...

    def send_welcome_email(self, email: str, name: str) -> None: ...

    def send_password_reset_email(self, email: str, name: str, link: str) -> None: ...


class NotificationDispatcher(Protocol):
    """
    Port interface for fire-and-forget email.

    Calls return immediately. Delivery failures are logged by the
    dispatcher and never raised to the caller.
    """

    def send_registration_email(self, email: str, name: str, link: str) -> None: ...

    def send_welcome_email(self, email: str, name: str) -> None: ...

    def send_password_reset_email(self, email: str, name: str, link: str) -> None: ...


class CustomerEnabler(Protocol):
    """Capability injected into the token manager to enable a confirmed customer."""

    def enable_customer(self, customer_id: int) -> Customer:
        """
        Enable the customer locally and at the identity provider.

        Raises:
            CustomerNotFound: If the customer does not exist
            RemoteServiceError: If the identity provider call fails
        """
        ...
