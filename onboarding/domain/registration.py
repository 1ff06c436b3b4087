"""
Registration orchestrator - the onboarding saga.

Registration spans four collaborators with no shared transaction:

    validate -> customer lookup -> identity provider create_user
             -> customer save -> token issue -> registration email

Saga rules
==========

- Validation and duplicate-email checks run before any remote call.
- create_user is idempotent on email, so a retried registration reuses
  the identity-provider user left behind by an earlier attempt.
- If the customer save or the token issue fails, compensation deletes the
  identity-provider user and any customer row written by this attempt
  (best-effort; compensation failures are logged, never surfaced).
- A save rejected because another registration won the email is not
  compensated: the identity-provider user belongs to the winner.
- Email is fire-and-forget and can never fail a use case.

Every use case returns an OnboardingResult with a closed ResponseStatus.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, replace

import bcrypt

from .customers import normalize_email
from .exceptions import (
    CustomerAlreadyExists,
    InvalidRegistration,
    OnboardingError,
    RemoteServiceError,
    ServiceUnavailable,
)
from .models import Customer, RegistrationProfile, Role
from .ports import (
    ConfirmOutcome,
    CustomerRepository,
    FailureKind,
    IdentityProvider,
    NotificationDispatcher,
    OnboardingResult,
    ResponseStatus,
    TokenStatus,
)
from .tokens import TokenLifecycleManager

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

# Column widths of the customers table.
FIELD_MAX_LENGTHS = {
    "email": 254,
    "first_name": 50,
    "last_name": 50,
    "phone": 13,
    "house_number": 8,
    "street_name": 50,
    "city": 50,
    "state": 2,
    "zip_code": 5,
    "service": 150,
}
# bcrypt ignores or rejects input past this many bytes.
PASSWORD_MAX_BYTES = 72

REGISTERED_MESSAGE = "Registration successful. Please check your email for verification."
RESENT_MESSAGE = "Verification email sent successfully"
ALREADY_VERIFIED_MESSAGE = "Account is already verified"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
UNAVAILABLE_MESSAGE = "Service temporarily unavailable, please try again later"

_CONFIRM_RESPONSES = {
    ConfirmOutcome.CONFIRMED: (ResponseStatus.SUCCESS, "Email confirmed successfully"),
    ConfirmOutcome.ALREADY_CONFIRMED: (ResponseStatus.ALREADY_CONFIRMED, "Email already confirmed"),
    ConfirmOutcome.EXPIRED: (ResponseStatus.EXPIRED, "Verification link has expired"),
    ConfirmOutcome.INVALID: (ResponseStatus.FAILED, INVALID_TOKEN_MESSAGE),
}

_STATUS_RESPONSES = {
    TokenStatus.VALID: ResponseStatus.SUCCESS,
    TokenStatus.ALREADY_CONFIRMED: ResponseStatus.ALREADY_CONFIRMED,
    TokenStatus.EXPIRED: ResponseStatus.EXPIRED,
    TokenStatus.INVALID: ResponseStatus.FAILED,
}


def _failed(message: str, failure: FailureKind) -> OnboardingResult:
    return OnboardingResult(status=ResponseStatus.FAILED, message=message, failure=failure)


def _remote_failure(exc: RemoteServiceError, message: str) -> OnboardingResult:
    if isinstance(exc, ServiceUnavailable):
        return _failed(UNAVAILABLE_MESSAGE, FailureKind.UNAVAILABLE)
    return _failed(message, FailureKind.REJECTED)


@dataclass
class RegistrationService:
    """
    Domain service composing the onboarding use cases.

    Collaborators are injected; the service holds no per-request state
    and is safe to share across threads.
    """

    customer_repository: CustomerRepository
    identity_provider: IdentityProvider
    token_manager: TokenLifecycleManager
    notifications: NotificationDispatcher
    base_url: str = "http://localhost:8000"
    confirm_path: str = "/v1/confirm"
    password_min_length: int = 8
    bcrypt_cost: int = 10

    def register(self, profile: RegistrationProfile) -> OnboardingResult:
        """
        Register a new, disabled customer and send the verification link.

        Args:
            profile: Registration data (email is normalized here)

        Returns:
            SUCCESS with the token value and stored customer, or FAILED
            with a FailureKind describing the cause
        """
        logger.info("Processing registration for: %s", profile.email)

        try:
            self._validate(profile)
        except InvalidRegistration as exc:
            return _failed(str(exc), FailureKind.VALIDATION)

        email = normalize_email(profile.email)
        profile = replace(profile, email=email)

        try:
            if self.customer_repository.find_by_email(email) is not None:
                return _failed("User with this email already exists", FailureKind.CONFLICT)
            external_id = self.identity_provider.create_user(profile)
        except RemoteServiceError as exc:
            logger.error("Registration failed before any write for %s: %s", email, exc)
            return _remote_failure(exc, "Registration failed")

        customer: Customer | None = None
        try:
            customer = self.customer_repository.save(
                Customer(
                    email=email,
                    password_hash=self._hash_password(profile.password),
                    external_identity_id=external_id,
                    first_name=profile.first_name,
                    last_name=profile.last_name,
                    phone=profile.phone,
                    house_number=profile.house_number,
                    street_name=profile.street_name,
                    city=profile.city,
                    state=profile.state,
                    zip_code=profile.zip_code,
                    service=profile.service,
                    role=Role.USER,
                    enabled=False,
                )
            )
            logger.info("Customer saved with ID: %s", customer.id)
            token = self.token_manager.issue(customer.id)
        except CustomerAlreadyExists:
            logger.warning("Concurrent registration claimed %s first", email)
            return _failed("User with this email already exists", FailureKind.CONFLICT)
        except InvalidRegistration as exc:
            logger.warning("Store rejected registration data for %s: %s", email, exc)
            self._compensate(email, customer)
            return _failed(str(exc), FailureKind.VALIDATION)
        except Exception as exc:
            logger.error("Error during registration of %s: %s", email, exc)
            self._compensate(email, customer)
            if isinstance(exc, RemoteServiceError):
                return _remote_failure(exc, "Registration failed")
            raise

        self._notify_registration(customer, token.value)
        return OnboardingResult(
            status=ResponseStatus.SUCCESS,
            message=REGISTERED_MESSAGE,
            token=token.value,
            customer=customer,
        )

    def resend_verification_email(self, email: str) -> OnboardingResult:
        """
        Replace a pending customer's verification token and email the new link.

        Already-enabled customers get ALREADY_VERIFIED with no side effects.
        The customer is read again after the new token is issued; if a
        confirm enabled it meanwhile, the new token is revoked and no email
        goes out.
        """
        logger.info("Resending verification email for: %s", email)
        normalized = normalize_email(email)

        try:
            customer = self.customer_repository.find_by_email(normalized)
            if customer is None:
                return _failed("User not found", FailureKind.NOT_FOUND)
            if customer.enabled:
                return OnboardingResult(
                    status=ResponseStatus.ALREADY_VERIFIED,
                    message=ALREADY_VERIFIED_MESSAGE,
                )
            self.token_manager.revoke_all_for_customer(customer.id)
            token = self.token_manager.issue(customer.id)
            # A confirm may have enabled the customer since the lookup.
            current = self.customer_repository.find_by_id(customer.id)
            if current is None:
                self.token_manager.revoke_all_for_customer(customer.id)
                return _failed("User not found", FailureKind.NOT_FOUND)
            if current.enabled:
                self.token_manager.revoke_all_for_customer(customer.id)
                logger.info("Customer %s verified during resend, no email sent", normalized)
                return OnboardingResult(
                    status=ResponseStatus.ALREADY_VERIFIED,
                    message=ALREADY_VERIFIED_MESSAGE,
                )
        except RemoteServiceError as exc:
            logger.error("Error resending verification email: %s", exc)
            return _remote_failure(exc, "Failed to resend verification email")

        self._notify_registration(customer, token.value)
        return OnboardingResult(
            status=ResponseStatus.SUCCESS,
            message=RESENT_MESSAGE,
            token=token.value,
            customer=customer,
        )

    def confirm_email(self, token_value: str) -> OnboardingResult:
        """
        Confirm a verification token and send the welcome email on success.

        Never raises: any failure is reported as FAILED "Invalid or expired token".
        """
        logger.info("Confirming email with token")
        try:
            result = self.token_manager.confirm(token_value)
        except Exception:
            logger.exception("Error confirming email")
            return _failed(INVALID_TOKEN_MESSAGE, FailureKind.REJECTED)

        status, message = _CONFIRM_RESPONSES[result.outcome]
        if result.outcome == ConfirmOutcome.INVALID:
            return _failed(message, FailureKind.NOT_FOUND)

        if result.customer is not None:
            self._notify(
                "welcome",
                self.notifications.send_welcome_email,
                result.customer.email,
                result.customer.first_name,
            )
            logger.info("Email confirmed for customer: %s", result.customer.email)
        return OnboardingResult(status=status, message=message, customer=result.customer)

    def token_status(self, token_value: str) -> OnboardingResult:
        """Report a token's state without mutating anything."""
        try:
            token_status = self.token_manager.status_of(token_value)
        except OnboardingError as exc:
            logger.error("Token status check failed: %s", exc)
            token_status = TokenStatus.INVALID

        status = _STATUS_RESPONSES[token_status]
        failure = FailureKind.NOT_FOUND if status == ResponseStatus.FAILED else None
        return OnboardingResult(status=status, message=token_status.value, failure=failure)

    def confirmation_link(self, token_value: str) -> str:
        return f"{self.base_url.rstrip('/')}{self.confirm_path}?token={token_value}"

    def _validate(self, profile: RegistrationProfile) -> None:
        if not profile.email or not EMAIL_PATTERN.match(profile.email.strip()):
            raise InvalidRegistration("Invalid email format")
        if profile.password is None or len(profile.password) < self.password_min_length:
            raise InvalidRegistration(
                f"Password must be at least {self.password_min_length} characters long"
            )
        if len(profile.password.encode()) > PASSWORD_MAX_BYTES:
            raise InvalidRegistration(f"Password must be at most {PASSWORD_MAX_BYTES} bytes long")
        for field, limit in FIELD_MAX_LENGTHS.items():
            value = getattr(profile, field)
            if field == "email":
                value = value.strip()
            if value is not None and len(value) > limit:
                raise InvalidRegistration(f"{field} must be at most {limit} characters long")

    def _compensate(self, email: str, customer: Customer | None) -> None:
        """Best-effort rollback of the identity user and the customer row."""
        try:
            self.identity_provider.delete_user(email)
            logger.info("Rolled back identity provider user: %s", email)
        except Exception:
            logger.exception("Failed to rollback identity provider user: %s", email)

        if customer is None or customer.id is None:
            return
        try:
            self.customer_repository.delete(customer.id)
            logger.info("Rolled back customer row: %s", customer.id)
        except Exception:
            logger.exception("Failed to rollback customer row: %s", customer.id)

    def _notify_registration(self, customer: Customer, token_value: str) -> None:
        self._notify(
            "registration",
            self.notifications.send_registration_email,
            customer.email,
            customer.first_name,
            self.confirmation_link(token_value),
        )

    def _notify(self, kind: str, send: Callable[..., None], *args: str) -> None:
        try:
            send(*args)
        except Exception:
            logger.exception("Failed to dispatch %s email to %s", kind, args[0])

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
