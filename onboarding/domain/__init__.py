"""
Domain layer - Pure business logic with zero framework imports.

This package contains the customer onboarding saga and the verification
token state machine. It defines its own port interfaces for
infrastructure abstraction, keeping adapters swappable.
"""

from .customers import CustomerService, normalize_email
from .exceptions import (
    CustomerAlreadyExists,
    CustomerNotFound,
    InvalidRegistration,
    OnboardingError,
    RemoteRejected,
    RemoteServiceError,
    ServiceUnavailable,
)
from .models import Customer, IdentityUser, RegistrationProfile, Role, TokenType, VerificationToken
from .ports import (
    ConfirmOutcome,
    ConfirmResult,
    CustomerEnabler,
    CustomerRepository,
    EmailSender,
    FailureKind,
    IdentityProvider,
    NotificationDispatcher,
    OnboardingResult,
    ResponseStatus,
    TokenRepository,
    TokenStatus,
)
from .registration import RegistrationService
from .tokens import TokenLifecycleManager

__all__ = [
    "ConfirmOutcome",
    "ConfirmResult",
    "Customer",
    "CustomerAlreadyExists",
    "CustomerEnabler",
    "CustomerNotFound",
    "CustomerRepository",
    "CustomerService",
    "EmailSender",
    "FailureKind",
    "IdentityProvider",
    "IdentityUser",
    "InvalidRegistration",
    "NotificationDispatcher",
    "OnboardingError",
    "OnboardingResult",
    "RegistrationProfile",
    "RegistrationService",
    "RemoteRejected",
    "RemoteServiceError",
    "ResponseStatus",
    "Role",
    "ServiceUnavailable",
    "TokenLifecycleManager",
    "TokenRepository",
    "TokenStatus",
    "TokenType",
    "VerificationToken",
    "normalize_email",
]
