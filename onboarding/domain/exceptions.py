"""
Domain exceptions - Semantic error types for customer onboarding.

This module defines domain-specific exceptions that communicate
business rule violations and collaborator failures without leaking
infrastructure details. Adapters translate library errors into these.
"""


class OnboardingError(Exception):
    """Base class for onboarding domain errors."""

    pass


class InvalidRegistration(OnboardingError):
    """Registration input was rejected by validation or by the customer store."""

    pass


class CustomerAlreadyExists(OnboardingError):
    """A customer with this email is already registered."""

    pass


class CustomerNotFound(OnboardingError):
    """No customer matches the given id or email."""

    pass


class RemoteServiceError(OnboardingError):
    """
    A collaborator (identity provider, email service, store) failed.

    Attributes:
        service: Short name of the collaborator that failed
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class ServiceUnavailable(RemoteServiceError):
    """Collaborator unreachable: connection failure, timeout or 5xx."""

    pass


class RemoteRejected(RemoteServiceError):
    """Collaborator answered but refused the request (4xx)."""

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        super().__init__(service, message)
        self.status_code = status_code
