"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services
into routes. Long-lived adapters (store, identity provider client,
notification dispatcher) are created once in the app lifespan and kept
on app.state; services are cheap and built per request.
"""

from datetime import timedelta

from fastapi import Depends, Request

from onboarding.config.settings import Settings, get_settings
from onboarding.domain.customers import CustomerService
from onboarding.domain.ports import (
    CustomerRepository,
    IdentityProvider,
    NotificationDispatcher,
    TokenRepository,
)
from onboarding.domain.registration import RegistrationService
from onboarding.domain.tokens import TokenLifecycleManager


def get_customer_repository(request: Request) -> CustomerRepository:
    return request.app.state.customer_repository


def get_token_repository(request: Request) -> TokenRepository:
    return request.app.state.token_repository


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.notifications


def get_customer_service(
    customers: CustomerRepository = Depends(get_customer_repository),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> CustomerService:
    return CustomerService(repository=customers, identity_provider=identity_provider)


def get_token_manager(
    tokens: TokenRepository = Depends(get_token_repository),
    customer_service: CustomerService = Depends(get_customer_service),
    settings: Settings = Depends(get_settings),
) -> TokenLifecycleManager:
    """The customer service is injected as the manager's CustomerEnabler."""
    return TokenLifecycleManager(
        repository=tokens,
        enabler=customer_service,
        ttl=timedelta(minutes=settings.token_ttl_minutes),
    )


def get_registration_service(
    customers: CustomerRepository = Depends(get_customer_repository),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    token_manager: TokenLifecycleManager = Depends(get_token_manager),
    notifications: NotificationDispatcher = Depends(get_notification_dispatcher),
    settings: Settings = Depends(get_settings),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the stores, identity provider, token manager and
    notification dispatcher for the domain service.
    """
    return RegistrationService(
        customer_repository=customers,
        identity_provider=identity_provider,
        token_manager=token_manager,
        notifications=notifications,
        base_url=settings.base_url,
        confirm_path=settings.confirm_path,
        password_min_length=settings.password_min_length,
        bcrypt_cost=settings.bcrypt_cost,
    )
