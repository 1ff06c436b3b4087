"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for token expiry
- In-process stores and identity provider
- Domain services wired the way the API wires them
- A PostgreSQL pool that skips when the database is unreachable
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from onboarding.adapters.identity.memory import InMemoryIdentityProvider
from onboarding.adapters.repository.memory import (
    InMemoryCustomerRepository,
    InMemoryTokenRepository,
)
from onboarding.adapters.repository.postgres import run_migrations
from onboarding.config.settings import get_settings
from onboarding.domain.customers import CustomerService
from onboarding.domain.registration import RegistrationService
from onboarding.domain.tokens import TokenLifecycleManager
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def customers() -> InMemoryCustomerRepository:
    return InMemoryCustomerRepository()


@pytest.fixture
def tokens() -> InMemoryTokenRepository:
    return InMemoryTokenRepository()


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def notifications() -> Mock:
    """Synchronous stand-in for the fire-and-forget dispatcher."""
    return Mock()


@pytest.fixture
def customer_service(
    customers: InMemoryCustomerRepository, identity: InMemoryIdentityProvider
) -> CustomerService:
    return CustomerService(repository=customers, identity_provider=identity)


@pytest.fixture
def token_manager(
    tokens: InMemoryTokenRepository, customer_service: CustomerService, clock: FakeClock
) -> TokenLifecycleManager:
    return TokenLifecycleManager(repository=tokens, enabler=customer_service, clock=clock)


@pytest.fixture
def registration_service(
    customers: InMemoryCustomerRepository,
    identity: InMemoryIdentityProvider,
    token_manager: TokenLifecycleManager,
    notifications: Mock,
) -> RegistrationService:
    return RegistrationService(
        customer_repository=customers,
        identity_provider=identity,
        token_manager=token_manager,
        notifications=notifications,
        base_url="https://api.example.com",
        bcrypt_cost=4,  # fast hashing in tests
    )


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Skips the requesting test when the database is unreachable.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_postgres(postgres_pool: ConnectionPool) -> ConnectionPool:
    """Empty both tables before the test."""
    with postgres_pool.connection() as conn:
        conn.execute("DELETE FROM verification_tokens")
        conn.execute("DELETE FROM customers")
        conn.commit()
    return postgres_pool
