"""
Shared fixtures for adversarial tests.

Each test runs against the in-process stores and against PostgreSQL;
the PostgreSQL variant skips when no database is reachable.
"""

from dataclasses import dataclass

import pytest

from onboarding.adapters.identity.memory import InMemoryIdentityProvider
from onboarding.adapters.repository.memory import (
    InMemoryCustomerRepository,
    InMemoryTokenRepository,
)
from onboarding.adapters.repository.postgres import (
    PostgresCustomerRepository,
    PostgresTokenRepository,
)
from onboarding.domain.ports import CustomerRepository, TokenRepository

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@dataclass
class Stores:
    customers: CustomerRepository
    tokens: TokenRepository


@pytest.fixture(params=["memory", "postgres"])
def stores(request: pytest.FixtureRequest) -> Stores:
    """Customer and token stores for the parametrized backend."""
    if request.param == "memory":
        return Stores(InMemoryCustomerRepository(), InMemoryTokenRepository())
    pool = request.getfixturevalue("clean_postgres")
    return Stores(PostgresCustomerRepository(pool), PostgresTokenRepository(pool))


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()
