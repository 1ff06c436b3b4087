"""
Shared fixtures for integration tests.

The application is driven through TestClient without its lifespan;
app.state is populated here with either in-process stores or PostgreSQL
stores (skipped when the database is unreachable). The identity provider
is the in-process one and email goes to a Mock dispatcher.
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from onboarding.adapters.identity.memory import InMemoryIdentityProvider
from onboarding.adapters.repository.memory import (
    InMemoryCustomerRepository,
    InMemoryTokenRepository,
)
from onboarding.adapters.repository.postgres import (
    PostgresCustomerRepository,
    PostgresTokenRepository,
)
from onboarding.api.main import app
from onboarding.config.settings import Settings, get_settings

FRONTEND = "http://frontend.test"


@pytest.fixture(params=["memory", "postgres"])
def client(request: pytest.FixtureRequest) -> Generator[TestClient, None, None]:
    """Test client with app.state wired for the parametrized backend."""
    if request.param == "memory":
        app.state.pool = None
        app.state.customer_repository = InMemoryCustomerRepository()
        app.state.token_repository = InMemoryTokenRepository()
    else:
        pool = request.getfixturevalue("clean_postgres")
        app.state.pool = pool
        app.state.customer_repository = PostgresCustomerRepository(pool)
        app.state.token_repository = PostgresTokenRepository(pool)

    app.state.identity_provider = InMemoryIdentityProvider()
    app.state.notifications = Mock()
    app.dependency_overrides[get_settings] = lambda: Settings(
        frontend_url=FRONTEND, base_url="https://api.example.com", bcrypt_cost=4
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def notifications(client: TestClient) -> Mock:
    return app.state.notifications


@pytest.fixture
def identity(client: TestClient) -> InMemoryIdentityProvider:
    return app.state.identity_provider
