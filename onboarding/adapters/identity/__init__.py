"""Identity provider adapters."""

from .keycloak import KeycloakIdentityProvider
from .memory import InMemoryIdentityProvider

__all__ = ["InMemoryIdentityProvider", "KeycloakIdentityProvider"]
