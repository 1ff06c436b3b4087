"""Repository adapters - Customer and token store implementations."""

from .memory import InMemoryCustomerRepository, InMemoryTokenRepository
from .postgres import PostgresCustomerRepository, PostgresTokenRepository, run_migrations

__all__ = [
    "InMemoryCustomerRepository",
    "InMemoryTokenRepository",
    "PostgresCustomerRepository",
    "PostgresTokenRepository",
    "run_migrations",
]
