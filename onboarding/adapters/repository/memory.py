"""
In-process repository adapters - Implement the store protocols in memory.

Used for local runs (storage_backend=memory) and tests. A single lock per
store serializes writes so the conditional claim has the same
at-most-one-winner behaviour as the PostgreSQL UPDATE ... WHERE.
"""

import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone

from onboarding.domain.exceptions import CustomerAlreadyExists
from onboarding.domain.models import Customer, VerificationToken


class InMemoryCustomerRepository:
    """
    Implements CustomerRepository protocol with a dict keyed by id.

    Returns copies so callers cannot mutate stored rows.
    """

    def __init__(self) -> None:
        self._rows: dict[int, Customer] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, customer: Customer) -> Customer:
        with self._lock:
            for row in self._rows.values():
                if row.email == customer.email and row.id != customer.id:
                    raise CustomerAlreadyExists(customer.email)
            if customer.id is None:
                stored = replace(
                    customer,
                    id=next(self._ids),
                    created_at=customer.created_at or datetime.now(timezone.utc),
                )
            else:
                stored = replace(customer)
            self._rows[stored.id] = stored
            return replace(stored)

    def find_by_id(self, customer_id: int) -> Customer | None:
        with self._lock:
            row = self._rows.get(customer_id)
            return replace(row) if row else None

    def find_by_email(self, email: str) -> Customer | None:
        with self._lock:
            for row in self._rows.values():
                if row.email == email:
                    return replace(row)
            return None

    def enable(self, customer_id: int) -> Customer | None:
        with self._lock:
            row = self._rows.get(customer_id)
            if row is None:
                return None
            row.enabled = True
            return replace(row)

    def delete(self, customer_id: int) -> bool:
        with self._lock:
            return self._rows.pop(customer_id, None) is not None


class InMemoryTokenRepository:
    """Implements TokenRepository protocol with a dict keyed by token value."""

    def __init__(self) -> None:
        self._rows: dict[str, VerificationToken] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def save(self, token: VerificationToken) -> VerificationToken:
        with self._lock:
            existing = self._rows.get(token.value)
            if existing is not None and existing.id != token.id:
                raise ValueError(f"Duplicate token value for customer {token.customer_id}")
            stored = replace(token, id=token.id or next(self._ids))
            self._rows[stored.value] = stored
            return replace(stored)

    def find_by_value(self, value: str) -> VerificationToken | None:
        with self._lock:
            row = self._rows.get(value)
            return replace(row) if row else None

    def find_valid_by_customer(
        self, customer_id: int, now: datetime
    ) -> VerificationToken | None:
        with self._lock:
            candidates = [
                row
                for row in self._rows.values()
                if row.customer_id == customer_id
                and not row.revoked
                and row.confirmed_at is None
                and row.expires_at >= now
            ]
            if not candidates:
                return None
            return replace(max(candidates, key=lambda row: (row.created_at, row.id)))

    def revoke_all(self, customer_id: int) -> int:
        with self._lock:
            count = 0
            for row in self._rows.values():
                if row.customer_id == customer_id and not row.revoked:
                    row.revoked = True
                    count += 1
            return count

    def claim_confirmation(self, value: str, now: datetime) -> VerificationToken | None:
        with self._lock:
            row = self._rows.get(value)
            if (
                row is None
                or row.confirmed_at is not None
                or row.revoked
                or row.expires_at < now
            ):
                return None
            row.confirmed_at = now
            return replace(row)

    def release_confirmation(self, value: str, confirmed_at: datetime) -> bool:
        with self._lock:
            row = self._rows.get(value)
            if row is None or row.confirmed_at != confirmed_at:
                return False
            row.confirmed_at = None
            return True
