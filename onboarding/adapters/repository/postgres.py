"""
PostgreSQL repository adapters - Implement the customer and token store protocols.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design - At-Most-Once Confirmation:
-----------------------------------------------
claim_confirmation is a single conditional UPDATE:

    UPDATE verification_tokens SET confirmed_at = %s
    WHERE value = %s AND confirmed_at IS NULL AND NOT revoked AND expires_at >= %s
    RETURNING ...

PostgreSQL re-evaluates the WHERE clause after acquiring the row lock, so
when N transactions race on the same token exactly one sees a row in
RETURNING. The others get nothing and are reported as already confirmed.

Email uniqueness is owned by the UNIQUE constraint on customers.email; a
racing insert surfaces as CustomerAlreadyExists.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import psycopg
from psycopg import errors
from psycopg_pool import ConnectionPool, PoolTimeout

from onboarding.domain.exceptions import (
    CustomerAlreadyExists,
    InvalidRegistration,
    ServiceUnavailable,
)
from onboarding.domain.models import Customer, Role, TokenType, VerificationToken

logger = logging.getLogger(__name__)

_CUSTOMER_COLUMNS = """
    id, email, password_hash, external_identity_id, first_name, last_name,
    phone, house_number, street_name, city, state, zip_code, service,
    role, enabled, created_at
"""

_TOKEN_COLUMNS = """
    id, value, customer_id, token_type, created_at, expires_at, confirmed_at, revoked
"""


def _row_to_customer(row: tuple) -> Customer:
    return Customer(
        id=row[0],
        email=row[1],
        password_hash=row[2],
        external_identity_id=row[3],
        first_name=row[4] or "",
        last_name=row[5] or "",
        phone=row[6],
        house_number=row[7],
        street_name=row[8],
        city=row[9],
        state=row[10],
        zip_code=row[11],
        service=row[12],
        role=Role(row[13]),
        enabled=row[14],
        created_at=row[15],
    )


def _row_to_token(row: tuple) -> VerificationToken:
    return VerificationToken(
        id=row[0],
        value=row[1],
        customer_id=row[2],
        token_type=TokenType(row[3]),
        created_at=row[4],
        expires_at=row[5],
        confirmed_at=row[6],
        revoked=row[7],
    )


@contextmanager
def _connection(pool: ConnectionPool, store: str) -> Iterator[psycopg.Connection]:
    """Borrow a pooled connection, translating outages into ServiceUnavailable."""
    try:
        with pool.connection() as conn:
            yield conn
    except (psycopg.OperationalError, PoolTimeout) as e:
        logger.error("%s unavailable: %s", store, e)
        raise ServiceUnavailable(store, "database unavailable") from e


class PostgresCustomerRepository:
    """
    Implements CustomerRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def save(self, customer: Customer) -> Customer:
        """
        Insert a new customer or update an existing one by id.

        Raises:
            CustomerAlreadyExists: If the email UNIQUE constraint rejects the write
            InvalidRegistration: If a value does not fit its column
        """
        values = (
            customer.email,
            customer.password_hash,
            customer.external_identity_id,
            customer.first_name,
            customer.last_name,
            customer.phone,
            customer.house_number,
            customer.street_name,
            customer.city,
            customer.state,
            customer.zip_code,
            customer.service,
            customer.role.value,
            customer.enabled,
        )
        if customer.id is None:
            sql = f"""
                INSERT INTO customers (
                    email, password_hash, external_identity_id, first_name, last_name,
                    phone, house_number, street_name, city, state, zip_code, service,
                    role, enabled
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_CUSTOMER_COLUMNS}
            """
            params: tuple = values
        else:
            sql = f"""
                UPDATE customers
                SET email = %s, password_hash = %s, external_identity_id = %s,
                    first_name = %s, last_name = %s, phone = %s, house_number = %s,
                    street_name = %s, city = %s, state = %s, zip_code = %s,
                    service = %s, role = %s, enabled = %s
                WHERE id = %s
                RETURNING {_CUSTOMER_COLUMNS}
            """
            params = (*values, customer.id)

        with _connection(self._pool, "customer-store") as conn, conn.cursor() as cursor:
            try:
                cursor.execute(sql, params)
            except errors.UniqueViolation as e:
                conn.rollback()
                raise CustomerAlreadyExists(customer.email) from e
            except errors.DataError as e:
                conn.rollback()
                raise InvalidRegistration(
                    f"Customer data rejected by store: {e.diag.message_primary}"
                ) from e
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise ValueError(f"Customer {customer.id} does not exist")
        return _row_to_customer(row)

    def find_by_id(self, customer_id: int) -> Customer | None:
        sql = f"SELECT {_CUSTOMER_COLUMNS} FROM customers WHERE id = %s"
        with _connection(self._pool, "customer-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (customer_id,))
            row = cursor.fetchone()
        return _row_to_customer(row) if row else None

    def find_by_email(self, email: str) -> Customer | None:
        sql = f"SELECT {_CUSTOMER_COLUMNS} FROM customers WHERE email = %s"
        with _connection(self._pool, "customer-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _row_to_customer(row) if row else None

    def enable(self, customer_id: int) -> Customer | None:
        sql = f"""
            UPDATE customers SET enabled = TRUE
            WHERE id = %s
            RETURNING {_CUSTOMER_COLUMNS}
        """
        with _connection(self._pool, "customer-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (customer_id,))
            row = cursor.fetchone()
            conn.commit()
        return _row_to_customer(row) if row else None

    def delete(self, customer_id: int) -> bool:
        with _connection(self._pool, "customer-store") as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM customers WHERE id = %s", (customer_id,))
            conn.commit()
            return cursor.rowcount == 1


class PostgresTokenRepository:
    """
    Implements TokenRepository protocol via psycopg3.

    No foreign key to customers: the token manager cross-references by
    customer_id.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def save(self, token: VerificationToken) -> VerificationToken:
        if token.id is None:
            sql = f"""
                INSERT INTO verification_tokens (
                    value, customer_id, token_type, created_at, expires_at, confirmed_at, revoked
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {_TOKEN_COLUMNS}
            """
            params: tuple = (
                token.value,
                token.customer_id,
                token.token_type.value,
                token.created_at,
                token.expires_at,
                token.confirmed_at,
                token.revoked,
            )
        else:
            sql = f"""
                UPDATE verification_tokens
                SET confirmed_at = %s, revoked = %s, expires_at = %s
                WHERE id = %s
                RETURNING {_TOKEN_COLUMNS}
            """
            params = (token.confirmed_at, token.revoked, token.expires_at, token.id)

        with _connection(self._pool, "token-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()

        if row is None:
            raise ValueError(f"Token {token.id} does not exist")
        return _row_to_token(row)

    def find_by_value(self, value: str) -> VerificationToken | None:
        sql = f"SELECT {_TOKEN_COLUMNS} FROM verification_tokens WHERE value = %s"
        with _connection(self._pool, "token-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (value,))
            row = cursor.fetchone()
        return _row_to_token(row) if row else None

    def find_valid_by_customer(
        self, customer_id: int, now: datetime
    ) -> VerificationToken | None:
        sql = f"""
            SELECT {_TOKEN_COLUMNS} FROM verification_tokens
            WHERE customer_id = %s
              AND NOT revoked
              AND confirmed_at IS NULL
              AND expires_at >= %s
            ORDER BY created_at DESC, id DESC
            LIMIT 1
        """
        with _connection(self._pool, "token-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (customer_id, now))
            row = cursor.fetchone()
        return _row_to_token(row) if row else None

    def revoke_all(self, customer_id: int) -> int:
        sql = """
            UPDATE verification_tokens SET revoked = TRUE
            WHERE customer_id = %s AND NOT revoked
        """
        with _connection(self._pool, "token-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (customer_id,))
            conn.commit()
            return cursor.rowcount

    def claim_confirmation(self, value: str, now: datetime) -> VerificationToken | None:
        """
        Atomically set confirmed_at if the token is still confirmable.

        Returns:
            The claimed token, or None if another caller won or the token
            is revoked/expired/unknown
        """
        sql = f"""
            UPDATE verification_tokens SET confirmed_at = %s
            WHERE value = %s
              AND confirmed_at IS NULL
              AND NOT revoked
              AND expires_at >= %s
            RETURNING {_TOKEN_COLUMNS}
        """
        with _connection(self._pool, "token-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (now, value, now))
            row = cursor.fetchone()
            conn.commit()
        return _row_to_token(row) if row else None

    def release_confirmation(self, value: str, confirmed_at: datetime) -> bool:
        sql = """
            UPDATE verification_tokens SET confirmed_at = NULL
            WHERE value = %s AND confirmed_at = %s
        """
        with _connection(self._pool, "token-store") as conn, conn.cursor() as cursor:
            cursor.execute(sql, (value, confirmed_at))
            conn.commit()
            return cursor.rowcount == 1


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: onboarding/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
