"""
Domain entities - Customer, verification token and registration profile.

Plain dataclasses with no persistence concerns. Stores assign ids and
timestamps; the domain only reads them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Customer role. New registrations always get USER."""

    USER = "USER"
    ADMIN = "ADMIN"


class TokenType(str, Enum):
    """Purpose of a verification token."""

    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"


@dataclass
class RegistrationProfile:
    """Customer-supplied registration data, before validation."""

    email: str
    password: str
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    house_number: str | None = None
    street_name: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    service: str | None = None  # service-plan name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Customer:
    """
    Persisted customer record.

    `enabled` starts False and flips to True exactly once, when the
    customer confirms their email. `external_identity_id` references the
    identity-provider user created during registration.
    """

    email: str
    password_hash: str
    external_identity_id: str | None = None
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    house_number: str | None = None
    street_name: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    service: str | None = None
    role: Role = Role.USER
    enabled: bool = False
    id: int | None = None
    created_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def address_line1(self) -> str:
        return " ".join(p for p in (self.house_number, self.street_name) if p)


@dataclass
class VerificationToken:
    """
    Email verification token.

    Expiry is derived from time only (`now > expires_at`); there is no
    stored expired flag. `confirmed_at` is written once by the store's
    atomic claim.
    """

    value: str
    customer_id: int
    created_at: datetime
    expires_at: datetime
    token_type: TokenType = TokenType.EMAIL_VERIFICATION
    confirmed_at: datetime | None = None
    revoked: bool = False
    id: int | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None


@dataclass
class IdentityUser:
    """Identity-provider view of a user."""

    id: str
    email: str
    enabled: bool = False
    email_verified: bool = False
    attributes: dict[str, list[str]] = field(default_factory=dict)
