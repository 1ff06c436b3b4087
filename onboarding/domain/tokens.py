"""
Token lifecycle manager - issue, confirm, revoke and classify verification tokens.

Token State Machine
===================

States:
- ISSUED: created, confirmed_at is NULL, revoked is False
- CONFIRMED: confirmed_at set (terminal)
- EXPIRED: now > expires_at (derived, terminal for confirmation; row persists)
- REVOKED: revoked is True (terminal)

Transitions:
    ISSUED -> CONFIRMED   (confirm, atomic claim won)
    ISSUED -> REVOKED     (revoke_all_for_customer)
    ISSUED -> EXPIRED     (time passes; nothing is written)

Confirmation is a single conditional write at the store (claim_confirmation).
Only the caller that wins the claim enables the customer; concurrent losers
observe ALREADY_CONFIRMED.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .models import TokenType, VerificationToken
from .ports import (
    ConfirmOutcome,
    ConfirmResult,
    CustomerEnabler,
    TokenRepository,
    TokenStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL = timedelta(minutes=45)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify(token: VerificationToken | None, now: datetime) -> TokenStatus:
    """Classify a token row at time `now` without touching the store."""
    if token is None:
        return TokenStatus.INVALID
    if token.is_confirmed:
        return TokenStatus.ALREADY_CONFIRMED
    if token.is_expired(now):
        return TokenStatus.EXPIRED
    if token.revoked:
        return TokenStatus.INVALID
    return TokenStatus.VALID


_OUTCOME_BY_STATUS = {
    TokenStatus.ALREADY_CONFIRMED: ConfirmOutcome.ALREADY_CONFIRMED,
    TokenStatus.EXPIRED: ConfirmOutcome.EXPIRED,
    TokenStatus.INVALID: ConfirmOutcome.INVALID,
}


def _mask(value: str) -> str:
    return f"{value[:8]}..." if len(value) > 8 else "***"


@dataclass
class TokenLifecycleManager:
    """
    Owns state transitions of verification tokens.

    The customer enabler is injected as a one-way capability so the
    manager never depends on the registration orchestrator.
    """

    repository: TokenRepository
    enabler: CustomerEnabler
    ttl: timedelta = DEFAULT_TOKEN_TTL
    clock: Callable[[], datetime] = field(default=utcnow)

    def issue(self, customer_id: int) -> VerificationToken:
        """
        Issue a fresh EMAIL_VERIFICATION token for a customer.

        Does not revoke earlier tokens; callers that replace a token
        call revoke_all_for_customer first.
        """
        now = self.clock()
        token = VerificationToken(
            value=str(uuid.uuid4()),
            customer_id=customer_id,
            token_type=TokenType.EMAIL_VERIFICATION,
            created_at=now,
            expires_at=now + self.ttl,
        )
        saved = self.repository.save(token)
        logger.info("Issued verification token for customer %s", customer_id)
        return saved

    def confirm(self, value: str) -> ConfirmResult:
        """
        Confirm a token and enable its customer.

        Read and classify first so expired, revoked and confirmed tokens
        never reach the write path. The write is the store's atomic claim;
        the enable call runs only for the winner. If enabling fails the
        claim is released and the error propagates.

        Returns:
            ConfirmResult with the enabled customer on CONFIRMED

        Raises:
            CustomerNotFound, RemoteServiceError: From the customer enabler
        """
        now = self.clock()
        status = classify(self.repository.find_by_value(value), now)
        if status != TokenStatus.VALID:
            logger.info("Token %s not confirmable: %s", _mask(value), status.value)
            return ConfirmResult(outcome=_OUTCOME_BY_STATUS[status])

        claimed = self.repository.claim_confirmation(value, now)
        if claimed is None:
            # Lost the race, or the token changed between read and claim.
            status = classify(self.repository.find_by_value(value), now)
            outcome = _OUTCOME_BY_STATUS.get(status, ConfirmOutcome.ALREADY_CONFIRMED)
            logger.info("Token %s claim lost: %s", _mask(value), outcome.value)
            return ConfirmResult(outcome=outcome)

        try:
            customer = self.enabler.enable_customer(claimed.customer_id)
        except Exception:
            logger.warning(
                "Enabling customer %s failed, releasing token %s",
                claimed.customer_id,
                _mask(value),
            )
            self.repository.release_confirmation(value, claimed.confirmed_at or now)
            raise

        logger.info("Email verification completed for customer: %s", claimed.customer_id)
        return ConfirmResult(outcome=ConfirmOutcome.CONFIRMED, customer=customer)

    def revoke_all_for_customer(self, customer_id: int) -> int:
        """Revoke every outstanding token of a customer. Zero tokens is fine."""
        count = self.repository.revoke_all(customer_id)
        logger.info("Revoked %d token(s) for customer %s", count, customer_id)
        return count

    def status_of(self, value: str) -> TokenStatus:
        """Classify a token without side effects. Safe to poll."""
        return classify(self.repository.find_by_value(value), self.clock())

    def find_valid_for_customer(self, customer_id: int) -> VerificationToken | None:
        """Return the customer's currently usable token, if any."""
        return self.repository.find_valid_by_customer(customer_id, self.clock())
