"""
Customer boundary service - lookups and the enable-on-confirmation capability.
"""

import logging
from dataclasses import dataclass

from .exceptions import CustomerNotFound
from .models import Customer
from .ports import CustomerRepository, IdentityProvider

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


@dataclass
class CustomerService:
    """
    Customer boundary used by the token manager and the customer lookup route.

    Implements CustomerEnabler. Enabling touches the identity provider
    before the local row so that an enabled customer always has an
    enabled identity-provider user.
    """

    repository: CustomerRepository
    identity_provider: IdentityProvider

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.repository.find_by_id(customer_id)
        if customer is None:
            raise CustomerNotFound(f"customer {customer_id}")
        return customer

    def enable_customer(self, customer_id: int) -> Customer:
        customer = self.get_customer(customer_id)
        if customer.enabled:
            return customer

        self.identity_provider.enable_user(customer.email)
        enabled = self.repository.enable(customer_id)
        if enabled is None:
            raise CustomerNotFound(f"customer {customer_id}")

        logger.info("Enabled customer %s", customer_id)
        return enabled
