"""Test helpers shared across unit, integration and adversarial suites."""

from datetime import datetime, timedelta, timezone

from onboarding.domain.models import RegistrationProfile

FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_profile(**overrides: str) -> RegistrationProfile:
    """Build a valid registration profile, overriding selected fields."""
    fields = {
        "email": "a@x.com",
        "password": "password1",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "phone": "5405550100",
        "house_number": "12",
        "street_name": "Main St",
        "city": "Warsaw",
        "state": "VA",
        "zip_code": "22572",
        "service": "weekly",
    }
    fields.update(overrides)
    return RegistrationProfile(**fields)
