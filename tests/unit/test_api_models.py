"""
Unit tests for API request/response models.

Tests Pydantic model validation and the customer projection.
"""

import pytest
from pydantic import ValidationError

from onboarding.api.models import ApiResponse, CustomerResponse, RegisterRequest
from onboarding.domain.models import Customer, Role
from onboarding.domain.ports import OnboardingResult, ResponseStatus


class TestRegisterRequest:
    """Tests for RegisterRequest model."""

    def test_minimal_request(self) -> None:
        """Only email and password are required."""
        request = RegisterRequest(email="user@example.com", password="secure123")

        profile = request.to_profile()

        assert profile.email == "user@example.com"
        assert profile.first_name == ""
        assert profile.service is None

    def test_email_is_not_validated_here(self) -> None:
        """Syntax checks live in the registration service."""
        request = RegisterRequest(email="not-an-email", password="x")
        assert request.email == "not-an-email"

    def test_missing_email_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(password="secure123")  # type: ignore[call-arg]

    def test_missing_password_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(email="user@example.com")  # type: ignore[call-arg]

    def test_profile_fields_carried(self) -> None:
        request = RegisterRequest(
            email="user@example.com",
            password="secure123",
            first_name="Ada",
            house_number="12",
            zip_code="22572",
            service="weekly",
        )

        profile = request.to_profile()

        assert profile.first_name == "Ada"
        assert profile.house_number == "12"
        assert profile.zip_code == "22572"
        assert profile.service == "weekly"


class TestCustomerResponse:
    """Tests for the public customer projection."""

    def test_from_customer(self) -> None:
        customer = Customer(
            id=5,
            email="user@example.com",
            password_hash="$2b$10$secret",
            first_name="Ada",
            last_name="Lovelace",
            phone="5405550100",
            house_number="12",
            street_name="Main St",
            city="Warsaw",
            state="VA",
            zip_code="22572",
            service="weekly",
        )

        response = CustomerResponse.from_customer(customer)

        assert response.id == 5
        assert response.full_name == "Ada Lovelace"
        assert response.phone_number == "5405550100"
        assert response.address.line1 == "12 Main St"
        assert response.address.state == "VA"
        assert response.role == Role.USER
        assert response.enabled is False
        assert "password_hash" not in response.model_dump()

    def test_missing_address_parts(self) -> None:
        customer = Customer(id=1, email="a@x.com", password_hash="h", street_name="Main St")
        assert CustomerResponse.from_customer(customer).address.line1 == "Main St"


class TestApiResponse:
    """Tests for the response envelope."""

    def test_from_result_without_customer(self) -> None:
        response = ApiResponse.from_result(
            OnboardingResult(status=ResponseStatus.ALREADY_VERIFIED, message="m")
        )

        assert response.model_dump(mode="json") == {
            "status": "ALREADY_VERIFIED",
            "message": "m",
            "token": None,
            "customer": None,
        }
