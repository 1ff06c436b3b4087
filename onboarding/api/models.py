"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Email syntax and password length are validated by the registration service
so that every caller sees the same FAILED response shape.
"""

from pydantic import BaseModel, Field

from onboarding.domain.models import Customer, RegistrationProfile, Role
from onboarding.domain.ports import OnboardingResult, ResponseStatus


class RegisterRequest(BaseModel):
    """Request model for customer registration."""

    email: str = Field(..., description="Customer email address")
    password: str = Field(..., description="Password (min 8 characters)")
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None
    house_number: str | None = None
    street_name: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    service: str | None = Field(None, description="Service plan name")

    def to_profile(self) -> RegistrationProfile:
        return RegistrationProfile(**self.model_dump())


class ResendVerificationRequest(BaseModel):
    """Request model for resending the verification email."""

    email: str


class AddressResponse(BaseModel):
    line1: str
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class CustomerResponse(BaseModel):
    """Public projection of a customer. Never exposes credentials."""

    id: int
    full_name: str
    email: str
    phone_number: str | None = None
    address: AddressResponse
    role: Role
    enabled: bool
    service: str | None = None

    @classmethod
    def from_customer(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            id=customer.id,
            full_name=customer.full_name,
            email=customer.email,
            phone_number=customer.phone,
            address=AddressResponse(
                line1=customer.address_line1,
                city=customer.city,
                state=customer.state,
                zip_code=customer.zip_code,
            ),
            role=customer.role,
            enabled=customer.enabled,
            service=customer.service,
        )


class ApiResponse(BaseModel):
    """Response envelope shared by all onboarding endpoints."""

    status: ResponseStatus
    message: str
    token: str | None = None
    customer: CustomerResponse | None = None

    @classmethod
    def from_result(cls, result: OnboardingResult) -> "ApiResponse":
        return cls(
            status=result.status,
            message=result.message,
            token=result.token,
            customer=CustomerResponse.from_customer(result.customer) if result.customer else None,
        )
