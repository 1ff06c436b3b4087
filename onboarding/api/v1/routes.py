"""
API v1 routes.

Defines REST endpoints for customer onboarding. Routes are sync so
FastAPI runs them in its threadpool; the services make blocking remote
calls.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response, status
from fastapi.responses import RedirectResponse

from onboarding.api.dependencies import get_customer_service, get_registration_service
from onboarding.api.models import (
    ApiResponse,
    CustomerResponse,
    RegisterRequest,
    ResendVerificationRequest,
)
from onboarding.config.settings import Settings, get_settings
from onboarding.domain.customers import CustomerService
from onboarding.domain.exceptions import CustomerNotFound, ServiceUnavailable
from onboarding.domain.ports import FailureKind, OnboardingResult, ResponseStatus
from onboarding.domain.registration import RegistrationService

router = APIRouter(tags=["v1"])

_FAILURE_STATUS_CODES = {
    FailureKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    FailureKind.CONFLICT: status.HTTP_409_CONFLICT,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureKind.REJECTED: status.HTTP_502_BAD_GATEWAY,
}

_CONFIRM_REDIRECTS = {
    ResponseStatus.SUCCESS: "/email-verification-success",
    ResponseStatus.ALREADY_CONFIRMED: "/email-already-confirmed",
    ResponseStatus.EXPIRED: "/email-verification-expired",
}
_CONFIRM_FAILED_REDIRECT = "/email-verification-failed"


def _failure_status_code(result: OnboardingResult) -> int:
    return _FAILURE_STATUS_CODES.get(result.failure, status.HTTP_400_BAD_REQUEST)


@router.post(
    "/register",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ApiResponse, "description": "Invalid registration data"},
        409: {"model": ApiResponse, "description": "Email already registered"},
        503: {"model": ApiResponse, "description": "A collaborator is unavailable"},
    },
    summary="Register a new customer",
    description="Create a disabled customer and email a confirmation link.",
)
def register(
    request_data: RegisterRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse:
    result = service.register(request_data.to_profile())
    if not result.ok:
        response.status_code = _failure_status_code(result)
    return ApiResponse.from_result(result)


@router.post(
    "/resend-verification",
    response_model=ApiResponse,
    responses={
        404: {"model": ApiResponse, "description": "Unknown email"},
        503: {"model": ApiResponse, "description": "A collaborator is unavailable"},
    },
    summary="Resend the verification email",
    description="Revoke outstanding verification links and email a new one. "
    "Returns ALREADY_VERIFIED for confirmed accounts.",
)
def resend_verification(
    request_data: ResendVerificationRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse:
    result = service.resend_verification_email(request_data.email)
    if result.status == ResponseStatus.FAILED:
        response.status_code = _failure_status_code(result)
    return ApiResponse.from_result(result)


@router.get(
    "/confirm",
    response_class=RedirectResponse,
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Confirm email address",
    description="Redirects to the frontend page matching the confirmation outcome.",
)
def confirm_email(
    token: str = Query(..., description="Verification token from the email link"),
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    result = service.confirm_email(token)
    path = _CONFIRM_REDIRECTS.get(result.status, _CONFIRM_FAILED_REDIRECT)
    return RedirectResponse(
        url=f"{settings.active_frontend_url.rstrip('/')}{path}",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get(
    "/token-status",
    response_model=ApiResponse,
    summary="Check a verification token",
    description="Reports valid, already_confirmed, expired or invalid without side effects.",
)
def token_status(
    token: str = Query(..., description="Verification token"),
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse:
    return ApiResponse.from_result(service.token_status(token))


@router.get(
    "/customers/{customer_id}",
    response_model=CustomerResponse,
    responses={
        404: {"description": "Unknown customer"},
        503: {"description": "Customer store unavailable"},
    },
    summary="Get a customer",
    description="Public projection of a registered customer. Credentials are never returned.",
)
def get_customer(
    customer_id: int = Path(..., description="Customer id returned at registration"),
    service: CustomerService = Depends(get_customer_service),
) -> CustomerResponse:
    try:
        customer = service.get_customer(customer_id)
    except CustomerNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Customer not found",
        ) from None
    except ServiceUnavailable:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable, please try again later",
        ) from None
    return CustomerResponse.from_customer(customer)
