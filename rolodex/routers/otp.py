from fastapi import APIRouter, HTTPException, status

from rolodex.schemas.otp import (
    OtpAttemptsExceededError,
    OtpCleanupResponse,
    OtpDeliveryError,
    OtpError,
    OtpExpiredError,
    OtpInvalidCodeError,
    OtpNotFoundError,
    OtpRateLimitedError,
    OtpRequest,
    OtpResendRequest,
    OtpResponse,
    OtpStatsResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)
from rolodex.services import otp as otp_service

router = APIRouter(prefix="/otp", tags=["otp"])

_STATUS_BY_ERROR = {
    OtpRateLimitedError: status.HTTP_429_TOO_MANY_REQUESTS,
    OtpNotFoundError: status.HTTP_404_NOT_FOUND,
    OtpExpiredError: status.HTTP_400_BAD_REQUEST,
    OtpAttemptsExceededError: status.HTTP_400_BAD_REQUEST,
    OtpInvalidCodeError: status.HTTP_400_BAD_REQUEST,
    OtpDeliveryError: status.HTTP_502_BAD_GATEWAY,
}


def _http_error(exc: OtpError) -> HTTPException:
    headers = None
    if isinstance(exc, OtpRateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_minutes * 60)}
    return HTTPException(
        status_code=_STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST),
        detail=exc.reason,
        headers=headers,
    )


@router.post("/generate", response_model=OtpResponse, status_code=status.HTTP_201_CREATED)
def generate_otp(payload: OtpRequest) -> OtpResponse:
    try:
        ack = otp_service.otp_manager.issue(
            payload.identifier,
            payload.channel,
            payload.purpose,
            payload.expiration_minutes,
        )
    except OtpError as exc:
        raise _http_error(exc) from exc
    return OtpResponse(message=ack.message, expires_in_seconds=ack.expires_in_seconds)


@router.post("/verify", response_model=OtpVerifyResponse)
def verify_otp(payload: OtpVerifyRequest) -> OtpVerifyResponse:
    try:
        result = otp_service.otp_manager.verify(
            payload.identifier, payload.channel, payload.purpose, payload.code
        )
    except OtpError as exc:
        raise _http_error(exc) from exc
    return OtpVerifyResponse(message=result.message, verified=True, otp_id=result.otp_id)


@router.post("/resend", response_model=OtpResponse)
def resend_otp(payload: OtpResendRequest) -> OtpResponse:
    try:
        ack = otp_service.otp_manager.resend(
            payload.identifier, payload.channel, payload.purpose
        )
    except OtpError as exc:
        raise _http_error(exc) from exc
    return OtpResponse(message=ack.message, expires_in_seconds=ack.expires_in_seconds)


@router.post("/cleanup", response_model=OtpCleanupResponse)
def cleanup_otps() -> OtpCleanupResponse:
    return OtpCleanupResponse(removed=otp_service.otp_manager.cleanup())


@router.get("/stats", response_model=OtpStatsResponse)
def otp_stats() -> OtpStatsResponse:
    stats = otp_service.otp_manager.get_stats()
    return OtpStatsResponse(
        total=stats.total, used=stats.used, expired=stats.expired, active=stats.active
    )
