from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from rolodex.config import settings

OTP_LENGTH = settings.otp_length


class OtpChannel(str, Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"


class OtpPurpose(str, Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PHONE_VERIFICATION = "PHONE_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"
    ADMIN_INVITATION = "ADMIN_INVITATION"


class OtpError(ValueError):
    """A recoverable OTP failure the caller can act on."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class OtpRateLimitedError(OtpError):
    def __init__(self, retry_after_minutes: int) -> None:
        super().__init__(
            "An OTP was already sent. Please wait "
            f"{retry_after_minutes} minutes before requesting a new one."
        )
        self.retry_after_minutes = retry_after_minutes


class OtpNotFoundError(OtpError):
    def __init__(self, reason: str = "OTP not found or already used") -> None:
        super().__init__(reason)


class OtpExpiredError(OtpError):
    def __init__(self, reason: str = "OTP has expired") -> None:
        super().__init__(reason)


class OtpAttemptsExceededError(OtpError):
    def __init__(self, reason: str = "Maximum verification attempts exceeded") -> None:
        super().__init__(reason)


class OtpInvalidCodeError(OtpError):
    def __init__(self, reason: str = "Invalid OTP code") -> None:
        super().__init__(reason)


class OtpDeliveryError(OtpError):
    def __init__(self, reason: str = "Failed to send OTP notification") -> None:
        super().__init__(reason)


@dataclass(frozen=True)
class OtpAcknowledgement:
    message: str
    expires_at: datetime
    expires_in_seconds: int


@dataclass(frozen=True)
class OtpVerification:
    message: str
    otp_id: int


@dataclass(frozen=True)
class OtpStats:
    total: int
    used: int
    expired: int
    active: int


class _OtpScope(BaseModel):
    identifier: str = Field(min_length=3, max_length=255)
    channel: OtpChannel
    purpose: OtpPurpose

    @field_validator("identifier")
    @classmethod
    def strip_identifier(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Identifier is required")
        return cleaned


class OtpRequest(_OtpScope):
    expiration_minutes: Optional[int] = Field(default=None, ge=1, le=1440)


class OtpResendRequest(_OtpScope):
    pass


class OtpResponse(BaseModel):
    message: str
    expires_in_seconds: int


class OtpVerifyRequest(_OtpScope):
    code: str = Field(min_length=OTP_LENGTH, max_length=OTP_LENGTH)


class OtpVerifyResponse(BaseModel):
    message: str
    verified: bool
    otp_id: int


class OtpCleanupResponse(BaseModel):
    removed: int


class OtpStatsResponse(BaseModel):
    total: int
    used: int
    expired: int
    active: int
