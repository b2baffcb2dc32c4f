from __future__ import annotations

import logging
import math
import re
import secrets
import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from rolodex.clock import Clock, utc_now
from rolodex.config import settings
from rolodex.models.db_operation import (
    _add_record,
    _count_records,
    _delete_expired_records,
    _delete_records,
    _select_latest,
    _update_records,
)
from rolodex.models.schema.otp import OtpEntry
from rolodex.schemas.notifications import (
    NotificationStatus,
    NotificationType,
)
from rolodex.schemas.otp import (
    OtpAcknowledgement,
    OtpAttemptsExceededError,
    OtpChannel,
    OtpDeliveryError,
    OtpExpiredError,
    OtpInvalidCodeError,
    OtpNotFoundError,
    OtpPurpose,
    OtpRateLimitedError,
    OtpStats,
    OtpVerification,
)
from rolodex.services.notifications import (
    NotificationDispatcher,
    notification_dispatcher,
)

LOGGER = logging.getLogger(__name__)

_SUBJECTS = {
    OtpPurpose.EMAIL_VERIFICATION: "Email Verification Code",
    OtpPurpose.PHONE_VERIFICATION: "Phone Verification Code",
    OtpPurpose.PASSWORD_RESET: "Password Reset Code",
    OtpPurpose.ADMIN_INVITATION: "Admin Invitation Code",
}

_INTROS = {
    OtpPurpose.EMAIL_VERIFICATION: "Please verify your email address.",
    OtpPurpose.PHONE_VERIFICATION: "Please verify your phone number.",
    OtpPurpose.PASSWORD_RESET: "Please use this code to reset your password.",
    OtpPurpose.ADMIN_INVITATION: "You have been invited to join as an admin.",
}


def normalize_identifier(identifier: str) -> str:
    cleaned = identifier.strip()
    if "@" in cleaned:
        return cleaned.lower()
    digits = re.sub(r"\D", "", cleaned)
    return f"+{digits}" if cleaned.startswith("+") else digits


def build_subject(purpose: OtpPurpose) -> str:
    return _SUBJECTS.get(purpose, "Verification Code")


def build_body(code: str, purpose: OtpPurpose, expiration_minutes: int) -> str:
    base = (
        f"Your verification code is: {code}\n\n"
        f"This code will expire in {expiration_minutes} minutes."
    )
    intro = _INTROS.get(purpose)
    return f"{intro}\n\n{base}" if intro else base


class _KeyedLocks:
    """Reentrant lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[tuple, list] = {}

    @contextmanager
    def hold(self, key: tuple) -> Iterator[None]:
        with self._guard:
            slot = self._locks.setdefault(key, [threading.RLock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    self._locks.pop(key, None)


class OtpManager:
    """Issues, verifies and resends one-time codes.

    Codes are scoped by (identifier, channel, purpose) and only the newest
    unused row of a scope counts. Issue and resend serialize per scope with an
    in-process lock; verify relies on conditional updates in the store, so it
    stays correct across processes too.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        *,
        code_length: int = 6,
        expiration_minutes: int = 15,
        max_attempts: int = 3,
        phone_notification_type: NotificationType | str = NotificationType.SMS,
        clock: Clock = utc_now,
    ) -> None:
        if code_length < 1:
            raise ValueError("code_length must be positive")
        self._dispatcher = dispatcher
        self._code_length = code_length
        self._expiration_minutes = expiration_minutes
        self._max_attempts = max_attempts
        self._phone_notification_type = NotificationType(phone_notification_type)
        self._clock = clock
        self._locks = _KeyedLocks()

    def issue(
        self,
        identifier: str,
        channel: OtpChannel | str,
        purpose: OtpPurpose | str,
        expiration_minutes: int | None = None,
    ) -> OtpAcknowledgement:
        channel = OtpChannel(channel)
        purpose = OtpPurpose(purpose)
        normalized = normalize_identifier(identifier)
        minutes = (
            self._expiration_minutes
            if expiration_minutes is None
            else expiration_minutes
        )
        if minutes < 1:
            raise ValueError("expiration_minutes must be positive")

        self.cleanup()

        with self._locks.hold((normalized, channel, purpose)):
            now = self._clock()
            existing = self._latest_unused(normalized, channel, purpose)
            if existing is not None and existing.expires_at > now:
                remaining = (existing.expires_at - now).total_seconds()
                raise OtpRateLimitedError(math.ceil(remaining / 60))

            code = self._generate_code()
            entry = _add_record(
                "otp",
                identifier=normalized,
                channel=channel,
                purpose=purpose,
                code=code,
                is_used=False,
                used_at=None,
                attempts=0,
                max_attempts=self._max_attempts,
                expires_at=now + timedelta(minutes=minutes),
                created_at=now,
                updated_at=now,
            )

        self._deliver(entry, normalized, channel, purpose, code, minutes)
        LOGGER.info(
            "OTP generated for %s (%s via %s)", normalized, purpose.value, channel.value
        )
        return OtpAcknowledgement(
            message=f"OTP sent to {normalized}",
            expires_at=entry.expires_at,
            expires_in_seconds=minutes * 60,
        )

    def verify(
        self,
        identifier: str,
        channel: OtpChannel | str,
        purpose: OtpPurpose | str,
        code: str,
    ) -> OtpVerification:
        channel = OtpChannel(channel)
        purpose = OtpPurpose(purpose)
        normalized = normalize_identifier(identifier)
        now = self._clock()

        entry = self._latest_unused(normalized, channel, purpose)
        if entry is None:
            raise OtpNotFoundError()
        if now > entry.expires_at:
            raise OtpExpiredError()
        if entry.attempts >= entry.max_attempts:
            raise OtpAttemptsExceededError()

        # The attempt is spent before the comparison, even if the guess is right.
        consumed = _update_records(
            "otp",
            values={"attempts": OtpEntry.attempts + 1, "updated_at": now},
            id=entry.id,
            is_used=False,
            attempts=("<", entry.max_attempts),
        )
        if not consumed:
            raise OtpAttemptsExceededError()

        if code != entry.code:
            LOGGER.info("Invalid OTP attempt for %s (%s)", normalized, purpose.value)
            raise OtpInvalidCodeError()

        marked = _update_records(
            "otp",
            values={"is_used": True, "used_at": now, "updated_at": now},
            id=entry.id,
            is_used=False,
        )
        if not marked:
            raise OtpNotFoundError()

        LOGGER.info("OTP verified for %s (%s)", normalized, purpose.value)
        return OtpVerification(message="OTP verified successfully", otp_id=entry.id)

    def resend(
        self,
        identifier: str,
        channel: OtpChannel | str,
        purpose: OtpPurpose | str,
    ) -> OtpAcknowledgement:
        channel = OtpChannel(channel)
        purpose = OtpPurpose(purpose)
        normalized = normalize_identifier(identifier)

        with self._locks.hold((normalized, channel, purpose)):
            removed = _delete_records(
                "otp",
                identifier=normalized,
                channel=channel,
                purpose=purpose,
                is_used=False,
            )
            if removed:
                LOGGER.info(
                    "Discarded %s unused OTPs for %s (%s)",
                    removed,
                    normalized,
                    purpose.value,
                )
            return self.issue(normalized, channel, purpose)

    def cleanup(self) -> int:
        try:
            removed = _delete_expired_records("otp", self._clock())
        except SQLAlchemyError as exc:
            LOGGER.warning("Expired OTP cleanup failed: %s", exc)
            return 0
        if removed:
            LOGGER.info("Cleaned up %s expired OTPs", removed)
        return removed

    def get_stats(self) -> OtpStats:
        now = self._clock()
        return OtpStats(
            total=_count_records("otp"),
            used=_count_records("otp", is_used=True),
            expired=_count_records("otp", expires_at=("<=", now)),
            active=_count_records("otp", is_used=False, expires_at=(">", now)),
        )

    def _latest_unused(
        self, identifier: str, channel: OtpChannel, purpose: OtpPurpose
    ) -> OtpEntry | None:
        return _select_latest(
            "otp",
            identifier=identifier,
            channel=channel,
            purpose=purpose,
            is_used=False,
        )

    def _deliver(
        self,
        entry: OtpEntry,
        identifier: str,
        channel: OtpChannel,
        purpose: OtpPurpose,
        code: str,
        expiration_minutes: int,
    ) -> None:
        if channel is OtpChannel.EMAIL:
            notification_type = NotificationType.EMAIL
        else:
            notification_type = self._phone_notification_type
        try:
            record = self._dispatcher.send(
                notification_type,
                identifier,
                build_subject(purpose),
                build_body(code, purpose, expiration_minutes),
                metadata={"kind": "OTP", "purpose": purpose.value, "otp_id": entry.id},
            )
        except Exception as exc:
            LOGGER.error("Failed to send OTP notification to %s: %s", identifier, exc)
            raise OtpDeliveryError() from exc
        if record.status != NotificationStatus.SENT.value:
            LOGGER.error(
                "Failed to send OTP notification to %s: %s",
                identifier,
                record.error_message,
            )
            raise OtpDeliveryError()

    def _generate_code(self) -> str:
        value = secrets.randbelow(10**self._code_length)
        return str(value).zfill(self._code_length)


otp_manager = OtpManager(
    notification_dispatcher,
    code_length=settings.otp_length,
    expiration_minutes=settings.otp_expiration_minutes,
    max_attempts=settings.otp_max_attempts,
    phone_notification_type=settings.otp_phone_notification_type,
)
