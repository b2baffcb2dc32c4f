from __future__ import annotations

import random
import re
from typing import Optional

from rolodex.schemas.notifications import DeliveryError, NotificationType
from rolodex.services.providers import SimulatedProvider


class SmsNotificationProvider(SimulatedProvider):
    type = NotificationType.SMS
    outage_message = "SMS service temporarily unavailable"

    def __init__(
        self,
        *,
        default_country_code: str = "+1",
        failure_rate: float = 0.0,
        delay_seconds: float = 0.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(
            failure_rate=failure_rate, delay_seconds=delay_seconds, rng=rng
        )
        self._default_country_code = default_country_code

    def _prepare(self, recipient: str) -> str:
        return normalize_e164(
            super()._prepare(recipient), self._default_country_code
        )


def normalize_e164(phone_number: str, default_country_code: str) -> str:
    raw = phone_number.strip()
    digits = re.sub(r"\D", "", raw)
    if not digits:
        raise DeliveryError("Phone number is missing")
    if len(digits) == 10 and not raw.startswith("+"):
        default_code = re.sub(r"\D", "", default_country_code)
        if not default_code:
            raise DeliveryError("Default country code is not configured")
        digits = f"{default_code}{digits}"
    if len(digits) < 10 or len(digits) > 15:
        raise DeliveryError("Phone number must include a valid country code")
    return f"+{digits}"
