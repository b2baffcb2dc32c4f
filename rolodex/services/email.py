from __future__ import annotations

import re

from rolodex.schemas.notifications import DeliveryError, NotificationType
from rolodex.services.providers import SimulatedProvider

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+$")


class EmailNotificationProvider(SimulatedProvider):
    """Email channel. Logs instead of talking to an SMTP or API transport."""

    type = NotificationType.EMAIL
    outage_message = "Email service temporarily unavailable"

    def _prepare(self, recipient: str) -> str:
        to_email = super()._prepare(recipient).lower()
        if not _EMAIL_PATTERN.match(to_email):
            raise DeliveryError(f"Invalid email recipient: {recipient}")
        return to_email
