from __future__ import annotations

import logging
from typing import Any, Optional

from rolodex.schemas.notifications import DeliveryError, NotificationType

LOGGER = logging.getLogger(__name__)


class InAppNotificationProvider:
    """In-app inbox channel.

    There is no external transport: the dispatcher's own record, once SENT, is
    the inbox entry the frontend reads back through the user notification feed.
    """

    type = NotificationType.IN_APP

    def send(
        self,
        recipient: str,
        subject: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        if not (recipient or "").strip():
            raise DeliveryError("Recipient is missing")
        LOGGER.info("[IN_APP] Stored notification for user=%s", recipient.strip())
        return True
