from __future__ import annotations

import logging
import random
import time
from typing import Any, Optional, Protocol

from rolodex.schemas.notifications import DeliveryError, NotificationType

LOGGER = logging.getLogger(__name__)


class NotificationProvider(Protocol):
    """Delivers one message over one channel."""

    type: NotificationType

    def send(
        self,
        recipient: str,
        subject: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Return True when delivered, False when the transport declined.

        May raise DeliveryError when the message cannot be handed over at all.
        """
        ...


class SimulatedProvider:
    """Log-only transport with injected random failures.

    Subclasses validate and shape the recipient in ``_prepare``. The failure
    dice live here, so a real transport can replace a subclass without the
    dispatcher noticing.
    """

    type: NotificationType
    outage_message = "Service temporarily unavailable"

    def __init__(
        self,
        *,
        failure_rate: float = 0.0,
        delay_seconds: float = 0.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        self._failure_rate = failure_rate
        self._delay_seconds = delay_seconds
        self._rng = rng or random.Random()

    def send(
        self,
        recipient: str,
        subject: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        target = self._prepare(recipient)
        LOGGER.info("[%s] to=%s subject=%s", self.type.value, target, subject)
        if self._delay_seconds > 0:
            time.sleep(self._delay_seconds)
        if self._rng.random() < self._failure_rate:
            LOGGER.error(
                "Failed to send %s notification to=%s: %s",
                self.type.value,
                target,
                self.outage_message,
            )
            return False
        return True

    def _prepare(self, recipient: str) -> str:
        cleaned = (recipient or "").strip()
        if not cleaned:
            raise DeliveryError("Recipient is missing")
        return cleaned


class ProviderRegistry:
    """One provider per notification type; a later registration wins."""

    def __init__(self, providers: Optional[list[NotificationProvider]] = None) -> None:
        self._providers: dict[NotificationType, NotificationProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: NotificationProvider) -> None:
        self.add(provider.type, provider)

    def add(
        self, notification_type: NotificationType | str, provider: NotificationProvider
    ) -> None:
        key = NotificationType(notification_type)
        if key in self._providers:
            LOGGER.warning("Replacing notification provider for type=%s", key.value)
        self._providers[key] = provider

    def get(
        self, notification_type: NotificationType | str
    ) -> Optional[NotificationProvider]:
        try:
            key = NotificationType(notification_type)
        except ValueError:
            return None
        return self._providers.get(key)

    def types(self) -> list[NotificationType]:
        return list(self._providers)
