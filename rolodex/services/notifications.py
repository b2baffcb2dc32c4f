from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from rolodex.clock import Clock, utc_now
from rolodex.config import Settings, settings
from rolodex.models.db_operation import (
    _add_record,
    _count_records,
    _select_records,
    _update_records,
)
from rolodex.models.schema.notification import NotificationEntry
from rolodex.schemas.notifications import (
    NoProviderError,
    NotificationCreate,
    NotificationStats,
    NotificationStatus,
    NotificationType,
)
from rolodex.services.email import EmailNotificationProvider
from rolodex.services.in_app import InAppNotificationProvider
from rolodex.services.providers import NotificationProvider, ProviderRegistry
from rolodex.services.push import PushNotificationProvider
from rolodex.services.sms import SmsNotificationProvider

LOGGER = logging.getLogger(__name__)

PROVIDER_RETURNED_FALSE = "Provider returned false"


def _type_value(notification_type: NotificationType | str) -> str:
    if isinstance(notification_type, NotificationType):
        return notification_type.value
    return str(notification_type).strip().upper()


class NotificationDispatcher:
    """Records every delivery attempt and routes it to the provider for its type.

    The store is the only state. Each attempt is written PENDING before the
    provider runs, so a crash mid-send stays visible.
    """

    def __init__(self, registry: ProviderRegistry, *, clock: Clock = utc_now) -> None:
        self._registry = registry
        self._clock = clock

    def send(
        self,
        type: NotificationType | str,
        recipient: str,
        subject: str,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
        user_id: Optional[int] = None,
    ) -> NotificationEntry:
        now = self._clock()
        type_value = _type_value(type)
        entry = _add_record(
            "notification",
            type=type_value,
            status=NotificationStatus.PENDING,
            recipient=recipient,
            subject=subject,
            message=message,
            metadata_=metadata,
            user_id=user_id,
            created_at=now,
            updated_at=now,
        )

        provider = self._registry.get(type_value)
        if provider is None:
            error = NoProviderError(type_value)
            self._mark_failed(entry, str(error))
            LOGGER.error("Notification %s failed: %s", entry.id, error)
            raise error

        try:
            delivered = provider.send(recipient, subject, message, metadata)
        except Exception as exc:
            self._mark_failed(entry, str(exc))
            LOGGER.error("Notification %s failed: %s", entry.id, exc)
            raise

        if delivered:
            self._mark_sent(entry, expected=NotificationStatus.PENDING)
            LOGGER.info("Notification %s sent successfully", entry.id)
        else:
            self._mark_failed(entry, PROVIDER_RETURNED_FALSE)
            LOGGER.error("Notification %s failed to send", entry.id)
        return entry

    def send_batch(
        self, requests: Iterable[NotificationCreate]
    ) -> list[NotificationEntry]:
        results = []
        for request in requests:
            try:
                results.append(
                    self.send(
                        request.type,
                        request.recipient,
                        request.subject,
                        request.message,
                        metadata=request.metadata,
                        user_id=request.user_id,
                    )
                )
            except Exception as exc:
                LOGGER.error(
                    "Failed to send notification type=%s to=%s: %s",
                    _type_value(request.type),
                    request.recipient,
                    exc,
                )
        return results

    def get_user_notifications(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> list[NotificationEntry]:
        return list(
            _select_records(
                "notification",
                order_by="created_at",
                descending=True,
                limit=limit,
                offset=offset,
                user_id=user_id,
            )
        )

    def get_stats(self, user_id: Optional[int] = None) -> NotificationStats:
        scope = {} if user_id is None else {"user_id": user_id}
        return NotificationStats(
            total=_count_records("notification", **scope),
            sent=_count_records(
                "notification", status=NotificationStatus.SENT, **scope
            ),
            failed=_count_records(
                "notification", status=NotificationStatus.FAILED, **scope
            ),
            pending=_count_records(
                "notification", status=NotificationStatus.PENDING, **scope
            ),
        )

    def retry_failed(self) -> int:
        failed = _select_records(
            "notification", order_by="created_at", status=NotificationStatus.FAILED
        )

        retry_count = 0
        for entry in failed:
            provider = self._registry.get(entry.type)
            if provider is None:
                continue
            try:
                delivered = provider.send(
                    entry.recipient, entry.subject, entry.message, entry.metadata_
                )
            except Exception as exc:
                LOGGER.error("Retry failed for notification %s: %s", entry.id, exc)
                continue
            if not delivered:
                LOGGER.warning(
                    "Retry for notification %s: %s", entry.id, PROVIDER_RETURNED_FALSE
                )
                continue
            if self._mark_sent(entry, expected=NotificationStatus.FAILED):
                retry_count += 1

        if retry_count:
            LOGGER.info("Retried %s failed notifications", retry_count)
        return retry_count

    def add_provider(
        self, type: NotificationType | str, provider: NotificationProvider
    ) -> None:
        self._registry.add(type, provider)
        LOGGER.info("Added new notification provider for type: %s", _type_value(type))

    def _mark_sent(self, entry: NotificationEntry, *, expected: NotificationStatus) -> bool:
        now = self._clock()
        values = {
            "status": NotificationStatus.SENT,
            "sent_at": now,
            "error_message": None,
            "updated_at": now,
        }
        return self._transition(entry, values, expected=expected)

    def _mark_failed(self, entry: NotificationEntry, error_message: str) -> bool:
        values = {
            "status": NotificationStatus.FAILED,
            "error_message": error_message,
            "updated_at": self._clock(),
        }
        return self._transition(entry, values, expected=NotificationStatus.PENDING)

    def _transition(
        self,
        entry: NotificationEntry,
        values: dict[str, Any],
        *,
        expected: NotificationStatus,
    ) -> bool:
        updated = _update_records(
            "notification", values=values, id=entry.id, status=expected
        )
        if not updated:
            LOGGER.warning(
                "Notification %s is no longer %s; leaving it unchanged",
                entry.id,
                expected.value,
            )
            return False
        for field, value in values.items():
            setattr(entry, field, value.value if field == "status" else value)
        return True


def build_default_registry(config: Settings) -> ProviderRegistry:
    delay_seconds = max(0, config.provider_delay_ms) / 1000
    return ProviderRegistry(
        [
            EmailNotificationProvider(
                failure_rate=config.email_failure_rate, delay_seconds=delay_seconds
            ),
            InAppNotificationProvider(),
            PushNotificationProvider(
                failure_rate=config.push_failure_rate, delay_seconds=delay_seconds
            ),
            SmsNotificationProvider(
                default_country_code=config.default_country_code,
                failure_rate=config.sms_failure_rate,
                delay_seconds=delay_seconds,
            ),
        ]
    )


notification_dispatcher = NotificationDispatcher(build_default_registry(settings))
