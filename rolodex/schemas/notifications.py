from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class NotificationType(str, Enum):
    EMAIL = "EMAIL"
    IN_APP = "IN_APP"
    PUSH = "PUSH"
    SMS = "SMS"


class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class NotificationError(RuntimeError):
    pass


class NoProviderError(NotificationError):
    def __init__(self, notification_type: str) -> None:
        super().__init__(
            f"No provider found for notification type: {notification_type}"
        )
        self.notification_type = notification_type


class DeliveryError(NotificationError):
    """Raised by a provider when its transport rejects a message."""


@dataclass(frozen=True)
class NotificationStats:
    total: int
    sent: int
    failed: int
    pending: int


class NotificationCreate(BaseModel):
    type: NotificationType
    recipient: str = Field(min_length=1, max_length=255)
    subject: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    metadata: Optional[dict[str, Any]] = None
    user_id: Optional[int] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    status: NotificationStatus
    recipient: str
    subject: str
    message: str
    metadata: Optional[dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class NotificationStatsResponse(BaseModel):
    total: int
    sent: int
    failed: int
    pending: int


class RetryResponse(BaseModel):
    retry_count: int
