from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from rolodex.schemas.notifications import (
    NoProviderError,
    NotificationCreate,
    NotificationError,
    NotificationResponse,
    NotificationStatsResponse,
    RetryResponse,
)
from rolodex.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def send_notification(payload: NotificationCreate) -> NotificationResponse:
    try:
        entry = notification_service.notification_dispatcher.send(
            payload.type,
            payload.recipient,
            payload.subject,
            payload.message,
            metadata=payload.metadata,
            user_id=payload.user_id,
        )
    except NoProviderError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    except NotificationError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)
        ) from exc
    except Exception as exc:
        # The record is already FAILED.
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send notification",
        ) from exc
    return NotificationResponse.model_validate(entry)


@router.post(
    "/batch",
    response_model=list[NotificationResponse],
    status_code=status.HTTP_201_CREATED,
)
def send_notifications(payload: list[NotificationCreate]) -> list[NotificationResponse]:
    entries = notification_service.notification_dispatcher.send_batch(payload)
    return [NotificationResponse.model_validate(entry) for entry in entries]


@router.get("/users/{user_id}", response_model=list[NotificationResponse])
def user_notifications(
    user_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[NotificationResponse]:
    entries = notification_service.notification_dispatcher.get_user_notifications(
        user_id, limit=limit, offset=offset
    )
    return [NotificationResponse.model_validate(entry) for entry in entries]


@router.get("/stats", response_model=NotificationStatsResponse)
def notification_stats(user_id: Optional[int] = None) -> NotificationStatsResponse:
    stats = notification_service.notification_dispatcher.get_stats(user_id)
    return NotificationStatsResponse(
        total=stats.total, sent=stats.sent, failed=stats.failed, pending=stats.pending
    )


@router.post("/retry-failed", response_model=RetryResponse)
def retry_failed_notifications() -> RetryResponse:
    return RetryResponse(
        retry_count=notification_service.notification_dispatcher.retry_failed()
    )
