"""
Notification Controllers (API Routes)
=====================================

FastAPI routes for the notification list. Consumers can only read
notifications and set their read flag.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from jobwatch.engine import EngineQueue
from jobwatch.notifications.application import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    NotificationService,
)
from jobwatch.notifications.infrastructure import SQLAlchemyNotificationRepository
from jobwatch.shared.api.dependencies import get_queue

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    related_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    queue: EngineQueue = Depends(get_queue)
):
    async with queue.read() as session:
        service = NotificationService(SQLAlchemyNotificationRepository(session))
        notifications = await service.list_notifications(
            unread_only=unread_only, related_id=related_id, limit=limit, offset=offset
        )
        unread = await service.unread_count()
    return NotificationListResponse(
        notifications=[NotificationResponse.from_domain(n) for n in notifications],
        unread_count=unread,
    )


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, queue: EngineQueue = Depends(get_queue)):
    async with queue.transaction() as session:
        service = NotificationService(SQLAlchemyNotificationRepository(session))
        notification = await service.mark_read(notification_id)
    return NotificationResponse.from_domain(notification)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(queue: EngineQueue = Depends(get_queue)):
    async with queue.transaction() as session:
        updated = await NotificationService(SQLAlchemyNotificationRepository(session)).mark_all_read()
    return MarkAllReadResponse(updated=updated)
