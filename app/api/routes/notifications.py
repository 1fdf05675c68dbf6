from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from loguru import logger
from sqlalchemy.orm import Session

from app.api.deps import get_broker, get_cache, get_current_user, require_role
from app.core.config import SSE_HEARTBEAT_SECONDS
from app.core.db import get_db
from app.models.user import User
from app.schemas.enums import UserRole
from app.schemas.notifications import (
    MarkAllReadResponse,
    NotificationCreateRequest,
    NotificationListResponse,
    NotificationOut,
    NotificationResponse,
    Pagination,
)
from app.services import notifications as service
from app.services.cache import CacheTTL, ResponseCache, user_notifications_key
from app.services.sse import NotificationBroker

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ----------------------------
# LIST
# ----------------------------
@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = Query(False),
    unread_only_camel: Optional[bool] = Query(None, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    cache: ResponseCache = Depends(get_cache),
):
    if unread_only_camel is not None:
        unread_only = unread_only_camel

    rows, total = service.list_notifications(db, user.id, unread_only=unread_only, limit=limit, offset=offset)

    unread_count = cache.get_or_set(
        user_notifications_key(user.id),
        lambda: service.count_unread(db, user.id),
        ttl=CacheTTL.MEDIUM,
    )

    return NotificationListResponse(
        notifications=[NotificationOut.model_validate(r) for r in rows],
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        ),
        unread_count=unread_count,
    )


# ----------------------------
# CREATE (platform admins)
# ----------------------------
@router.post("", response_model=NotificationResponse)
def create_notification(
    payload: NotificationCreateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_role(UserRole.PLATFORM_ADMIN)),
    cache: ResponseCache = Depends(get_cache),
    broker: NotificationBroker = Depends(get_broker),
):
    notification = service.create_notification(
        db,
        user_id=payload.user_id,
        type=payload.type,
        title=payload.title,
        message=payload.message,
        broker=broker,
        cache=cache,
        inspection_id=payload.inspection_id,
        listing_id=payload.listing_id,
        payment_id=payload.payment_id,
        meta=payload.meta,
    )
    logger.info(f"Notification sent by admin | admin={admin.id} to={payload.user_id}")

    return NotificationResponse(
        message="Notification created successfully",
        notification=NotificationOut.model_validate(notification),
    )


# ----------------------------
# READ / UNREAD
# ----------------------------
def _set_read(db: Session, cache: ResponseCache, notification_id: str, user: User, read: bool):
    try:
        notification = service.set_read(db, notification_id, user.id, read)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    cache.delete(user_notifications_key(user.id))
    return notification


@router.put("/mark-all-read", response_model=MarkAllReadResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    cache: ResponseCache = Depends(get_cache),
):
    updated = service.mark_all_read(db, user.id)
    cache.delete(user_notifications_key(user.id))

    logger.info(f"Marked all read | user={user.id} count={updated}")

    return MarkAllReadResponse(
        message=f"Marked {updated} notifications as read",
        updated_count=updated,
    )


@router.put("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    cache: ResponseCache = Depends(get_cache),
):
    notification = _set_read(db, cache, notification_id, user, True)
    return NotificationResponse(
        message="Notification marked as read",
        notification=NotificationOut.model_validate(notification),
    )


@router.delete("/{notification_id}/read", response_model=NotificationResponse)
def mark_unread(
    notification_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    cache: ResponseCache = Depends(get_cache),
):
    notification = _set_read(db, cache, notification_id, user, False)
    return NotificationResponse(
        message="Notification marked as unread",
        notification=NotificationOut.model_validate(notification),
    )


# ----------------------------
# STREAM
# ----------------------------
@router.get("/stream")
def stream_notifications(
    user: User = Depends(get_current_user),
    broker: NotificationBroker = Depends(get_broker),
):
    logger.info(f"SSE stream requested | user={user.id}")

    return StreamingResponse(
        broker.stream(user.id, heartbeat_seconds=SSE_HEARTBEAT_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )
