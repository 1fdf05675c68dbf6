from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.notification import Notification
from app.schemas.enums import NotificationType
from app.schemas.notifications import NotificationOut
from app.services.cache import ResponseCache, user_notifications_key
from app.services.sse import NotificationBroker


# ---------- templates ----------

def _format_amount(amount: float) -> str:
    # 250000 -> "250,000", 1234.5 -> "1,234.5"
    return f"{amount:,.2f}".rstrip("0").rstrip(".")


def inspection_scheduled(inspection_id: str, property_title: str) -> Dict[str, Any]:
    return {
        "type": NotificationType.INSPECTION_SCHEDULED,
        "title": "Inspection Scheduled",
        "message": f'Your inspection for "{property_title}" has been scheduled successfully.',
        "inspection_id": inspection_id,
    }


def inspection_accepted(inspection_id: str, property_title: str, inspector_name: str) -> Dict[str, Any]:
    return {
        "type": NotificationType.INSPECTION_ACCEPTED,
        "title": "Inspector Assigned",
        "message": f'{inspector_name} has accepted your inspection request for "{property_title}".',
        "inspection_id": inspection_id,
    }


def inspection_completed(inspection_id: str, property_title: str) -> Dict[str, Any]:
    return {
        "type": NotificationType.INSPECTION_COMPLETED,
        "title": "Inspection Completed",
        "message": f'The inspection for "{property_title}" has been completed.',
        "inspection_id": inspection_id,
    }


def inquiry_received(listing_id: str, property_title: str, client_name: str) -> Dict[str, Any]:
    return {
        "type": NotificationType.INQUIRY_RECEIVED,
        "title": "New Inquiry",
        "message": f'{client_name} has sent an inquiry about "{property_title}".',
        "listing_id": listing_id,
    }


def payment_received(payment_id: str, amount: float) -> Dict[str, Any]:
    return {
        "type": NotificationType.PAYMENT_RECEIVED,
        "title": "Payment Received",
        "message": f"Payment of ₦{_format_amount(amount)} has been received.",
        "payment_id": payment_id,
    }


def listing_saved(listing_id: str, property_title: str) -> Dict[str, Any]:
    return {
        "type": NotificationType.LISTING_SAVED,
        "title": "Property Saved",
        "message": f'Someone saved your property "{property_title}" to their favorites.',
        "listing_id": listing_id,
    }


def verification_approved() -> Dict[str, Any]:
    return {
        "type": NotificationType.VERIFICATION_APPROVED,
        "title": "Verification Approved",
        "message": "Your account verification has been approved. You can now access all features.",
    }


def verification_rejected(reason: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": NotificationType.VERIFICATION_REJECTED,
        "title": "Verification Rejected",
        "message": f"Your account verification was rejected: {reason}"
        if reason
        else "Your account verification was rejected. Please contact support.",
    }


# ---------- persistence + push ----------

def _serialize(notification: Notification) -> Dict[str, Any]:
    return NotificationOut.model_validate(notification).model_dump(mode="json")


def create_notification(
    db: Session,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    broker: Optional[NotificationBroker] = None,
    cache: Optional[ResponseCache] = None,
    inspection_id: Optional[str] = None,
    listing_id: Optional[str] = None,
    payment_id: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        read=False,
        inspection_id=inspection_id,
        listing_id=listing_id,
        payment_id=payment_id,
        meta=meta,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)

    logger.info(f"Notification created | user={user_id} type={type.value} id={notification.id}")

    if cache is not None:
        cache.delete(user_notifications_key(user_id))

    if broker is not None:
        delivered = broker.publish_to_user(user_id, _serialize(notification))
        logger.debug(f"Notification pushed | user={user_id} live={delivered}")

    return notification


def create_bulk_notifications(
    db: Session,
    user_ids: List[str],
    type: NotificationType,
    title: str,
    message: str,
    broker: Optional[NotificationBroker] = None,
    cache: Optional[ResponseCache] = None,
    **links: Any,
) -> List[Notification]:
    rows = [
        Notification(user_id=uid, type=type, title=title, message=message, read=False, **links)
        for uid in user_ids
    ]
    db.add_all(rows)
    db.commit()
    for row in rows:
        db.refresh(row)

    logger.info(f"Bulk notifications created | count={len(rows)} type={type.value}")

    for row in rows:
        if cache is not None:
            cache.delete(user_notifications_key(row.user_id))
        if broker is not None:
            broker.publish_to_user(row.user_id, _serialize(row))

    return rows


def _notify(db: Session, user_id: str, template: Dict[str, Any], **kwargs: Any) -> Notification:
    return create_notification(db, user_id=user_id, **template, **kwargs)


def notify_inspection_scheduled(db: Session, user_id: str, inspection_id: str, property_title: str, **kwargs):
    return _notify(db, user_id, inspection_scheduled(inspection_id, property_title), **kwargs)


def notify_inspection_accepted(
    db: Session, user_id: str, inspection_id: str, property_title: str, inspector_name: str, **kwargs
):
    return _notify(db, user_id, inspection_accepted(inspection_id, property_title, inspector_name), **kwargs)


def notify_inspection_completed(db: Session, user_id: str, inspection_id: str, property_title: str, **kwargs):
    return _notify(db, user_id, inspection_completed(inspection_id, property_title), **kwargs)


def notify_inquiry_received(
    db: Session, agent_id: str, listing_id: str, property_title: str, client_name: str, **kwargs
):
    return _notify(db, agent_id, inquiry_received(listing_id, property_title, client_name), **kwargs)


def notify_payment_received(db: Session, user_id: str, payment_id: str, amount: float, **kwargs):
    return _notify(db, user_id, payment_received(payment_id, amount), **kwargs)


def notify_listing_saved(db: Session, agent_id: str, listing_id: str, property_title: str, **kwargs):
    return _notify(db, agent_id, listing_saved(listing_id, property_title), **kwargs)


def notify_verification_approved(db: Session, user_id: str, **kwargs):
    return _notify(db, user_id, verification_approved(), **kwargs)


def notify_verification_rejected(db: Session, user_id: str, reason: Optional[str] = None, **kwargs):
    return _notify(db, user_id, verification_rejected(reason), **kwargs)


# ---------- reads / updates ----------

def list_notifications(
    db: Session,
    user_id: str,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Notification], int]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))

    total = query.with_entities(func.count(Notification.id)).scalar() or 0
    rows = (
        query.order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, int(total)


def count_unread(db: Session, user_id: str) -> int:
    return int(
        db.query(func.count(Notification.id))
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .scalar()
        or 0
    )


def set_read(db: Session, notification_id: str, user_id: str, read: bool) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification:
        raise LookupError("Notification not found")

    if notification.user_id != user_id:
        raise PermissionError("Unauthorized access to notification")

    notification.read = read
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: str) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    return int(updated)
