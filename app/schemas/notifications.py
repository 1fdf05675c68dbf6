from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.base import ActionResponse, UserRecordSchema
from app.schemas.enums import NotificationType


class NotificationOut(UserRecordSchema):
    type: NotificationType
    title: str
    message: str
    read: bool
    inspection_id: Optional[str] = None
    listing_id: Optional[str] = None
    payment_id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class NotificationCreateRequest(BaseModel):
    user_id: str
    type: NotificationType
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    inspection_id: Optional[str] = None
    listing_id: Optional[str] = None
    payment_id: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: List[NotificationOut]
    pagination: Pagination
    unread_count: int


class NotificationResponse(ActionResponse):
    notification: NotificationOut


class MarkAllReadResponse(ActionResponse):
    updated_count: int
