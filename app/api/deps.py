from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.auth import get_current_user_id
from app.core.db import get_db
from app.models.user import User
from app.schemas.enums import UserRole
from app.services.cache import ResponseCache
from app.services.sse import NotificationBroker


def get_current_user(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_role(*roles: UserRole):
    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check


def get_cache(request: Request) -> ResponseCache:
    return request.app.state.cache


def get_broker(request: Request) -> NotificationBroker:
    return request.app.state.broker
