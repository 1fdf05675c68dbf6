from fastapi import APIRouter, Depends
from loguru import logger

from app.api.deps import get_broker, get_cache, require_role
from app.models.user import User
from app.schemas.enums import UserRole
from app.services.cache import ResponseCache
from app.services.sse import NotificationBroker

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/cache/stats")
def cache_stats(
    admin: User = Depends(require_role(UserRole.PLATFORM_ADMIN)),
    cache: ResponseCache = Depends(get_cache),
    broker: NotificationBroker = Depends(get_broker),
):
    logger.debug(f"Cache stats requested | admin={admin.id}")
    return {
        "stats": cache.stats().as_dict(),
        "hit_rate": cache.hit_rate(),
        "size": cache.size(),
        "connected_users": broker.connected_users_count(),
    }
