from fastapi import APIRouter

from app.api.routes import admin
from app.api.routes import notifications
from app.api.routes import onboarding

api_router = APIRouter(prefix="/v1")

api_router.include_router(onboarding.router, tags=["onboarding"])
api_router.include_router(notifications.router, tags=["notifications"])
api_router.include_router(admin.router, tags=["admin"])
