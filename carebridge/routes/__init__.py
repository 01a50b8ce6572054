"""API routes for CareBridge Reminders."""

from fastapi import APIRouter

from .calendar import router as calendar_router
from .cron import router as cron_router
from .notifications import router as notifications_router
from .reminders import router as reminders_router

api_router = APIRouter(prefix="/api")

api_router.include_router(cron_router)
api_router.include_router(reminders_router)
api_router.include_router(calendar_router)
api_router.include_router(notifications_router)

__all__ = ["api_router"]
