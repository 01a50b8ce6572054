"""Google Calendar connection endpoints."""

from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ..config import Settings, get_settings
from ..dependencies import get_calendar_sync
from ..errors import ReminderError, ValidationError
from ..logging_config import get_logger
from ..services.calendar import CalendarSyncService

logger = get_logger(__name__)

router = APIRouter(prefix="/calendar", tags=["calendar"])

DASHBOARD_PATH = "/dashboard/prescription-extractor"


def _dashboard_redirect(settings: Settings, **params: str) -> RedirectResponse:
    base = settings.public_base_url.rstrip("/")
    return RedirectResponse(f"{base}{DASHBOARD_PATH}?{urlencode(params)}", status_code=307)


@router.get("/auth")
async def calendar_auth(
    user_id: Optional[str] = None,
    calendar: CalendarSyncService = Depends(get_calendar_sync),
) -> Dict[str, Any]:
    """Return the Google consent URL for the user."""

    if not user_id:
        raise ValidationError("User ID is required")

    return {"success": True, "authUrl": calendar.authorization_url(user_id)}


@router.get("/callback")
async def calendar_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    calendar: CalendarSyncService = Depends(get_calendar_sync),
    settings: Settings = Depends(get_settings),
) -> RedirectResponse:
    """Exchange the OAuth code and send the browser back to the dashboard."""

    if error:
        logger.error(f"OAuth error: {error}")
        return _dashboard_redirect(settings, calendar_error=error)

    if not code or not state:
        return _dashboard_redirect(settings, calendar_error="missing_code")

    try:
        await calendar.connect(state, code)
    except ReminderError as e:
        logger.error(f"Calendar callback failed for user {state}: {e.message} {e.detail or ''}")
        return _dashboard_redirect(settings, calendar_error="callback_failed")

    return _dashboard_redirect(settings, calendar_connected="true")


@router.get("/status")
async def calendar_status(
    user_id: Optional[str] = None,
    calendar: CalendarSyncService = Depends(get_calendar_sync),
) -> Dict[str, Any]:
    """Whether the user has a usable calendar token."""

    if not user_id:
        raise ValidationError("User ID is required")

    return {"success": True, "connected": await calendar.is_connected(user_id)}


@router.delete("/disconnect")
async def calendar_disconnect(
    user_id: Optional[str] = None,
    calendar: CalendarSyncService = Depends(get_calendar_sync),
) -> Dict[str, Any]:
    """Forget the user's calendar token."""

    if not user_id:
        raise ValidationError("User ID is required")

    await calendar.disconnect(user_id)
    return {"success": True, "message": "Google Calendar disconnected successfully"}


__all__ = ["router"]
