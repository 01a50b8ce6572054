"""Reminder schedule, cancel and status endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator

from ..dependencies import get_lifecycle_manager
from ..errors import ValidationError
from ..logging_config import get_logger
from ..services.reminders import ReminderLifecycleManager

logger = get_logger(__name__)

router = APIRouter(prefix="/reminders", tags=["reminders"])


class ScheduleRequest(BaseModel):
    """Request to schedule reminders for a medicine."""
    medicine_id: Optional[str] = None
    user_id: Optional[str] = None
    duration: Optional[int] = None
    morning: bool = False
    noon: bool = False
    night: bool = False

    @field_validator("medicine_id", "user_id", mode="before")
    @classmethod
    def _ids_as_text(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)


@router.post("/schedule")
async def schedule_reminder(
    request: ScheduleRequest,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> Dict[str, Any]:
    """Replace the medicine's reminder schedule."""

    if not request.medicine_id or not request.user_id or not request.duration:
        raise ValidationError("Missing required fields: medicine_id, user_id, duration")

    result = await manager.schedule(
        request.medicine_id,
        request.user_id,
        request.duration,
        morning=request.morning,
        noon=request.noon,
        night=request.night,
    )

    return {
        "success": True,
        "message": result.message,
        "reminders_created": result.reminders_created,
        "scheduled_times": result.scheduled_times,
        "calendar": result.calendar.to_dict(),
    }


@router.delete("/cancel")
async def cancel_reminder(
    medicine_id: Optional[str] = None,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> Dict[str, Any]:
    """Deactivate the medicine's reminders; calendar cleanup is best effort."""

    if not medicine_id:
        raise ValidationError("Medicine ID is required")

    calendar = await manager.cancel(medicine_id)
    return {
        "success": True,
        "message": "Reminders canceled successfully",
        "calendar": calendar.to_dict(),
    }


@router.get("/status")
async def reminder_status(
    medicine_id: Optional[str] = None,
    manager: ReminderLifecycleManager = Depends(get_lifecycle_manager),
) -> Dict[str, Any]:
    """Whether the medicine has any active reminder."""

    if not medicine_id:
        raise ValidationError("Medicine ID is required")

    return {"hasActiveReminder": await manager.has_active_reminder(medicine_id)}


__all__ = ["router"]
