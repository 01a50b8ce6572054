"""Manual one-off reminder email endpoint."""

import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_sender
from ..errors import ValidationError
from ..logging_config import get_logger
from ..services.notifications import NotificationSender, ReminderEmail

logger = get_logger(__name__)

router = APIRouter(tags=["notifications"])

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SendReminderRequest(BaseModel):
    """Request to send a single reminder email now."""
    user_email: Optional[str] = None
    medicine_name: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    notes: Optional[str] = None
    reminder_time: str = "now"


@router.post("/send-reminder")
async def send_reminder(
    request: SendReminderRequest,
    sender: NotificationSender = Depends(get_sender),
) -> Dict[str, Any]:
    """Send one reminder email immediately."""

    if not request.user_email or not request.medicine_name:
        raise ValidationError("Missing required fields: user_email and medicine_name")
    if not EMAIL_PATTERN.match(request.user_email):
        raise ValidationError("Invalid email format")

    message_id = await sender.send(ReminderEmail(
        recipient=request.user_email,
        medicine_name=request.medicine_name,
        reminder_time=request.reminder_time,
        dosage=request.dosage,
        instructions=request.instructions,
        notes=request.notes,
    ))

    return {
        "success": True,
        "message": "Reminder email sent successfully",
        "data": {"id": message_id},
    }


__all__ = ["router"]
