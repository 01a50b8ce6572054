"""Cron trigger endpoint for reminder dispatch."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header

from ..dependencies import get_dispatcher
from ..logging_config import get_logger
from ..services.reminders import ReminderDispatcher

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get("/send-reminders")
async def send_reminders(
    authorization: Optional[str] = Header(default=None),
    dispatcher: ReminderDispatcher = Depends(get_dispatcher),
) -> Dict[str, Any]:
    """Send reminder emails for the current time slot.

    Meant to be called by an external scheduler once an hour.
    """

    dispatcher.authenticate(authorization)
    report = await dispatcher.run()
    return report.to_dict()


__all__ = ["router"]
