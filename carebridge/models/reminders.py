"""Data models for medicines, reminder slots and calendar state."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TimeOfDay(Enum):
    """Symbolic time-of-day a reminder slot can occupy."""
    MORNING = "morning"
    NOON = "noon"
    NIGHT = "night"

    @property
    def trigger_hour(self) -> int:
        return TRIGGER_HOURS[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()


TRIGGER_HOURS = {
    TimeOfDay.MORNING: 9,
    TimeOfDay.NOON: 12,
    TimeOfDay.NIGHT: 20,
}


class Medicine(BaseModel):
    """Medicine metadata needed to render a reminder."""
    id: str
    user_id: str
    name: str
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    notes: Optional[str] = None


class ReminderSlot(BaseModel):
    """One daily trigger for a medicine within an active window."""
    id: Optional[str] = None
    medicine_id: str
    user_id: str
    time_label: TimeOfDay
    trigger_hour: int
    window_start: datetime
    window_end: datetime
    is_active: bool = True

    def covers(self, instant: datetime) -> bool:
        """Whether the slot is active and its window contains the instant."""
        return self.is_active and self.window_start <= instant <= self.window_end


class DueReminder(BaseModel):
    """A due slot joined with its medicine and the recipient address."""
    slot: ReminderSlot
    medicine: Medicine
    recipient: Optional[str] = None


class CalendarToken(BaseModel):
    """OAuth credentials for one (user, provider) pair."""
    user_id: str
    provider: str
    access_token: str
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expiry


class CalendarEventRecord(BaseModel):
    """External event ids mirroring a medicine's current schedule."""
    medicine_id: str
    user_id: str
    event_ids: List[str] = Field(default_factory=list)


class MedicineSchedule(BaseModel):
    """Input for mirroring a schedule into the calendar."""
    medicine: Medicine
    user_id: str
    duration_days: int
    times: List[TimeOfDay]
