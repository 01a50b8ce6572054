"""Structured outcomes returned up the reminder call chain."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .reminders import TimeOfDay


class OutcomeKind(Enum):
    OK = "ok"
    CALENDAR_SYNC_FAILED = "calendar_sync_failed"
    DELIVERY_FAILED = "delivery_failed"
    SKIPPED = "skipped"


@dataclass
class Outcome:
    """Result of one side effect (a send or a calendar sync)."""

    kind: OutcomeKind
    reference: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def ok(cls, reference: Optional[str] = None) -> "Outcome":
        return cls(OutcomeKind.OK, reference)

    @classmethod
    def skipped(cls, reason: str, reference: Optional[str] = None) -> "Outcome":
        return cls(OutcomeKind.SKIPPED, reference, reason)

    @classmethod
    def calendar_failed(cls, reason: str, reference: Optional[str] = None) -> "Outcome":
        return cls(OutcomeKind.CALENDAR_SYNC_FAILED, reference, reason)

    @classmethod
    def delivery_failed(cls, reason: str, reference: Optional[str] = None) -> "Outcome":
        return cls(OutcomeKind.DELIVERY_FAILED, reference, reason)

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.OK

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.kind.value}
        if self.reference:
            data["reference"] = self.reference
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class CalendarSyncResult:
    """Event ids created for a schedule plus per-event failures."""

    event_ids: List[str] = field(default_factory=list)
    failures: List[Outcome] = field(default_factory=list)

    @property
    def events_created(self) -> int:
        return len(self.event_ids)


@dataclass
class ScheduleResult:
    """Result of a successful schedule call."""

    medicine_id: str
    duration_days: int
    times: List[TimeOfDay]
    window_start: datetime
    window_end: datetime
    calendar: Outcome
    confirmation: Outcome

    @property
    def reminders_created(self) -> int:
        return len(self.times)

    @property
    def scheduled_times(self) -> List[Dict[str, Any]]:
        return [{"time": t.value, "hour": t.trigger_hour} for t in self.times]

    @property
    def message(self) -> str:
        labels = ", ".join(t.value for t in self.times)
        return (
            f"Reminder scheduled successfully for {self.duration_days} days. "
            f"You will receive emails at {labels} daily."
        )


@dataclass
class DispatchReport:
    """Aggregate report of one dispatcher run."""

    message: str
    timestamp: datetime
    scheduled_hour: Optional[int] = None
    outcomes: List[Outcome] = field(default_factory=list)

    @property
    def total_reminders(self) -> int:
        return len(self.outcomes)

    @property
    def emails_sent(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def emails_failed(self) -> int:
        return self.total_reminders - self.emails_sent

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "scheduledHour": self.scheduled_hour,
            "totalReminders": self.total_reminders,
            "emailsSent": self.emails_sent,
            "emailsFailed": self.emails_failed,
            "timestamp": self.timestamp.isoformat(),
        }
