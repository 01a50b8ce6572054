"""In-memory stand-ins for the store, mail transport and calendar API."""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from carebridge.errors import CalendarApiError, DeliveryError, StoreError, UpstreamAuthError
from carebridge.models.reminders import (
    CalendarEventRecord,
    CalendarToken,
    DueReminder,
    Medicine,
    ReminderSlot,
)
from carebridge.services.calendar import OAuthTokens
from carebridge.services.notifications import ReminderEmail

UTC = timezone.utc


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    return datetime(2025, 3, day, hour, minute, tzinfo=UTC)


class InMemoryStore:
    """Stand-in for ReminderStore keeping every table in dictionaries."""

    def __init__(self):
        self.medicines: Dict[str, Medicine] = {}
        self.slots: List[ReminderSlot] = []
        self.profiles: Dict[str, str] = {}
        self.tokens: Dict[Tuple[str, str], CalendarToken] = {}
        self.records: Dict[Tuple[str, str], CalendarEventRecord] = {}
        self.due_queries = 0
        self.fail_due_query = False
        self._ids = itertools.count(1)

    def add_medicine(self, medicine_id: str = "med-1", user_id: str = "user-1", name: str = "Amoxicillin",
                     email: Optional[str] = "patient@example.com", **fields) -> Medicine:
        medicine = Medicine(id=medicine_id, user_id=user_id, name=name, **fields)
        self.medicines[medicine_id] = medicine
        if email:
            self.profiles[user_id] = email
        return medicine

    def active_slots(self, medicine_id: str) -> List[ReminderSlot]:
        return [s for s in self.slots if s.medicine_id == medicine_id and s.is_active]

    async def get_medicine(self, medicine_id: str) -> Optional[Medicine]:
        return self.medicines.get(medicine_id)

    async def replace_slots(self, medicine_id: str, slots: List[ReminderSlot]) -> int:
        for slot in self.slots:
            if slot.medicine_id == medicine_id:
                slot.is_active = False
        # yield between the two writes so unserialized callers interleave
        await asyncio.sleep(0)
        for slot in slots:
            self.slots.append(slot.model_copy(update={"id": f"slot-{next(self._ids)}"}))
        return len(slots)

    async def deactivate_slots(self, medicine_id: str) -> int:
        touched = 0
        for slot in self.slots:
            if slot.medicine_id == medicine_id and slot.is_active:
                slot.is_active = False
                touched += 1
        return touched

    async def list_slots(self, medicine_id: str, active_only: bool = False) -> List[ReminderSlot]:
        return [s for s in self.slots if s.medicine_id == medicine_id and (s.is_active or not active_only)]

    async def has_active_slots(self, medicine_id: str) -> bool:
        return bool(self.active_slots(medicine_id))

    async def get_due_reminders(self, trigger_hour: int, now: datetime) -> List[DueReminder]:
        self.due_queries += 1
        if self.fail_due_query:
            raise StoreError("Failed to fetch reminders", detail="connection refused")
        return [
            DueReminder(
                slot=slot,
                medicine=self.medicines[slot.medicine_id],
                recipient=self.profiles.get(slot.user_id),
            )
            for slot in self.slots
            if slot.trigger_hour == trigger_hour and slot.covers(now)
        ]

    async def get_notification_addresses(self, user_ids: Iterable[str]) -> Dict[str, str]:
        return {uid: self.profiles[uid] for uid in user_ids if uid in self.profiles}

    async def get_calendar_token(self, user_id: str, provider: str) -> Optional[CalendarToken]:
        return self.tokens.get((user_id, provider))

    async def save_calendar_token(self, token: CalendarToken) -> None:
        self.tokens[(token.user_id, token.provider)] = token

    async def delete_calendar_token(self, user_id: str, provider: str) -> None:
        self.tokens.pop((user_id, provider), None)

    async def get_event_record(self, medicine_id: str, user_id: str) -> Optional[CalendarEventRecord]:
        return self.records.get((medicine_id, user_id))

    async def save_event_record(self, record: CalendarEventRecord) -> None:
        self.records[(record.medicine_id, record.user_id)] = record

    async def delete_event_record(self, medicine_id: str, user_id: str) -> None:
        self.records.pop((medicine_id, user_id), None)


class FakeSender:
    """Records emails; raises DeliveryError for addresses in `failing`."""

    def __init__(self, failing: Iterable[str] = ()):
        self.sent: List[ReminderEmail] = []
        self.failing = set(failing)

    async def send(self, email: ReminderEmail) -> str:
        if email.recipient in self.failing:
            raise DeliveryError("Failed to send email via Resend: rejected", detail="rejected")
        self.sent.append(email)
        return f"msg-{len(self.sent)}"


class FakeCalendarClient:
    """In-memory Google Calendar; rejects inserts/deletes on request."""

    def __init__(self):
        self.events: Dict[str, dict] = {}
        self.delete_attempts: List[str] = []
        self.reject_insert_labels: set = set()
        self.reject_delete_ids: set = set()
        self.refresh_fails = False
        self.refresh_calls = 0
        self._ids = itertools.count(1)

    def authorization_url(self, state: str) -> str:
        return f"https://accounts.example/auth?state={state}"

    async def exchange_code(self, code: str) -> OAuthTokens:
        if code == "bad":
            raise UpstreamAuthError("Google OAuth rejected the token request")
        return OAuthTokens(access_token=f"access-{code}", refresh_token="refresh-1",
                           expiry=datetime.now(UTC) + timedelta(hours=1))

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        self.refresh_calls += 1
        await asyncio.sleep(0)
        if self.refresh_fails:
            raise UpstreamAuthError("Google OAuth rejected the token request", detail="invalid_grant")
        return OAuthTokens(access_token="access-fresh", refresh_token=refresh_token,
                           expiry=datetime.now(UTC) + timedelta(hours=1))

    async def insert_event(self, access_token: str, event: dict) -> str:
        if any(f"({label})" in event["summary"] for label in self.reject_insert_labels):
            raise CalendarApiError("Failed to create event: HTTP 500")
        event_id = f"evt-{next(self._ids)}"
        self.events[event_id] = event
        return event_id

    async def delete_event(self, access_token: str, event_id: str) -> None:
        self.delete_attempts.append(event_id)
        if event_id in self.reject_delete_ids:
            raise CalendarApiError(f"Failed to delete event {event_id}: HTTP 500")
        self.events.pop(event_id, None)

