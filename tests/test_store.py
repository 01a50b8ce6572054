from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from carebridge.errors import StoreError
from carebridge.models.reminders import CalendarToken, ReminderSlot, TimeOfDay
from carebridge.services.reminders import ReminderStore
from carebridge.services.supabase_client import verify_reminder_tables
from fakes import at


class RecordingQuery:
    """Chainable PostgREST query double; records every call."""

    def __init__(self, client, table, data):
        self.client = client
        self.table = table
        self.data = data
        self.calls = []

    def __getattr__(self, name):
        def call(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return call

    def execute(self):
        if self.table in self.client.broken:
            raise RuntimeError(f"relation {self.table} does not exist")
        return SimpleNamespace(data=self.data)


class RecordingClient:
    def __init__(self, responses=None, broken=()):
        self.responses = responses or {}
        self.broken = set(broken)
        self.queries = []
        self.rpcs = []

    def table(self, name):
        query = RecordingQuery(self, name, self.responses.get(name, []))
        self.queries.append(query)
        return query

    def rpc(self, name, params):
        self.rpcs.append((name, params))
        return RecordingQuery(self, name, self.responses.get(name, len(params["p_slots"])))


def test_get_due_reminders_joins_medicine_and_email():
    client = RecordingClient({
        "reminder_slots": [{
            "id": 11, "medicine_id": 5, "user_id": "u1", "time_label": "morning", "trigger_hour": 9,
            "window_start": "2025-03-14T08:00:00+00:00", "window_end": "2025-03-21T08:00:00+00:00",
            "is_active": True,
            "medicines": {"id": 5, "user_id": "u1", "name": "Metformin", "dosage": "500mg",
                          "instructions": None, "notes": None},
        }],
        "profiles": [{"id": "u1", "email": "u1@example.com"}],
    })

    due = asyncio.run(ReminderStore(client).get_due_reminders(9, at(9)))

    assert len(due) == 1
    assert due[0].slot.id == "11"
    assert due[0].slot.time_label is TimeOfDay.MORNING
    assert due[0].medicine.name == "Metformin"
    assert due[0].recipient == "u1@example.com"

    calls = client.queries[0].calls
    assert ("eq", ("is_active", True), {}) in calls
    assert ("eq", ("trigger_hour", 9), {}) in calls
    assert ("lte", ("window_start", at(9).isoformat()), {}) in calls
    assert ("gte", ("window_end", at(9).isoformat()), {}) in calls


def test_due_reminder_without_profile_has_no_recipient():
    client = RecordingClient({
        "reminder_slots": [{
            "id": "s1", "medicine_id": "m1", "user_id": "u9", "time_label": "night", "trigger_hour": 20,
            "window_start": "2025-03-14T08:00:00+00:00", "window_end": "2025-03-21T08:00:00+00:00",
            "is_active": True,
            "medicines": {"id": "m1", "user_id": "u9", "name": "Aspirin"},
        }],
        "profiles": [],
    })

    due = asyncio.run(ReminderStore(client).get_due_reminders(20, at(20)))

    assert due[0].recipient is None


def test_replace_slots_uses_single_rpc():
    client = RecordingClient()
    slots = [
        ReminderSlot(medicine_id="m1", user_id="u1", time_label=TimeOfDay.NOON, trigger_hour=12,
                     window_start=at(8), window_end=at(8, day=22)),
    ]

    created = asyncio.run(ReminderStore(client).replace_slots("m1", slots))

    assert created == 1
    name, params = client.rpcs[0]
    assert name == "replace_reminder_slots"
    assert params["p_medicine_id"] == "m1"
    assert params["p_slots"][0]["time_label"] == "noon"
    assert "id" not in params["p_slots"][0]
    assert client.queries == []


def test_query_failure_becomes_store_error():
    client = RecordingClient(broken={"reminder_slots"})

    with pytest.raises(StoreError) as exc:
        asyncio.run(ReminderStore(client).get_due_reminders(12, at(12)))
    assert exc.value.message == "Failed to fetch reminders"
    assert "does not exist" in exc.value.detail


def test_missing_client_is_store_error():
    store = ReminderStore(client=RecordingClient())
    store.client = None

    with pytest.raises(StoreError):
        asyncio.run(store.get_medicine("m1"))


def test_save_calendar_token_upserts_on_user_and_provider():
    client = RecordingClient()
    token = CalendarToken(user_id="u1", provider="google", access_token="at", refresh_token="rt", expiry=at(10))

    asyncio.run(ReminderStore(client).save_calendar_token(token))

    query = client.queries[0]
    name, args, kwargs = query.calls[0]
    assert query.table == "calendar_tokens"
    assert name == "upsert"
    assert args[0]["access_token"] == "at"
    assert kwargs == {"on_conflict": "user_id,provider"}


def test_event_record_defaults_to_empty_ids():
    client = RecordingClient({"calendar_event_records": [{"medicine_id": 1, "user_id": "u1", "event_ids": None}]})

    record = asyncio.run(ReminderStore(client).get_event_record("1", "u1"))

    assert record.medicine_id == "1"
    assert record.event_ids == []


def test_verify_reminder_tables():
    assert verify_reminder_tables(RecordingClient()) is True
    assert verify_reminder_tables(RecordingClient(broken={"calendar_tokens"})) is False
