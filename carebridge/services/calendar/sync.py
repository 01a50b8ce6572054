"""Calendar mirroring of reminder schedules and OAuth token lifecycle."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from ...errors import ReminderError, StoreError, UpstreamAuthError
from ...logging_config import get_logger
from ...models.outcomes import CalendarSyncResult, Outcome
from ...models.reminders import CalendarEventRecord, CalendarToken, MedicineSchedule, TimeOfDay
from ...utils.locks import KeyedLocks
from ..reminders.slots import next_occurrence
from ..reminders.store import ReminderStore
from .client import GoogleCalendarClient

logger = get_logger(__name__)

PROVIDER = "google"
EVENT_LENGTH = timedelta(minutes=15)


def build_event(schedule: MedicineSchedule, slot: TimeOfDay, now: datetime) -> Dict[str, Any]:
    """Recurring daily event for one time slot of a schedule."""

    start = next_occurrence(slot, now)
    end = start + EVENT_LENGTH
    tz_name = str(start.tzinfo) if start.tzinfo else "UTC"
    medicine = schedule.medicine

    description = [
        f"Medicine: {medicine.name}",
        f"Dosage: {medicine.dosage or 'As prescribed'}",
        f"Time: {slot.label}",
    ]
    if medicine.instructions:
        description.append(f"Instructions: {medicine.instructions}")
    description += ["", "This is an automated reminder from CareBridge. Please take your medicine as prescribed."]

    return {
        "summary": f"Medicine: {medicine.name} ({slot.label})",
        "description": "\n".join(description),
        "start": {"dateTime": start.isoformat(), "timeZone": tz_name},
        "end": {"dateTime": end.isoformat(), "timeZone": tz_name},
        "reminders": {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 30},
                {"method": "popup", "minutes": 15},
            ],
        },
        "recurrence": [f"RRULE:FREQ=DAILY;COUNT={schedule.duration_days}"],
    }


class CalendarSyncService:
    """Best-effort projection of reminder schedules onto Google Calendar."""

    def __init__(
        self,
        store: ReminderStore,
        client: GoogleCalendarClient,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.client = client
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._refresh_locks = KeyedLocks()

    # Token lifecycle -------------------------------------------------------

    def authorization_url(self, user_id: str) -> str:
        return self.client.authorization_url(state=user_id)

    async def connect(self, user_id: str, code: str) -> CalendarToken:
        """Exchange an OAuth code and persist the resulting token."""

        tokens = await self.client.exchange_code(code)
        token = CalendarToken(
            user_id=user_id,
            provider=PROVIDER,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expiry=tokens.expiry,
        )
        await self.store.save_calendar_token(token)
        logger.info(f"Stored calendar token for user {user_id}")
        return token

    async def disconnect(self, user_id: str) -> None:
        await self.store.delete_calendar_token(user_id, PROVIDER)
        logger.info(f"Disconnected calendar for user {user_id}")

    async def get_valid_token(self, user_id: str) -> Optional[CalendarToken]:
        """Return a non-expired token, refreshing if needed, or None.

        Never raises for disconnected users, failed refreshes or store
        errors; those are logged and reported as absent.
        """

        async with self._refresh_locks.hold((user_id, PROVIDER)):
            try:
                token = await self.store.get_calendar_token(user_id, PROVIDER)
            except StoreError as e:
                logger.error(f"Cannot read calendar token for user {user_id}: {e.message}")
                return None

            if token is None:
                logger.info(f"No calendar token found for user {user_id}")
                return None

            if not token.is_expired(self.clock()):
                return token

            if not token.refresh_token:
                logger.info(f"Calendar token for user {user_id} expired without refresh token")
                return None

            try:
                tokens = await self.client.refresh(token.refresh_token)
            except UpstreamAuthError as e:
                logger.error(f"Error refreshing calendar token for user {user_id}: {e.message} {e.detail or ''}")
                return None
            except Exception:
                logger.exception(f"Unexpected error refreshing calendar token for user {user_id}")
                return None

            fresh = CalendarToken(
                user_id=user_id,
                provider=PROVIDER,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expiry=tokens.expiry,
            )
            try:
                await self.store.save_calendar_token(fresh)
            except StoreError as e:
                logger.error(f"Refreshed calendar token for user {user_id} but could not persist it: {e.message}")
            return fresh

    async def is_connected(self, user_id: str) -> bool:
        return await self.get_valid_token(user_id) is not None

    # Events ----------------------------------------------------------------

    async def create_events_for_schedule(self, schedule: MedicineSchedule) -> CalendarSyncResult:
        """Create one recurring event per time slot and record their ids.

        Raises UpstreamAuthError when the user has no usable token.
        """

        token = await self.get_valid_token(schedule.user_id)
        if token is None:
            raise UpstreamAuthError("Google Calendar not connected")

        now = self.clock()
        result = CalendarSyncResult()
        for slot in schedule.times:
            event = build_event(schedule, slot, now)
            try:
                event_id = await self.client.insert_event(token.access_token, event)
            except ReminderError as e:
                logger.error(f"Failed to create {slot.value} event for medicine {schedule.medicine.id}: {e.message}")
                result.failures.append(Outcome.calendar_failed(e.message, reference=slot.value))
                continue
            result.event_ids.append(event_id)

        if result.event_ids:
            try:
                await self.store.save_event_record(CalendarEventRecord(
                    medicine_id=schedule.medicine.id,
                    user_id=schedule.user_id,
                    event_ids=result.event_ids,
                ))
            except StoreError as e:
                orphaned = ",".join(result.event_ids)
                logger.error(
                    f"Created calendar events for medicine {schedule.medicine.id} but could not record them; "
                    f"orphaned event ids: {orphaned}"
                )
                result.failures.append(Outcome.calendar_failed(e.message, reference=orphaned))

        logger.info(
            f"Created {result.events_created} calendar events for medicine {schedule.medicine.id}"
            f" ({len(result.failures)} failed)"
        )
        return result

    async def delete_events_for_medicine(self, medicine_id: str, user_id: str) -> List[Outcome]:
        """Delete recorded events and the record; returns per-event failures."""

        token = await self.get_valid_token(user_id)
        if token is None:
            return []

        record = await self.store.get_event_record(medicine_id, user_id)
        if record is None:
            return []

        failures = []
        for event_id in record.event_ids:
            try:
                await self.client.delete_event(token.access_token, event_id)
            except ReminderError as e:
                logger.error(f"Error deleting calendar event {event_id}: {e.message}")
                failures.append(Outcome.calendar_failed(e.message, reference=event_id))

        await self.store.delete_event_record(medicine_id, user_id)
        logger.info(f"Removed {len(record.event_ids)} calendar events for medicine {medicine_id}")
        return failures

    async def replace_events_for_schedule(self, schedule: MedicineSchedule) -> CalendarSyncResult:
        """Drop events of the previous schedule, then mirror the new one."""

        stale = await self.delete_events_for_medicine(schedule.medicine.id, schedule.user_id)
        result = await self.create_events_for_schedule(schedule)
        result.failures = stale + result.failures
        return result
