"""Reminder lifecycle: schedule, replace and cancel reminder slots."""

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from ...errors import NotFoundError, ReminderError, UpstreamAuthError, ValidationError
from ...logging_config import get_logger
from ...models.outcomes import Outcome, ScheduleResult
from ...models.reminders import Medicine, MedicineSchedule, ReminderSlot
from ...utils.locks import KeyedLocks
from ..notifications import NotificationSender, ReminderEmail
from .slots import selected_times
from .store import ReminderStore

if TYPE_CHECKING:
    from ..calendar.sync import CalendarSyncService

logger = get_logger(__name__)


class ReminderLifecycleManager:
    """Keeps exactly one active slot set per medicine.

    Reminder slots are the source of truth; the calendar is a best-effort
    projection, so calendar problems are reported as outcomes and never
    fail a lifecycle call.
    """

    def __init__(
        self,
        store: ReminderStore,
        calendar: Optional["CalendarSyncService"] = None,
        sender: Optional[NotificationSender] = None,
        send_confirmation: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.calendar = calendar
        self.sender = sender
        self.send_confirmation = send_confirmation
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._medicine_locks = KeyedLocks()

    async def schedule(
        self,
        medicine_id: str,
        user_id: str,
        duration_days: int,
        morning: bool = False,
        noon: bool = False,
        night: bool = False,
    ) -> ScheduleResult:
        """Replace the medicine's schedule with one slot per selected time."""

        if not medicine_id or not user_id:
            raise ValidationError("Missing required fields: medicine_id, user_id, duration")
        if duration_days is None or duration_days < 1:
            raise ValidationError("Duration must be at least 1 day")

        times = selected_times(morning, noon, night)
        if not times:
            raise ValidationError("At least one time slot (morning, noon, or night) must be selected")

        medicine = await self.store.get_medicine(medicine_id)
        if medicine is None:
            raise NotFoundError("Medicine not found")

        async with self._medicine_locks.hold(medicine_id):
            start = self.clock()
            end = start + timedelta(days=duration_days)
            slots = [
                ReminderSlot(
                    medicine_id=medicine_id,
                    user_id=user_id,
                    time_label=time,
                    trigger_hour=time.trigger_hour,
                    window_start=start,
                    window_end=end,
                    is_active=True,
                )
                for time in times
            ]
            await self.store.replace_slots(medicine_id, slots)

        logger.info(
            f"Scheduled {len(slots)} reminders for medicine {medicine_id} "
            f"({', '.join(t.value for t in times)}) for {duration_days} days"
        )

        schedule = MedicineSchedule(medicine=medicine, user_id=user_id, duration_days=duration_days, times=times)
        confirmation = await self._send_confirmation(medicine, user_id, schedule)
        calendar = await self._mirror_schedule(schedule)

        return ScheduleResult(
            medicine_id=medicine_id,
            duration_days=duration_days,
            times=times,
            window_start=start,
            window_end=end,
            calendar=calendar,
            confirmation=confirmation,
        )

    async def cancel(self, medicine_id: str) -> Outcome:
        """Deactivate all active slots; a no-op when none are active.

        Returns the outcome of the calendar cleanup.
        """

        if not medicine_id:
            raise ValidationError("Medicine ID is required")

        async with self._medicine_locks.hold(medicine_id):
            deactivated = await self.store.deactivate_slots(medicine_id)

        logger.info(f"Canceled {deactivated} active reminders for medicine {medicine_id}")
        return await self._remove_calendar_events(medicine_id)

    async def has_active_reminder(self, medicine_id: str) -> bool:
        if not medicine_id:
            raise ValidationError("Medicine ID is required")
        return await self.store.has_active_slots(medicine_id)

    async def _mirror_schedule(self, schedule: MedicineSchedule) -> Outcome:
        if self.calendar is None:
            return Outcome.skipped("Calendar sync disabled")

        try:
            result = await self.calendar.replace_events_for_schedule(schedule)
        except UpstreamAuthError as e:
            logger.info(f"Skipping calendar sync for medicine {schedule.medicine.id}: {e.message}")
            return Outcome.skipped(e.message)
        except ReminderError as e:
            logger.error(f"Failed to create calendar events for medicine {schedule.medicine.id}: {e.message}")
            return Outcome.calendar_failed(e.message)
        except Exception as e:
            logger.exception(f"Unexpected error mirroring schedule for medicine {schedule.medicine.id}")
            return Outcome.calendar_failed(str(e) or type(e).__name__)

        if result.failures:
            reasons = "; ".join(f.reason or "" for f in result.failures)
            return Outcome.calendar_failed(
                f"{len(result.failures)} calendar operations failed: {reasons}",
                reference=",".join(result.event_ids) or None,
            )
        return Outcome.ok(reference=",".join(result.event_ids) or None)

    async def _remove_calendar_events(self, medicine_id: str) -> Outcome:
        if self.calendar is None:
            return Outcome.skipped("Calendar sync disabled")

        try:
            medicine = await self.store.get_medicine(medicine_id)
            if medicine is None:
                return Outcome.skipped("Medicine not found")
            failures = await self.calendar.delete_events_for_medicine(medicine_id, medicine.user_id)
        except ReminderError as e:
            logger.error(f"Failed to delete calendar events for medicine {medicine_id}: {e.message}")
            return Outcome.calendar_failed(e.message)
        except Exception as e:
            logger.exception(f"Unexpected error deleting calendar events for medicine {medicine_id}")
            return Outcome.calendar_failed(str(e) or type(e).__name__)

        if failures:
            return Outcome.calendar_failed(f"{len(failures)} calendar events could not be deleted")
        return Outcome.ok()

    async def _send_confirmation(self, medicine: Medicine, user_id: str, schedule: MedicineSchedule) -> Outcome:
        if not self.send_confirmation or self.sender is None:
            return Outcome.skipped("Confirmation email disabled")

        try:
            addresses = await self.store.get_notification_addresses([user_id])
            recipient = addresses.get(user_id)
            if not recipient:
                return Outcome.delivery_failed("User email not found")
            await self.sender.send(ReminderEmail(
                recipient=recipient,
                medicine_name=medicine.name,
                reminder_time=schedule.times[0].value,
                dosage=medicine.dosage,
                instructions=medicine.instructions,
                notes=medicine.notes,
            ))
        except ReminderError as e:
            logger.error(f"Failed to send confirmation email for medicine {medicine.id}: {e.message}")
            return Outcome.delivery_failed(e.message)

        return Outcome.ok(reference=recipient)
