"""Cron entry point: send reminder emails for the current time slot."""

import asyncio
import hmac
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ...errors import DeliveryError, Unauthorized
from ...logging_config import get_logger
from ...models.outcomes import DispatchReport, Outcome
from ...models.reminders import DueReminder
from ..notifications import NotificationSender, ReminderEmail
from .slots import resolve_slot
from .store import ReminderStore

logger = get_logger(__name__)

MSG_NOT_SCHEDULED = "Not a scheduled reminder time"
MSG_NOTHING_DUE = "No reminders to send at this time"
MSG_EXECUTED = "Cron job executed successfully"


class ReminderDispatcher:
    """Runs one compute-fetch-send-report cycle per invocation.

    Holds no state between runs and never marks slots as sent, so a
    second trigger within the same matching hour sends again.
    """

    def __init__(
        self,
        store: ReminderStore,
        sender: NotificationSender,
        cron_secret: Optional[str] = None,
        concurrency: int = 10,
        send_timeout: float = 10.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.sender = sender
        self.cron_secret = cron_secret
        self.concurrency = max(1, concurrency)
        self.send_timeout = send_timeout
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def authenticate(self, authorization: Optional[str]) -> None:
        """Check the bearer secret; open when no secret is configured."""

        if not self.cron_secret:
            return
        expected = f"Bearer {self.cron_secret}"
        if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
            logger.warning("Rejected cron trigger with invalid secret")
            raise Unauthorized("Unauthorized")

    async def run(self, now: Optional[datetime] = None) -> DispatchReport:
        """Send every reminder due in the current hour.

        StoreError from the due-reminder query propagates and aborts the
        run; failures of individual sends are recorded in the report.
        """

        now = now or self.clock()
        slot = resolve_slot(now)
        if slot is None:
            logger.info(f"⏰ DISPATCH: hour {now.hour} is not a scheduled reminder time")
            return DispatchReport(message=MSG_NOT_SCHEDULED, timestamp=now)

        hour = slot.trigger_hour
        due = await self.store.get_due_reminders(hour, now)
        if not due:
            logger.info(f"⏰ DISPATCH: no {slot.value} reminders due at {now.isoformat()}")
            return DispatchReport(message=MSG_NOTHING_DUE, timestamp=now, scheduled_hour=hour)

        logger.info(f"⏰ DISPATCH: found {len(due)} due {slot.value} reminders")
        outcomes = await self._send_all(due)

        report = DispatchReport(message=MSG_EXECUTED, timestamp=now, scheduled_hour=hour, outcomes=outcomes)
        logger.info(
            f"⏰ DISPATCH: {report.emails_sent} sent, {report.emails_failed} failed "
            f"of {report.total_reminders} for hour {hour}"
        )
        return report

    async def _send_all(self, due: List[DueReminder]) -> List[Outcome]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(item: DueReminder) -> Outcome:
            async with semaphore:
                return await self._send_one(item)

        return list(await asyncio.gather(*(_bounded(item) for item in due)))

    async def _send_one(self, item: DueReminder) -> Outcome:
        reference = item.slot.id
        if not item.recipient:
            logger.error(f"User email not found for reminder {reference}")
            return Outcome.delivery_failed("No email", reference=reference)

        email = ReminderEmail(
            recipient=item.recipient,
            medicine_name=item.medicine.name,
            reminder_time=item.slot.time_label.value,
            dosage=item.medicine.dosage,
            instructions=item.medicine.instructions,
            notes=item.medicine.notes,
        )
        try:
            await asyncio.wait_for(self.sender.send(email), timeout=self.send_timeout)
        except asyncio.TimeoutError:
            logger.error(f"Timed out sending reminder {reference} to {item.recipient}")
            return Outcome.delivery_failed("Timed out", reference=reference)
        except DeliveryError as e:
            logger.error(f"Failed to send email for reminder {reference}: {e.message}")
            return Outcome.delivery_failed(e.detail or e.message, reference=reference)
        except Exception as e:
            logger.exception(f"Unexpected error sending reminder {reference}")
            return Outcome.delivery_failed(str(e), reference=reference)

        return Outcome.ok(reference=reference)
