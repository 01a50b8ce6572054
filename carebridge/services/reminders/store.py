"""Supabase-backed gateway over reminder, medicine and calendar tables."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ...errors import StoreError
from ...logging_config import get_logger
from ...models.reminders import (
    CalendarEventRecord,
    CalendarToken,
    DueReminder,
    Medicine,
    ReminderSlot,
)
from ..supabase_client import get_supabase_client

logger = get_logger(__name__)

MEDICINE_COLUMNS = "id, user_id, name, dosage, instructions, notes"


def _stringify(row: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    data = dict(row)
    for key in keys:
        if data.get(key) is not None:
            data[key] = str(data[key])
    return data


def _medicine_from_row(row: Dict[str, Any]) -> Medicine:
    return Medicine.model_validate(_stringify(row, "id", "user_id"))


def _slot_from_row(row: Dict[str, Any]) -> ReminderSlot:
    return ReminderSlot.model_validate(_stringify(row, "id", "medicine_id", "user_id"))


class ReminderStore:
    """Typed accessor over the persisted reminder state. No business logic."""

    MEDICINES = "medicines"
    SLOTS = "reminder_slots"
    PROFILES = "profiles"
    TOKENS = "calendar_tokens"
    EVENT_RECORDS = "calendar_event_records"
    REPLACE_SLOTS_FN = "replace_reminder_slots"

    def __init__(self, client: Optional[Any] = None):
        self.client = client if client is not None else get_supabase_client()

    def _table(self, name: str):
        if not self.client:
            raise StoreError("Supabase client not available")
        return self.client.table(name)

    # Medicines ------------------------------------------------------------

    async def get_medicine(self, medicine_id: str) -> Optional[Medicine]:
        """Fetch a medicine by id, or None when it does not exist."""

        try:
            result = (
                self._table(self.MEDICINES)
                .select(MEDICINE_COLUMNS)
                .eq("id", medicine_id)
                .limit(1)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch medicine {medicine_id}: {e}")
            raise StoreError("Failed to fetch medicine", detail=str(e)) from e

        if not result.data:
            return None
        return _medicine_from_row(result.data[0])

    # Reminder slots -------------------------------------------------------

    async def replace_slots(self, medicine_id: str, slots: List[ReminderSlot]) -> int:
        """Deactivate every active slot of the medicine and insert `slots`.

        Runs as a single database transaction through the
        `replace_reminder_slots` function, so readers never see the
        medicine with both sets or with neither set active.
        """

        if not self.client:
            raise StoreError("Supabase client not available")

        payload = [slot.model_dump(mode="json", exclude={"id"}) for slot in slots]
        try:
            result = self.client.rpc(
                self.REPLACE_SLOTS_FN,
                {"p_medicine_id": medicine_id, "p_slots": payload},
            ).execute()
        except Exception as e:
            logger.error(f"Failed to replace reminder slots for medicine {medicine_id}: {e}")
            raise StoreError("Failed to create reminders", detail=str(e)) from e

        created = result.data if isinstance(result.data, int) else len(slots)
        logger.info(f"Replaced reminder slots for medicine {medicine_id}: {created} active")
        return created

    async def deactivate_slots(self, medicine_id: str) -> int:
        """Soft-delete all active slots for a medicine; returns rows touched."""

        try:
            result = (
                self._table(self.SLOTS)
                .update({"is_active": False})
                .eq("medicine_id", medicine_id)
                .eq("is_active", True)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to deactivate reminders for medicine {medicine_id}: {e}")
            raise StoreError("Failed to cancel reminders", detail=str(e)) from e

        return len(result.data or [])

    async def list_slots(self, medicine_id: str, active_only: bool = False) -> List[ReminderSlot]:
        """List slots for a medicine, newest window first."""

        try:
            query = self._table(self.SLOTS).select("*").eq("medicine_id", medicine_id)
            if active_only:
                query = query.eq("is_active", True)
            result = query.order("window_start", desc=True).execute()
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to list reminders for medicine {medicine_id}: {e}")
            raise StoreError("Failed to check reminder status", detail=str(e)) from e

        return [_slot_from_row(row) for row in result.data or []]

    async def has_active_slots(self, medicine_id: str) -> bool:
        try:
            result = (
                self._table(self.SLOTS)
                .select("id")
                .eq("medicine_id", medicine_id)
                .eq("is_active", True)
                .limit(1)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to check reminder status for medicine {medicine_id}: {e}")
            raise StoreError("Failed to check reminder status", detail=str(e)) from e

        return bool(result.data)

    async def get_due_reminders(self, trigger_hour: int, now: datetime) -> List[DueReminder]:
        """Active slots for the trigger hour whose window contains `now`.

        Each slot is joined with its medicine and the owner's email address.
        """

        stamp = now.isoformat()
        try:
            result = (
                self._table(self.SLOTS)
                .select(f"*, {self.MEDICINES}!inner({MEDICINE_COLUMNS})")
                .eq("is_active", True)
                .eq("trigger_hour", trigger_hour)
                .lte("window_start", stamp)
                .gte("window_end", stamp)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch due reminders for hour {trigger_hour}: {e}")
            raise StoreError("Failed to fetch reminders", detail=str(e)) from e

        rows = result.data or []
        addresses = await self.get_notification_addresses(str(row["user_id"]) for row in rows)

        due = []
        for row in rows:
            row = dict(row)
            medicine = _medicine_from_row(row.pop(self.MEDICINES))
            slot = _slot_from_row(row)
            due.append(DueReminder(slot=slot, medicine=medicine, recipient=addresses.get(slot.user_id)))
        return due

    async def get_notification_addresses(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user ids to their notification email address."""

        ids = sorted(set(user_ids))
        if not ids:
            return {}

        try:
            result = self._table(self.PROFILES).select("id, email").in_("id", ids).execute()
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch notification addresses: {e}")
            raise StoreError("Failed to fetch user emails", detail=str(e)) from e

        return {str(row["id"]): row["email"] for row in result.data or [] if row.get("email")}

    # Calendar tokens ------------------------------------------------------

    async def get_calendar_token(self, user_id: str, provider: str) -> Optional[CalendarToken]:
        try:
            result = (
                self._table(self.TOKENS)
                .select("user_id, provider, access_token, refresh_token, expiry")
                .eq("user_id", user_id)
                .eq("provider", provider)
                .limit(1)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch calendar token for user {user_id}: {e}")
            raise StoreError("Failed to fetch calendar token", detail=str(e)) from e

        if not result.data:
            return None
        return CalendarToken.model_validate(_stringify(result.data[0], "user_id"))

    async def save_calendar_token(self, token: CalendarToken) -> None:
        data = token.model_dump(mode="json")
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            self._table(self.TOKENS).upsert(data, on_conflict="user_id,provider").execute()
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to save calendar token for user {token.user_id}: {e}")
            raise StoreError("Failed to save calendar token", detail=str(e)) from e

    async def delete_calendar_token(self, user_id: str, provider: str) -> None:
        try:
            (
                self._table(self.TOKENS)
                .delete()
                .eq("user_id", user_id)
                .eq("provider", provider)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to delete calendar token for user {user_id}: {e}")
            raise StoreError("Failed to disconnect calendar", detail=str(e)) from e

    # Calendar event records -----------------------------------------------

    async def get_event_record(self, medicine_id: str, user_id: str) -> Optional[CalendarEventRecord]:
        try:
            result = (
                self._table(self.EVENT_RECORDS)
                .select("medicine_id, user_id, event_ids")
                .eq("medicine_id", medicine_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch calendar events for medicine {medicine_id}: {e}")
            raise StoreError("Failed to fetch calendar events", detail=str(e)) from e

        if not result.data:
            return None
        row = _stringify(result.data[0], "medicine_id", "user_id")
        row["event_ids"] = row.get("event_ids") or []
        return CalendarEventRecord.model_validate(row)

    async def save_event_record(self, record: CalendarEventRecord) -> None:
        data = record.model_dump(mode="json")
        data["created_at"] = datetime.now(timezone.utc).isoformat()
        try:
            self._table(self.EVENT_RECORDS).upsert(data, on_conflict="medicine_id,user_id").execute()
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to store calendar events for medicine {record.medicine_id}: {e}")
            raise StoreError("Failed to store calendar events", detail=str(e)) from e

    async def delete_event_record(self, medicine_id: str, user_id: str) -> None:
        try:
            (
                self._table(self.EVENT_RECORDS)
                .delete()
                .eq("medicine_id", medicine_id)
                .eq("user_id", user_id)
                .execute()
            )
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to remove calendar events for medicine {medicine_id}: {e}")
            raise StoreError("Failed to remove calendar events", detail=str(e)) from e
