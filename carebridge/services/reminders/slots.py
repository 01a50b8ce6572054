"""Mapping between wall-clock hours and reminder time slots."""

from datetime import datetime, timedelta
from typing import List, Optional

from ...models.reminders import TRIGGER_HOURS, TimeOfDay

_BUCKETS = {hour: slot for slot, hour in TRIGGER_HOURS.items()}


def resolve_slot(instant: datetime) -> Optional[TimeOfDay]:
    """Return the slot whose trigger hour matches the instant, if any.

    Only the hour counts: 9:45 still matches the morning slot.
    """
    return _BUCKETS.get(instant.hour)


def selected_times(morning: bool = False, noon: bool = False, night: bool = False) -> List[TimeOfDay]:
    """Selected flags as time slots, ordered through the day."""
    times = []
    if morning:
        times.append(TimeOfDay.MORNING)
    if noon:
        times.append(TimeOfDay.NOON)
    if night:
        times.append(TimeOfDay.NIGHT)
    return times


def next_occurrence(slot: TimeOfDay, after: datetime) -> datetime:
    """First instant strictly after `after` at the slot's trigger hour."""
    candidate = after.replace(hour=slot.trigger_hour, minute=0, second=0, microsecond=0)
    if candidate <= after:
        candidate += timedelta(days=1)
    return candidate
