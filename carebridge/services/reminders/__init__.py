"""Reminder scheduling and dispatch services."""

from .dispatcher import ReminderDispatcher
from .lifecycle import ReminderLifecycleManager
from .slots import next_occurrence, resolve_slot, selected_times
from .store import ReminderStore

__all__ = [
    "ReminderDispatcher",
    "ReminderLifecycleManager",
    "ReminderStore",
    "next_occurrence",
    "resolve_slot",
    "selected_times",
]
