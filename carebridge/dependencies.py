"""Service wiring for the HTTP layer.

Each service is built once from Settings and shared across requests so
per-medicine and per-token locks serialize concurrent callers. Tests
replace these through FastAPI's dependency_overrides.
"""

from datetime import datetime
from functools import lru_cache
from typing import Callable
from zoneinfo import ZoneInfo

from .config import Settings, get_settings
from .logging_config import get_logger
from .services.calendar import CalendarSyncService, GoogleCalendarClient
from .services.notifications import NotificationSender
from .services.reminders import ReminderDispatcher, ReminderLifecycleManager, ReminderStore

logger = get_logger(__name__)


def make_clock(settings: Settings) -> Callable[[], datetime]:
    """Wall clock in the configured reminder time zone."""
    zone = ZoneInfo(settings.reminder_timezone)
    return lambda: datetime.now(zone)


@lru_cache(maxsize=1)
def get_store() -> ReminderStore:
    return ReminderStore()


@lru_cache(maxsize=1)
def get_sender() -> NotificationSender:
    settings = get_settings()
    if not settings.mail_configured:
        logger.warning("Resend not configured; reminder emails will fail")
    return NotificationSender(settings)


@lru_cache(maxsize=1)
def get_calendar_sync() -> CalendarSyncService:
    settings = get_settings()
    return CalendarSyncService(get_store(), GoogleCalendarClient(settings), clock=make_clock(settings))


@lru_cache(maxsize=1)
def get_lifecycle_manager() -> ReminderLifecycleManager:
    settings = get_settings()
    return ReminderLifecycleManager(
        get_store(),
        calendar=get_calendar_sync() if settings.calendar_configured else None,
        sender=get_sender(),
        send_confirmation=settings.send_confirmation_email,
        clock=make_clock(settings),
    )


@lru_cache(maxsize=1)
def get_dispatcher() -> ReminderDispatcher:
    settings = get_settings()
    return ReminderDispatcher(
        get_store(),
        get_sender(),
        cron_secret=settings.cron_secret,
        concurrency=settings.dispatch_concurrency,
        send_timeout=settings.http_timeout_seconds + 2,
        clock=make_clock(settings),
    )
