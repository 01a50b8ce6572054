"""Google Calendar mirroring."""

from .client import GoogleCalendarClient, OAuthTokens
from .sync import PROVIDER, CalendarSyncService, build_event

__all__ = ["GoogleCalendarClient", "OAuthTokens", "CalendarSyncService", "PROVIDER", "build_event"]
