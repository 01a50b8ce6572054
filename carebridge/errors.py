"""Error taxonomy shared by the reminder services and the HTTP layer."""

from typing import Optional


class ReminderError(Exception):
    """Base class for errors surfaced by the reminder core."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(ReminderError):
    """Malformed or incomplete scheduling request."""

    status_code = 400


class NotFoundError(ReminderError):
    """Referenced medicine or reminder does not exist."""

    status_code = 404


class Unauthorized(ReminderError):
    """Caller failed the shared-secret check."""

    status_code = 401


class UpstreamAuthError(ReminderError):
    """Calendar token missing, rejected or unrefreshable."""

    status_code = 401


class CalendarApiError(ReminderError):
    """Calendar provider rejected an event call."""

    status_code = 502


class DeliveryError(ReminderError):
    """Mail provider rejected or timed out a send."""

    status_code = 502


class StoreError(ReminderError):
    """The data store is unreachable or returned an error."""

    status_code = 500
