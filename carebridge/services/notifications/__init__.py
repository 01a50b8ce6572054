"""Reminder email delivery."""

from .sender import NotificationSender
from .templates import ReminderEmail

__all__ = ["NotificationSender", "ReminderEmail"]
