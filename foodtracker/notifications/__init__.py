"""
Expiry notification scheduler.

Components:
- expiry: days-until-expiry arithmetic and clocks
- history: per-user "already sent" view, committed once per user per pass
- policy: which reminders are due
- runner: one user's reminders, sends and history commit
- scheduler: start/stop/trigger lifecycle across all users
"""

from foodtracker.notifications.exceptions import (
    NotificationError,
    CollaboratorUnavailableError,
    StoreError,
)
from foodtracker.notifications.expiry import SystemClock, FixedClock, days_until_expiry
from foodtracker.notifications.history import NotificationHistoryStore
from foodtracker.notifications.policy import ReminderPolicy
from foodtracker.notifications.records import (
    DeliveryResult,
    HistoryUpdate,
    PassReport,
    ProductRecord,
    Reminder,
    UserRecord,
    UserRunResult,
)
from foodtracker.notifications.runner import UserNotificationRunner
from foodtracker.notifications.scheduler import NotificationScheduler

__all__ = [
    "NotificationError",
    "CollaboratorUnavailableError",
    "StoreError",
    "SystemClock",
    "FixedClock",
    "days_until_expiry",
    "NotificationHistoryStore",
    "ReminderPolicy",
    "DeliveryResult",
    "HistoryUpdate",
    "PassReport",
    "ProductRecord",
    "Reminder",
    "UserRecord",
    "UserRunResult",
    "UserNotificationRunner",
    "NotificationScheduler",
]
