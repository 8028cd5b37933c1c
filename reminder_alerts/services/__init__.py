"""
Core services for reminder alerting.

This package contains the scheduler, its idempotency and caching collaborators,
and alert dispatch (sound and desktop notifications).
"""

from .acknowledgement import AcknowledgementSender
from .dispatcher import AlertDispatcher
from .idempotency import AlertIdempotencyTracker
from .reminder_cache import ReminderCache
from .result import Result
from .scheduler import NotificationScheduler

__all__ = [
    "AcknowledgementSender",
    "AlertDispatcher",
    "AlertIdempotencyTracker",
    "NotificationScheduler",
    "ReminderCache",
    "Result",
]
