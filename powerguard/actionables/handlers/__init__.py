"""Capability handlers, one per actionable type."""

from powerguard.actionables.handlers.alarm import AlarmHandler
from powerguard.actionables.handlers.background_data import BackgroundDataHandler
from powerguard.actionables.handlers.kill_app import KillAppHandler
from powerguard.actionables.handlers.notification import NotificationHandler
from powerguard.actionables.handlers.standby_bucket import StandbyBucketHandler
from powerguard.actionables.handlers.wake_locks import WakeLockHandler

HANDLER_CLASSES = (
    StandbyBucketHandler,
    BackgroundDataHandler,
    KillAppHandler,
    WakeLockHandler,
    NotificationHandler,
    AlarmHandler,
)

__all__ = [
    "HANDLER_CLASSES",
    "AlarmHandler",
    "BackgroundDataHandler",
    "KillAppHandler",
    "NotificationHandler",
    "StandbyBucketHandler",
    "WakeLockHandler",
]
