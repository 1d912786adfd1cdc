"""set_alarm — schedule an alarm for a monitored condition."""

from __future__ import annotations

import re
from typing import Optional

from powerguard.actionables.base import CapabilityHandler, StepOutcome, failed
from powerguard.actionables.handlers.notification import (
    NOTIFICATION_TITLE,
    notification_tag,
)
from powerguard.actionables.platform import Capability
from powerguard.actionables.types import ActionableType, AlarmParams
from powerguard.core.models import Actionable

_CLOCK = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE)


def parse_alarm_time(text: str) -> Optional[tuple[int, int]]:
    """Find a clock time like ``7:30``, ``7pm`` or ``19:05`` in free text."""
    for match in _CLOCK.finditer(text or ""):
        hour_s, minute_s, meridiem = match.groups()
        if minute_s is None and meridiem is None:
            continue
        hour, minute = int(hour_s), int(minute_s or 0)
        if meridiem:
            if not 1 <= hour <= 12:
                continue
            hour = hour % 12 + (12 if meridiem.lower() == "pm" else 0)
        if hour <= 23 and minute <= 59:
            return hour, minute
    return None


class AlarmHandler(CapabilityHandler):
    actionable_type = ActionableType.SET_ALARM
    primary_capability = Capability.START_ACTIVITY
    secondary_capability = Capability.POST_NOTIFICATION
    requires_target = False
    settings_action = "android.intent.action.SHOW_ALARMS"

    def _alarm_time(self, params: AlarmParams) -> Optional[tuple[int, int]]:
        if params.hour is not None:
            return params.hour, params.minute or 0
        return parse_alarm_time(params.condition)

    def primary(self, actionable: Actionable, params: AlarmParams) -> StepOutcome:
        when = self._alarm_time(params)
        if when is None:
            return failed("No alarm time in parameters or condition")
        hour, minute = when
        return self._shell_step(
            f"Set alarm for {hour:02d}:{minute:02d}",
            "am", "start", "-a", "android.intent.action.SET_ALARM",
            "--ei", "android.intent.extra.alarm.HOUR", str(hour),
            "--ei", "android.intent.extra.alarm.MINUTES", str(minute),
            "--es", "android.intent.extra.alarm.MESSAGE", params.message,
            "--ez", "android.intent.extra.alarm.SKIP_UI", "true",
        )

    def secondary(self, actionable: Actionable, params: AlarmParams) -> StepOutcome:
        return self._shell_step(
            f"Posted reminder notification for: {params.condition}",
            "cmd", "notification", "post",
            "-t", NOTIFICATION_TITLE, notification_tag(actionable),
            f"Reminder: {params.message} ({params.condition})",
        )

    def guidance(self, actionable: Actionable, params: AlarmParams) -> str:
        return f"Set an alarm in the Clock app for \"{params.condition}\": {params.message}"
