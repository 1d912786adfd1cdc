"""set_notification — alert the user about a monitored condition."""

from __future__ import annotations

from powerguard.actionables.base import CapabilityHandler, StepOutcome
from powerguard.actionables.platform import Capability
from powerguard.actionables.types import ActionableType, NotificationParams
from powerguard.core.models import Actionable

NOTIFICATION_TITLE = "PowerGuard"
LOG_TAG = "PowerGuard"


def notification_tag(actionable: Actionable) -> str:
    return f"powerguard-{actionable.id[:8] or 'alert'}"


class NotificationHandler(CapabilityHandler):
    actionable_type = ActionableType.SET_NOTIFICATION
    primary_capability = Capability.POST_NOTIFICATION
    secondary_capability = Capability.DEVICE_LOG
    requires_target = False

    def primary(self, actionable: Actionable, params: NotificationParams) -> StepOutcome:
        return self._shell_step(
            f"Posted notification for: {params.condition}",
            "cmd", "notification", "post", "-S", "bigtext",
            "-t", NOTIFICATION_TITLE, notification_tag(actionable),
            f"{params.message} ({params.condition})",
        )

    def secondary(self, actionable: Actionable, params: NotificationParams) -> StepOutcome:
        return self._shell_step(
            f"Logged monitoring trigger for: {params.condition}",
            "log", "-t", LOG_TAG, f"{params.condition}: {params.message}",
        )

    def guidance(self, actionable: Actionable, params: NotificationParams) -> str:
        return f"Set a reminder for \"{params.condition}\": {params.message}"
