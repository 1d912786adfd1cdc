"""kill_app — stop an app's processes."""

from __future__ import annotations

from powerguard.actionables.base import CapabilityHandler, StepOutcome
from powerguard.actionables.platform import Capability
from powerguard.actionables.types import ActionableType, KillAppParams
from powerguard.core.models import Actionable


class KillAppHandler(CapabilityHandler):
    actionable_type = ActionableType.KILL_APP
    primary_capability = Capability.FORCE_STOP
    secondary_capability = Capability.KILL_BACKGROUND
    settings_action = "android.settings.APPLICATION_DETAILS_SETTINGS"
    revert_unsupported = (
        "a stopped app cannot be restarted on the user's behalf; "
        "open it again to resume"
    )

    def primary(self, actionable: Actionable, params: KillAppParams) -> StepOutcome:
        package = actionable.target_package
        return self._shell_step(
            f"Force stopped {package}", "am", "force-stop", package
        )

    def secondary(self, actionable: Actionable, params: KillAppParams) -> StepOutcome:
        package = actionable.target_package
        return self._shell_step(
            f"Killed background processes of {package}", "am", "kill", package
        )

    def guidance(self, actionable: Actionable, params: KillAppParams) -> str:
        return (
            f"Open Settings > Apps > {actionable.target_package} and tap Force stop."
        )
