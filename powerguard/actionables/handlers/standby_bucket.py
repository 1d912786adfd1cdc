"""set_standby_bucket — move an app into an App Standby bucket."""

from __future__ import annotations

from typing import Optional

from powerguard.actionables.base import CapabilityHandler, StepOutcome
from powerguard.actionables.platform import Capability
from powerguard.actionables.types import ActionableType, StandbyBucketParams
from powerguard.core.models import Actionable


class StandbyBucketHandler(CapabilityHandler):
    actionable_type = ActionableType.SET_STANDBY_BUCKET
    primary_capability = Capability.STANDBY_BUCKET
    secondary_capability = Capability.APP_INACTIVE
    settings_action = "android.settings.APPLICATION_DETAILS_SETTINGS"

    def primary(self, actionable: Actionable, params: StandbyBucketParams) -> StepOutcome:
        package = actionable.target_package
        return self._shell_step(
            f"Moved {package} to the {params.new_mode} bucket",
            "am", "set-standby-bucket", package, params.new_mode,
        )

    def secondary(self, actionable: Actionable, params: StandbyBucketParams) -> StepOutcome:
        package = actionable.target_package
        inactive = params.new_mode != "active"
        return self._shell_step(
            f"Marked {package} as {'inactive' if inactive else 'active'}",
            "am", "set-inactive", package, str(inactive).lower(),
        )

    def guidance(self, actionable: Actionable, params: StandbyBucketParams) -> str:
        if params.new_mode == "active":
            return (
                f"Open Settings > Apps > {actionable.target_package} > Battery "
                f"and allow unrestricted background use."
            )
        return (
            f"Open Settings > Apps > {actionable.target_package} > Battery "
            f"and choose Restricted."
        )

    def inverse(self, params: StandbyBucketParams) -> Optional[StandbyBucketParams]:
        return StandbyBucketParams(new_mode="active")
