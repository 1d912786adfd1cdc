"""manage_wake_locks — stop an app from holding wake locks."""

from __future__ import annotations

from typing import Optional

from powerguard.actionables.base import CapabilityHandler, StepOutcome, failed
from powerguard.actionables.platform import Capability
from powerguard.actionables.types import ActionableType, WakeLockParams
from powerguard.core.models import Actionable


class WakeLockHandler(CapabilityHandler):
    actionable_type = ActionableType.MANAGE_WAKE_LOCKS
    primary_capability = Capability.APP_OPS
    secondary_capability = Capability.APP_OPS
    settings_action = "android.settings.IGNORE_BATTERY_OPTIMIZATION_SETTINGS"

    def primary(self, actionable: Actionable, params: WakeLockParams) -> StepOutcome:
        package = actionable.target_package
        mode = "allow" if params.allow else "ignore"
        return self._shell_step(
            f"Set WAKE_LOCK to {mode} for {package}",
            "cmd", "appops", "set", package, "WAKE_LOCK", mode,
        )

    def secondary(self, actionable: Actionable, params: WakeLockParams) -> StepOutcome:
        package = actionable.target_package
        uid = self.platform.package_uid(package)
        if uid is None:
            return failed(f"Could not resolve uid for {package}")
        mode = "allow" if params.allow else "ignore"
        return self._shell_step(
            f"Set WAKE_LOCK to {mode} for uid {uid}",
            "cmd", "appops", "set", "--uid", str(uid), "WAKE_LOCK", mode,
        )

    def guidance(self, actionable: Actionable, params: WakeLockParams) -> str:
        return (
            f"Open Settings > Battery > Battery optimization and set "
            f"{actionable.target_package} to Optimized."
        )

    def inverse(self, params: WakeLockParams) -> Optional[WakeLockParams]:
        return WakeLockParams(allow=not params.allow)
