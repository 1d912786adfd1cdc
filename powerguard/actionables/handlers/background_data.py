"""restrict_background_data — block an app's background network use."""

from __future__ import annotations

from typing import Optional

from powerguard.actionables.base import CapabilityHandler, StepOutcome, done, failed
from powerguard.actionables.platform import Capability
from powerguard.actionables.types import ActionableType, BackgroundDataParams
from powerguard.core.models import Actionable

_BLACKLIST = "restrict-background-blacklist"


class BackgroundDataHandler(CapabilityHandler):
    """Uses the network policy service, falling back to app-ops.

    A package already on the restrict list is reported as success with
    ``already_set``.
    """

    actionable_type = ActionableType.RESTRICT_BACKGROUND_DATA
    primary_capability = Capability.NETWORK_POLICY
    secondary_capability = Capability.APP_OPS
    settings_action = "android.settings.DATA_USAGE_SETTINGS"

    def primary(self, actionable: Actionable, params: BackgroundDataParams) -> StepOutcome:
        package = actionable.target_package
        uid = self.platform.package_uid(package)
        if uid is None:
            return failed(f"Could not resolve uid for {package}")

        listed = self.platform.shell("cmd", "netpolicy", "list", _BLACKLIST)
        if listed.ok and str(uid) in listed.stdout.split():
            if params.restrict:
                return done(
                    f"Background data already restricted for {package}",
                    already_set="true",
                )
        elif listed.ok and not params.restrict:
            return done(
                f"Background data already allowed for {package}",
                already_set="true",
            )

        verb = "add" if params.restrict else "remove"
        state = "Restricted" if params.restrict else "Allowed"
        return self._shell_step(
            f"{state} background data for {package} (uid {uid})",
            "cmd", "netpolicy", verb, _BLACKLIST, str(uid),
        )

    def secondary(self, actionable: Actionable, params: BackgroundDataParams) -> StepOutcome:
        package = actionable.target_package
        mode = "ignore" if params.restrict else "allow"
        return self._shell_step(
            f"Set RUN_ANY_IN_BACKGROUND to {mode} for {package}",
            "cmd", "appops", "set", package, "RUN_ANY_IN_BACKGROUND", mode,
        )

    def guidance(self, actionable: Actionable, params: BackgroundDataParams) -> str:
        toggle = "off" if params.restrict else "on"
        return (
            f"Open Settings > Network & internet > Data usage, select "
            f"{actionable.target_package} and turn {toggle} Background data."
        )

    def inverse(self, params: BackgroundDataParams) -> Optional[BackgroundDataParams]:
        return BackgroundDataParams(restrict=not params.restrict)
