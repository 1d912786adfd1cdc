"""CapabilityHandler — best-effort chain shared by all actionable handlers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from powerguard.actionables.platform import Capability, DevicePlatform, Support
from powerguard.actionables.types import (
    ActionableParams,
    ActionableType,
    InvalidParameters,
    parse_parameters,
)
from powerguard.core.models import Actionable, ActionableResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    ok: bool
    detail: str
    details: dict[str, str] = field(default_factory=dict)


def done(detail: str, **details: str) -> StepOutcome:
    return StepOutcome(True, detail, dict(details))


def failed(detail: str) -> StepOutcome:
    return StepOutcome(False, detail)


class CapabilityHandler(ABC):
    """Realizes one actionable type on a :class:`DevicePlatform`.

    ``execute`` runs: applicability check, primary step, secondary step,
    then manual-action guidance. ``revert`` runs the same chain with the
    inverse parameters. Neither raises.
    """

    actionable_type: ActionableType
    required_capability: Capability = Capability.SHELL
    primary_capability: Optional[Capability] = None
    secondary_capability: Optional[Capability] = None
    requires_target: bool = True
    settings_action: str = ""
    revert_unsupported: str = ""

    def __init__(self, platform: DevicePlatform):
        self.platform = platform

    def can_handle(self, actionable: Actionable) -> bool:
        return ActionableType.parse(actionable.type) is self.actionable_type

    # ------------------------------------------------------------------
    # Steps implemented by each handler
    # ------------------------------------------------------------------

    @abstractmethod
    def primary(self, actionable: Actionable, params: ActionableParams) -> StepOutcome: ...

    @abstractmethod
    def secondary(self, actionable: Actionable, params: ActionableParams) -> StepOutcome: ...

    @abstractmethod
    def guidance(self, actionable: Actionable, params: ActionableParams) -> str: ...

    def inverse(self, params: ActionableParams) -> Optional[ActionableParams]:
        """Parameters that undo ``params``; None if the effect cannot be undone."""
        return None

    # ------------------------------------------------------------------
    # Chain
    # ------------------------------------------------------------------

    def execute(self, actionable: Actionable) -> ActionableResult:
        problem = self.check_applicable(actionable)
        if problem:
            return ActionableResult.failure(actionable.id, problem)
        try:
            params = parse_parameters(
                self.actionable_type, actionable.parameters, actionable.enabled
            )
        except InvalidParameters as e:
            return ActionableResult.failure(actionable.id, f"Invalid parameters: {e}")
        return self._run_chain(actionable, params)

    def revert(self, actionable: Actionable) -> ActionableResult:
        if not self.can_handle(actionable):
            return ActionableResult.failure(
                actionable.id,
                f"{type(self).__name__} cannot revert {actionable.type_name}",
            )
        try:
            params = parse_parameters(
                self.actionable_type, actionable.parameters, actionable.enabled
            )
        except InvalidParameters as e:
            return ActionableResult.failure(actionable.id, f"Invalid parameters: {e}")
        inverse = self.inverse(params)
        if inverse is None:
            reason = self.revert_unsupported or "this action cannot be undone"
            return ActionableResult.failure(
                actionable.id,
                f"Revert not supported for {self.actionable_type.value}: {reason}",
            )
        problem = self.check_applicable(actionable)
        if problem:
            return ActionableResult.failure(actionable.id, problem)
        return self._run_chain(actionable, inverse)

    def check_applicable(self, actionable: Actionable) -> Optional[str]:
        """Return why the actionable cannot run here, or None."""
        if not self.can_handle(actionable):
            return f"{type(self).__name__} cannot handle {actionable.type_name}"
        if self.requires_target:
            target = actionable.target_package.strip()
            if not target:
                return "No target package specified"
            if target == self.platform.host_package:
                return f"Refusing to act on the host package {target}"
        if self.platform.supports(self.required_capability) is Support.UNSUPPORTED:
            return (
                f"Device does not support {self.required_capability.token} "
                f"(requires API {self.required_capability.min_sdk})"
            )
        return None

    def _run_chain(
        self, actionable: Actionable, params: ActionableParams
    ) -> ActionableResult:
        reasons = []
        steps = (
            ("primary", self.primary_capability, self.primary),
            ("secondary", self.secondary_capability, self.secondary),
        )
        for name, capability, step in steps:
            if capability is not None and (
                self.platform.supports(capability) is Support.UNSUPPORTED
            ):
                reasons.append(
                    f"{name}: requires {capability.token} (API {capability.min_sdk})"
                )
                continue
            outcome = step(actionable, params)
            if outcome.ok:
                logger.info(
                    "%s %s via %s: %s",
                    self.actionable_type.value, actionable.target_package,
                    name, outcome.detail,
                )
                return ActionableResult.success(
                    actionable.id, outcome.detail, method=name, **outcome.details
                )
            logger.info(
                "%s %s %s step failed: %s",
                self.actionable_type.value, actionable.target_package,
                name, outcome.detail,
            )
            reasons.append(f"{name}: {outcome.detail}")

        return self._manual_action(actionable, params, reasons)

    def _manual_action(
        self,
        actionable: Actionable,
        params: ActionableParams,
        reasons: list[str],
    ) -> ActionableResult:
        guidance = self.guidance(actionable, params)
        details = {
            "requires_user_action": "true",
            "user_guidance": guidance,
            "attempts": "; ".join(reasons),
        }
        if self.settings_action:
            details["settings_action"] = self.settings_action
        logger.warning(
            "ACTION NEEDED for %s %s: %s",
            self.actionable_type.value, actionable.target_package, guidance,
        )
        return ActionableResult.failure(
            actionable.id, f"Manual action needed: {guidance}", **details
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _shell_step(self, success: str, *args: str) -> StepOutcome:
        result = self.platform.shell(*args)
        if result.ok:
            return done(success)
        return failed(result.output or f"exit code {result.returncode}")
