"""Turn raw model JSON into a well-formed AnalysisResponse."""

from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Optional

from powerguard.actionables.types import (
    REQUIRED_PARAMETERS,
    ActionableType,
    InvalidParameters,
    parse_parameters,
    serialize_parameters,
)
from powerguard.core.models import (
    Actionable,
    AnalysisResponse,
    Classification,
    DeviceSnapshot,
    EstimatedSavings,
    Insight,
    InsightType,
    ResourceFocus,
    Severity,
    clamp_score,
)
from powerguard.core.package_names import PackageLookup

logger = logging.getLogger(__name__)

DEFAULT_SCORE = 50.0
DEFAULT_BATTERY_SAVINGS = 5.0
DEFAULT_DATA_SAVINGS = 10.0
DEFAULT_SEVERITY = 3
DEFAULT_SAVINGS_MINUTES = 15.0
DEFAULT_SAVINGS_MB = 100.0
DEFAULT_REASON = "AI recommended"

_FOCUS_INSIGHT = {
    ResourceFocus.BATTERY: InsightType.BATTERY,
    ResourceFocus.DATA: InsightType.DATA,
}


def _number(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class ResponseValidator:
    """Validates model output against the response contract.

    ``validate`` never raises: items that cannot be repaired are dropped,
    missing values get fixed defaults and every range is clamped.
    """

    def __init__(self, lookup: Optional[PackageLookup] = None):
        self.lookup = lookup

    def validate(
        self,
        payload: Optional[dict[str, Any]],
        classification: Classification,
        snapshot: Optional[DeviceSnapshot] = None,
        message: str = "Analysis completed",
    ) -> AnalysisResponse:
        if payload is None:
            return AnalysisResponse(
                success=False,
                message=message,
                battery_score=DEFAULT_SCORE,
                data_score=DEFAULT_SCORE,
                performance_score=DEFAULT_SCORE,
            )

        lookup = self.lookup or PackageLookup.from_snapshot(snapshot)
        items = payload.get("actionables")
        if items is None:
            items = payload.get("actionable")

        savings = payload.get("estimatedSavings")
        if not isinstance(savings, dict):
            savings = {}

        return AnalysisResponse(
            success=True,
            message=message,
            battery_score=_number(payload.get("batteryScore"), DEFAULT_SCORE),
            data_score=_number(payload.get("dataScore"), DEFAULT_SCORE),
            performance_score=_number(
                payload.get("performanceScore"), DEFAULT_SCORE
            ),
            insights=self.validate_insights(
                payload.get("insights"), classification.focus
            ),
            actionables=self.validate_actionables(items, lookup),
            estimated_savings=EstimatedSavings(
                battery_minutes=max(0.0, _number(
                    savings.get("batteryMinutes"), DEFAULT_SAVINGS_MINUTES
                )),
                data_mb=max(0.0, _number(savings.get("dataMB"), DEFAULT_SAVINGS_MB)),
            ),
        )

    def validate_insights(
        self, items: Any, focus: ResourceFocus
    ) -> list[Insight]:
        wanted = _FOCUS_INSIGHT.get(focus)
        insights = []
        for item in _list(items):
            insight_type = _parse_enum(InsightType, item.get("type"))
            if insight_type is None:
                logger.debug("Dropping insight with unknown type %r", item.get("type"))
                continue
            if wanted is not None and insight_type not in (
                wanted, InsightType.PERFORMANCE
            ):
                continue
            insights.append(Insight(
                type=insight_type,
                title=_text(item.get("title")),
                description=_text(item.get("description")),
                severity=_parse_enum(Severity, item.get("severity")) or Severity.MEDIUM,
            ))
        return insights

    def validate_actionables(
        self, items: Any, lookup: PackageLookup
    ) -> list[Actionable]:
        actionables = []
        for item in _list(items):
            actionable = self._validate_actionable(item, lookup)
            if actionable is not None:
                actionables.append(actionable)
        return actionables

    def _validate_actionable(
        self, item: dict[str, Any], lookup: PackageLookup
    ) -> Optional[Actionable]:
        actionable_type = ActionableType.parse(item.get("type"))
        if actionable_type is None:
            logger.warning(
                "Discarding actionable with unsupported type %r", item.get("type")
            )
            return None

        raw = item.get("parameters")
        params = {
            str(k): _text(v) for k, v in (raw.items() if isinstance(raw, dict) else [])
        }
        description = _text(item.get("description"))
        enabled = item.get("enabled", True) is not False

        try:
            typed = parse_parameters(actionable_type, params, enabled=enabled)
        except InvalidParameters as e:
            logger.warning("Discarding %s actionable: %s", actionable_type.value, e)
            return None

        package = (
            _text(item.get("packageName"))
            or params.get("packageName", "")
            or lookup.resolve_or_default(description)
        )
        params.update(serialize_parameters(typed))
        if "packageName" in REQUIRED_PARAMETERS[actionable_type]:
            params["packageName"] = package

        severity = int(_number(item.get("severity"), DEFAULT_SEVERITY))
        return Actionable(
            id=str(uuid.uuid4()),
            type=actionable_type,
            target_package=package,
            description=description,
            reason=_text(item.get("reason")) or DEFAULT_REASON,
            estimated_battery_savings=clamp_score(_number(
                item.get("estimatedBatterySavings"), DEFAULT_BATTERY_SAVINGS
            )),
            estimated_data_savings=max(0.0, _number(
                item.get("estimatedDataSavings"), DEFAULT_DATA_SAVINGS
            )),
            severity=max(1, min(5, severity)),
            enabled=enabled,
            parameters=params,
        )


def _parse_enum(enum_cls, value: Any):
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        return None
