"""Deterministic, inference-free analysis."""

from __future__ import annotations

import re
import uuid
from typing import Optional

from powerguard.actionables.types import ActionableType
from powerguard.core.models import (
    MB,
    Actionable,
    AnalysisResponse,
    AppUsageRecord,
    Classification,
    DeviceSnapshot,
    EstimatedSavings,
    Insight,
    InsightType,
    QueryCategory,
    ResourceFocus,
    Severity,
)
from powerguard.core.package_names import SETTINGS_PACKAGE
from powerguard.core.prompts import monitoring_trigger, requested_count, top_apps

BASE_BATTERY_SCORE = 85
BASE_DATA_SCORE = 90
BASE_PERFORMANCE_SCORE = 80

BACKGROUND_TIME_THRESHOLD_MS = 3_600_000
BACKGROUND_DATA_THRESHOLD = 50 * MB
LOW_MEMORY_RATIO = 0.2

BATTERY_PENALTY = 5
DATA_PENALTY = 5
PERFORMANCE_PENALTY = 15

TOP_TIME_APPS = 3
TOP_DATA_APPS = 3
TOP_MEMORY_APPS = 2

_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_DNS, "powerguard.fallback")


def _stable_id(snapshot: DeviceSnapshot, rule: str, target: str) -> str:
    return str(uuid.uuid5(_ID_NAMESPACE, f"{snapshot.device_id}/{rule}/{target}"))


def _named_in(goal: str, app: AppUsageRecord) -> bool:
    lowered = goal.lower()
    if app.package_name and app.package_name.lower() in lowered:
        return True
    name = app.app_name.strip().lower()
    return bool(name) and re.search(rf"\b{re.escape(name)}\b", lowered) is not None


def _resource_key(focus: ResourceFocus):
    if focus is ResourceFocus.BATTERY:
        return lambda a: a.battery_usage
    if focus is ResourceFocus.DATA:
        return lambda a: a.total_data_bytes
    return lambda a: a.total_time_ms


class FallbackHeuristicEngine:
    """Rule-based analysis used when inference is skipped or fails.

    Output depends only on the snapshot (and, for :meth:`analyze_for`, the
    classification and goal), so repeated runs produce identical responses.
    """

    def analyze(
        self, snapshot: DeviceSnapshot, message: str = "Analysis (heuristic fallback)"
    ) -> AnalysisResponse:
        battery_score = BASE_BATTERY_SCORE
        data_score = BASE_DATA_SCORE
        performance_score = BASE_PERFORMANCE_SCORE
        insights: list[Insight] = []
        actionables: list[Actionable] = []

        for app in top_apps(snapshot.apps, lambda a: a.total_time_ms, TOP_TIME_APPS):
            if app.background_time_ms <= BACKGROUND_TIME_THRESHOLD_MS:
                continue
            battery_score -= BATTERY_PENALTY
            minutes = app.background_time_ms // 60_000
            insights.append(Insight(
                type=InsightType.BATTERY,
                title=f"High Battery Drain: {app.display_name}",
                description=(
                    f"{app.display_name} spent {minutes}min in the background "
                    f"- restrict background usage."
                ),
                severity=Severity.HIGH,
            ))
            actionables.append(Actionable(
                id=_stable_id(snapshot, "background-time", app.package_name),
                type=ActionableType.SET_STANDBY_BUCKET,
                target_package=app.package_name,
                description=f"Restrict background activity for {app.display_name}",
                reason="High background usage detected",
                estimated_battery_savings=15.0,
                estimated_data_savings=0.0,
                severity=4,
                parameters={
                    "packageName": app.package_name,
                    "newMode": "restricted",
                },
            ))

        for app in top_apps(
            snapshot.apps, lambda a: a.background_data_bytes, TOP_DATA_APPS
        ):
            if app.background_data_bytes <= BACKGROUND_DATA_THRESHOLD:
                continue
            data_score -= DATA_PENALTY
            used_mb = app.background_data_bytes // MB
            insights.append(Insight(
                type=InsightType.DATA,
                title=f"High Data Usage: {app.display_name}",
                description=(
                    f"{app.display_name} used {used_mb}MB in the background "
                    f"- restrict background data."
                ),
                severity=Severity.MEDIUM,
            ))
            actionables.append(Actionable(
                id=_stable_id(snapshot, "background-data", app.package_name),
                type=ActionableType.RESTRICT_BACKGROUND_DATA,
                target_package=app.package_name,
                description=f"Restrict background data for {app.display_name}",
                reason="High data usage detected",
                estimated_battery_savings=5.0,
                estimated_data_savings=float(used_mb),
                severity=3,
                parameters={"packageName": app.package_name, "restrict": "true"},
            ))

        ratio = snapshot.available_memory_ratio
        if ratio is not None and ratio < LOW_MEMORY_RATIO:
            performance_score -= PERFORMANCE_PENALTY
            insights.append(Insight(
                type=InsightType.PERFORMANCE,
                title="Low Available Memory",
                description=(
                    f"Only {snapshot.memory.available_ram // MB}MB free "
                    f"- close unused apps."
                ),
                severity=Severity.HIGH,
            ))
            for app in top_apps(
                snapshot.apps, lambda a: a.foreground_time_ms, TOP_MEMORY_APPS
            ):
                actionables.append(Actionable(
                    id=_stable_id(snapshot, "memory", app.package_name),
                    type=ActionableType.KILL_APP,
                    target_package=app.package_name,
                    description=f"Stop {app.display_name} to free memory",
                    reason="High memory usage detected",
                    estimated_battery_savings=10.0,
                    estimated_data_savings=0.0,
                    severity=5,
                    parameters={"packageName": app.package_name},
                ))

        return AnalysisResponse(
            success=True,
            message=message,
            battery_score=max(0, battery_score),
            data_score=max(0, data_score),
            performance_score=max(0, performance_score),
            insights=insights,
            actionables=actionables,
            estimated_savings=EstimatedSavings(
                battery_minutes=sum(a.estimated_battery_savings for a in actionables),
                data_mb=sum(a.estimated_data_savings for a in actionables),
            ),
        )

    def analyze_for(
        self,
        snapshot: DeviceSnapshot,
        classification: Classification,
        goal: Optional[str] = None,
        message: str = "Analysis (heuristic fallback)",
    ) -> AnalysisResponse:
        """Category-aware fallback with canned, resource-scoped text.

        Scores come from :meth:`analyze`; insights and actionables mirror the
        classified category. INVALID queries get the full heuristic analysis.
        """
        baseline = self.analyze(snapshot, message)
        category = classification.category
        if category is QueryCategory.INVALID:
            return baseline

        goal = (goal or "").strip()
        focus = classification.focus
        if category is QueryCategory.INFORMATION:
            insights, actionables = self._information(snapshot, focus, goal)
        elif category is QueryCategory.PREDICTIVE:
            insights, actionables = self._predictive(snapshot, focus)
        elif category is QueryCategory.OPTIMIZATION:
            insights, actionables = self._optimization(snapshot, focus, goal)
        else:
            insights, actionables = self._monitoring(snapshot, focus, goal)

        baseline.insights = insights
        baseline.actionables = actionables
        baseline.estimated_savings = EstimatedSavings(
            battery_minutes=sum(a.estimated_battery_savings for a in actionables),
            data_mb=sum(a.estimated_data_savings for a in actionables),
        )
        return baseline

    # ------------------------------------------------------------------
    # Category branches
    # ------------------------------------------------------------------

    def _information(self, snapshot, focus, goal):
        count = requested_count(goal)
        apps = top_apps(snapshot.apps, _resource_key(focus), count)
        label = focus.value.lower() if focus is not ResourceFocus.OTHER else "overall"
        if apps:
            lines = []
            for app in apps:
                if focus is ResourceFocus.BATTERY:
                    lines.append(f"• {app.display_name}: {app.battery_usage}%")
                elif focus is ResourceFocus.DATA:
                    lines.append(
                        f"• {app.display_name}: {app.total_data_bytes // MB}MB"
                    )
                else:
                    lines.append(
                        f"• {app.display_name}: {app.total_time_ms // 60_000}min"
                    )
            description = "\n".join(lines)
        else:
            description = f"Sorry, no {label} usage data available."
        insight = Insight(
            type=_insight_type(focus),
            title=f"Top {count} {label} usage",
            description=description,
            severity=Severity.LOW,
        )
        return [insight], []

    def _predictive(self, snapshot, focus):
        if focus is ResourceFocus.DATA:
            remaining = max(
                0.0, snapshot.network.total_data_mb - snapshot.network.current_data_mb
            )
            amount = f"{remaining:g}MB of data"
        else:
            amount = f"{snapshot.battery.level}% battery"
        insight = Insight(
            type=_insight_type(focus),
            title="Prediction",
            description=f"Assuming typical usage, the remaining {amount} may suffice.",
            severity=Severity.MEDIUM,
        )
        return [insight], []

    def _optimization(self, snapshot, focus, goal):
        kept = [app for app in snapshot.apps if goal and _named_in(goal, app)]
        actionables = [
            Actionable(
                id=_stable_id(snapshot, "keep-active", app.package_name),
                type=ActionableType.SET_STANDBY_BUCKET,
                target_package=app.package_name,
                description=f"Keep {app.display_name} active as requested",
                reason="User request",
                estimated_battery_savings=0.0,
                estimated_data_savings=0.0,
                severity=1,
                parameters={"packageName": app.package_name, "newMode": "active"},
            )
            for app in kept
        ]

        kept_packages = {app.package_name for app in kept}
        candidates = [a for a in snapshot.apps if a.package_name not in kept_packages]
        heaviest = top_apps(candidates, _resource_key(focus), 1)
        if heaviest:
            app = heaviest[0]
            if focus is ResourceFocus.DATA:
                actionables.append(Actionable(
                    id=_stable_id(snapshot, "optimize-data", app.package_name),
                    type=ActionableType.RESTRICT_BACKGROUND_DATA,
                    target_package=app.package_name,
                    description=f"Restrict background data for {app.display_name}",
                    reason="Optimization",
                    estimated_battery_savings=0.0,
                    estimated_data_savings=50.0,
                    severity=3,
                    parameters={"packageName": app.package_name, "restrict": "true"},
                ))
            else:
                actionables.append(Actionable(
                    id=_stable_id(snapshot, "optimize-battery", app.package_name),
                    type=ActionableType.SET_STANDBY_BUCKET,
                    target_package=app.package_name,
                    description=f"Restrict background activity for {app.display_name}",
                    reason="Optimization",
                    estimated_battery_savings=10.0,
                    estimated_data_savings=0.0,
                    severity=3,
                    parameters={
                        "packageName": app.package_name,
                        "newMode": "restricted",
                    },
                ))

        description = "Restricted the highest-usage app."
        if kept:
            names = ", ".join(app.display_name for app in kept)
            description = (
                f"Limited other apps while keeping {names} running as requested."
            )
        insight = Insight(
            type=_insight_type(focus),
            title="Optimization Applied",
            description=description,
            severity=Severity.MEDIUM,
        )
        return [insight], actionables

    def _monitoring(self, snapshot, focus, goal):
        trigger = monitoring_trigger(goal)
        label = focus.value.capitalize() if focus is not ResourceFocus.OTHER else "Usage"
        condition = goal or f"{label} threshold reached"
        actionable = Actionable(
            id=_stable_id(snapshot, "monitor", f"{trigger.value}:{condition}"),
            type=trigger,
            target_package=SETTINGS_PACKAGE,
            description=f"Monitor {label.lower()}",
            reason="User request",
            estimated_battery_savings=0.0,
            estimated_data_savings=0.0,
            severity=1,
            parameters={"condition": condition, "message": f"{label} threshold reached"},
        )
        insight = Insight(
            type=_insight_type(focus),
            title="Monitoring Set",
            description="Trigger configured.",
            severity=Severity.LOW,
        )
        return [insight], [actionable]


def _insight_type(focus: ResourceFocus) -> InsightType:
    if focus is ResourceFocus.DATA:
        return InsightType.DATA
    if focus is ResourceFocus.BATTERY:
        return InsightType.BATTERY
    return InsightType.PERFORMANCE
