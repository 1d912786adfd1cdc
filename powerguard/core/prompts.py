"""Prompt construction for classification and analysis calls."""

from __future__ import annotations

import os
import re
from typing import Callable, Optional, Sequence

from powerguard.actionables.types import (
    OPTIMIZATION_TYPES,
    REQUIRED_PARAMETERS,
    STANDBY_BUCKETS,
    TYPE_DESCRIPTIONS,
    ActionableType,
)
from powerguard.core.models import (
    MB,
    AppUsageRecord,
    DeviceSnapshot,
    QueryCategory,
    ResourceFocus,
)

_PROMPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "prompts")

MAX_TOP_APPS = 10
DEFAULT_REQUESTED_COUNT = 5
MAX_REQUESTED_COUNT = 10

_INTEGER = re.compile(r"\d+")
_PLACEHOLDER = re.compile(r"\{([A-Z_]+)\}")

_CATEGORY_TEMPLATES = {
    QueryCategory.INFORMATION: "information.txt",
    QueryCategory.PREDICTIVE: "predictive.txt",
    QueryCategory.OPTIMIZATION: "optimization.txt",
    QueryCategory.MONITORING: "monitoring.txt",
    QueryCategory.INVALID: "general.txt",
}


def _load_prompt(name: str) -> str:
    path = os.path.join(_PROMPTS_DIR, name)
    with open(path) as f:
        return f.read()


def _fill(template: str, values: dict[str, str]) -> str:
    """Replace ``{NAME}`` placeholders in one pass.

    Substituted text is never rescanned, so user text containing a
    placeholder name is inserted as-is. Unknown names are left untouched.
    """
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def requested_count(goal: Optional[str]) -> int:
    """Return the last integer in the goal, clamped to 1-10 (default 5)."""
    numbers = _INTEGER.findall(goal or "")
    if not numbers:
        return DEFAULT_REQUESTED_COUNT
    return max(1, min(MAX_REQUESTED_COUNT, int(numbers[-1])))


def top_apps(
    apps: Sequence[AppUsageRecord],
    key: Callable[[AppUsageRecord], float],
    limit: int = MAX_TOP_APPS,
) -> list[AppUsageRecord]:
    """Highest-first by ``key``; ties keep snapshot order."""
    return sorted(apps, key=key, reverse=True)[:limit]


def monitoring_trigger(goal: Optional[str]) -> ActionableType:
    if goal and "notify" in goal.lower():
        return ActionableType.SET_NOTIFICATION
    return ActionableType.SET_ALARM


# ---------------------------------------------------------------------------
# Classification prompts
# ---------------------------------------------------------------------------

def build_resource_prompt(goal: str) -> str:
    return _fill(_load_prompt("resource_focus.txt"), {"GOAL": goal.strip()})


def build_category_prompt(goal: str, focus: ResourceFocus) -> str:
    return _fill(_load_prompt("query_category.txt"), {
        "RESOURCE": focus.value.lower(),
        "GOAL": goal.strip(),
    })


# ---------------------------------------------------------------------------
# Analysis prompt
# ---------------------------------------------------------------------------

def _format_device_data(snapshot: DeviceSnapshot, focus: ResourceFocus) -> str:
    battery = snapshot.battery
    lines = [
        f"DEVICE: {snapshot.identity}",
        f"BATTERY: {battery.level}%{' (Charging)' if battery.is_charging else ''}",
    ]
    if snapshot.memory.total_ram > 0:
        lines.append(
            f"MEMORY: {snapshot.memory.available_ram // MB}MB available of "
            f"{snapshot.memory.total_ram // MB}MB"
        )
    lines.append(
        f"DATA: Current {snapshot.network.current_data_mb}MB, "
        f"Total {snapshot.network.total_data_mb}MB"
    )

    if focus in (ResourceFocus.BATTERY, ResourceFocus.OTHER):
        battery_apps = top_apps(snapshot.apps, lambda a: a.battery_usage)
        if battery_apps:
            lines.append("")
            lines.append("TOP BATTERY APPS:")
            for app in battery_apps:
                lines.append(
                    f"- {app.display_name} ({app.package_name}): "
                    f"{app.battery_usage}%"
                )

    if focus in (ResourceFocus.DATA, ResourceFocus.OTHER):
        data_apps = top_apps(snapshot.apps, lambda a: a.total_data_bytes)
        if data_apps:
            lines.append("")
            lines.append("TOP DATA APPS:")
            for app in data_apps:
                lines.append(
                    f"- {app.display_name} ({app.package_name}): "
                    f"{app.total_data_bytes // MB}MB "
                    f"(background {app.background_data_bytes // MB}MB)"
                )

    return "\n".join(lines) + "\n"


def _format_actionable_types() -> str:
    return "\n".join(
        f"- {t.value}: {TYPE_DESCRIPTIONS[t]}" for t in ActionableType
    )


def _format_parameter_requirements() -> str:
    lines = []
    for t in ActionableType:
        keys = ", ".join(f'"{k}"' for k in REQUIRED_PARAMETERS[t])
        line = f"- For {t.value}: {keys}"
        if t is ActionableType.SET_STANDBY_BUCKET:
            line += f'; "newMode" is one of {", ".join(STANDBY_BUCKETS)}'
        lines.append(line)
    return "\n".join(lines)


def _category_block(
    category: QueryCategory, focus: ResourceFocus, goal: Optional[str]
) -> str:
    return _fill(_load_prompt(_CATEGORY_TEMPLATES[category]), {
        "RESOURCE": focus.value,
        "RESOURCE_LOWER": focus.value.lower(),
        "COUNT": str(requested_count(goal)),
        "ALLOWED_TYPES": ", ".join(t.value for t in OPTIMIZATION_TYPES),
        "TRIGGER_TYPE": monitoring_trigger(goal).value,
    })


def build_prompt(
    snapshot: DeviceSnapshot,
    focus: ResourceFocus,
    category: QueryCategory,
    goal: Optional[str] = None,
) -> str:
    """Render the analysis payload for one snapshot and classification.

    The result always carries the response-format contract, the device
    identity and battery lines, the top apps for the focused resource and
    the goal verbatim when one is given, followed by the instruction block
    for ``category``.
    """
    if not goal or not goal.strip():
        goal = None
    device_data = _format_device_data(snapshot, focus)
    if goal:
        device_data += f"\nUSER QUERY: {goal}\n"

    return _fill(_load_prompt("analysis.txt"), {
        "ACTIONABLE_TYPES": _format_actionable_types(),
        "PARAMETER_REQUIREMENTS": _format_parameter_requirements(),
        "DEVICE_DATA": device_data,
        "INSTRUCTIONS": _category_block(category, focus, goal),
    })
