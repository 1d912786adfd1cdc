"""Core data models for powerguard."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from powerguard.actionables.types import ActionableType

MB = 1024 * 1024


class ResourceFocus(Enum):
    BATTERY = "BATTERY"
    DATA = "DATA"
    OTHER = "OTHER"


class QueryCategory(Enum):
    INVALID = 0
    INFORMATION = 1
    PREDICTIVE = 2
    OPTIMIZATION = 3
    MONITORING = 4


class InsightType(Enum):
    BATTERY = "BATTERY"
    DATA = "DATA"
    PERFORMANCE = "PERFORMANCE"


class Severity(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# ---------------------------------------------------------------------------
# Snapshot (request contract)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeviceInfo:
    manufacturer: str = ""
    model: str = ""
    os_version: str = ""
    sdk_version: int = 0


@dataclass(frozen=True)
class BatteryState:
    level: int = 0
    is_charging: bool = False
    temperature: float = 0.0


@dataclass(frozen=True)
class MemoryState:
    total_ram: int = 0
    available_ram: int = 0
    low_memory: bool = False


@dataclass(frozen=True)
class NetworkState:
    type: str = ""
    is_connected: bool = True
    current_data_mb: float = 0.0
    total_data_mb: float = 0.0


@dataclass(frozen=True)
class AppUsageRecord:
    package_name: str
    app_name: str = ""
    battery_usage: float = 0.0
    cpu_usage: float = 0.0
    memory_usage: int = 0
    foreground_time_ms: int = 0
    background_time_ms: int = 0
    foreground_data_bytes: int = 0
    background_data_bytes: int = 0
    wake_lock_count: int = 0
    alarm_wakeups: int = 0

    @property
    def display_name(self) -> str:
        return self.app_name or self.package_name

    @property
    def total_time_ms(self) -> int:
        return self.foreground_time_ms + self.background_time_ms

    @property
    def total_data_bytes(self) -> int:
        return self.foreground_data_bytes + self.background_data_bytes

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppUsageRecord":
        data_usage = data.get("dataUsage") or {}
        wakelocks = data.get("wakelockInfo") or {}
        return cls(
            package_name=str(data.get("packageName", "")),
            app_name=str(data.get("appName", "")),
            battery_usage=float(data.get("batteryUsage", 0.0)),
            cpu_usage=float(data.get("cpuUsage", 0.0)),
            memory_usage=int(data.get("memoryUsage", 0)),
            foreground_time_ms=int(data.get("foregroundTime", 0)),
            background_time_ms=int(data.get("backgroundTime", 0)),
            foreground_data_bytes=int(data_usage.get("foreground", 0)),
            background_data_bytes=int(data_usage.get("background", 0)),
            wake_lock_count=int(
                data.get("wakeLockCount", wakelocks.get("acquireCount", 0))
            ),
            alarm_wakeups=int(data.get("alarmWakeups", 0)),
        )


@dataclass(frozen=True)
class DeviceSnapshot:
    device_id: str
    device: DeviceInfo = field(default_factory=DeviceInfo)
    battery: BatteryState = field(default_factory=BatteryState)
    memory: MemoryState = field(default_factory=MemoryState)
    network: NetworkState = field(default_factory=NetworkState)
    apps: tuple[AppUsageRecord, ...] = ()

    def __post_init__(self):
        if not isinstance(self.apps, tuple):
            object.__setattr__(self, "apps", tuple(self.apps))

    @property
    def identity(self) -> str:
        parts = [self.device.manufacturer, self.device.model]
        name = " ".join(p for p in parts if p) or self.device_id
        if self.device.os_version:
            name += f", Android {self.device.os_version}"
        return name

    @property
    def available_memory_ratio(self) -> Optional[float]:
        if self.memory.total_ram <= 0:
            return None
        return self.memory.available_ram / self.memory.total_ram

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeviceSnapshot":
        """Parse the JSON request contract (camelCase keys)."""
        info = data.get("deviceInfo") or {}
        battery = data.get("battery") or {}
        memory = data.get("memory") or {}
        network = data.get("network") or {}
        return cls(
            device_id=str(data.get("deviceId", "")),
            device=DeviceInfo(
                manufacturer=str(info.get("manufacturer", "")),
                model=str(info.get("model", "")),
                os_version=str(info.get("osVersion", "")),
                sdk_version=int(info.get("sdkVersion", 0)),
            ),
            battery=BatteryState(
                level=int(battery.get("level", 0)),
                is_charging=bool(battery.get("isCharging", False)),
                temperature=float(battery.get("temperature", 0.0)),
            ),
            memory=MemoryState(
                total_ram=int(memory.get("totalRam", 0)),
                available_ram=int(memory.get("availableRam", 0)),
                low_memory=bool(memory.get("lowMemory", False)),
            ),
            network=NetworkState(
                type=str(network.get("type", "")),
                is_connected=bool(network.get("isConnected", True)),
                current_data_mb=float(data.get("currentDataMb", 0.0)),
                total_data_mb=float(data.get("totalDataMb", 0.0)),
            ),
            apps=tuple(AppUsageRecord.from_dict(a) for a in data.get("apps", [])),
        )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Classification:
    focus: ResourceFocus = ResourceFocus.OTHER
    category: QueryCategory = QueryCategory.INVALID


DEFAULT_CLASSIFICATION = Classification()


# ---------------------------------------------------------------------------
# Analysis response
# ---------------------------------------------------------------------------

@dataclass
class Insight:
    type: InsightType
    title: str
    description: str
    severity: Severity = Severity.MEDIUM

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
        }


@dataclass
class Actionable:
    id: str
    # Raw strings survive only on externally supplied lists; dispatch rejects them.
    type: Union[ActionableType, str]
    target_package: str = ""
    description: str = ""
    reason: str = ""
    estimated_battery_savings: float = 0.0
    estimated_data_savings: float = 0.0
    severity: int = 3
    enabled: bool = True
    parameters: dict[str, str] = field(default_factory=dict)

    @property
    def type_name(self) -> str:
        if isinstance(self.type, ActionableType):
            return self.type.value
        return str(self.type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type_name,
            "packageName": self.target_package,
            "description": self.description,
            "reason": self.reason,
            "estimatedBatterySavings": self.estimated_battery_savings,
            "estimatedDataSavings": self.estimated_data_savings,
            "severity": self.severity,
            "enabled": self.enabled,
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Actionable":
        """Build an actionable from an externally supplied JSON item.

        Unlike the response validator this keeps unknown types as raw strings
        so the dispatcher can report them as failed results. A missing or
        blank id is replaced with a fresh uuid4.
        """
        raw_type = data.get("type", "")
        parameters = {
            str(k): str(v) for k, v in (data.get("parameters") or {}).items()
        }
        return cls(
            id=str(data.get("id") or "").strip() or str(uuid.uuid4()),
            type=ActionableType.parse(raw_type) or str(raw_type),
            target_package=str(
                data.get("packageName")
                or data.get("target")
                or parameters.get("packageName", "")
            ),
            description=str(data.get("description", "")),
            reason=str(data.get("reason", "")),
            estimated_battery_savings=float(data.get("estimatedBatterySavings", 0.0)),
            estimated_data_savings=float(data.get("estimatedDataSavings", 0.0)),
            severity=int(data.get("severity", 3)),
            enabled=bool(data.get("enabled", True)),
            parameters=parameters,
        )


@dataclass
class EstimatedSavings:
    battery_minutes: float = 0.0
    data_mb: float = 0.0


@dataclass
class AnalysisResponse:
    success: bool
    message: str
    battery_score: float
    data_score: float
    performance_score: float
    insights: list[Insight] = field(default_factory=list)
    actionables: list[Actionable] = field(default_factory=list)
    estimated_savings: EstimatedSavings = field(default_factory=EstimatedSavings)

    def __post_init__(self):
        self.battery_score = clamp_score(self.battery_score)
        self.data_score = clamp_score(self.data_score)
        self.performance_score = clamp_score(self.performance_score)
        if self.insights is None:
            self.insights = []
        if self.actionables is None:
            self.actionables = []

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "batteryScore": self.battery_score,
            "dataScore": self.data_score,
            "performanceScore": self.performance_score,
            "insights": [i.to_dict() for i in self.insights],
            "actionables": [a.to_dict() for a in self.actionables],
            "estimatedSavings": {
                "batteryMinutes": self.estimated_savings.battery_minutes,
                "dataMB": self.estimated_savings.data_mb,
            },
        }


@dataclass(frozen=True)
class ActionableResult:
    actionable_id: str
    succeeded: bool
    detail: str = ""
    details: dict[str, str] = field(default_factory=dict)

    @classmethod
    def success(
        cls, actionable_id: str, detail: str, **details: str
    ) -> "ActionableResult":
        return cls(actionable_id, True, detail, dict(details))

    @classmethod
    def failure(
        cls, actionable_id: str, detail: str, **details: str
    ) -> "ActionableResult":
        return cls(actionable_id, False, detail, dict(details))

    def to_dict(self) -> dict[str, Any]:
        return {
            "actionableId": self.actionable_id,
            "succeeded": self.succeeded,
            "detail": self.detail,
            "details": dict(self.details),
        }


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, float(value)))
