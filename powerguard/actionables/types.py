"""Actionable type whitelist and typed parameters per type."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ActionableType(Enum):
    SET_STANDBY_BUCKET = "set_standby_bucket"
    RESTRICT_BACKGROUND_DATA = "restrict_background_data"
    KILL_APP = "kill_app"
    MANAGE_WAKE_LOCKS = "manage_wake_locks"
    SET_NOTIFICATION = "set_notification"
    SET_ALARM = "set_alarm"

    @classmethod
    def parse(cls, value: object) -> Optional["ActionableType"]:
        """Return the member for a wire token, or None if it is not whitelisted."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


WHITELIST: tuple[str, ...] = tuple(t.value for t in ActionableType)

OPTIMIZATION_TYPES = (
    ActionableType.SET_STANDBY_BUCKET,
    ActionableType.RESTRICT_BACKGROUND_DATA,
    ActionableType.KILL_APP,
    ActionableType.MANAGE_WAKE_LOCKS,
)

MONITORING_TYPES = (
    ActionableType.SET_NOTIFICATION,
    ActionableType.SET_ALARM,
)

# Purpose lines restated in every analysis prompt.
TYPE_DESCRIPTIONS: dict[ActionableType, str] = {
    ActionableType.SET_STANDBY_BUCKET: (
        "Limits an app's background activity by placing it in a standby "
        "bucket (e.g. restricted), saving battery and data."
    ),
    ActionableType.RESTRICT_BACKGROUND_DATA: (
        "Prevents an app from using data in the background."
    ),
    ActionableType.KILL_APP: (
        "Force stops an app to immediately reduce resource usage; "
        "it may restart later."
    ),
    ActionableType.MANAGE_WAKE_LOCKS: (
        "Restricts an app from keeping the device awake."
    ),
    ActionableType.SET_NOTIFICATION: (
        "Alerts the user with a notification when a condition is met."
    ),
    ActionableType.SET_ALARM: (
        "Configures an alarm that fires when a condition is met."
    ),
}

REQUIRED_PARAMETERS: dict[ActionableType, tuple[str, ...]] = {
    ActionableType.SET_STANDBY_BUCKET: ("packageName", "newMode"),
    ActionableType.RESTRICT_BACKGROUND_DATA: ("packageName",),
    ActionableType.KILL_APP: ("packageName",),
    ActionableType.MANAGE_WAKE_LOCKS: ("packageName",),
    ActionableType.SET_NOTIFICATION: ("condition", "message"),
    ActionableType.SET_ALARM: ("condition", "message"),
}

STANDBY_BUCKETS: dict[str, int] = {
    "active": 10,
    "working_set": 20,
    "frequent": 30,
    "rare": 40,
    "restricted": 45,
}

DEFAULT_BUCKET = "restricted"

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


class InvalidParameters(ValueError):
    """Raised when an actionable's parameters fall outside its closed set."""


@dataclass(frozen=True)
class StandbyBucketParams:
    new_mode: str = DEFAULT_BUCKET

    @property
    def bucket(self) -> int:
        return STANDBY_BUCKETS[self.new_mode]


@dataclass(frozen=True)
class BackgroundDataParams:
    restrict: bool = True


@dataclass(frozen=True)
class KillAppParams:
    pass


@dataclass(frozen=True)
class WakeLockParams:
    allow: bool = False


@dataclass(frozen=True)
class NotificationParams:
    condition: str
    message: str


@dataclass(frozen=True)
class AlarmParams:
    condition: str
    message: str
    hour: Optional[int] = None
    minute: Optional[int] = None


ActionableParams = Union[
    StandbyBucketParams,
    BackgroundDataParams,
    KillAppParams,
    WakeLockParams,
    NotificationParams,
    AlarmParams,
]


def _parse_bool(raw: dict[str, str], key: str, default: bool) -> bool:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return default
    lowered = str(value).strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidParameters(f"{key} must be a boolean, got {value!r}")


def _parse_int(raw: dict[str, str], key: str, low: int, high: int) -> Optional[int]:
    value = raw.get(key)
    if value is None or str(value).strip() == "":
        return None
    try:
        number = int(str(value).strip())
    except ValueError:
        raise InvalidParameters(f"{key} must be an integer, got {value!r}")
    if not low <= number <= high:
        raise InvalidParameters(f"{key} must be within {low}-{high}, got {number}")
    return number


def parse_parameters(
    actionable_type: ActionableType,
    raw: dict[str, str],
    enabled: bool = True,
) -> ActionableParams:
    """Build the typed parameter variant for an actionable type.

    Args:
        actionable_type: Whitelisted type the parameters belong to.
        raw: The string parameter map as received on the wire.
        enabled: The actionable's ``enabled`` flag. For toggling types a
            disabled actionable means "undo the restriction".

    Raises:
        InvalidParameters: If a value is outside the type's closed set or a
            required monitoring field is missing.
    """
    if actionable_type is ActionableType.SET_STANDBY_BUCKET:
        mode = str(raw.get("newMode") or DEFAULT_BUCKET).strip().lower()
        if mode not in STANDBY_BUCKETS:
            raise InvalidParameters(
                f"newMode must be one of {', '.join(STANDBY_BUCKETS)}, got {mode!r}"
            )
        return StandbyBucketParams(new_mode=mode)

    if actionable_type is ActionableType.RESTRICT_BACKGROUND_DATA:
        return BackgroundDataParams(
            restrict=_parse_bool(raw, "restrict", default=enabled)
        )

    if actionable_type is ActionableType.KILL_APP:
        return KillAppParams()

    if actionable_type is ActionableType.MANAGE_WAKE_LOCKS:
        return WakeLockParams(allow=_parse_bool(raw, "allow", default=not enabled))

    condition = str(raw.get("condition") or "").strip()
    message = str(raw.get("message") or "").strip()
    if not condition or not message:
        raise InvalidParameters("condition and message are required")

    if actionable_type is ActionableType.SET_NOTIFICATION:
        return NotificationParams(condition=condition, message=message)

    return AlarmParams(
        condition=condition,
        message=message,
        hour=_parse_int(raw, "hour", 0, 23),
        minute=_parse_int(raw, "minute", 0, 59),
    )


def serialize_parameters(params: ActionableParams) -> dict[str, str]:
    """Render typed parameters back to the normalized wire map."""
    if isinstance(params, StandbyBucketParams):
        return {"newMode": params.new_mode}
    if isinstance(params, BackgroundDataParams):
        return {"restrict": str(params.restrict).lower()}
    if isinstance(params, WakeLockParams):
        return {"allow": str(params.allow).lower()}
    if isinstance(params, NotificationParams):
        return {"condition": params.condition, "message": params.message}
    if isinstance(params, AlarmParams):
        result = {"condition": params.condition, "message": params.message}
        if params.hour is not None:
            result["hour"] = str(params.hour)
        if params.minute is not None:
            result["minute"] = str(params.minute)
        return result
    return {}
