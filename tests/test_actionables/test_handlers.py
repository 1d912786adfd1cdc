"""Tests for the capability handlers and their fallback chains."""

from __future__ import annotations

import pytest

from powerguard.actionables.handlers import (
    AlarmHandler,
    BackgroundDataHandler,
    KillAppHandler,
    NotificationHandler,
    StandbyBucketHandler,
    WakeLockHandler,
)
from powerguard.actionables.handlers.alarm import parse_alarm_time
from powerguard.actionables.platform import ShellResult
from powerguard.actionables.types import ActionableType
from powerguard.core.models import Actionable
from tests.conftest import FAIL, RecordingPlatform


def _actionable(kind, target="com.whatsapp", **parameters):
    return Actionable(
        id="act-1",
        type=kind,
        target_package=target,
        parameters={k: str(v) for k, v in parameters.items()},
    )


# ---------------------------------------------------------------------------
# Shared chain behavior
# ---------------------------------------------------------------------------

class TestApplicability:
    def test_refuses_host_package(self, platform):
        handler = KillAppHandler(platform)
        result = handler.execute(_actionable(ActionableType.KILL_APP, "com.powerguard.agent"))
        assert not result.succeeded
        assert "host package" in result.detail
        assert platform.calls == []

    def test_blank_target(self, platform):
        result = StandbyBucketHandler(platform).execute(
            _actionable(ActionableType.SET_STANDBY_BUCKET, "  ")
        )
        assert not result.succeeded
        assert result.detail == "No target package specified"

    def test_wrong_type(self, platform):
        handler = KillAppHandler(platform)
        actionable = _actionable(ActionableType.SET_ALARM)
        assert not handler.can_handle(actionable)
        assert "cannot handle set_alarm" in handler.execute(actionable).detail

    def test_no_device(self):
        result = KillAppHandler(RecordingPlatform(sdk=0)).execute(
            _actionable(ActionableType.KILL_APP)
        )
        assert not result.succeeded
        assert "does not support shell" in result.detail

    def test_invalid_parameters(self, platform):
        result = StandbyBucketHandler(platform).execute(
            _actionable(ActionableType.SET_STANDBY_BUCKET, newMode="frozen")
        )
        assert not result.succeeded
        assert result.detail.startswith("Invalid parameters:")
        assert platform.calls == []

    def test_monitoring_needs_no_target(self, platform):
        result = NotificationHandler(platform).execute(_actionable(
            ActionableType.SET_NOTIFICATION, "",
            condition="battery < 20%", message="Charge soon",
        ))
        assert result.succeeded


# ---------------------------------------------------------------------------
# set_standby_bucket
# ---------------------------------------------------------------------------

class TestStandbyBucket:
    def test_primary(self, platform):
        result = StandbyBucketHandler(platform).execute(
            _actionable(ActionableType.SET_STANDBY_BUCKET, newMode="restricted")
        )
        assert result.succeeded
        assert result.details["method"] == "primary"
        assert platform.commands() == ["am set-standby-bucket com.whatsapp restricted"]

    def test_secondary_when_primary_fails(self):
        platform = RecordingPlatform(results={"am set-standby-bucket": FAIL})
        result = StandbyBucketHandler(platform).execute(
            _actionable(ActionableType.SET_STANDBY_BUCKET, newMode="rare")
        )
        assert result.succeeded
        assert result.details["method"] == "secondary"
        assert platform.commands()[-1] == "am set-inactive com.whatsapp true"

    def test_old_sdk_skips_primary(self):
        platform = RecordingPlatform(sdk=26)
        result = StandbyBucketHandler(platform).execute(
            _actionable(ActionableType.SET_STANDBY_BUCKET)
        )
        assert result.succeeded
        assert result.details["method"] == "secondary"
        assert platform.commands() == ["am set-inactive com.whatsapp true"]

    def test_manual_action_when_both_fail(self):
        platform = RecordingPlatform(results={"am": FAIL})
        result = StandbyBucketHandler(platform).execute(
            _actionable(ActionableType.SET_STANDBY_BUCKET)
        )
        assert not result.succeeded
        assert result.detail.startswith("Manual action needed:")
        assert result.details["requires_user_action"] == "true"
        assert "choose Restricted" in result.details["user_guidance"]
        assert result.details["settings_action"] == (
            "android.settings.APPLICATION_DETAILS_SETTINGS"
        )
        assert "primary:" in result.details["attempts"]
        assert "secondary:" in result.details["attempts"]

    def test_revert_moves_to_active(self, platform):
        result = StandbyBucketHandler(platform).revert(
            _actionable(ActionableType.SET_STANDBY_BUCKET, newMode="restricted")
        )
        assert result.succeeded
        assert platform.commands() == ["am set-standby-bucket com.whatsapp active"]


# ---------------------------------------------------------------------------
# restrict_background_data
# ---------------------------------------------------------------------------

class TestBackgroundData:
    def test_adds_uid_to_restrict_list(self, platform):
        result = BackgroundDataHandler(platform).execute(
            _actionable(ActionableType.RESTRICT_BACKGROUND_DATA)
        )
        assert result.succeeded
        assert platform.commands()[-1] == (
            "cmd netpolicy add restrict-background-blacklist 10234"
        )

    def test_already_restricted(self):
        platform = RecordingPlatform(
            results={"cmd netpolicy list": ShellResult(0, "10100 10234\n")},
            uids={"com.whatsapp": 10234},
        )
        result = BackgroundDataHandler(platform).execute(
            _actionable(ActionableType.RESTRICT_BACKGROUND_DATA)
        )
        assert result.succeeded
        assert result.details["already_set"] == "true"
        assert not any("add" in c for c in platform.commands())

    def test_unknown_uid_uses_app_ops(self):
        platform = RecordingPlatform()
        result = BackgroundDataHandler(platform).execute(
            _actionable(ActionableType.RESTRICT_BACKGROUND_DATA)
        )
        assert result.succeeded
        assert result.details["method"] == "secondary"
        assert platform.commands() == [
            "cmd appops set com.whatsapp RUN_ANY_IN_BACKGROUND ignore"
        ]

    def test_revert_removes_uid(self):
        platform = RecordingPlatform(
            results={"cmd netpolicy list": ShellResult(0, "10234\n")},
            uids={"com.whatsapp": 10234},
        )
        result = BackgroundDataHandler(platform).revert(
            _actionable(ActionableType.RESTRICT_BACKGROUND_DATA)
        )
        assert result.succeeded
        assert platform.commands()[-1] == (
            "cmd netpolicy remove restrict-background-blacklist 10234"
        )

    def test_manual_guidance(self):
        platform = RecordingPlatform(sdk=23, results={"cmd appops": FAIL})
        result = BackgroundDataHandler(platform).execute(
            _actionable(ActionableType.RESTRICT_BACKGROUND_DATA)
        )
        assert not result.succeeded
        assert "turn off Background data" in result.details["user_guidance"]
        assert "network_policy" in result.details["attempts"]


# ---------------------------------------------------------------------------
# kill_app
# ---------------------------------------------------------------------------

class TestKillApp:
    def test_force_stop(self, platform):
        result = KillAppHandler(platform).execute(_actionable(ActionableType.KILL_APP))
        assert result.succeeded
        assert result.detail == "Force stopped com.whatsapp"
        assert platform.commands() == ["am force-stop com.whatsapp"]

    def test_error_output_with_zero_exit_falls_through(self):
        platform = RecordingPlatform(
            results={"am force-stop": ShellResult(0, "Error: Unknown package")}
        )
        result = KillAppHandler(platform).execute(_actionable(ActionableType.KILL_APP))
        assert result.details["method"] == "secondary"
        assert platform.commands()[-1] == "am kill com.whatsapp"

    def test_revert_unsupported(self, platform):
        result = KillAppHandler(platform).revert(_actionable(ActionableType.KILL_APP))
        assert not result.succeeded
        assert result.detail.startswith("Revert not supported for kill_app")
        assert platform.calls == []


# ---------------------------------------------------------------------------
# manage_wake_locks
# ---------------------------------------------------------------------------

class TestWakeLocks:
    def test_package_app_op(self, platform):
        result = WakeLockHandler(platform).execute(
            _actionable(ActionableType.MANAGE_WAKE_LOCKS)
        )
        assert result.succeeded
        assert platform.commands() == ["cmd appops set com.whatsapp WAKE_LOCK ignore"]

    def test_uid_app_op_fallback(self):
        platform = RecordingPlatform(
            results={"cmd appops set com.whatsapp": FAIL}, uids={"com.whatsapp": 10234}
        )
        result = WakeLockHandler(platform).execute(
            _actionable(ActionableType.MANAGE_WAKE_LOCKS)
        )
        assert result.succeeded
        assert platform.commands()[-1] == "cmd appops set --uid 10234 WAKE_LOCK ignore"

    def test_revert_allows(self, platform):
        WakeLockHandler(platform).revert(_actionable(ActionableType.MANAGE_WAKE_LOCKS))
        assert platform.commands() == ["cmd appops set com.whatsapp WAKE_LOCK allow"]


# ---------------------------------------------------------------------------
# set_notification / set_alarm
# ---------------------------------------------------------------------------

class TestNotification:
    def test_posts_notification(self, platform):
        result = NotificationHandler(platform).execute(_actionable(
            ActionableType.SET_NOTIFICATION,
            condition="battery < 20%", message="Charge soon",
        ))
        assert result.succeeded
        command = platform.calls[0]
        assert command[:3] == ("cmd", "notification", "post")
        assert command[-1] == "Charge soon (battery < 20%)"

    def test_old_sdk_logs_instead(self):
        platform = RecordingPlatform(sdk=28)
        result = NotificationHandler(platform).execute(_actionable(
            ActionableType.SET_NOTIFICATION,
            condition="battery < 20%", message="Charge soon",
        ))
        assert result.succeeded
        assert result.details["method"] == "secondary"
        assert platform.calls == [("log", "-t", "PowerGuard", "battery < 20%: Charge soon")]

    def test_missing_message(self, platform):
        result = NotificationHandler(platform).execute(_actionable(
            ActionableType.SET_NOTIFICATION, condition="battery < 20%",
        ))
        assert not result.succeeded
        assert "Invalid parameters" in result.detail

    def test_revert_unsupported(self, platform):
        result = NotificationHandler(platform).revert(_actionable(
            ActionableType.SET_NOTIFICATION, condition="c", message="m",
        ))
        assert not result.succeeded


class TestAlarm:
    @pytest.mark.parametrize("text,expected", [
        ("Wake me at 7:30", (7, 30)),
        ("remind me at 7pm", (19, 0)),
        ("at 12am sharp", (0, 0)),
        ("at 19:05", (19, 5)),
        ("when data hits 2 GB", None),
        ("at 25:00", None),
        ("", None),
    ])
    def test_parse_alarm_time(self, text, expected):
        assert parse_alarm_time(text) == expected

    def test_sets_alarm_from_parameters(self, platform):
        result = AlarmHandler(platform).execute(_actionable(
            ActionableType.SET_ALARM, "",
            condition="data > 2GB", message="Data check", hour=6, minute=5,
        ))
        assert result.succeeded
        assert result.detail == "Set alarm for 06:05"
        assert "android.intent.action.SET_ALARM" in platform.calls[0]

    def test_no_time_posts_reminder(self, platform):
        result = AlarmHandler(platform).execute(_actionable(
            ActionableType.SET_ALARM, "",
            condition="data reaches 4GB", message="Slow down",
        ))
        assert result.succeeded
        assert result.details["method"] == "secondary"
        assert platform.calls[0][:3] == ("cmd", "notification", "post")

    def test_manual_guidance(self):
        platform = RecordingPlatform(results={"am": FAIL, "cmd": FAIL})
        result = AlarmHandler(platform).execute(_actionable(
            ActionableType.SET_ALARM, "",
            condition="at 7:00", message="Unplug charger",
        ))
        assert not result.succeeded
        assert "Clock app" in result.details["user_guidance"]
        assert result.details["settings_action"] == "android.intent.action.SHOW_ALARMS"
