"""Shared test fixtures for powerguard tests."""

from __future__ import annotations

import threading
from typing import Callable, Optional, Union

import pytest

from powerguard.actionables.platform import DevicePlatform, ShellResult
from powerguard.core.config import InferenceConfig
from powerguard.core.inference import InferenceClient
from powerguard.core.models import (
    MB,
    AppUsageRecord,
    BatteryState,
    DeviceInfo,
    DeviceSnapshot,
    MemoryState,
    NetworkState,
)
from powerguard.core.providers.base import BaseLLMProvider

HOUR_MS = 3_600_000
GB = 1024 * MB


def make_app(
    package: str,
    name: str = "",
    battery: float = 0.0,
    foreground_ms: int = 0,
    background_ms: int = 0,
    foreground_data: int = 0,
    background_data: int = 0,
) -> AppUsageRecord:
    """Helper to create an AppUsageRecord for testing."""
    return AppUsageRecord(
        package_name=package,
        app_name=name,
        battery_usage=battery,
        foreground_time_ms=foreground_ms,
        background_time_ms=background_ms,
        foreground_data_bytes=foreground_data,
        background_data_bytes=background_data,
    )


def make_snapshot(
    apps: list[AppUsageRecord],
    available_ram: int = 3 * GB,
    total_ram: int = 8 * GB,
    battery_level: int = 60,
) -> DeviceSnapshot:
    return DeviceSnapshot(
        device_id="device-123",
        device=DeviceInfo(
            manufacturer="Google", model="Pixel 7", os_version="14", sdk_version=34
        ),
        battery=BatteryState(level=battery_level, is_charging=False, temperature=31.5),
        memory=MemoryState(total_ram=total_ram, available_ram=available_ram),
        network=NetworkState(
            type="WIFI", is_connected=True, current_data_mb=1200.0, total_data_mb=5000.0
        ),
        apps=apps,
    )


@pytest.fixture
def snapshot() -> DeviceSnapshot:
    """A healthy device with a handful of apps."""
    return make_snapshot([
        make_app("com.whatsapp", "WhatsApp", battery=12.0,
                 foreground_ms=2 * HOUR_MS, background_ms=HOUR_MS // 2,
                 foreground_data=80 * MB, background_data=20 * MB),
        make_app("com.google.android.youtube", "YouTube", battery=25.0,
                 foreground_ms=3 * HOUR_MS, background_ms=HOUR_MS // 4,
                 foreground_data=900 * MB, background_data=10 * MB),
        make_app("com.spotify.music", "Spotify", battery=8.0,
                 foreground_ms=HOUR_MS // 2, background_ms=HOUR_MS // 2,
                 foreground_data=30 * MB, background_data=40 * MB),
    ])


@pytest.fixture
def background_snapshot() -> DeviceSnapshot:
    """One app with 4 hours of background time, nothing else notable."""
    return make_snapshot([
        make_app("com.example.tracker", "Tracker", battery=30.0,
                 foreground_ms=HOUR_MS // 6, background_ms=4 * HOUR_MS),
    ])


@pytest.fixture
def heavy_snapshot() -> DeviceSnapshot:
    """Background drain, background data hogs and low memory together."""
    return make_snapshot(
        [
            make_app("com.facebook.katana", "Facebook", battery=20.0,
                     foreground_ms=2 * HOUR_MS, background_ms=3 * HOUR_MS,
                     background_data=300 * MB),
            make_app("com.instagram.android", "Instagram", battery=18.0,
                     foreground_ms=3 * HOUR_MS, background_ms=2 * HOUR_MS,
                     background_data=120 * MB),
            make_app("com.netflix.mediaclient", "Netflix", battery=15.0,
                     foreground_ms=4 * HOUR_MS, background_ms=HOUR_MS // 2,
                     foreground_data=2 * GB, background_data=60 * MB),
            make_app("com.example.notes", "Notes", battery=1.0,
                     foreground_ms=HOUR_MS // 10),
        ],
        available_ram=GB // 2,
        total_ram=8 * GB,
        battery_level=35,
    )


# ---------------------------------------------------------------------------
# Inference fakes
# ---------------------------------------------------------------------------

Response = Union[str, Exception]


class FakeProvider(BaseLLMProvider):
    """Scripted provider: answers from a queue or a responder function."""

    def __init__(
        self,
        responses: Optional[list[Response]] = None,
        responder: Optional[Callable[[str], Response]] = None,
        delay: float = 0.0,
    ):
        super().__init__("fake-model")
        self.responses = list(responses or [])
        self.responder = responder
        self.delay = delay
        self.prompts: list[str] = []
        self.calls: list[tuple[int, float]] = []
        self.closed = False
        self.release = threading.Event()

    def complete(self, prompt: str, max_tokens: int, temperature: float) -> str:
        self.prompts.append(prompt)
        self.calls.append((max_tokens, temperature))
        if self.delay:
            self.release.wait(self.delay)
        if self.responder is not None:
            response = self.responder(prompt)
        elif self.responses:
            response = self.responses.pop(0)
        else:
            response = ""
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True

    @staticmethod
    def check_api_key() -> tuple[bool, str]:
        return True, "FAKE_API_KEY"


def fast_config(**overrides) -> InferenceConfig:
    values = dict(
        model="fake-model",
        timeout_s=0.5,
        retry_delay_s=0.05,
        init_timeout_s=0.5,
    )
    values.update(overrides)
    return InferenceConfig(**values)


def make_client(
    provider: BaseLLMProvider, online: bool = True, **overrides
) -> InferenceClient:
    return InferenceClient(
        fast_config(**overrides),
        provider_factory=lambda model: provider,
        connectivity_check=lambda: online,
    )


@pytest.fixture
def fake_provider():
    provider = FakeProvider()
    yield provider
    provider.release.set()


# ---------------------------------------------------------------------------
# Platform fake
# ---------------------------------------------------------------------------

class RecordingPlatform(DevicePlatform):
    """In-memory platform that records shell calls.

    ``results`` maps a command prefix (space-joined) to the ShellResult it
    returns; unmatched commands succeed with empty output.
    """

    def __init__(
        self,
        sdk: int = 34,
        results: Optional[dict[str, ShellResult]] = None,
        uids: Optional[dict[str, int]] = None,
        host_package: str = "com.powerguard.agent",
    ):
        self._sdk = sdk
        self.results = dict(results or {})
        self.uids = dict(uids or {})
        self.host_package = host_package
        self.calls: list[tuple[str, ...]] = []
        self._lock = threading.Lock()

    @property
    def sdk_level(self) -> int:
        return self._sdk

    def shell(self, *args: str, timeout: Optional[float] = None) -> ShellResult:
        with self._lock:
            self.calls.append(args)
        command = " ".join(args)
        for prefix in sorted(self.results, key=len, reverse=True):
            if command.startswith(prefix):
                return self.results[prefix]
        return ShellResult(0, "")

    def package_uid(self, package: str) -> Optional[int]:
        return self.uids.get(package)

    def commands(self) -> list[str]:
        return [" ".join(call) for call in self.calls]


FAIL = ShellResult(255, "", "Security exception: permission denied")


@pytest.fixture
def platform() -> RecordingPlatform:
    return RecordingPlatform(uids={"com.whatsapp": 10234, "com.example.app": 10500})
