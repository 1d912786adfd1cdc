"""Device platform abstraction — feature detection and shell access."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_HOST_PACKAGE = "com.powerguard.agent"


class Capability(Enum):
    """Platform operations a handler may rely on, with their minimum API level."""

    SHELL = ("shell", 1)
    FORCE_STOP = ("force_stop", 3)
    KILL_BACKGROUND = ("kill_background", 3)
    START_ACTIVITY = ("start_activity", 3)
    DEVICE_LOG = ("device_log", 3)
    APP_OPS = ("app_ops", 19)
    APP_INACTIVE = ("app_inactive", 23)
    NETWORK_POLICY = ("network_policy", 24)
    STANDBY_BUCKET = ("standby_bucket", 28)
    POST_NOTIFICATION = ("post_notification", 29)

    def __init__(self, token: str, min_sdk: int):
        self.token = token
        self.min_sdk = min_sdk


class Support(Enum):
    SUPPORTED = "supported"
    UNSUPPORTED = "unsupported"


_FAILURE_MARKERS = ("Error", "Exception", "Unknown package", "Failure", "not found")


@dataclass(frozen=True)
class ShellResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        # am/cmd often exit 0 while printing an error
        if self.returncode != 0:
            return False
        return not any(marker in self.stdout for marker in _FAILURE_MARKERS)

    @property
    def output(self) -> str:
        text = self.stdout.strip()
        if self.stderr.strip():
            text += ("\n" if text else "") + self.stderr.strip()
        return text


class DevicePlatform(ABC):
    """What handlers may ask of a device.

    Handlers only call :meth:`supports` and :meth:`shell`; concrete
    platforms decide how commands reach the device.
    """

    host_package: str = DEFAULT_HOST_PACKAGE

    @property
    @abstractmethod
    def sdk_level(self) -> int: ...

    @abstractmethod
    def shell(self, *args: str, timeout: Optional[float] = None) -> ShellResult: ...

    def is_connected(self) -> bool:
        return self.sdk_level > 0

    def supports(self, capability: Capability) -> Support:
        level = self.sdk_level
        if level > 0 and level >= capability.min_sdk:
            return Support.SUPPORTED
        return Support.UNSUPPORTED

    def package_uid(self, package: str) -> Optional[int]:
        """Return the Linux uid of an installed package, or None."""
        result = self.shell("cmd", "package", "list", "packages", "-U", package)
        if result.ok:
            for line in result.stdout.splitlines():
                match = re.match(r"package:(\S+)\s+uid:(\d+)", line.strip())
                if match and match.group(1) == package:
                    return int(match.group(2))

        result = self.shell("dumpsys", "package", package)
        if result.ok:
            match = re.search(r"userId=(\d+)", result.stdout)
            if match:
                return int(match.group(1))
        return None


class AdbPlatform(DevicePlatform):
    """Runs shell commands on an Android device through ``adb``."""

    def __init__(
        self,
        serial: Optional[str] = None,
        adb_path: str = "adb",
        host_package: str = DEFAULT_HOST_PACKAGE,
        timeout: float = 10.0,
    ):
        self.serial = serial
        self.adb_path = adb_path
        self.host_package = host_package
        self.timeout = timeout
        self._sdk_level: Optional[int] = None
        self._lock = threading.Lock()

    @property
    def sdk_level(self) -> int:
        """API level of the device, read once; 0 when no device answers."""
        with self._lock:
            if self._sdk_level is None:
                result = self.shell("getprop", "ro.build.version.sdk")
                try:
                    self._sdk_level = int(result.stdout.strip()) if result.ok else 0
                except ValueError:
                    self._sdk_level = 0
                logger.debug("Device %s reports SDK %d", self.serial or "(default)",
                             self._sdk_level)
            return self._sdk_level

    def shell(self, *args: str, timeout: Optional[float] = None) -> ShellResult:
        timeout = timeout or self.timeout
        cmd = [self.adb_path]
        if self.serial:
            cmd += ["-s", self.serial]
        # adb joins shell arguments and the device shell re-parses them
        cmd += ["shell", " ".join(shlex.quote(a) for a in args)]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return ShellResult(-1, stderr=f"Command timed out after {timeout} seconds")
        except FileNotFoundError:
            return ShellResult(127, stderr=f"{self.adb_path} not found on PATH")
        except OSError as e:
            return ShellResult(126, stderr=f"Could not run {self.adb_path}: {e}")
        return ShellResult(result.returncode, result.stdout, result.stderr)


class NullPlatform(DevicePlatform):
    """Stub platform for when no device is connected; nothing is supported."""

    @property
    def sdk_level(self) -> int:
        return 0

    def shell(self, *args: str, timeout: Optional[float] = None) -> ShellResult:
        return ShellResult(1, stderr="No device connected")
