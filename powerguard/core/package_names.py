"""Resolve app names mentioned in free text to Android package names."""

from __future__ import annotations

import re
from typing import Mapping, Optional

from powerguard.core.models import DeviceSnapshot

SETTINGS_PACKAGE = "com.android.settings"

KNOWN_PACKAGES: dict[str, str] = {
    "whatsapp": "com.whatsapp",
    "instagram": "com.instagram.android",
    "facebook": "com.facebook.katana",
    "messenger": "com.facebook.orca",
    "youtube": "com.google.android.youtube",
    "chrome": "com.android.chrome",
    "gmail": "com.google.android.gm",
    "google maps": "com.google.android.apps.maps",
    "maps": "com.google.android.apps.maps",
    "google photos": "com.google.android.apps.photos",
    "photos": "com.google.android.apps.photos",
    "calendar": "com.google.android.calendar",
    "contacts": "com.google.android.contacts",
    "google drive": "com.google.android.apps.docs",
    "drive": "com.google.android.apps.docs",
    "messages": "com.google.android.apps.messaging",
    "dialer": "com.android.dialer",
    "translate": "com.google.android.apps.translate",
    "settings": SETTINGS_PACKAGE,
    "spotify": "com.spotify.music",
    "netflix": "com.netflix.mediaclient",
    "tiktok": "com.zhiliaoapp.musically",
    "twitter": "com.twitter.android",
    "telegram": "org.telegram.messenger",
    "snapchat": "com.snapchat.android",
    "uber": "com.ubercab",
    "zoom": "us.zoom.videomeetings",
}

ABBREVIATIONS: dict[str, str] = {
    "insta": "instagram",
    "fb": "facebook",
    "yt": "youtube",
}


def _mentions(text: str, name: str) -> bool:
    return re.search(rf"\b{re.escape(name)}\b", text) is not None


class PackageLookup:
    """Static name table, optionally extended with the snapshot's app names.

    Longer names are tried first so "google maps" wins over "maps".
    """

    def __init__(self, extra: Optional[Mapping[str, str]] = None):
        table = dict(KNOWN_PACKAGES)
        for name, package in (extra or {}).items():
            if name and package:
                table[name.strip().lower()] = package
        self._table = dict(
            sorted(table.items(), key=lambda item: len(item[0]), reverse=True)
        )

    @classmethod
    def from_snapshot(cls, snapshot: Optional[DeviceSnapshot]) -> "PackageLookup":
        if snapshot is None:
            return cls()
        return cls({
            app.app_name: app.package_name
            for app in snapshot.apps
            if app.app_name and app.app_name != app.package_name
        })

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._table

    def resolve(self, text: str) -> Optional[str]:
        """Return the package of the first app named in ``text``, if any."""
        if not text:
            return None
        lowered = text.lower()
        for name, package in self._table.items():
            if _mentions(lowered, name):
                return package
            if name.startswith("google ") and _mentions(lowered, name[7:]):
                return package
        for short, name in ABBREVIATIONS.items():
            if _mentions(lowered, short) and name in self._table:
                return self._table[name]
        return None

    def resolve_or_default(self, text: str) -> str:
        return self.resolve(text) or SETTINGS_PACKAGE
