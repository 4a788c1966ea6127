# settings_link.py
import logging
import platform
import subprocess
import sys
from typing import Optional

# macOS 13 replaced System Preferences with System Settings and its URL scheme
CALENDAR_PRIVACY_URL = "x-apple.systempreferences:com.apple.settings.PrivacySecurity.extension?Privacy_Calendars"
LEGACY_CALENDAR_PRIVACY_URL = "x-apple.systempreferences:com.apple.preference.security?Privacy_Calendars"


def _major_version(release: str) -> int:
    try:
        return int(release.split(".")[0])
    except (ValueError, IndexError):
        return 0


def calendar_privacy_url(mac_release: Optional[str] = None) -> str:
    release = mac_release if mac_release is not None else platform.mac_ver()[0]
    if _major_version(release) >= 13:
        return CALENDAR_PRIVACY_URL
    return LEGACY_CALENDAR_PRIVACY_URL


def open_calendar_privacy_settings() -> bool:
    if sys.platform != "darwin":
        logging.warning("Privacy settings link only works on macOS")
        return False
    url = calendar_privacy_url()
    try:
        subprocess.run(["open", url], check=True)
    except (OSError, subprocess.CalledProcessError) as e:
        logging.error("Could not open %s: %s", url, e)
        return False
    return True
