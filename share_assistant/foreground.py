"""Foreground window inspection for a device reached over adb."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

_FOCUS_PATTERN = re.compile(r"mCurrentFocus=Window\{\S+ \S+ (?P<component>[^}\s]+)\}")


@dataclass(slots=True)
class ForegroundWindowInfo:
    """Details describing the currently focused window."""

    package: str
    activity: str
    timestamp: datetime

    @property
    def signature(self) -> tuple[str, str]:
        return (self.package, self.activity)

    @property
    def label(self) -> str:
        if self.activity:
            return f"{self.package}/{self.activity}"
        return self.package


def parse_focus(dumpsys_output: str) -> Optional[tuple[str, str]]:
    """Extract ``(package, activity)`` from ``dumpsys window`` output."""

    match = _FOCUS_PATTERN.search(dumpsys_output)
    if not match:
        return None
    component = match.group("component")
    package, _, activity = component.partition("/")
    return package, activity


class ForegroundWindowProvider:
    """Reads the focused window of a device through ``dumpsys``."""

    def __init__(self, device) -> None:
        self.device = device

    def current(self) -> Optional[ForegroundWindowInfo]:
        try:
            output = self.device.shell("dumpsys window | grep mCurrentFocus")
        except RuntimeError as exc:
            logger.warning("Failed to query focused window: %s", exc)
            return None
        parsed = parse_focus(output or "")
        if parsed is None:
            return None
        package, activity = parsed
        return ForegroundWindowInfo(
            package=package,
            activity=activity,
            timestamp=datetime.now(timezone.utc),
        )
