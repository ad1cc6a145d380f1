"""Runtime configuration for the assistant service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import FrozenSet, Optional

from .models import EventKind

SOURCE_PACKAGE = "com.anydesk.anydeskandroid"
COMPANION_PACKAGE = "com.android.systemui"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_kinds(name: str, default: FrozenSet[EventKind]) -> FrozenSet[EventKind]:
    raw = os.getenv(name)
    if not raw:
        return default
    return frozenset(EventKind(part.strip()) for part in raw.split(",") if part.strip())


@dataclass(slots=True, frozen=True)
class ServiceConfig:
    """Timing, filtering and device settings for one service instance."""

    source_package: str = SOURCE_PACKAGE
    companion_package: str = COMPANION_PACKAGE
    min_process_interval: float = 0.8
    settle_delay: float = 0.4
    source_render_delay: float = 0.3
    companion_render_delay: float = 0.5
    retry_delay: float = 0.5
    confirm_retry_delay: float = 1.0
    click_settle_delay: float = 0.05
    focus_settle_delay: float = 0.1
    stuck_timeout: float = 30.0
    trigger_kinds: FrozenSet[EventKind] = field(
        default_factory=lambda: frozenset({EventKind.WINDOW_STATE_CHANGED})
    )
    adb_host: str = "127.0.0.1"
    adb_port: int = 5037
    device_serial: Optional[str] = None
    capture_dir: Optional[Path] = None

    @property
    def monitored_packages(self) -> FrozenSet[str]:
        return frozenset({self.source_package, self.companion_package})

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        base = cls()
        capture = os.getenv("SHARE_ASSISTANT_CAPTURE_DIR")
        return cls(
            source_package=os.getenv("SHARE_ASSISTANT_SOURCE_PACKAGE", base.source_package),
            companion_package=os.getenv("SHARE_ASSISTANT_COMPANION_PACKAGE", base.companion_package),
            min_process_interval=_env_float("SHARE_ASSISTANT_MIN_INTERVAL", base.min_process_interval),
            settle_delay=_env_float("SHARE_ASSISTANT_SETTLE_DELAY", base.settle_delay),
            source_render_delay=base.source_render_delay,
            companion_render_delay=base.companion_render_delay,
            retry_delay=base.retry_delay,
            confirm_retry_delay=base.confirm_retry_delay,
            click_settle_delay=base.click_settle_delay,
            focus_settle_delay=base.focus_settle_delay,
            stuck_timeout=_env_float("SHARE_ASSISTANT_STUCK_TIMEOUT", base.stuck_timeout),
            trigger_kinds=_env_kinds("SHARE_ASSISTANT_TRIGGER_KINDS", base.trigger_kinds),
            adb_host=os.getenv("SHARE_ASSISTANT_ADB_HOST", base.adb_host),
            adb_port=_env_int("SHARE_ASSISTANT_ADB_PORT", base.adb_port),
            device_serial=os.getenv("SHARE_ASSISTANT_DEVICE_SERIAL") or None,
            capture_dir=Path(capture).expanduser() if capture else None,
        )

    def without_delays(self) -> "ServiceConfig":
        """Copy with every sleep removed; used by synchronous drivers and tests."""

        return replace(
            self,
            settle_delay=0.0,
            source_render_delay=0.0,
            companion_render_delay=0.0,
            click_settle_delay=0.0,
            focus_settle_delay=0.0,
        )
