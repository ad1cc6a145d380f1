"""Live Share Assistant monitor driven by the device's focused window."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional

from share_assistant.adb_backend import AdbUiTree, connect_device
from share_assistant.config import ServiceConfig
from share_assistant.errors import DeviceUnavailableError
from share_assistant.foreground import ForegroundWindowInfo, ForegroundWindowProvider
from share_assistant.models import EventKind
from share_assistant.reporting import stats_report
from share_assistant.screen_capture import DeviceCapturer
from share_assistant.service import AssistantService

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> ServiceConfig:
    config = ServiceConfig.from_env()
    overrides = {
        "adb_host": args.host or config.adb_host,
        "adb_port": args.port or config.adb_port,
        "device_serial": args.serial or config.device_serial,
        "capture_dir": Path(args.capture_dir).expanduser() if args.capture_dir else config.capture_dir,
    }
    return replace(config, **overrides)


def print_toast(message: str) -> None:
    print(f"[notice] {message}")


def monitor_loop(service: AssistantService, provider: ForegroundWindowProvider, *, interval: float, poll: bool) -> None:
    """Emit window-state notifications whenever the focused window changes."""

    last_signature: Optional[tuple[str, str]] = None
    monitored = service.config.monitored_packages
    try:
        while True:
            info: Optional[ForegroundWindowInfo] = provider.current()
            if info is None:
                time.sleep(interval)
                continue
            changed = info.signature != last_signature
            last_signature = info.signature
            if changed:
                logger.info("Focused window: %s", info.label)
            if info.package in monitored and (changed or poll):
                service.on_change(info.package, EventKind.WINDOW_STATE_CHANGED)
            time.sleep(interval)
    except KeyboardInterrupt:
        print("\nStopped monitoring.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Share Assistant live monitor")
    parser.add_argument("--interval", type=float, default=0.5, help="Polling interval in seconds")
    parser.add_argument("--host", default=None, help="ADB server host")
    parser.add_argument("--port", type=int, default=None, help="ADB server port")
    parser.add_argument("--serial", default=None, help="Device serial when several are attached")
    parser.add_argument("--capture-dir", default=None, help="Save a screenshot here when a click fails")
    parser.add_argument(
        "--poll",
        action="store_true",
        help="Re-check a monitored window every interval even when focus did not change",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = build_config(args)
    try:
        device = connect_device(config.adb_host, config.adb_port, config.device_serial)
    except DeviceUnavailableError as exc:
        sys.stderr.write(f"{exc}\n")
        sys.exit(1)

    capturer = DeviceCapturer(device, output_dir=config.capture_dir) if config.capture_dir else None
    service = AssistantService(AdbUiTree(device), config, notifier=print_toast, on_failure=capturer)
    service.start()
    try:
        monitor_loop(
            service,
            ForegroundWindowProvider(device),
            interval=max(0.1, args.interval),
            poll=args.poll,
        )
    finally:
        service.destroy()
        print(stats_report(service.stats()).render_text())


if __name__ == "__main__":
    main()
