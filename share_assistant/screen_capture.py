"""Utilities for saving device screenshots when an action fails."""

from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

try:  # pragma: no cover - optional dependency
    from PIL import Image  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    Image = None  # type: ignore


class DeviceCapturer:
    """Captures device screenshots to a local directory for diagnostics."""

    def __init__(
        self,
        device,
        *,
        output_dir: Path | str | None = None,
        prefix: str = "failure",
        image_format: str = "png",
    ) -> None:
        self.device = device
        self.output_dir = Path(output_dir) if output_dir else Path("captures")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self.image_format = self._resolve_format(image_format.lower())

    def capture(self, label: str = "") -> Optional[Path]:
        """Capture the current screen and return the saved file path."""

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        suffix = f"_{label}" if label else ""
        destination = self.output_dir / f"{self.prefix}{suffix}_{timestamp}.{self.image_format}"
        try:
            png_bytes = self.device.screencap()
        except RuntimeError as exc:
            logger.warning("Screen capture failed: %s", exc)
            return None
        if not png_bytes:
            logger.error("Device returned an empty screenshot")
            return None
        if self.image_format == "png":
            destination.write_bytes(png_bytes)
        else:
            with Image.open(io.BytesIO(png_bytes)) as image:
                image.convert("RGB").save(destination, format=self.image_format.upper())
        logger.info("Saved failure capture to %s", destination)
        return destination

    def __call__(self, role: str) -> None:
        self.capture(role)

    @staticmethod
    def _resolve_format(preferred: str) -> str:
        fmt = "jpeg" if preferred == "jpg" else (preferred or "png")
        if fmt != "png" and Image is None:
            logger.warning("Pillow is unavailable; saving captures as PNG")
            return "png"
        return fmt
