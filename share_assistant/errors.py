"""Exception hierarchy for Share Assistant."""

from __future__ import annotations


class ShareAssistantError(Exception):
    """Base class for errors raised by this package."""


class SnapshotBusyError(ShareAssistantError):
    """Raised when a snapshot is requested while another one is still open."""


class DeviceUnavailableError(ShareAssistantError):
    """Raised when no device can be reached through the debug bridge."""
