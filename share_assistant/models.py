"""Data models shared by the detection and automation modules."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import List, Optional

_BOUNDS_PATTERN = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")


class FlowStep(IntEnum):
    """Progress through the accept-and-share dialog sequence."""

    IDLE = 0
    AWAITING_SHARE_DIALOG = 1
    AWAITING_CHOOSER = 2
    AWAITING_SHARE_CONFIRM = 3


class EventKind(str, Enum):
    WINDOW_STATE_CHANGED = "window-state-changed"
    WINDOW_CONTENT_CHANGED = "window-content-changed"
    VIEW_CLICKED = "view-clicked"
    VIEW_FOCUSED = "view-focused"


class NodeAction(str, Enum):
    CLICK = "click"
    LONG_CLICK = "long-click"
    FOCUS = "focus"
    ACCESSIBILITY_FOCUS = "accessibility-focus"


@dataclass(slots=True, frozen=True)
class Bounds:
    """Screen rectangle of a node, in device pixels."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def center(self) -> tuple[int, int]:
        return ((self.left + self.right) // 2, (self.top + self.bottom) // 2)

    @property
    def is_empty(self) -> bool:
        return self.right <= self.left or self.bottom <= self.top

    @classmethod
    def parse(cls, raw: str) -> "Bounds":
        """Parse the ``[l,t][r,b]`` notation used by hierarchy dumps."""

        match = _BOUNDS_PATTERN.fullmatch(raw.strip())
        if not match:
            raise ValueError(f"Malformed bounds: {raw!r}")
        return cls(*map(int, match.groups()))

    def __str__(self) -> str:
        return f"[{self.left},{self.top}][{self.right},{self.bottom}]"


EMPTY_BOUNDS = Bounds(0, 0, 0, 0)


@dataclass(slots=True, eq=False)
class UiNode:
    """Transient handle to one element of the active window tree.

    Handles compare by identity: two queries that reach the same element
    return two handles, each of which must be released. ``key`` identifies
    the logical element inside its tree.
    """

    key: str
    class_name: str = ""
    text: str = ""
    view_id: Optional[str] = None
    clickable: bool = False
    enabled: bool = True
    visible: bool = True
    bounds: Bounds = EMPTY_BOUNDS
    child_count: int = 0
    package: str = ""

    @property
    def caption(self) -> str:
        return self.text.strip()

    def describe(self) -> str:
        return (
            f"{self.class_name or '?'}(id={self.view_id}, text={self.caption!r}, "
            f"clickable={self.clickable}, enabled={self.enabled}, bounds={self.bounds})"
        )


@dataclass(slots=True)
class ChangeEvent:
    """A UI-change notification received from the platform."""

    source_id: str
    kind: EventKind
    ts: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class EvidenceReport:
    """Score and contributing signals for one dialog shape."""

    shape: str
    score: int
    threshold: int
    signals: List[str] = field(default_factory=list)

    @property
    def confirmed(self) -> bool:
        return self.score >= self.threshold

    def render_text(self) -> str:
        verdict = "confirmed" if self.confirmed else "rejected"
        joined = ", ".join(self.signals) or "none"
        return f"{self.shape}: {self.score}/{self.threshold} {verdict} ({joined})"


@dataclass(slots=True)
class FlowState:
    """Session record owned by one running service.

    Only the active processing cycle mutates it; counters may be read from
    other threads without locking.
    """

    step: FlowStep = FlowStep.IDLE
    last_activity_time: float = 0.0
    dialogs_detected: int = 0
    auto_accept_count: int = 0
    screen_shares_started: int = 0
    processing: bool = False
    _gate: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def try_begin(self) -> bool:
        """Claim the single processing slot without blocking."""

        if not self._gate.acquire(blocking=False):
            return False
        self.processing = True
        return True

    def finish(self) -> None:
        """Release the slot claimed by a successful :meth:`try_begin`."""

        self.processing = False
        self._gate.release()

    def advance(self, step: FlowStep, now: float) -> None:
        self.step = step
        self.touch(now)

    def touch(self, now: float) -> None:
        self.last_activity_time = now

    def reset(self, now: float | None = None) -> None:
        self.step = FlowStep.IDLE
        if now is not None:
            self.last_activity_time = now


@dataclass(slots=True, frozen=True)
class ServiceStats:
    """Read-only copy of the counters exposed for diagnostics."""

    enabled: bool
    step: FlowStep
    dialogs_detected: int
    auto_accept_count: int
    screen_shares_started: int
    processing: bool
