"""Click execution with escalating fallback strategies."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from .models import NodeAction, UiNode
from .nodes import Snapshot

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActionOutcome:
    status: str
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == "clicked"


class ActionExecutor:
    """Performs clicks on located nodes.

    Platform action failures are expected and retryable, so the executor
    reports them through its return value and never raises.
    """

    def __init__(
        self,
        *,
        settle_delay: float = 0.05,
        focus_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settle_delay = settle_delay
        self.focus_delay = focus_delay
        self._sleep = sleep

    def click(self, snapshot: Snapshot, node: UiNode, *, escalate: bool = False) -> bool:
        return self.execute(snapshot, node, escalate=escalate).succeeded

    def execute(self, snapshot: Snapshot, node: UiNode, *, escalate: bool = False) -> ActionOutcome:
        logger.debug("Clicking %s", node.describe())
        if self._perform(snapshot, node, NodeAction.CLICK):
            return ActionOutcome(status="clicked", detail="direct")
        if self._focus_then_click(snapshot, node, NodeAction.ACCESSIBILITY_FOCUS, self.settle_delay):
            return ActionOutcome(status="clicked", detail="accessibility-focus")
        if not escalate:
            logger.warning("All click methods failed for %s", node.describe())
            return ActionOutcome(status="failed", detail="direct and focus click refused")

        if self._perform(snapshot, node, NodeAction.LONG_CLICK):
            return ActionOutcome(status="clicked", detail="long-click")
        if self._focus_then_click(snapshot, node, NodeAction.FOCUS, self.focus_delay):
            return ActionOutcome(status="clicked", detail="input-focus")
        if self._click_parent(snapshot, node):
            return ActionOutcome(status="clicked", detail="parent")
        logger.warning("Escalated click exhausted for %s", node.describe())
        return ActionOutcome(status="failed", detail="all strategies exhausted")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _perform(self, snapshot: Snapshot, node: UiNode, action: NodeAction) -> bool:
        try:
            return snapshot.perform(node, action)
        except Exception as exc:
            logger.debug("%s on %s raised: %s", action.value, node.key, exc)
            return False

    def _focus_then_click(self, snapshot: Snapshot, node: UiNode, focus: NodeAction, delay: float) -> bool:
        if not self._perform(snapshot, node, focus):
            return False
        if delay > 0:
            self._sleep(delay)
        return self._perform(snapshot, node, NodeAction.CLICK)

    def _click_parent(self, snapshot: Snapshot, node: UiNode) -> bool:
        try:
            parent = snapshot.parent(node)
        except Exception as exc:
            logger.debug("Parent lookup for %s raised: %s", node.key, exc)
            return False
        if parent is None:
            return False
        try:
            if not parent.clickable:
                return False
            logger.debug("Delegating click to parent %s", parent.describe())
            if self._perform(snapshot, parent, NodeAction.CLICK):
                return True
            return self._focus_then_click(snapshot, parent, NodeAction.ACCESSIBILITY_FOCUS, self.settle_delay)
        finally:
            snapshot.release(parent)
