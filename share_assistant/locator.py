"""Multi-strategy lookup of the element that plays a semantic role."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from .matchers import ROLE_STRATEGIES, Strategy
from .models import UiNode
from .nodes import Snapshot

logger = logging.getLogger(__name__)

MAX_PARENT_DEPTH = 8


class NodeLocator:
    """Resolves roles such as ``accept-button`` against a snapshot.

    Strategies are tried in table order and the first hit wins. Handles that
    are not returned are released before ``locate`` returns.
    """

    def __init__(
        self,
        strategies: Dict[str, Tuple[Strategy, ...]] | None = None,
        *,
        max_parent_depth: int = MAX_PARENT_DEPTH,
    ) -> None:
        self.strategies = strategies or ROLE_STRATEGIES
        self.max_parent_depth = max_parent_depth

    def locate(self, snapshot: Snapshot, role: str) -> Optional[UiNode]:
        try:
            strategies = self.strategies[role]
        except KeyError:
            raise KeyError(f"Unknown role: {role}") from None
        for index, strategy in enumerate(strategies):
            found = self._apply(snapshot, strategy)
            if found is None:
                continue
            if strategy.fragile:
                logger.warning("%s matched only by fallback %s", role, strategy.criteria)
            else:
                logger.debug("%s found via strategy %d (%s): %s", role, index, strategy.criteria, found.describe())
            return found
        logger.debug("%s not present in current snapshot", role)
        return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply(self, snapshot: Snapshot, strategy: Strategy) -> Optional[UiNode]:
        candidates = snapshot.query(strategy.criteria)
        chosen: Optional[UiNode] = None
        for node in candidates:
            if chosen is None:
                chosen = self._accept(snapshot, node, strategy)
        for node in candidates:
            if node is not chosen:
                snapshot.release(node)
        return chosen

    def _accept(self, snapshot: Snapshot, node: UiNode, strategy: Strategy) -> Optional[UiNode]:
        if not strategy.caption_ok(node):
            return None
        if strategy.interactive_ok(node):
            return node
        if not strategy.climb:
            return None
        return self._interactive_ancestor(snapshot, node, strategy)

    def _interactive_ancestor(self, snapshot: Snapshot, node: UiNode, strategy: Strategy) -> Optional[UiNode]:
        """Walk up from ``node``; the nearest interactive ancestor wins."""

        current = snapshot.parent(node)
        depth = 1
        while current is not None and depth <= self.max_parent_depth:
            if strategy.interactive_ok(current):
                logger.debug("Climbed %d level(s) from %s to %s", depth, node.key, current.key)
                return current
            parent = snapshot.parent(current)
            snapshot.release(current)
            current = parent
            depth += 1
        snapshot.release(current)
        return None
