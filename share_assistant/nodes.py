"""Scoped access to the active window tree.

Every handle handed out by a :class:`Snapshot` is tracked and released when
the snapshot closes, whichever way the processing cycle exits. Callers may
release unselected handles early; releasing twice is harmless.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, List, Optional, Protocol, Union

from .errors import SnapshotBusyError
from .models import Bounds, NodeAction, UiNode

logger = logging.getLogger(__name__)

MAX_TRAVERSAL_NODES = 2000


class UiTree(Protocol):
    """Platform backend serving handles into the active window tree."""

    def root(self) -> Optional[UiNode]: ...

    def find_by_view_id(self, node: UiNode, view_id: str) -> List[UiNode]: ...

    def find_by_text(self, node: UiNode, text: str) -> List[UiNode]: ...

    def parent(self, node: UiNode) -> Optional[UiNode]: ...

    def children(self, node: UiNode) -> List[UiNode]: ...

    def perform(self, node: UiNode, action: NodeAction) -> bool: ...

    def recycle(self, node: UiNode) -> None: ...


class MatchKind(str, Enum):
    VIEW_ID = "view-id"
    TEXT = "text"
    STRUCTURE = "structure"
    BOUNDS = "bounds"


@dataclass(slots=True, frozen=True)
class NodePredicate:
    """Structural test over class name and interactivity flags."""

    class_contains: Optional[str] = None
    clickable: Optional[bool] = None
    enabled: Optional[bool] = None

    def matches(self, node: UiNode) -> bool:
        if self.class_contains and self.class_contains.lower() not in node.class_name.lower():
            return False
        if self.clickable is not None and node.clickable != self.clickable:
            return False
        if self.enabled is not None and node.enabled != self.enabled:
            return False
        return True


Pattern = Union[str, NodePredicate, Bounds]


@dataclass(slots=True, frozen=True)
class MatchCriteria:
    kind: MatchKind
    pattern: Pattern

    @classmethod
    def by_id(cls, view_id: str) -> "MatchCriteria":
        return cls(MatchKind.VIEW_ID, view_id)

    @classmethod
    def by_text(cls, text: str) -> "MatchCriteria":
        return cls(MatchKind.TEXT, text)

    @classmethod
    def by_structure(cls, predicate: NodePredicate) -> "MatchCriteria":
        return cls(MatchKind.STRUCTURE, predicate)

    @classmethod
    def by_bounds(cls, bounds: Bounds) -> "MatchCriteria":
        return cls(MatchKind.BOUNDS, bounds)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.pattern}"


class Snapshot:
    """Handle on the active window root for the duration of one cycle."""

    def __init__(self, tree: UiTree, root: UiNode, *, owner: "NodeAccess | None" = None) -> None:
        self._tree = tree
        self._owner = owner
        self._held: Dict[int, UiNode] = {}
        self._closed = False
        self.root = self._track(root)

    def __enter__(self) -> "Snapshot":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def outstanding(self) -> int:
        return len(self._held)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, criteria: MatchCriteria) -> List[UiNode]:
        """Return the nodes matching ``criteria`` in tree order."""

        self._ensure_open()
        if criteria.kind is MatchKind.VIEW_ID:
            found = self._tree.find_by_view_id(self.root, str(criteria.pattern))
            return [self._track(node) for node in found]
        if criteria.kind is MatchKind.TEXT:
            found = self._tree.find_by_text(self.root, str(criteria.pattern))
            return [self._track(node) for node in found]
        if criteria.kind is MatchKind.STRUCTURE:
            predicate = criteria.pattern
            assert isinstance(predicate, NodePredicate)
            return self._traverse(predicate.matches)
        bounds = criteria.pattern
        assert isinstance(bounds, Bounds)
        return self._traverse(lambda node: node.bounds == bounds)

    def first(self, criteria: MatchCriteria) -> Optional[UiNode]:
        """Return the first match and release the rest."""

        nodes = self.query(criteria)
        if not nodes:
            return None
        for extra in nodes[1:]:
            self.release(extra)
        return nodes[0]

    def parent(self, node: UiNode) -> Optional[UiNode]:
        self._ensure_open()
        found = self._tree.parent(node)
        return self._track(found) if found is not None else None

    def children(self, node: UiNode) -> List[UiNode]:
        self._ensure_open()
        return [self._track(child) for child in self._tree.children(node)]

    def find_text(self, node: UiNode, text: str) -> List[UiNode]:
        """Descendants of ``node`` whose text contains ``text``, ignoring case."""

        self._ensure_open()
        return [self._track(found) for found in self._tree.find_by_text(node, text)]

    def perform(self, node: UiNode, action: NodeAction) -> bool:
        self._ensure_open()
        return bool(self._tree.perform(node, action))

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def release(self, node: Optional[UiNode]) -> None:
        """Release one handle. Unknown or already released handles are ignored."""

        if node is None or node is self.root:
            return
        if self._held.pop(id(node), None) is None:
            return
        self._recycle(node)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        held = list(self._held.values())
        self._held.clear()
        for node in held:
            self._recycle(node)
        if self._owner is not None:
            self._owner._snapshot_closed(self)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _track(self, node: UiNode) -> UiNode:
        self._held[id(node)] = node
        return node

    def _recycle(self, node: UiNode) -> None:
        try:
            self._tree.recycle(node)
        except Exception as exc:  # stale handles are expected here
            logger.debug("Ignoring release failure for %s: %s", node.key, exc)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Snapshot already closed")

    def _traverse(self, predicate) -> List[UiNode]:
        """Breadth-first walk from the root collecting matches."""

        matches: List[UiNode] = []
        queue: Deque[UiNode] = deque([self.root])
        visited = 0
        while queue and visited < MAX_TRAVERSAL_NODES:
            current = queue.popleft()
            visited += 1
            queue.extend(self.children(current))
            if predicate(current):
                matches.append(current)
            else:
                self.release(current)
        for pending in queue:
            self.release(pending)
        return matches


class NodeAccess:
    """Hands out at most one live :class:`Snapshot` at a time."""

    def __init__(self, tree: UiTree) -> None:
        self.tree = tree
        self._live: Optional[Snapshot] = None

    def acquire(self) -> Optional[Snapshot]:
        if self._live is not None and not self._live.closed:
            raise SnapshotBusyError("A snapshot is already open for this window")
        root = self.tree.root()
        if root is None:
            logger.debug("No active window root available")
            return None
        self._live = Snapshot(self.tree, root, owner=self)
        return self._live

    def _snapshot_closed(self, snapshot: Snapshot) -> None:
        if self._live is snapshot:
            self._live = None


def read_selector_caption(snapshot: Snapshot, selector: UiNode) -> str:
    """Return the caption shown by a selector, taken from its first child with text."""

    if selector.caption:
        return selector.caption
    caption = ""
    for child in snapshot.children(selector):
        if not caption:
            caption = child.caption
        snapshot.release(child)
    return caption
