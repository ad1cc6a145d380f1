"""In-memory window trees and test doubles shared by the test modules."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from share_assistant import matchers
from share_assistant.models import EMPTY_BOUNDS, Bounds, NodeAction, UiNode


@dataclass(eq=False)
class FakeElement:
    class_name: str = "android.view.View"
    text: str = ""
    view_id: Optional[str] = None
    clickable: bool = False
    enabled: bool = True
    bounds: Bounds = EMPTY_BOUNDS
    children: List["FakeElement"] = field(default_factory=list)
    refuse: frozenset = frozenset()
    focus_required: bool = False
    focused: bool = False
    parent: Optional["FakeElement"] = None
    key: str = ""


def el(class_name: str = "android.view.View", text: str = "", *children: FakeElement, **kwargs) -> FakeElement:
    refuse = kwargs.pop("refuse", ())
    return FakeElement(class_name=class_name, text=text, children=list(children), refuse=frozenset(refuse), **kwargs)


def button(text: str, view_id: Optional[str] = None, **kwargs) -> FakeElement:
    kwargs.setdefault("clickable", True)
    return el("android.widget.Button", text, view_id=view_id, **kwargs)


def label(text: str, view_id: Optional[str] = None, **kwargs) -> FakeElement:
    return el("android.widget.TextView", text, view_id=view_id, **kwargs)


class FakeTree:
    """UiTree backend over :class:`FakeElement` trees with handle accounting."""

    def __init__(self, root: Optional[FakeElement] = None) -> None:
        self.issued = 0
        self.recycled = 0
        self.performed: List[tuple[str, NodeAction]] = []
        self.raise_on: Dict[str, Exception] = {}
        self.on_root: Optional[Callable[[], None]] = None
        self._live: set[int] = set()
        self._lock = threading.Lock()
        self._elements: Dict[str, FakeElement] = {}
        self._root: Optional[FakeElement] = None
        self.show(root)

    def show(self, root: Optional[FakeElement]) -> None:
        """Replace the window content served to the next snapshot."""

        self._root = root
        self._elements = {}
        if root is not None:
            self._index(root, "0", None)

    @property
    def outstanding(self) -> int:
        return len(self._live)

    def element(self, key: str) -> FakeElement:
        return self._elements[key]

    def actions_on(self, text: str) -> List[NodeAction]:
        return [action for key, action in self.performed if self._elements[key].text == text]

    # UiTree protocol -------------------------------------------------

    def root(self) -> Optional[UiNode]:
        if self.on_root is not None:
            self.on_root()
        self._maybe_raise("root")
        if self._root is None:
            return None
        return self._issue(self._root)

    def find_by_view_id(self, node: UiNode, view_id: str) -> List[UiNode]:
        self._maybe_raise("find_by_view_id")
        return [self._issue(e) for e in self._subtree(node) if e.view_id == view_id]

    def find_by_text(self, node: UiNode, text: str) -> List[UiNode]:
        self._maybe_raise("find_by_text")
        needle = text.lower()
        return [self._issue(e) for e in self._subtree(node) if needle in e.text.lower()]

    def parent(self, node: UiNode) -> Optional[UiNode]:
        self._maybe_raise("parent")
        parent = self._elements[node.key].parent
        return self._issue(parent) if parent is not None else None

    def children(self, node: UiNode) -> List[UiNode]:
        self._maybe_raise("children")
        return [self._issue(child) for child in self._elements[node.key].children]

    def perform(self, node: UiNode, action: NodeAction) -> bool:
        self._maybe_raise("perform")
        element = self._elements[node.key]
        self.performed.append((node.key, action))
        if action in element.refuse:
            return False
        if action in (NodeAction.FOCUS, NodeAction.ACCESSIBILITY_FOCUS):
            element.focused = True
            return True
        if action is NodeAction.CLICK and element.focus_required and not element.focused:
            return False
        return True

    def recycle(self, node: UiNode) -> None:
        with self._lock:
            if id(node) not in self._live:
                raise ValueError(f"{node.key} already recycled")
            self._live.remove(id(node))
            self.recycled += 1

    # helpers ---------------------------------------------------------

    def _index(self, element: FakeElement, key: str, parent: Optional[FakeElement]) -> None:
        element.key = key
        element.parent = parent
        self._elements[key] = element
        for index, child in enumerate(element.children):
            self._index(child, f"{key}.{index}", element)

    def _subtree(self, node: UiNode):
        stack = [self._elements[node.key]]
        while stack:
            current = stack.pop(0)
            yield current
            stack.extend(current.children)

    def _issue(self, element: FakeElement) -> UiNode:
        node = UiNode(
            key=element.key,
            class_name=element.class_name,
            text=element.text,
            view_id=element.view_id,
            clickable=element.clickable,
            enabled=element.enabled,
            bounds=element.bounds,
            child_count=len(element.children),
        )
        with self._lock:
            self._live.add(id(node))
            self.issued += 1
        return node

    def _maybe_raise(self, method: str) -> None:
        exc = self.raise_on.get(method)
        if exc is not None:
            raise exc


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTasks:
    """DeferredTasks stand-in that runs work only when asked."""

    def __init__(self) -> None:
        self.pending: Dict[str, tuple[float, Callable[[], None]]] = {}
        self.scheduled: List[str] = []

    def schedule(self, purpose: str, delay: float, fn: Callable[[], None]) -> None:
        self.pending[purpose] = (delay, fn)
        self.scheduled.append(purpose)

    def cancel(self, purpose: str) -> bool:
        return self.pending.pop(purpose, None) is not None

    def cancel_all(self) -> None:
        self.pending.clear()

    def is_pending(self, purpose: str) -> bool:
        return purpose in self.pending

    def run(self, purpose: str) -> None:
        _, fn = self.pending.pop(purpose)
        fn()


# ----------------------------------------------------------------------
# Screens
# ----------------------------------------------------------------------


def incoming_dialog(*, accept_text: str = "ACCEPT", with_dismiss: bool = True) -> FakeElement:
    children = [
        label("Incoming connection request", matchers.DIALOG_TITLE_ID),
        label("123 456 789", matchers.ADDRESS_TEXT_ID),
        button(accept_text, matchers.BUTTON_POSITIVE_ID),
    ]
    if with_dismiss:
        children.append(button("DISMISS", matchers.BUTTON_NEGATIVE_ID))
    return el("android.widget.FrameLayout", "", *children)


def share_dialog(selected: str = "Share one app", *, confirm_text: str = "Next") -> FakeElement:
    spinner = el(
        "android.widget.Spinner",
        "",
        label(selected, "android:id/text1"),
        view_id=matchers.SHARE_SCREEN_MODE_OPTIONS_ID,
        clickable=True,
    )
    return el(
        "android.widget.FrameLayout",
        "",
        label("Share your screen", matchers.SHARE_SCREEN_TITLE_ID),
        spinner,
        button("Cancel", matchers.BUTTON_NEGATIVE_ID),
        button(confirm_text, matchers.BUTTON_POSITIVE_ID),
        view_id=matchers.SHARE_SCREEN_DIALOG_ID,
    )


def chooser_item(text: str, **kwargs) -> FakeElement:
    kwargs.setdefault("clickable", True)
    return el(
        "android.widget.LinearLayout",
        "",
        el("android.widget.LinearLayout", "", label(text, "android:id/text1")),
        **kwargs,
    )


def share_chooser() -> FakeElement:
    return el(
        "android.widget.FrameLayout",
        "",
        el(
            "android.widget.ListView",
            "",
            chooser_item("Share one app", bounds=Bounds(89, 1021, 991, 1210)),
            chooser_item("Share entire screen", bounds=matchers.ENTIRE_SCREEN_OPTION_BOUNDS),
        ),
    )
