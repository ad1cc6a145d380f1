"""Window tree backend for a device reached over the Android debug bridge.

The hierarchy is pulled with ``uiautomator dump`` once per snapshot and
served from memory. Clicks are injected as taps at the node centre; focus
actions cannot be expressed over the bridge and report failure.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional

from ppadb.client import Client as AdbClient

from .errors import DeviceUnavailableError
from .models import EMPTY_BOUNDS, Bounds, NodeAction, UiNode

logger = logging.getLogger(__name__)

DUMP_PATH = "/sdcard/window_dump.xml"
LONG_PRESS_MS = 600


def connect_device(host: str = "127.0.0.1", port: int = 5037, serial: str | None = None):
    """Return a ppadb device, preferring ``serial`` when given."""

    client = AdbClient(host=host, port=port)
    try:
        if serial:
            device = client.device(serial)
        else:
            devices = client.devices()
            device = devices[0] if devices else None
    except RuntimeError as exc:
        raise DeviceUnavailableError(f"ADB server unreachable at {host}:{port}: {exc}") from exc
    if device is None:
        raise DeviceUnavailableError(f"No device connected (serial={serial or 'any'})")
    logger.info("Connected to device %s", device.serial)
    return device


def _flag(attrs: Dict[str, str], name: str, default: bool = False) -> bool:
    raw = attrs.get(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


@dataclass(slots=True, eq=False)
class DumpElement:
    """One parsed element of a hierarchy dump."""

    key: str
    attrs: Dict[str, str]
    parent: Optional["DumpElement"] = None
    children: List["DumpElement"] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.attrs.get("text", "")

    @property
    def description(self) -> str:
        return self.attrs.get("content-desc", "")

    @property
    def view_id(self) -> Optional[str]:
        return self.attrs.get("resource-id") or None

    def iter_subtree(self) -> Iterator["DumpElement"]:
        queue: Deque[DumpElement] = deque([self])
        while queue:
            current = queue.popleft()
            yield current
            queue.extend(current.children)

    def to_node(self) -> UiNode:
        raw_bounds = self.attrs.get("bounds", "")
        try:
            bounds = Bounds.parse(raw_bounds) if raw_bounds else EMPTY_BOUNDS
        except ValueError:
            bounds = EMPTY_BOUNDS
        return UiNode(
            key=self.key,
            class_name=self.attrs.get("class", ""),
            text=self.text,
            view_id=self.view_id,
            clickable=_flag(self.attrs, "clickable"),
            enabled=_flag(self.attrs, "enabled", True),
            visible=_flag(self.attrs, "visible-to-user", True),
            bounds=bounds,
            child_count=len(self.children),
            package=self.attrs.get("package", ""),
        )


def parse_hierarchy(xml_text: str) -> DumpElement:
    """Parse ``uiautomator dump`` output into a tree of :class:`DumpElement`."""

    root = ET.fromstring(xml_text)
    top = DumpElement(key="0", attrs=dict(root.attrib))
    top.attrs.setdefault("class", root.tag)
    pending: Deque[tuple[ET.Element, DumpElement]] = deque([(root, top)])
    while pending:
        xml_node, element = pending.popleft()
        for index, child in enumerate(xml_node.findall("node")):
            parsed = DumpElement(key=f"{element.key}.{index}", attrs=dict(child.attrib), parent=element)
            element.children.append(parsed)
            pending.append((child, parsed))
    return top


class AdbUiTree:
    """Serves :class:`UiNode` handles from the latest hierarchy dump."""

    def __init__(self, device, *, dump_path: str = DUMP_PATH, long_press_ms: int = LONG_PRESS_MS) -> None:
        self.device = device
        self.dump_path = dump_path
        self.long_press_ms = long_press_ms
        self._elements: Dict[str, DumpElement] = {}
        self._issued: set[int] = set()

    @property
    def outstanding(self) -> int:
        return len(self._issued)

    def root(self) -> Optional[UiNode]:
        xml_text = self._dump()
        if not xml_text:
            return None
        try:
            top = parse_hierarchy(xml_text)
        except ET.ParseError as exc:
            logger.warning("Unreadable hierarchy dump: %s", exc)
            return None
        self._elements = {element.key: element for element in top.iter_subtree()}
        return self._issue(top)

    def find_by_view_id(self, node: UiNode, view_id: str) -> List[UiNode]:
        return [self._issue(el) for el in self._element(node).iter_subtree() if el.view_id == view_id]

    def find_by_text(self, node: UiNode, text: str) -> List[UiNode]:
        needle = text.lower()
        return [
            self._issue(el)
            for el in self._element(node).iter_subtree()
            if needle in el.text.lower() or needle in el.description.lower()
        ]

    def parent(self, node: UiNode) -> Optional[UiNode]:
        parent = self._element(node).parent
        return self._issue(parent) if parent is not None else None

    def children(self, node: UiNode) -> List[UiNode]:
        return [self._issue(child) for child in self._element(node).children]

    def perform(self, node: UiNode, action: NodeAction) -> bool:
        if node.bounds.is_empty or not node.visible:
            return False
        x, y = node.bounds.center
        if action is NodeAction.CLICK:
            self.device.shell(f"input tap {x} {y}")
            return True
        if action is NodeAction.LONG_CLICK:
            self.device.shell(f"input swipe {x} {y} {x} {y} {self.long_press_ms}")
            return True
        logger.debug("%s is not available over adb", action.value)
        return False

    def recycle(self, node: UiNode) -> None:
        try:
            self._issued.remove(id(node))
        except KeyError:
            raise ValueError(f"Handle {node.key} already recycled") from None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dump(self) -> str:
        self.device.shell(f"uiautomator dump {self.dump_path}")
        raw = self.device.shell(f"cat {self.dump_path}")
        if not raw or "<hierarchy" not in raw:
            logger.debug("Empty hierarchy dump")
            return ""
        return raw[raw.index("<") :]

    def _element(self, node: UiNode) -> DumpElement:
        try:
            return self._elements[node.key]
        except KeyError:
            raise LookupError(f"Stale handle {node.key}") from None

    def _issue(self, element: DumpElement) -> UiNode:
        node = element.to_node()
        self._issued.add(id(node))
        return node
