"""Matcher tables for the supported dialogs.

Identifiers, captions and layouts differ between application versions and
locales, so every lookup is described here as data. New UI variants are
supported by adding entries, not code paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from .models import Bounds, UiNode
from .nodes import MatchCriteria, NodePredicate

# Source application (incoming connection dialog)
DIALOG_TITLE_ID = "com.anydesk.anydeskandroid:id/dialog_accept_title_text"
DIALOG_MSG_ID = "com.anydesk.anydeskandroid:id/dialog_accept_msg"
PERMISSION_PROFILE_ID = "com.anydesk.anydeskandroid:id/dialog_accept_profiles_list"
PERMISSIONS_TITLE_ID = "com.anydesk.anydeskandroid:id/dialog_accept_permissions_title"
PERMISSIONS_CONTAINER_ID = "com.anydesk.anydeskandroid:id/dialog_accept_permissions_container"
ADDRESS_TEXT_ID = "com.anydesk.anydeskandroid:id/dialog_accept_address"
ALIAS_TEXT_ID = "com.anydesk.anydeskandroid:id/dialog_accept_alias"

# Platform dialog buttons, shared by both applications
BUTTON_POSITIVE_ID = "android:id/button1"
BUTTON_NEGATIVE_ID = "android:id/button2"

# Companion application (screen share permission flow)
SHARE_SCREEN_DIALOG_ID = "com.android.systemui:id/screen_share_permission_dialog"
SHARE_SCREEN_TITLE_ID = "com.android.systemui:id/screen_share_dialog_title"
SHARE_SCREEN_MODE_OPTIONS_ID = "com.android.systemui:id/screen_share_mode_options"

# Last-known geometry on the reference device. Resolution specific.
CHOOSER_BOUNDS = Bounds(89, 1021, 991, 1399)
ENTIRE_SCREEN_OPTION_BOUNDS = Bounds(89, 1210, 991, 1399)

ACCEPT_BUTTON = "accept-button"
DISMISS_BUTTON = "dismiss-button"
MODE_SPINNER = "mode-spinner"
ENTIRE_SCREEN_OPTION = "entire-screen-option"
CONFIRM_BUTTON = "confirm-button"

INCOMING_CONNECTION = "incoming-connection"
SHARE_DIALOG = "share-dialog"
SHARE_CHOOSER = "share-chooser"
SHARE_CONFIRM = "share-confirm"


class CaptionMatch(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"


def caption_matches(text: str, captions: Tuple[str, ...], mode: CaptionMatch) -> bool:
    """Case-insensitive comparison of ``text`` against an allow-list."""

    if not captions:
        return True
    value = text.strip().lower()
    if mode is CaptionMatch.EXACT:
        return any(value == caption.lower() for caption in captions)
    return any(caption.lower() in value for caption in captions)


@dataclass(slots=True, frozen=True)
class Strategy:
    """One way of finding the element that plays a role."""

    criteria: MatchCriteria
    captions: Tuple[str, ...] = ()
    caption_match: CaptionMatch = CaptionMatch.EXACT
    require_clickable: bool = True
    require_enabled: bool = False
    class_contains: Optional[str] = None
    climb: bool = False
    fragile: bool = False

    def caption_ok(self, node: UiNode) -> bool:
        return caption_matches(node.text, self.captions, self.caption_match)

    def interactive_ok(self, node: UiNode) -> bool:
        if self.require_clickable and not node.clickable:
            return False
        if self.require_enabled and not node.enabled:
            return False
        if self.class_contains and self.class_contains.lower() not in node.class_name.lower():
            return False
        return True


ROLE_STRATEGIES: Dict[str, Tuple[Strategy, ...]] = {
    ACCEPT_BUTTON: (
        Strategy(
            MatchCriteria.by_id(BUTTON_POSITIVE_ID),
            captions=("ACCEPT", "ALLOW", "OK"),
            require_enabled=True,
        ),
        Strategy(
            MatchCriteria.by_text("ACCEPT"),
            captions=("ACCEPT",),
            require_enabled=True,
            climb=True,
        ),
    ),
    DISMISS_BUTTON: (
        Strategy(
            MatchCriteria.by_id(BUTTON_NEGATIVE_ID),
            captions=("DISMISS", "DENY", "CANCEL"),
            require_enabled=True,
        ),
        Strategy(
            MatchCriteria.by_text("DISMISS"),
            captions=("DISMISS",),
            require_enabled=True,
            climb=True,
        ),
    ),
    MODE_SPINNER: (
        Strategy(MatchCriteria.by_id(SHARE_SCREEN_MODE_OPTIONS_ID)),
        Strategy(
            MatchCriteria.by_structure(NodePredicate(class_contains="Spinner", clickable=True, enabled=True)),
        ),
    ),
    ENTIRE_SCREEN_OPTION: (
        Strategy(
            MatchCriteria.by_text("Share entire screen"),
            captions=("Share entire screen",),
            caption_match=CaptionMatch.CONTAINS,
            climb=True,
        ),
        Strategy(MatchCriteria.by_bounds(ENTIRE_SCREEN_OPTION_BOUNDS), fragile=True),
    ),
    CONFIRM_BUTTON: (
        Strategy(
            MatchCriteria.by_id(BUTTON_POSITIVE_ID),
            captions=("Share screen", "Share", "Start"),
        ),
        Strategy(
            MatchCriteria.by_text("Share screen"),
            captions=("Share screen",),
            class_contains="Button",
        ),
        Strategy(
            MatchCriteria.by_text("Share"),
            captions=("Share",),
            caption_match=CaptionMatch.CONTAINS,
            class_contains="Button",
        ),
    ),
}


@dataclass(slots=True, frozen=True)
class Probe:
    """One observable fact: a query, a role lookup, or a selector caption."""

    criteria: Optional[MatchCriteria] = None
    role: Optional[str] = None
    captions: Tuple[str, ...] = ()
    caption_match: CaptionMatch = CaptionMatch.CONTAINS
    read_selector: bool = False
    child_count: Optional[int] = None
    child_text: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Signal:
    """Weighted evidence; probes are alternatives unless ``require_all``."""

    name: str
    weight: int
    probes: Tuple[Probe, ...]
    require_all: bool = False


@dataclass(slots=True, frozen=True)
class DialogShape:
    name: str
    threshold: int
    signals: Tuple[Signal, ...]


_SPINNER_PRESENT = NodePredicate(class_contains="Spinner")

_SHARE_DIALOG_SIGNAL = Signal(
    "dialog",
    2,
    (
        Probe(MatchCriteria.by_id(SHARE_SCREEN_DIALOG_ID)),
        Probe(MatchCriteria.by_id(SHARE_SCREEN_TITLE_ID), captions=("Share your screen",)),
        Probe(MatchCriteria.by_text("Share your screen"), captions=("Share your screen",)),
    ),
)

SHAPES: Dict[str, DialogShape] = {
    INCOMING_CONNECTION: DialogShape(
        INCOMING_CONNECTION,
        4,
        (
            Signal(
                "title",
                2,
                (
                    Probe(
                        MatchCriteria.by_id(DIALOG_TITLE_ID),
                        captions=("Incoming connection request", "Incoming session", "incoming"),
                    ),
                    Probe(
                        MatchCriteria.by_text("Incoming connection request"),
                        captions=("Incoming connection request",),
                    ),
                ),
            ),
            Signal(
                "message",
                2,
                (
                    Probe(
                        MatchCriteria.by_id(DIALOG_MSG_ID),
                        captions=("would like to", "view your desk", "connect to"),
                    ),
                ),
            ),
            Signal(
                "address",
                1,
                (Probe(MatchCriteria.by_id(ADDRESS_TEXT_ID)), Probe(MatchCriteria.by_id(ALIAS_TEXT_ID))),
            ),
            Signal(
                "permissions",
                1,
                (
                    Probe(MatchCriteria.by_id(PERMISSIONS_TITLE_ID)),
                    Probe(MatchCriteria.by_id(PERMISSIONS_CONTAINER_ID)),
                ),
            ),
            Signal(
                "accept-and-dismiss",
                3,
                (Probe(role=ACCEPT_BUTTON), Probe(role=DISMISS_BUTTON)),
                require_all=True,
            ),
            Signal("profile-selector", 1, (Probe(MatchCriteria.by_id(PERMISSION_PROFILE_ID)),)),
        ),
    ),
    SHARE_DIALOG: DialogShape(
        SHARE_DIALOG,
        4,
        (
            _SHARE_DIALOG_SIGNAL,
            Signal(
                "mode-selector",
                2,
                (
                    Probe(MatchCriteria.by_id(SHARE_SCREEN_MODE_OPTIONS_ID)),
                    Probe(MatchCriteria.by_structure(_SPINNER_PRESENT)),
                ),
            ),
        ),
    ),
    SHARE_CHOOSER: DialogShape(
        SHARE_CHOOSER,
        4,
        (
            Signal("entire-screen-option", 2, (Probe(MatchCriteria.by_text("Share entire screen")),)),
            Signal("one-app-option", 2, (Probe(MatchCriteria.by_text("Share one app")),)),
            Signal(
                "option-list",
                1,
                (
                    Probe(
                        MatchCriteria.by_structure(NodePredicate(class_contains="ListView")),
                        child_count=2,
                        child_text="Share",
                    ),
                    Probe(MatchCriteria.by_bounds(CHOOSER_BOUNDS)),
                ),
            ),
        ),
    ),
    SHARE_CONFIRM: DialogShape(
        SHARE_CONFIRM,
        4,
        (
            _SHARE_DIALOG_SIGNAL,
            Signal(
                "entire-screen-selected",
                2,
                (
                    Probe(
                        MatchCriteria.by_id(SHARE_SCREEN_MODE_OPTIONS_ID),
                        captions=("entire screen",),
                        read_selector=True,
                    ),
                    Probe(
                        MatchCriteria.by_structure(_SPINNER_PRESENT),
                        captions=("entire screen",),
                        read_selector=True,
                    ),
                ),
            ),
        ),
    ),
}
