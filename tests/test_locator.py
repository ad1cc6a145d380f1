import pytest

from share_assistant import matchers
from share_assistant.locator import NodeLocator
from share_assistant.models import Bounds
from share_assistant.nodes import NodeAccess

from fakes import FakeTree, button, chooser_item, el, incoming_dialog, label, share_chooser, share_dialog


def _locate(root, role):
    tree = FakeTree(root)
    with NodeAccess(tree).acquire() as snapshot:
        node = NodeLocator().locate(snapshot, role)
        held = snapshot.outstanding
    assert tree.outstanding == 0
    return node, held


def test_accept_button_by_identifier():
    node, held = _locate(incoming_dialog(), matchers.ACCEPT_BUTTON)
    assert node.text == "ACCEPT"
    assert held == 2  # root plus the returned node


def test_identifier_reuse_with_foreign_caption_is_rejected():
    root = el("android.widget.FrameLayout", "", button("Open settings", matchers.BUTTON_POSITIVE_ID))
    node, _ = _locate(root, matchers.ACCEPT_BUTTON)
    assert node is None


def test_disabled_button_is_not_selected():
    root = el("android.widget.FrameLayout", "", button("ACCEPT", matchers.BUTTON_POSITIVE_ID, enabled=False))
    node, _ = _locate(root, matchers.ACCEPT_BUTTON)
    assert node is None


def test_accept_button_by_text_when_identifier_changed():
    root = el("android.widget.FrameLayout", "", button("Accept", "com.other:id/positive"))
    node, _ = _locate(root, matchers.ACCEPT_BUTTON)
    assert node is not None
    assert node.view_id == "com.other:id/positive"


def test_entire_screen_option_climbs_to_clickable_grandparent():
    tree = FakeTree(share_chooser())
    with NodeAccess(tree).acquire() as snapshot:
        node = NodeLocator().locate(snapshot, matchers.ENTIRE_SCREEN_OPTION)
        assert node.class_name == "android.widget.LinearLayout"
        assert node.clickable
        assert node.bounds == matchers.ENTIRE_SCREEN_OPTION_BOUNDS
        assert snapshot.outstanding == 2
    assert tree.issued == tree.recycled


def test_text_match_without_interactive_ancestor_is_discarded():
    root = el(
        "android.widget.FrameLayout",
        "",
        label("Share entire screen (help)"),
        chooser_item("Share entire screen"),
    )
    node, _ = _locate(root, matchers.ENTIRE_SCREEN_OPTION)
    assert node is not None
    assert node.key == "0.1"


def test_bounds_fallback_when_text_missing():
    root = el(
        "android.widget.FrameLayout",
        "",
        el("android.widget.LinearLayout", "", clickable=True, bounds=Bounds(89, 1210, 991, 1399)),
    )
    node, _ = _locate(root, matchers.ENTIRE_SCREEN_OPTION)
    assert node.bounds == Bounds(89, 1210, 991, 1399)


def test_spinner_found_by_structure_when_identifier_missing():
    root = el(
        "android.widget.FrameLayout",
        "",
        el("android.widget.LinearLayout", "", el("androidx.appcompat.widget.AppCompatSpinner", "", clickable=True)),
    )
    node, _ = _locate(root, matchers.MODE_SPINNER)
    assert node.class_name.endswith("AppCompatSpinner")


def test_confirm_button_captions():
    node, _ = _locate(share_dialog("Share entire screen", confirm_text="Share screen"), matchers.CONFIRM_BUTTON)
    assert node.text == "Share screen"
    node, _ = _locate(share_dialog("Share entire screen", confirm_text="Next"), matchers.CONFIRM_BUTTON)
    assert node is None


def test_unknown_role_raises():
    tree = FakeTree(incoming_dialog())
    with NodeAccess(tree).acquire() as snapshot:
        with pytest.raises(KeyError):
            NodeLocator().locate(snapshot, "launch-missiles")
