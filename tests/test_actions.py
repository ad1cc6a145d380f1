from share_assistant.actions import ActionExecutor
from share_assistant.models import NodeAction
from share_assistant.nodes import MatchCriteria, NodeAccess

from fakes import FakeTree, button, el

ALL_ACTIONS = tuple(NodeAction)


def _run(root, text, *, escalate=False, sleeps=None):
    tree = FakeTree(root)
    executor = ActionExecutor(settle_delay=0.05, focus_delay=0.1, sleep=(sleeps.append if sleeps is not None else lambda _: None))
    with NodeAccess(tree).acquire() as snapshot:
        node = snapshot.first(MatchCriteria.by_text(text))
        outcome = executor.execute(snapshot, node, escalate=escalate)
    assert tree.outstanding == 0
    return outcome, tree


def test_direct_click():
    outcome, tree = _run(el("root", "", button("Go")), "Go")
    assert outcome.succeeded
    assert outcome.detail == "direct"
    assert tree.actions_on("Go") == [NodeAction.CLICK]


def test_focus_then_click_after_settle_delay():
    sleeps = []
    outcome, tree = _run(el("root", "", button("Go", focus_required=True)), "Go", sleeps=sleeps)
    assert outcome.succeeded
    assert outcome.detail == "accessibility-focus"
    assert tree.actions_on("Go") == [NodeAction.CLICK, NodeAction.ACCESSIBILITY_FOCUS, NodeAction.CLICK]
    assert sleeps == [0.05]


def test_no_escalation_unless_permitted():
    outcome, tree = _run(el("root", "", button("Go", refuse=ALL_ACTIONS)), "Go")
    assert not outcome.succeeded
    assert NodeAction.LONG_CLICK not in tree.actions_on("Go")


def test_escalation_tries_long_press_first():
    root = el("root", "", button("Go", refuse=(NodeAction.CLICK, NodeAction.ACCESSIBILITY_FOCUS)))
    outcome, tree = _run(root, "Go", escalate=True)
    assert outcome.detail == "long-click"


def test_escalation_delegates_to_clickable_parent():
    root = el("root", "", el("android.widget.LinearLayout", "", button("Go", refuse=ALL_ACTIONS), clickable=True))
    outcome, tree = _run(root, "Go", escalate=True)
    assert outcome.succeeded
    assert outcome.detail == "parent"
    assert (tree.element("0.0").key, NodeAction.CLICK) in tree.performed


def test_parent_must_be_clickable():
    root = el("root", "", el("android.widget.LinearLayout", "", button("Go", refuse=ALL_ACTIONS)))
    outcome, tree = _run(root, "Go", escalate=True)
    assert not outcome.succeeded
    assert all(key != "0.0" for key, _ in tree.performed)


def test_platform_faults_are_reported_as_failure():
    tree = FakeTree(el("root", "", button("Go")))
    executor = ActionExecutor(sleep=lambda _: None)
    with NodeAccess(tree).acquire() as snapshot:
        node = snapshot.first(MatchCriteria.by_text("Go"))
        tree.raise_on["perform"] = RuntimeError("node went stale")
        tree.raise_on["parent"] = RuntimeError("node went stale")
        assert executor.click(snapshot, node, escalate=True) is False
