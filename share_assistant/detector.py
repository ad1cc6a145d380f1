"""Evidence-scoring classifier for the supported dialog shapes."""

from __future__ import annotations

import logging
from typing import Dict

from .locator import NodeLocator
from .matchers import SHAPES, DialogShape, Probe, Signal, caption_matches
from .models import EvidenceReport
from .nodes import Snapshot, read_selector_caption

logger = logging.getLogger(__name__)


class DialogDetector:
    """Scores a snapshot against a dialog shape.

    Each signal is weak on its own; a shape is confirmed only when the
    summed weights of independent signals reach the shape's threshold.
    """

    def __init__(self, locator: NodeLocator | None = None, shapes: Dict[str, DialogShape] | None = None) -> None:
        self.locator = locator or NodeLocator()
        self.shapes = shapes or SHAPES

    def classify(self, snapshot: Snapshot, shape_name: str) -> EvidenceReport:
        shape = self.shapes[shape_name]
        report = EvidenceReport(shape=shape.name, score=0, threshold=shape.threshold)
        for signal in shape.signals:
            if self._signal_present(snapshot, signal):
                report.score += signal.weight
                report.signals.append(signal.name)
                logger.debug("%s: signal %s (+%d)", shape.name, signal.name, signal.weight)
        if report.confirmed:
            logger.info("Dialog confirmed: %s", report.render_text())
        else:
            logger.debug("Dialog not confirmed: %s", report.render_text())
        return report

    def _signal_present(self, snapshot: Snapshot, signal: Signal) -> bool:
        if signal.require_all:
            return all(self._probe(snapshot, probe) for probe in signal.probes)
        return any(self._probe(snapshot, probe) for probe in signal.probes)

    def _probe(self, snapshot: Snapshot, probe: Probe) -> bool:
        if probe.role is not None:
            node = self.locator.locate(snapshot, probe.role)
            snapshot.release(node)
            return node is not None
        assert probe.criteria is not None
        nodes = snapshot.query(probe.criteria)
        hit = False
        for node in nodes:
            if not hit and self._node_matches(snapshot, node, probe):
                hit = True
            snapshot.release(node)
        return hit

    @staticmethod
    def _node_matches(snapshot: Snapshot, node, probe: Probe) -> bool:
        if probe.child_count is not None and node.child_count != probe.child_count:
            return False
        if probe.child_text is not None:
            labelled = snapshot.find_text(node, probe.child_text)
            for found in labelled:
                snapshot.release(found)
            if not labelled:
                return False
        text = read_selector_caption(snapshot, node) if probe.read_selector else node.text
        return caption_matches(text, probe.captions, probe.caption_match)
