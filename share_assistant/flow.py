"""Step tracking for the accept-and-share flow."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from . import matchers
from .actions import ActionExecutor
from .config import ServiceConfig
from .detector import DialogDetector
from .locator import NodeLocator
from .models import FlowState, FlowStep
from .nodes import NodeAccess, Snapshot, read_selector_caption
from .scheduler import RETRY, DeferredTasks

logger = logging.getLogger(__name__)

Notifier = Callable[[str], None]
FailureHook = Callable[[str], None]

CONNECTION_ACCEPTED = "Connection accepted"
SCREEN_SHARING_STARTED = "Screen sharing started"


@dataclass(slots=True)
class CycleOutcome:
    """Result of one processing cycle, mostly for logging and tests."""

    cycle_id: str
    source_id: str
    step_before: FlowStep
    step_after: FlowStep
    status: str
    detail: str = ""

    @property
    def advanced(self) -> bool:
        return self.step_after != self.step_before


class FlowStateMachine:
    """Runs processing cycles against the shared :class:`FlowState`.

    A cycle re-detects the dialog for the current step in a fresh snapshot
    before acting, so the step only moves on evidence, never on elapsed
    time alone. Time only ever moves it back to idle.
    """

    def __init__(
        self,
        access: NodeAccess,
        state: FlowState,
        config: ServiceConfig | None = None,
        *,
        detector: DialogDetector | None = None,
        locator: NodeLocator | None = None,
        executor: ActionExecutor | None = None,
        tasks: DeferredTasks | None = None,
        notifier: Notifier | None = None,
        on_failure: FailureHook | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.access = access
        self.state = state
        self.config = config or ServiceConfig()
        self.locator = locator or NodeLocator()
        self.detector = detector or DialogDetector(self.locator)
        self.executor = executor or ActionExecutor(
            settle_delay=self.config.click_settle_delay,
            focus_delay=self.config.focus_settle_delay,
            sleep=sleep,
        )
        self.tasks = tasks
        self._notify = notifier or (lambda message: logger.info("%s", message))
        self._on_failure = on_failure
        self._clock = clock
        self._sleep = sleep
        self._cycle_ids = itertools.count(1)
        self._stopped = False
        self._handlers = {
            FlowStep.AWAITING_SHARE_DIALOG: self._handle_share_dialog,
            FlowStep.AWAITING_CHOOSER: self._handle_chooser,
            FlowStep.AWAITING_SHARE_CONFIRM: self._handle_share_confirm,
        }

    # ------------------------------------------------------------------
    # Cycle entry points
    # ------------------------------------------------------------------

    def run_cycle(self, source_id: str) -> CycleOutcome:
        cycle_id = f"cyc-{next(self._cycle_ids)}"
        if self._stopped:
            return self._outcome(cycle_id, source_id, self.state.step, "stopped")
        if not self.state.try_begin():
            logger.debug("Cycle %s dropped: another cycle is in flight", cycle_id)
            return self._outcome(cycle_id, source_id, self.state.step, "busy")
        step_before = self.state.step
        try:
            self.check_stuck()
            return self._process(cycle_id, source_id)
        except Exception:
            logger.exception("Cycle %s for %s aborted", cycle_id, source_id)
            return self._outcome(cycle_id, source_id, step_before, "failed", "fault")
        finally:
            self.state.finish()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Stop acting on the UI. A cycle already in flight finishes without clicking or moving the step."""

        self._stopped = True

    def check_stuck(self) -> bool:
        """Force the flow back to idle when it made no progress for too long."""

        now = self._clock()
        elapsed = now - self.state.last_activity_time
        if elapsed <= self.config.stuck_timeout:
            return False
        if self.state.step is not FlowStep.IDLE:
            logger.info(
                "Resetting from %s after %.0fs without progress",
                self.state.step.name,
                elapsed,
            )
        self.state.reset(now)
        return True

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _process(self, cycle_id: str, source_id: str) -> CycleOutcome:
        step = self.state.step
        if source_id == self.config.source_package:
            if step is not FlowStep.IDLE:
                return self._outcome(cycle_id, source_id, step, "ignored", "flow already in progress")
            delay = self.config.source_render_delay
            handler = self._handle_incoming
        elif source_id == self.config.companion_package:
            if step is FlowStep.IDLE:
                return self._outcome(cycle_id, source_id, step, "ignored", "no connection accepted yet")
            delay = self.config.companion_render_delay
            handler = self._handlers[step]
        else:
            return self._outcome(cycle_id, source_id, step, "ignored", "unmonitored source")

        if delay > 0:
            self._sleep(delay)
        snapshot = self.access.acquire()
        if snapshot is None:
            return self._outcome(cycle_id, source_id, step, "no-window")
        logger.debug("Cycle %s checking %s at step %s", cycle_id, source_id, step.name)
        with snapshot:
            status, detail = handler(snapshot)
        return self._outcome(cycle_id, source_id, step, status, detail)

    # ------------------------------------------------------------------
    # Step handlers
    # ------------------------------------------------------------------

    def _handle_incoming(self, snapshot: Snapshot) -> tuple[str, str]:
        report = self.detector.classify(snapshot, matchers.INCOMING_CONNECTION)
        if not report.confirmed:
            return "unchanged", report.render_text()
        clicked = self._click_role(snapshot, matchers.ACCEPT_BUTTON)
        self.state.dialogs_detected += 1
        logger.info("Incoming connection dialog detected (count %d)", self.state.dialogs_detected)
        if not clicked:
            return "unchanged", "accept not clicked"
        self.state.auto_accept_count += 1
        self._advance(FlowStep.AWAITING_SHARE_DIALOG)
        self._notify(CONNECTION_ACCEPTED)
        return "advanced", report.render_text()

    def _handle_share_dialog(self, snapshot: Snapshot) -> tuple[str, str]:
        report = self.detector.classify(snapshot, matchers.SHARE_DIALOG)
        if report.confirmed and self._click_role(snapshot, matchers.MODE_SPINNER):
            self._advance(FlowStep.AWAITING_CHOOSER)
            return "advanced", report.render_text()

        chooser = self.detector.classify(snapshot, matchers.SHARE_CHOOSER)
        if chooser.confirmed:
            logger.info("Chooser already open, skipping mode selector")
            self._advance(FlowStep.AWAITING_CHOOSER)
            self._schedule_retry(self.config.retry_delay)
            return "advanced", chooser.render_text()
        return "unchanged", report.render_text()

    def _handle_chooser(self, snapshot: Snapshot) -> tuple[str, str]:
        chooser = self.detector.classify(snapshot, matchers.SHARE_CHOOSER)
        if chooser.confirmed:
            if not self._click_role(snapshot, matchers.ENTIRE_SCREEN_OPTION, escalate=True):
                return "unchanged", "entire screen option not clicked"
            self._advance(FlowStep.AWAITING_SHARE_CONFIRM)
            self._schedule_retry(self.config.retry_delay)
            return "advanced", chooser.render_text()

        confirm = self.detector.classify(snapshot, matchers.SHARE_CONFIRM)
        if confirm.confirmed:
            logger.info("Entire screen already selected, moving to confirmation")
            self._advance(FlowStep.AWAITING_SHARE_CONFIRM)
            self._schedule_retry(self.config.retry_delay)
            return "advanced", confirm.render_text()
        return "unchanged", chooser.render_text()

    def _handle_share_confirm(self, snapshot: Snapshot) -> tuple[str, str]:
        report = self.detector.classify(snapshot, matchers.SHARE_CONFIRM)
        if not report.confirmed:
            self._log_selector(snapshot)
        elif self._click_role(snapshot, matchers.CONFIRM_BUTTON, escalate=True):
            self.state.screen_shares_started += 1
            self._advance(FlowStep.IDLE)
            self._notify(SCREEN_SHARING_STARTED)
            return "completed", report.render_text()
        logger.warning("Share confirmation not done, retrying")
        self._schedule_retry(self.config.confirm_retry_delay, expected=FlowStep.AWAITING_SHARE_CONFIRM)
        return "unchanged", report.render_text()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _click_role(self, snapshot: Snapshot, role: str, *, escalate: bool = False) -> bool:
        if self._stopped:
            logger.info("%s skipped: service stopped", role)
            return False
        node = self.locator.locate(snapshot, role)
        if node is None:
            logger.info("%s not found", role)
            return False
        clicked = self.executor.click(snapshot, node, escalate=escalate)
        snapshot.release(node)
        if clicked:
            logger.info("%s clicked", role)
        else:
            logger.warning("%s click failed", role)
            if self._on_failure is not None:
                self._on_failure(role)
        return clicked

    def _log_selector(self, snapshot: Snapshot) -> None:
        selector = self.locator.locate(snapshot, matchers.MODE_SPINNER)
        if selector is None:
            return
        logger.info("Mode selector shows %r", read_selector_caption(snapshot, selector))
        snapshot.release(selector)

    def _advance(self, step: FlowStep) -> None:
        if self._stopped:
            return
        logger.info("Step %s -> %s", self.state.step.name, step.name)
        self.state.advance(step, self._clock())

    def _schedule_retry(self, delay: float, *, expected: Optional[FlowStep] = None) -> None:
        if self.tasks is None or self._stopped:
            return
        target = expected if expected is not None else self.state.step

        def retry() -> None:
            if not self._stopped and self.state.step is target:
                self.run_cycle(self.config.companion_package)

        self.tasks.schedule(RETRY, delay, retry)

    def _outcome(self, cycle_id: str, source_id: str, step_before: FlowStep, status: str, detail: str = "") -> CycleOutcome:
        return CycleOutcome(
            cycle_id=cycle_id,
            source_id=source_id,
            step_before=step_before,
            step_after=self.state.step,
            status=status,
            detail=detail,
        )
