"""Service lifecycle wiring the gate, the flow machine and the device tree."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .actions import ActionExecutor
from .config import ServiceConfig
from .detector import DialogDetector
from .flow import CycleOutcome, FailureHook, FlowStateMachine, Notifier
from .locator import NodeLocator
from .models import EventKind, FlowState, FlowStep, ServiceStats
from .nodes import NodeAccess, UiTree
from .reporting import stats_report
from .scheduler import DeferredTasks, EventGate

logger = logging.getLogger(__name__)


class AssistantService:
    """Coordinates the modules required for unattended session acceptance.

    ``start`` creates the session state; ``interrupt``, ``unbind`` and
    ``destroy`` cancel pending work, reset the flow and disable the service.
    """

    def __init__(
        self,
        tree: UiTree,
        config: ServiceConfig | None = None,
        *,
        notifier: Notifier | None = None,
        on_failure: FailureHook | None = None,
        tasks: DeferredTasks | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or ServiceConfig()
        self.access = NodeAccess(tree)
        self.locator = NodeLocator()
        self.detector = DialogDetector(self.locator)
        self.executor = ActionExecutor(
            settle_delay=self.config.click_settle_delay,
            focus_delay=self.config.focus_settle_delay,
            sleep=sleep,
        )
        self.tasks = tasks or DeferredTasks()
        self.notifier = notifier
        self.on_failure = on_failure
        self._clock = clock
        self._sleep = sleep
        self.state: Optional[FlowState] = None
        self.machine: Optional[FlowStateMachine] = None
        self.gate: Optional[EventGate] = None
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start(self) -> None:
        if self._enabled:
            return
        self.state = FlowState(last_activity_time=self._clock())
        self.machine = FlowStateMachine(
            self.access,
            self.state,
            self.config,
            detector=self.detector,
            locator=self.locator,
            executor=self.executor,
            tasks=self.tasks,
            notifier=self.notifier,
            on_failure=self.on_failure,
            clock=self._clock,
            sleep=self._sleep,
        )
        self.gate = EventGate(self.config, self._dispatch, self.tasks, clock=self._clock)
        self._enabled = True
        logger.info(
            "Service started, watching %s and %s",
            self.config.source_package,
            self.config.companion_package,
        )

    def on_change(self, source_id: str, kind: EventKind | str = EventKind.WINDOW_STATE_CHANGED) -> bool:
        if not self._enabled or self.gate is None:
            return False
        return self.gate.on_change(source_id, kind)

    def process_now(self, source_id: str) -> CycleOutcome:
        """Run one cycle synchronously, bypassing the gate."""

        if not self._enabled or self.machine is None:
            raise RuntimeError("Service is not started")
        return self.machine.run_cycle(source_id)

    def stats(self) -> ServiceStats:
        state = self.state
        if state is None:
            return ServiceStats(
                enabled=self._enabled,
                step=FlowStep.IDLE,
                dialogs_detected=0,
                auto_accept_count=0,
                screen_shares_started=0,
                processing=False,
            )
        return ServiceStats(
            enabled=self._enabled,
            step=state.step,
            dialogs_detected=state.dialogs_detected,
            auto_accept_count=state.auto_accept_count,
            screen_shares_started=state.screen_shares_started,
            processing=state.processing,
        )

    def interrupt(self) -> None:
        self._teardown("interrupted")

    def unbind(self) -> None:
        self._teardown("unbound")

    def destroy(self) -> None:
        self._teardown("destroyed")

    def _dispatch(self, source_id: str) -> None:
        if self.machine is None:
            return
        outcome = self.machine.run_cycle(source_id)
        logger.debug(
            "Cycle %s: %s %s -> %s (%s)",
            outcome.cycle_id,
            outcome.status,
            outcome.step_before.name,
            outcome.step_after.name,
            outcome.detail,
        )

    def _teardown(self, reason: str) -> None:
        logger.info("Service %s", reason)
        if self.machine is not None:
            self.machine.stop()
        self.tasks.cancel_all()
        if self.gate is not None:
            self.gate.reset()
        if self.state is not None:
            self.state.reset(self._clock())
        self._enabled = False
        logger.info("%s", stats_report(self.stats()).render_text())
