"""Share Assistant core package: unattended connection acceptance and screen sharing."""

from .config import ServiceConfig
from .detector import DialogDetector
from .errors import DeviceUnavailableError, ShareAssistantError, SnapshotBusyError
from .flow import CycleOutcome, FlowStateMachine
from .locator import NodeLocator
from .models import Bounds, ChangeEvent, EventKind, EvidenceReport, FlowState, FlowStep, UiNode
from .nodes import MatchCriteria, NodeAccess, NodePredicate, Snapshot
from .actions import ActionExecutor
from .scheduler import DeferredTasks, EventGate
from .service import AssistantService

__all__ = [
    "AssistantService",
    "ServiceConfig",
    "FlowStateMachine",
    "CycleOutcome",
    "DialogDetector",
    "NodeLocator",
    "ActionExecutor",
    "EventGate",
    "DeferredTasks",
    "NodeAccess",
    "Snapshot",
    "MatchCriteria",
    "NodePredicate",
    "Bounds",
    "ChangeEvent",
    "EventKind",
    "EvidenceReport",
    "FlowState",
    "FlowStep",
    "UiNode",
    "ShareAssistantError",
    "SnapshotBusyError",
    "DeviceUnavailableError",
]
