"""
Capture State Machine - lifecycle of a single pipeline run
"""

import logging
from enum import Enum
from typing import Dict, List, Tuple

from core.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    OPENING = "opening"
    PREVIEW_CONVERGING = "preview_converging"
    CAPTURING = "capturing"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (CaptureState.DONE, CaptureState.FAILED)


class CaptureEvent(str, Enum):
    OPEN_REQUESTED = "open_requested"
    OPENED = "opened"
    CONFIGURED = "configured"
    PREVIEW_PROGRESSED = "preview_progressed"
    CONVERGED = "converged"
    IMAGE_AVAILABLE = "image_available"
    ERROR = "error"
    DISCONNECTED = "disconnected"
    CONFIGURE_FAILED = "configure_failed"
    CANCELLED = "cancelled"


_FAILURE_EVENTS = (
    CaptureEvent.ERROR,
    CaptureEvent.DISCONNECTED,
    CaptureEvent.CONFIGURE_FAILED,
    CaptureEvent.CANCELLED,
)


def _build_transitions() -> Dict[Tuple[CaptureState, CaptureEvent], CaptureState]:
    table = {
        (CaptureState.IDLE, CaptureEvent.OPEN_REQUESTED): CaptureState.OPENING,
        (CaptureState.OPENING, CaptureEvent.OPENED): CaptureState.OPENING,
        (CaptureState.OPENING, CaptureEvent.CONFIGURED): CaptureState.PREVIEW_CONVERGING,
        (CaptureState.PREVIEW_CONVERGING, CaptureEvent.PREVIEW_PROGRESSED): (
            CaptureState.PREVIEW_CONVERGING
        ),
        # The only way into CAPTURING, so the still is issued once per run
        (CaptureState.PREVIEW_CONVERGING, CaptureEvent.CONVERGED): CaptureState.CAPTURING,
        (CaptureState.CAPTURING, CaptureEvent.IMAGE_AVAILABLE): CaptureState.DONE,
    }
    for state in CaptureState:
        if state.terminal:
            continue
        for event in _FAILURE_EVENTS:
            table[(state, event)] = CaptureState.FAILED
    return table


TRANSITIONS = _build_transitions()


class CaptureStateMachine:
    """Tracks one pipeline run through its states"""

    def __init__(self, run_id: str):
        self.run_id = run_id
        self.state = CaptureState.IDLE
        self.history: List[Tuple[CaptureState, CaptureEvent, CaptureState]] = []

    def accepts(self, event: CaptureEvent) -> bool:
        return (self.state, event) in TRANSITIONS

    def fire(self, event: CaptureEvent) -> CaptureState:
        """
        Apply an event.

        Raises:
            InvalidTransitionError: If the event is not legal in the current state
        """
        target = TRANSITIONS.get((self.state, event))
        if target is None:
            raise InvalidTransitionError(self.state, event)

        self.history.append((self.state, event, target))
        logger.debug(f"Run {self.run_id}: {self.state.value} --{event.value}--> {target.value}")
        self.state = target
        return target

    def fire_if_accepted(self, event: CaptureEvent) -> bool:
        """Apply an event only when legal; late callbacks are dropped"""
        if not self.accepts(event):
            logger.debug(f"Run {self.run_id}: ignoring {event.value} in {self.state.value}")
            return False
        self.fire(event)
        return True

    @property
    def finished(self) -> bool:
        return self.state.terminal
