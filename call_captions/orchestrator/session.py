"""Per-target capture session state machine."""

import time
from dataclasses import dataclass, field
from enum import Enum

from ..errors import InvalidTransitionError


class SessionState(Enum):
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    ERROR = "error"


TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.STARTING}),
    SessionState.STARTING: frozenset(
        {SessionState.LISTENING, SessionState.ERROR, SessionState.IDLE}
    ),
    SessionState.LISTENING: frozenset({SessionState.IDLE, SessionState.ERROR}),
    SessionState.ERROR: frozenset({SessionState.IDLE}),
}


@dataclass
class CaptureSession:
    """Orchestrator-side view of one target's capture."""

    target_id: str
    session_id: int = 0
    state: SessionState = SessionState.IDLE
    started_at: float | None = None
    error: str | None = None
    history: list[SessionState] = field(default_factory=list)

    @property
    def active(self) -> bool:
        return self.state in (SessionState.STARTING, SessionState.LISTENING)

    def transition(self, new_state: SessionState) -> SessionState:
        """Move to new_state.

        Raises:
            InvalidTransitionError: new_state is not reachable from the current state
        """
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(self.target_id, self.state.value, new_state.value)

        self.history.append(self.state)
        self.state = new_state
        if new_state is SessionState.STARTING:
            self.started_at = time.time()
            self.error = None
        return new_state
