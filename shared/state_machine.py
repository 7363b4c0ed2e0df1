from enum import Enum
from typing import List
from dataclasses import dataclass


class FlowState(str, Enum):
    RECEIVED = "received"
    POLLING = "polling"
    RESOLVING = "resolving"
    PROVISIONING = "provisioning"
    FINISHED = "finished"
    REPORTED = "reported"


class TransitionError(Exception):
    def __init__(self, from_state: str, to_state: str, reason: str = None):
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason or f"Cannot transition from {from_state} to {to_state}"
        super().__init__(self.reason)


@dataclass
class Transition:
    from_state: FlowState
    to_state: FlowState
    action: str


class FlowStateMachine:
    """Stage tracker for one orchestration flow.

    A flow is reported exactly once: ``report`` is only reachable from
    FINISHED and REPORTED has no outgoing transitions.
    """

    TRANSITIONS = [
        Transition(FlowState.RECEIVED, FlowState.POLLING, "poll"),
        Transition(FlowState.RECEIVED, FlowState.RESOLVING, "resolve"),
        Transition(FlowState.POLLING, FlowState.RESOLVING, "resolve"),
        Transition(FlowState.RESOLVING, FlowState.PROVISIONING, "provision"),
        Transition(FlowState.RECEIVED, FlowState.FINISHED, "finish"),
        Transition(FlowState.POLLING, FlowState.FINISHED, "finish"),
        Transition(FlowState.RESOLVING, FlowState.FINISHED, "finish"),
        Transition(FlowState.PROVISIONING, FlowState.FINISHED, "finish"),
        Transition(FlowState.FINISHED, FlowState.REPORTED, "report"),
    ]

    ALLOWED_ACTIONS = {
        FlowState.RECEIVED: ["poll", "resolve", "finish"],
        FlowState.POLLING: ["resolve", "finish"],
        FlowState.RESOLVING: ["provision", "finish"],
        FlowState.PROVISIONING: ["finish"],
        FlowState.FINISHED: ["report"],
        FlowState.REPORTED: [],
    }

    def __init__(self, initial_state: FlowState = FlowState.RECEIVED):
        self._state = initial_state
        self._history: List[tuple] = []

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def allowed_actions(self) -> List[str]:
        return self.ALLOWED_ACTIONS.get(self._state, [])

    @property
    def is_terminal(self) -> bool:
        return self._state in (FlowState.FINISHED, FlowState.REPORTED)

    def can_transition(self, action: str) -> bool:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                return True
        return False

    def transition(self, action: str) -> FlowState:
        for t in self.TRANSITIONS:
            if t.from_state == self._state and t.action == action:
                old_state = self._state
                self._state = t.to_state
                self._history.append((old_state, action, self._state))
                return self._state

        raise TransitionError(
            self._state.value,
            "unknown",
            f"No valid transition for action '{action}' from state '{self._state.value}'"
        )

    def get_history(self) -> List[tuple]:
        return self._history.copy()
