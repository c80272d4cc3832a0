"""Reconciliation event kinds and controller lifecycle states."""

from enum import StrEnum


class EventKind(StrEnum):
    BIND = "bind"
    UNBIND = "unbind"


class ControllerState(StrEnum):
    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


ALLOWED_STATE_TRANSITIONS: dict[ControllerState, frozenset[ControllerState]] = {
    ControllerState.CREATED: frozenset({ControllerState.RUNNING, ControllerState.STOPPED}),
    ControllerState.RUNNING: frozenset({ControllerState.STOPPING}),
    ControllerState.STOPPING: frozenset({ControllerState.STOPPED}),
}


def can_transition_state(current_state: ControllerState, new_state: ControllerState) -> bool:
    return new_state in ALLOWED_STATE_TRANSITIONS.get(current_state, frozenset())
