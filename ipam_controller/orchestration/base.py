"""Desired-state events and the orchestrator contract."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Protocol

from ipam_controller.enums import EventKind


@dataclass(frozen=True, slots=True)
class HostEvent:
    kind: EventKind
    hostname: str
    cidr: str | None = None
    ip_address: str | None = None

    @classmethod
    def bind(
        cls, hostname: str, *, cidr: str | None = None, ip_address: str | None = None
    ) -> HostEvent:
        return cls(kind=EventKind.BIND, hostname=hostname, cidr=cidr, ip_address=ip_address)

    @classmethod
    def unbind(cls, hostname: str) -> HostEvent:
        return cls(kind=EventKind.UNBIND, hostname=hostname)


class Orchestrator(Protocol):
    orchestrator_name: str

    @property
    def events(self) -> queue.Queue[HostEvent]:
        """Channel the controller consumes desired-state events from."""

    def start(self, stop_event: threading.Event) -> None:
        """Begin producing events until ``stop_event`` is set."""

    def stop(self) -> None:
        """Stop producing events and release resources."""


class QueueOrchestrator:
    """Orchestrator whose events are announced by the caller."""

    orchestrator_name = "queue"

    def __init__(self, *, maxsize: int = 0) -> None:
        self._events: queue.Queue[HostEvent] = queue.Queue(maxsize=maxsize)

    @property
    def events(self) -> queue.Queue[HostEvent]:
        return self._events

    def announce(self, event: HostEvent) -> None:
        self._events.put(event)

    def start(self, stop_event: threading.Event) -> None:
        return None

    def stop(self) -> None:
        return None
