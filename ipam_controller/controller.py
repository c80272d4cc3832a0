"""Reconciliation loop driving allocation state toward orchestrator desired state."""

from __future__ import annotations

import ipaddress
import logging
import queue
import threading
from dataclasses import dataclass

from ipam_controller.enums import ControllerState, EventKind, can_transition_state
from ipam_controller.manager import IPAMManager
from ipam_controller.orchestration.base import HostEvent, Orchestrator


class InvalidStateTransitionError(RuntimeError):
    """Raised when a controller lifecycle transition is not allowed."""

    def __init__(self, current_state: ControllerState, new_state: ControllerState) -> None:
        super().__init__(
            f"cannot transition controller from {current_state.value} to {new_state.value}"
        )
        self.current_state = current_state
        self.new_state = new_state


@dataclass(frozen=True, slots=True)
class ControllerStats:
    state: ControllerState
    processed: int
    failed: int


class Controller:
    """Consumes host events and converges bindings through the manager.

    A failed bind is logged and counted but not retried here; the
    orchestrator re-announces desired state that is still unsatisfied.
    """

    def __init__(
        self,
        *,
        orchestrator: Orchestrator,
        manager: IPAMManager,
        stop_event: threading.Event | None = None,
        default_cidr: str | None = None,
        poll_interval_seconds: float = 0.5,
        logger: logging.Logger | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._manager = manager
        self._stop_event = stop_event or threading.Event()
        self._default_cidr = default_cidr
        self._poll_interval_seconds = poll_interval_seconds
        self._log = logger or logging.getLogger(__name__)
        self._state = ControllerState.CREATED
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._processed = 0
        self._failed = 0

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def stats(self) -> ControllerStats:
        with self._state_lock:
            return ControllerStats(state=self._state, processed=self._processed, failed=self._failed)

    def start(self) -> None:
        self._transition(ControllerState.RUNNING)
        self._orchestrator.start(self._stop_event)
        self._thread = threading.Thread(target=self._run, name="ipam-controller", daemon=True)
        self._thread.start()
        self._log.info(
            "controller started orchestration=%s provider=%s",
            self._orchestrator.orchestrator_name,
            self._manager.provider_name,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to stop and wait for the in-flight event to finish.

        When ``timeout`` expires first the controller stays STOPPING; calling
        ``stop`` again resumes the wait.
        """
        if self._state is ControllerState.CREATED:
            self._transition(ControllerState.STOPPED)
            return
        if self._state is ControllerState.RUNNING:
            self._transition(ControllerState.STOPPING)
            self._stop_event.set()
            self._orchestrator.stop()
        elif self._state is not ControllerState.STOPPING:
            return

        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                self._log.warning(
                    "controller still processing an event after %ss; staying %s",
                    timeout,
                    self._state.value,
                )
                return
            self._thread = None

        dropped = self._orchestrator.events.qsize()
        if dropped:
            self._log.info("dropping %d queued events on shutdown", dropped)
        self._transition(ControllerState.STOPPED)
        self._log.info("controller stopped")

    def process_event(self, event: HostEvent) -> bool:
        """Apply one desired-state event; returns False when it could not be satisfied."""
        if event.kind is EventKind.UNBIND:
            succeeded = self._unbind(event)
        else:
            succeeded = self._bind(event)

        with self._state_lock:
            self._processed += 1
            if not succeeded:
                self._failed += 1
        return succeeded

    def _run(self) -> None:
        events = self._orchestrator.events
        while not self._stop_event.is_set():
            try:
                event = events.get(timeout=self._poll_interval_seconds)
            except queue.Empty:
                continue
            try:
                self.process_event(event)
            except Exception:
                self._log.exception("unexpected error reconciling hostname=%s", event.hostname)
                with self._state_lock:
                    self._processed += 1
                    self._failed += 1
            finally:
                events.task_done()

    def _bind(self, event: HostEvent) -> bool:
        hostname = event.hostname
        cidr = event.cidr or self._default_cidr
        current = self._manager.get_ip_address(hostname)
        if current and _satisfies(current, cidr=cidr, ip_address=event.ip_address):
            self._log.debug("hostname=%s already bound to %s", hostname, current)
            return True

        if event.ip_address:
            if not cidr:
                cidr = f"{event.ip_address}/32"
            if not self._manager.allocate_ip_address(cidr, event.ip_address):
                self._log.error(
                    "bind failed hostname=%s: unable to allocate %s from %s",
                    hostname,
                    event.ip_address,
                    cidr,
                )
                return False
            ip_address = event.ip_address
        else:
            if not cidr:
                self._log.error("bind failed hostname=%s: no CIDR requested or configured", hostname)
                return False
            ip_address = self._manager.get_next_ip_address(cidr)
            if not ip_address:
                self._log.error(
                    "bind failed hostname=%s: no address available in %s", hostname, cidr
                )
                return False

        if not self._manager.create_a_record(hostname, ip_address):
            self._log.error(
                "bind failed hostname=%s: unable to create A record for %s", hostname, ip_address
            )
            self._manager.release_ip_address(ip_address)
            return False

        self._log.info("bound hostname=%s ip=%s", hostname, ip_address)
        return True

    def _unbind(self, event: HostEvent) -> bool:
        current = self._manager.get_ip_address(event.hostname)
        if not current:
            self._log.debug("hostname=%s has no binding to remove", event.hostname)
            return True
        self._manager.delete_a_record(event.hostname, current)
        if self._manager.get_ip_address(event.hostname):
            self._log.error("unbind failed hostname=%s ip=%s", event.hostname, current)
            return False
        self._log.info("unbound hostname=%s ip=%s", event.hostname, current)
        return True

    def _transition(self, new_state: ControllerState) -> None:
        with self._state_lock:
            if not can_transition_state(self._state, new_state):
                raise InvalidStateTransitionError(self._state, new_state)
            self._state = new_state


def _satisfies(current: str, *, cidr: str | None, ip_address: str | None) -> bool:
    if ip_address:
        return current == ip_address
    if not cidr:
        return True
    try:
        return ipaddress.IPv4Address(current) in ipaddress.IPv4Network(cidr, strict=False)
    except ValueError:
        return False
