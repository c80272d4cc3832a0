"""Orchestrator that watches a YAML manifest of desired hosts."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from ipam_controller.orchestration.base import HostEvent, QueueOrchestrator


class ManifestError(ValueError):
    """Raised when the host manifest cannot be interpreted."""


class ManifestOrchestrator(QueueOrchestrator):
    """Re-announces every host listed in a manifest file on each resync.

    Announcing is level-triggered: each resync emits a bind event for every
    listed host, whether or not it was announced before, and an unbind event
    for every host that was listed on the previous read but is gone now.

    Manifest format::

        hosts:
          - hostname: web.example.com
            cidr: 10.0.0.0/24
          - hostname: db.example.com
            ip_address: 10.0.0.20
          - cache.example.com
    """

    orchestrator_name = "manifest"

    def __init__(
        self,
        *,
        manifest_path: str,
        resync_interval_seconds: float = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__()
        normalized_path = manifest_path.strip()
        if not normalized_path:
            raise ValueError("manifest path is required for the manifest orchestration")
        self._manifest_path = Path(normalized_path).expanduser()
        if not self._manifest_path.is_file():
            raise ValueError(f"manifest file not found: {self._manifest_path}")
        self._resync_interval_seconds = max(0.1, float(resync_interval_seconds))
        self._log = logger or logging.getLogger(__name__)
        self._known_hostnames: set[str] = set()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def manifest_path(self) -> Path:
        return self._manifest_path

    def start(self, stop_event: threading.Event) -> None:
        if self._thread is not None:
            return
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run,
            args=(stop_event,),
            name="manifest-orchestrator",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._resync_interval_seconds + 1.0)
            self._thread = None

    def resync(self) -> int:
        """Read the manifest and enqueue its events; returns the number enqueued."""
        try:
            desired = load_manifest(self._manifest_path)
        except ManifestError as exc:
            self._log.error("skipping resync of %s: %s", self._manifest_path, exc)
            return 0

        announced = 0
        for event in desired.values():
            self.announce(event)
            announced += 1
        for hostname in sorted(self._known_hostnames - desired.keys()):
            self.announce(HostEvent.unbind(hostname))
            announced += 1

        self._known_hostnames = set(desired)
        self._log.debug("resynced %s: %d events", self._manifest_path, announced)
        return announced

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.resync()
            stop_event.wait(self._resync_interval_seconds)


def load_manifest(path: Path) -> dict[str, HostEvent]:
    if not path.exists() or not path.is_file():
        raise ManifestError(f"manifest file not found: {path}")

    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ManifestError(f"failed to read manifest {path}: {exc}") from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ManifestError("manifest must be a mapping with a 'hosts' list")

    hosts = parsed.get("hosts") or []
    if not isinstance(hosts, list):
        raise ManifestError("manifest 'hosts' must be a list")

    desired: dict[str, HostEvent] = {}
    for index, entry in enumerate(hosts):
        event = _parse_host_entry(entry, index=index)
        desired[event.hostname] = event
    return desired


def _parse_host_entry(entry: Any, *, index: int) -> HostEvent:
    if isinstance(entry, str):
        hostname = entry.strip()
        if not hostname:
            raise ManifestError(f"host entry {index} is empty")
        return HostEvent.bind(hostname)

    if not isinstance(entry, dict):
        raise ManifestError(f"host entry {index} must be a string or a mapping")

    hostname = str(entry.get("hostname", "")).strip()
    if not hostname:
        raise ManifestError(f"host entry {index} is missing 'hostname'")
    cidr = _optional_str(entry.get("cidr"))
    ip_address = _optional_str(entry.get("ip_address"))
    return HostEvent.bind(hostname, cidr=cidr, ip_address=ip_address)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip()
    return normalized or None
