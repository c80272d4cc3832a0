"""Desired-state sources for the reconciliation loop."""

from ipam_controller.orchestration.base import HostEvent, Orchestrator, QueueOrchestrator
from ipam_controller.orchestration.factory import create_orchestrator
from ipam_controller.orchestration.manifest import ManifestOrchestrator

__all__ = [
    "HostEvent",
    "ManifestOrchestrator",
    "Orchestrator",
    "QueueOrchestrator",
    "create_orchestrator",
]
