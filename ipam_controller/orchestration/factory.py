"""Orchestrator selection based on runtime settings."""

from __future__ import annotations

import logging

from ipam_controller.config import ControllerSettings
from ipam_controller.orchestration.base import Orchestrator
from ipam_controller.orchestration.manifest import ManifestOrchestrator

SUPPORTED_ORCHESTRATIONS = ("manifest",)


def create_orchestrator(
    settings: ControllerSettings, *, logger: logging.Logger | None = None
) -> Orchestrator:
    orchestration = settings.orchestration.strip().lower()
    if orchestration == "manifest":
        return ManifestOrchestrator(
            manifest_path=settings.manifest_path,
            resync_interval_seconds=settings.resync_interval_seconds,
            logger=logger.getChild("orchestration") if logger else None,
        )

    raise ValueError(
        f"unsupported orchestration {settings.orchestration!r}; expected one of "
        + ", ".join(repr(name) for name in SUPPORTED_ORCHESTRATIONS)
    )
