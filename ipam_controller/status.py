"""Read-only status API served alongside the reconciliation loop."""

from __future__ import annotations

import logging
import threading
from typing import Annotated, cast

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel

from ipam_controller.controller import Controller
from ipam_controller.manager import IPAMManager


class ControllerStatusResponse(BaseModel):
    state: str
    provider: str
    processed_events: int
    failed_events: int


class RecordResponse(BaseModel):
    hostname: str
    ip_address: str


def get_manager(request: Request) -> IPAMManager:
    return cast(IPAMManager, request.app.state.manager)


def get_controller(request: Request) -> Controller:
    return cast(Controller, request.app.state.controller)


ManagerDep = Annotated[IPAMManager, Depends(get_manager)]
ControllerDep = Annotated[Controller, Depends(get_controller)]


def create_status_app(*, manager: IPAMManager, controller: Controller) -> FastAPI:
    app = FastAPI(title="IPAM Controller", version="0.1.0")
    app.state.manager = manager
    app.state.controller = controller

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/status", tags=["system"])
    def status(controller: ControllerDep, manager: ManagerDep) -> ControllerStatusResponse:
        stats = controller.stats()
        return ControllerStatusResponse(
            state=stats.state.value,
            provider=manager.provider_name,
            processed_events=stats.processed,
            failed_events=stats.failed,
        )

    @app.get("/records/{hostname}", tags=["records"])
    def get_record(hostname: str, manager: ManagerDep) -> RecordResponse:
        ip_address = manager.get_ip_address(hostname)
        if not ip_address:
            raise HTTPException(status_code=404, detail=f"no A record for {hostname}")
        return RecordResponse(hostname=hostname, ip_address=ip_address)

    return app


class StatusServer:
    """Runs the status API in a background thread."""

    def __init__(
        self,
        app: FastAPI,
        *,
        host: str,
        port: int,
        logger: logging.Logger | None = None,
    ) -> None:
        self._server = uvicorn.Server(
            uvicorn.Config(app, host=host, port=port, log_level="warning")
        )
        self._thread: threading.Thread | None = None
        self._address = f"{host}:{port}"
        self._log = logger or logging.getLogger(__name__)

    def start(self) -> None:
        self._thread = threading.Thread(target=self._server.run, name="status-api", daemon=True)
        self._thread.start()
        self._log.info("status API listening on %s", self._address)

    def stop(self, timeout: float = 5.0) -> None:
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
