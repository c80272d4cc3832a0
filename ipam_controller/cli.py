"""Process entry point: flag parsing, wiring and signal-driven shutdown."""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from collections.abc import Sequence

from ipam_controller.config import (
    DEFAULT_RUNTIME_CONFIG_PATH,
    IP_PROVIDER_INFOBLOX,
    IP_PROVIDER_STATIC,
    LOG_LEVELS,
    ControllerSettings,
    parse_bool,
)
from ipam_controller.controller import Controller
from ipam_controller.log import configure_logging
from ipam_controller.manager import create_manager
from ipam_controller.orchestration import create_orchestrator
from ipam_controller.providers import ProviderError
from ipam_controller.status import StatusServer, create_status_app


def main(
    argv: Sequence[str] | None = None,
    *,
    shutdown_event: threading.Event | None = None,
) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:
        return 0 if exc.code in (0, None) else 1

    try:
        settings = load_settings(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    logger = configure_logging(settings.log_level)

    try:
        orchestrator = create_orchestrator(settings, logger=logger)
    except ValueError as exc:
        logger.error("unable to create orchestrator: %s", exc)
        return 1

    try:
        manager = create_manager(settings, logger=logger)
    except (ValueError, ProviderError) as exc:
        logger.error("unable to create IPAM manager: %s", exc)
        return 1

    controller = Controller(
        orchestrator=orchestrator,
        manager=manager,
        stop_event=threading.Event(),
        default_cidr=settings.default_cidr,
        logger=logger.getChild("controller"),
    )

    status_server: StatusServer | None = None
    if settings.status_port:
        status_server = StatusServer(
            create_status_app(manager=manager, controller=controller),
            host=settings.status_host,
            port=settings.status_port,
            logger=logger.getChild("status"),
        )

    shutdown = shutdown_event
    received: list[int] = []
    if shutdown is None:
        shutdown = threading.Event()
        _install_signal_handlers(shutdown, received)

    controller.start()
    if status_server is not None:
        status_server.start()

    shutdown.wait()

    if status_server is not None:
        status_server.stop()
    controller.stop()
    if received:
        logger.info("exiting - signal %s", signal.Signals(received[0]).name)
    else:
        logger.info("exiting")
    return 0


def load_settings(args: argparse.Namespace) -> ControllerSettings:
    """Merge the runtime config file with command-line flags and validate."""
    settings = ControllerSettings.from_yaml(args.config)
    return settings.with_overrides(
        orchestration=args.orchestration,
        ip_provider=args.ip_provider,
        ip_range=args.ip_range,
        infoblox_host=args.infoblox_host,
        wapi_port=args.wapi_port,
        wapi_username=args.wapi_username,
        wapi_password=args.wapi_password,
        wapi_version=args.wapi_version,
        ssl_verify=args.ssl_verify,
        log_level=args.log_level,
        manifest_path=args.manifest,
        resync_interval_seconds=args.resync_interval,
        status_port=args.status_port,
    ).validate()


def _install_signal_handlers(shutdown: threading.Event, received: list[int]) -> None:
    def _handle(signum: int, _frame: object) -> None:
        received.append(signum)
        shutdown.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ipam-controller")
    parser.add_argument(
        "--config",
        default=DEFAULT_RUNTIME_CONFIG_PATH,
        help="optional YAML runtime config; flags override its values",
    )

    global_flags = parser.add_argument_group("Global")
    global_flags.add_argument(
        "--log-level",
        help=f"optional, logging level ({', '.join(LOG_LEVELS)})",
    )
    global_flags.add_argument(
        "--orchestration",
        help="required, orchestration that the controller is running in",
    )
    global_flags.add_argument(
        "--ip-provider",
        help=(
            "the IPAM system that the controller will interface with "
            f"({IP_PROVIDER_STATIC} or {IP_PROVIDER_INFOBLOX}, default {IP_PROVIDER_STATIC})"
        ),
    )
    global_flags.add_argument(
        "--status-port",
        type=int,
        help="optional, serve the read-only status API on this port (0 disables)",
    )

    provider_flags = parser.add_argument_group("Provider")
    provider_flags.add_argument(
        "--ip-range",
        help="the static provider needs an ip range to build pools of IP addresses",
    )

    infoblox_flags = parser.add_argument_group("Infoblox")
    infoblox_flags.add_argument("--infoblox-host", help="the infoblox provider needs infoblox-host")
    infoblox_flags.add_argument("--wapi-port", help="the infoblox provider needs wapi-port")
    infoblox_flags.add_argument("--wapi-username", help="the infoblox provider needs wapi-username")
    infoblox_flags.add_argument("--wapi-password", help="the infoblox provider needs wapi-password")
    infoblox_flags.add_argument("--wapi-version", help="the infoblox provider needs wapi-version")
    infoblox_flags.add_argument(
        "--ssl-verify",
        type=parse_bool,
        help="enable verification of the infoblox server certificate (default false)",
    )

    manifest_flags = parser.add_argument_group("Manifest orchestration")
    manifest_flags.add_argument("--manifest", help="YAML file listing the desired hosts")
    manifest_flags.add_argument(
        "--resync-interval",
        type=float,
        help="seconds between manifest resyncs",
    )
    return parser


if __name__ == "__main__":
    raise SystemExit(main())
