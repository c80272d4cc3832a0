"""IPAM provider selection based on runtime settings."""

from __future__ import annotations

import logging

from ipam_controller.config import (
    IP_PROVIDER_INFOBLOX,
    IP_PROVIDER_STATIC,
    ControllerSettings,
)
from ipam_controller.providers.base import IPAMProvider
from ipam_controller.providers.infoblox import HTTPClientFactory, InfobloxProvider
from ipam_controller.providers.static import StaticIPAMProvider


def create_ipam_provider(
    settings: ControllerSettings,
    *,
    logger: logging.Logger | None = None,
    http_client_factory: HTTPClientFactory | None = None,
) -> IPAMProvider:
    provider_mode = settings.ip_provider.strip().lower()
    if provider_mode == IP_PROVIDER_STATIC:
        ip_range = settings.ip_range.strip()
        if not ip_range:
            raise ValueError("--ip-range is required when --ip-provider=static")
        return StaticIPAMProvider(
            ip_range=ip_range,
            logger=logger.getChild("provider.static") if logger else None,
        )

    if provider_mode == IP_PROVIDER_INFOBLOX:
        extra: dict[str, HTTPClientFactory] = {}
        if http_client_factory is not None:
            extra["http_client_factory"] = http_client_factory
        return InfobloxProvider(
            host=settings.infoblox_host,
            port=settings.wapi_port,
            version=settings.wapi_version,
            username=settings.wapi_username,
            password=settings.wapi_password,
            ssl_verify=settings.ssl_verify,
            network_view=settings.network_view,
            dns_view=settings.dns_view,
            timeout_seconds=settings.http_timeout_seconds,
            logger=logger.getChild("provider.infoblox") if logger else None,
            **extra,
        )

    raise ValueError(
        f"--ip-provider must be either {IP_PROVIDER_STATIC!r} or {IP_PROVIDER_INFOBLOX!r} "
        f"(received {settings.ip_provider!r})"
    )
