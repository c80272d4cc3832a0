"""Backend-independent allocation API."""

from __future__ import annotations

import ipaddress
import logging
import re

from ipam_controller.config import ControllerSettings
from ipam_controller.providers import IPAMProvider, ProviderError, create_ipam_provider

_HOSTNAME_LABEL = re.compile(r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)")
_MAX_HOSTNAME_LENGTH = 253


class IPAMManager:
    """Validates inputs once and forwards them to the active provider.

    Invalid input and backend failures are reported through the return value
    and a log line; nothing here raises for a per-request error.
    """

    def __init__(self, provider: IPAMProvider, *, logger: logging.Logger | None = None) -> None:
        self._provider = provider
        self._log = logger or logging.getLogger(__name__)

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    def create_a_record(self, hostname: str, ip_address: str) -> bool:
        if not is_ipv4_address(ip_address):
            self._log.error("invalid IP address provided: %r", ip_address)
            return False
        if not is_valid_hostname(hostname):
            self._log.error("invalid hostname provided: %r", hostname)
            return False
        try:
            return self._provider.create_a_record(hostname, ip_address)
        except ProviderError as exc:
            self._log.error(
                "create A record failed hostname=%s ip=%s error=%s: %s",
                hostname,
                ip_address,
                exc.error_code,
                exc,
            )
            return False

    def delete_a_record(self, hostname: str, ip_address: str) -> None:
        if not is_ipv4_address(ip_address):
            self._log.error("invalid IP address provided: %r", ip_address)
            return
        if not is_valid_hostname(hostname):
            self._log.error("invalid hostname provided: %r", hostname)
            return
        try:
            self._provider.delete_a_record(hostname, ip_address)
        except ProviderError as exc:
            self._log.error(
                "delete A record failed hostname=%s ip=%s error=%s: %s",
                hostname,
                ip_address,
                exc.error_code,
                exc,
            )

    def get_ip_address(self, hostname: str) -> str:
        if not is_valid_hostname(hostname):
            self._log.debug("invalid hostname provided: %r", hostname)
            return ""
        try:
            return self._provider.get_ip_address(hostname)
        except ProviderError as exc:
            self._log.error(
                "IP address lookup failed hostname=%s error=%s: %s",
                hostname,
                exc.error_code,
                exc,
            )
            return ""

    def get_next_ip_address(self, cidr: str) -> str:
        network = parse_ipv4_cidr(cidr)
        if network is None:
            self._log.debug("invalid CIDR provided: %r", cidr)
            return ""
        try:
            return self._provider.get_next_addr(str(network))
        except ProviderError as exc:
            self._log.error(
                "next address reservation failed cidr=%s error=%s: %s",
                network,
                exc.error_code,
                exc,
            )
            return ""

    def allocate_ip_address(self, cidr: str, ip_address: str) -> bool:
        network = parse_ipv4_cidr(cidr)
        if network is None:
            self._log.error("invalid CIDR provided: %r", cidr)
            return False
        if not is_ipv4_address(ip_address):
            self._log.error("invalid IP address provided: %r", ip_address)
            return False
        try:
            return self._provider.allocate_ip_address(str(network), ip_address)
        except ProviderError as exc:
            self._log.error(
                "allocation failed cidr=%s ip=%s error=%s: %s",
                network,
                ip_address,
                exc.error_code,
                exc,
            )
            return False

    def release_ip_address(self, ip_address: str) -> None:
        if not is_ipv4_address(ip_address):
            self._log.error("invalid IP address provided: %r", ip_address)
            return
        try:
            self._provider.release_addr(ip_address)
        except ProviderError as exc:
            self._log.error(
                "release failed ip=%s error=%s: %s", ip_address, exc.error_code, exc
            )


def create_manager(
    settings: ControllerSettings, *, logger: logging.Logger | None = None
) -> IPAMManager:
    provider = create_ipam_provider(settings, logger=logger)
    manager_log = logger.getChild("manager") if logger is not None else None
    if manager_log is not None:
        manager_log.debug("creating manager with provider: %s", provider.provider_name)
    return IPAMManager(provider, logger=manager_log)


def is_ipv4_address(value: str) -> bool:
    if not isinstance(value, str) or ":" in value:
        return False
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def parse_ipv4_cidr(value: str) -> ipaddress.IPv4Network | None:
    """Parse ``value`` as an IPv4 CIDR, normalizing host bits to the network."""
    if not isinstance(value, str) or "/" not in value:
        return None
    try:
        network = ipaddress.ip_network(value.strip(), strict=False)
    except ValueError:
        return None
    if not isinstance(network, ipaddress.IPv4Network):
        return None
    return network


def is_valid_hostname(hostname: str) -> bool:
    if not isinstance(hostname, str):
        return False
    candidate = hostname[:-1] if hostname.endswith(".") else hostname
    if not candidate or len(candidate) > _MAX_HOSTNAME_LENGTH:
        return False
    return all(_HOSTNAME_LABEL.fullmatch(label) for label in candidate.split("."))
