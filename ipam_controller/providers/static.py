"""Static provider backed by an in-process address pool."""

from __future__ import annotations

import ipaddress
import logging
import threading

from ipam_controller.pool import AddressPool, AddressStatus
from ipam_controller.providers.base import ProviderConfigurationError


class StaticIPAMProvider:
    """Allocates addresses from a single configured IPv4 range.

    Every read-modify-write of the pool and of the hostname bindings happens
    under one lock scoped to the provider instance.
    """

    provider_name = "static"

    def __init__(self, *, ip_range: str, logger: logging.Logger | None = None) -> None:
        self._log = logger or logging.getLogger(__name__)
        normalized = ip_range.strip().strip("\"'").strip()
        if not normalized:
            raise ProviderConfigurationError("ip range is required for the static provider")
        try:
            network = ipaddress.ip_network(normalized, strict=False)
        except ValueError as exc:
            raise ProviderConfigurationError(f"invalid ip range {ip_range!r}") from exc
        if not isinstance(network, ipaddress.IPv4Network):
            raise ProviderConfigurationError(f"ip range must be IPv4: {ip_range!r}")

        self._pool = AddressPool(network)
        self._lock = threading.Lock()
        self._cidrs: set[ipaddress.IPv4Network] = set()
        self._bindings: dict[str, ipaddress.IPv4Address] = {}
        self._owners: dict[ipaddress.IPv4Address, str] = {}
        self._log.info(
            "static provider initialized range=%s usable=%d", network, self._pool.size
        )

    @property
    def ip_range(self) -> ipaddress.IPv4Network:
        return self._pool.network

    def known_cidrs(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(str(cidr) for cidr in sorted(self._cidrs))

    def address_status(self, ip_address: str) -> AddressStatus | None:
        address = ipaddress.IPv4Address(ip_address)
        with self._lock:
            if not self._pool.contains(address):
                return None
            return self._pool.status(address)

    def create_a_record(self, hostname: str, ip_address: str) -> bool:
        address = ipaddress.IPv4Address(ip_address)
        with self._lock:
            if not self._pool.contains(address):
                self._log.error(
                    "cannot bind hostname=%s: %s is outside range %s",
                    hostname,
                    address,
                    self._pool.network,
                )
                return False

            owner = self._owners.get(address)
            if owner is not None and owner != hostname:
                self._log.error(
                    "cannot bind hostname=%s: %s already bound to %s", hostname, address, owner
                )
                return False

            previous = self._bindings.get(hostname)
            if previous == address:
                return True

            # An unbound reservation made by get_next_addr/allocate is adopted as-is.
            self._pool.reserve(address)
            if previous is not None:
                self._owners.pop(previous, None)
                self._pool.release(previous)
                self._log.info("released %s previously bound to %s", previous, hostname)
            self._bindings[hostname] = address
            self._owners[address] = hostname

        self._log.info("created A record hostname=%s ip=%s", hostname, address)
        return True

    def delete_a_record(self, hostname: str, ip_address: str) -> None:
        address = ipaddress.IPv4Address(ip_address)
        with self._lock:
            bound = self._bindings.get(hostname)
            if bound is not None and bound != address:
                self._log.warning(
                    "not deleting A record hostname=%s: bound to %s, not %s",
                    hostname,
                    bound,
                    address,
                )
                return

            if bound is None and self._owners.get(address) is not None:
                self._log.warning(
                    "not releasing %s: bound to %s, not %s",
                    address,
                    self._owners[address],
                    hostname,
                )
                return

            self._bindings.pop(hostname, None)
            self._owners.pop(address, None)
            if self._pool.contains(address):
                self._pool.release(address)

        self._log.info("deleted A record hostname=%s ip=%s", hostname, address)

    def get_ip_address(self, hostname: str) -> str:
        with self._lock:
            bound = self._bindings.get(hostname)
        return str(bound) if bound is not None else ""

    def get_next_addr(self, cidr: str) -> str:
        network = ipaddress.IPv4Network(cidr, strict=False)
        with self._lock:
            if not self._register_cidr(network):
                return ""
            address = self._pool.reserve_next(within=network)

        if address is None:
            self._log.warning("no free address left in %s", network)
            return ""
        self._log.debug("reserved next address %s from %s", address, network)
        return str(address)

    def allocate_ip_address(self, cidr: str, ip_address: str) -> bool:
        network = ipaddress.IPv4Network(cidr, strict=False)
        address = ipaddress.IPv4Address(ip_address)
        if address not in network:
            self._log.error("cannot allocate %s: outside %s", address, network)
            return False

        with self._lock:
            if not self._register_cidr(network):
                return False
            if not self._pool.contains_within(address, network):
                self._log.error("cannot allocate %s: not a usable address in %s", address, network)
                return False
            if not self._pool.reserve(address):
                self._log.error("cannot allocate %s: already allocated", address)
                return False

        self._log.debug("allocated %s from %s", address, network)
        return True

    def release_addr(self, ip_address: str) -> None:
        address = ipaddress.IPv4Address(ip_address)
        with self._lock:
            if not self._pool.contains(address):
                self._log.warning("cannot release %s: outside range %s", address, self._pool.network)
                return
            if not self._pool.release(address):
                self._log.debug("address %s already free", address)
                return
            owner = self._owners.pop(address, None)
            if owner is not None:
                self._bindings.pop(owner, None)

        self._log.info("released %s", address)

    def _register_cidr(self, network: ipaddress.IPv4Network) -> bool:
        if network in self._cidrs:
            return True
        if not network.subnet_of(self._pool.network):
            self._log.error("cidr %s is outside configured range %s", network, self._pool.network)
            return False
        self._cidrs.add(network)
        self._log.debug("registered pool for cidr %s", network)
        return True
