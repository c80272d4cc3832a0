"""In-memory IPv4 address pool for one CIDR range."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterator
from enum import StrEnum


class AddressStatus(StrEnum):
    FREE = "free"
    ALLOCATED = "allocated"


class PoolError(Exception):
    """Raised when an address cannot be represented by a pool."""

    error_code = "pool_error"


class AddressPool:
    """Tracks allocation status for the usable hosts of one IPv4 network.

    Member addresses are the network's usable hosts in ascending order; for
    prefixes shorter than /31 the network and broadcast addresses are not
    members. The pool is not synchronized, callers serialize access.
    """

    def __init__(self, network: ipaddress.IPv4Network) -> None:
        if network.version != 4:
            raise PoolError(f"address pools are IPv4 only: {network}")
        self._network = network
        if network.prefixlen >= 31:
            self._first_host = int(network.network_address)
            self._last_host = int(network.broadcast_address)
        else:
            self._first_host = int(network.network_address) + 1
            self._last_host = int(network.broadcast_address) - 1
        self._allocated: set[int] = set()

    @property
    def network(self) -> ipaddress.IPv4Network:
        return self._network

    @property
    def size(self) -> int:
        return self._last_host - self._first_host + 1

    @property
    def free_count(self) -> int:
        return self.size - len(self._allocated)

    def contains(self, address: ipaddress.IPv4Address) -> bool:
        return self._first_host <= int(address) <= self._last_host

    def contains_within(
        self, address: ipaddress.IPv4Address, within: ipaddress.IPv4Network
    ) -> bool:
        """Whether ``address`` is a member that ``reserve_next(within)`` could return."""
        first, last = self._bounds(within)
        return first <= int(address) <= last

    def status(self, address: ipaddress.IPv4Address) -> AddressStatus:
        self._require_member(address)
        if int(address) in self._allocated:
            return AddressStatus.ALLOCATED
        return AddressStatus.FREE

    def reserve_next(
        self, within: ipaddress.IPv4Network | None = None
    ) -> ipaddress.IPv4Address | None:
        """Reserve and return the lowest free member, optionally inside ``within``."""
        first, last = self._bounds(within)
        for candidate in range(first, last + 1):
            if candidate not in self._allocated:
                self._allocated.add(candidate)
                return ipaddress.IPv4Address(candidate)
        return None

    def reserve(self, address: ipaddress.IPv4Address) -> bool:
        self._require_member(address)
        value = int(address)
        if value in self._allocated:
            return False
        self._allocated.add(value)
        return True

    def release(self, address: ipaddress.IPv4Address) -> bool:
        """Mark ``address`` free; returns False when it was not allocated."""
        self._require_member(address)
        value = int(address)
        if value not in self._allocated:
            return False
        self._allocated.discard(value)
        return True

    def allocated_addresses(self) -> Iterator[ipaddress.IPv4Address]:
        for value in sorted(self._allocated):
            yield ipaddress.IPv4Address(value)

    def _require_member(self, address: ipaddress.IPv4Address) -> None:
        if not self.contains(address):
            raise PoolError(f"address {address} is not a member of pool {self._network}")

    def _bounds(self, within: ipaddress.IPv4Network | None) -> tuple[int, int]:
        first, last = self._first_host, self._last_host
        if within is None:
            return first, last
        first = max(first, int(within.network_address))
        last = min(last, int(within.broadcast_address))
        if within.prefixlen < 31:
            # Sub-range network and broadcast addresses are never handed out.
            first = max(first, int(within.network_address) + 1)
            last = min(last, int(within.broadcast_address) - 1)
        return first, last
