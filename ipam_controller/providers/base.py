"""IPAM provider interface and error taxonomy."""

from __future__ import annotations

from typing import Protocol


class IPAMProvider(Protocol):
    provider_name: str

    def create_a_record(self, hostname: str, ip_address: str) -> bool:
        """Bind ``hostname`` to ``ip_address``."""

    def delete_a_record(self, hostname: str, ip_address: str) -> None:
        """Remove the binding and release the address."""

    def get_ip_address(self, hostname: str) -> str:
        """Return the bound address, or an empty string when unbound."""

    def get_next_addr(self, cidr: str) -> str:
        """Reserve the next free address in ``cidr``; empty string when none."""

    def allocate_ip_address(self, cidr: str, ip_address: str) -> bool:
        """Reserve a specific address inside ``cidr``."""

    def release_addr(self, ip_address: str) -> None:
        """Return an address to the free state. Idempotent."""


class ProviderError(Exception):
    """Base provider exception for deterministic failure handling."""

    error_code = "provider_error"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderConfigurationError(ProviderError):
    error_code = "provider_configuration_error"


class ProviderAuthError(ProviderError):
    error_code = "provider_auth_error"


class ProviderRequestError(ProviderError):
    error_code = "provider_request_error"
