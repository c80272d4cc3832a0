"""IPAM providers."""

from ipam_controller.providers.base import (
    IPAMProvider,
    ProviderAuthError,
    ProviderConfigurationError,
    ProviderError,
    ProviderRequestError,
)
from ipam_controller.providers.factory import create_ipam_provider

__all__ = [
    "IPAMProvider",
    "ProviderError",
    "ProviderAuthError",
    "ProviderConfigurationError",
    "ProviderRequestError",
    "create_ipam_provider",
]
