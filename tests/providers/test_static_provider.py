from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from ipam_controller.pool import AddressStatus
from ipam_controller.providers import ProviderConfigurationError
from ipam_controller.providers.static import StaticIPAMProvider


def test_concurrent_next_addr_never_hands_out_duplicates() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")
    barrier = threading.Barrier(2)

    def reserve() -> str:
        barrier.wait()
        return provider.get_next_addr("10.0.0.0/30")

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(lambda _: reserve(), range(2)))

    assert sorted(results) == ["10.0.0.1", "10.0.0.2"]
    assert provider.get_next_addr("10.0.0.0/30") == ""


def test_concurrent_next_addr_under_contention_is_unique() -> None:
    provider = StaticIPAMProvider(ip_range="172.16.0.0/24")

    with ThreadPoolExecutor(max_workers=16) as executor:
        results = list(executor.map(lambda _: provider.get_next_addr("172.16.0.0/24"), range(300)))

    assigned = [result for result in results if result]
    assert len(assigned) == 254
    assert len(set(assigned)) == 254
    assert results.count("") == 46


def test_next_addr_rejects_cidr_outside_configured_range() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/24")

    assert provider.get_next_addr("10.1.0.0/24") == ""
    assert provider.known_cidrs() == ()


def test_next_addr_registers_sub_pool_on_first_use() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/16")

    assert provider.get_next_addr("10.0.5.0/24") == "10.0.5.1"
    assert provider.known_cidrs() == ("10.0.5.0/24",)


def test_allocate_rejects_address_outside_cidr() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.5") is False


def test_allocate_rejects_sub_cidr_network_and_broadcast_addresses() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/24")

    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.0") is False
    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.3") is False
    assert provider.allocate_ip_address("10.0.0.4/30", "10.0.0.4") is False
    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.2") is True
    assert provider.address_status("10.0.0.3") is AddressStatus.FREE
    assert provider.address_status("10.0.0.4") is AddressStatus.FREE


def test_allocate_rejects_already_allocated_address() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.2") is True
    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.2") is False


def test_allocate_release_round_trip_frees_address() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.allocate_ip_address("10.0.0.0/30", "10.0.0.1") is True
    assert provider.address_status("10.0.0.1") is AddressStatus.ALLOCATED

    provider.release_addr("10.0.0.1")

    assert provider.address_status("10.0.0.1") is AddressStatus.FREE
    assert provider.get_next_addr("10.0.0.0/30") == "10.0.0.1"


def test_release_is_idempotent() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    provider.release_addr("10.0.0.2")
    provider.release_addr("10.0.0.2")
    provider.release_addr("10.0.0.9")

    assert provider.address_status("10.0.0.2") is AddressStatus.FREE
    assert provider.address_status("10.0.0.9") is None


def test_create_and_delete_a_record_round_trip() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.create_a_record("host1", "10.0.0.1") is True
    assert provider.get_ip_address("host1") == "10.0.0.1"
    assert provider.address_status("10.0.0.1") is AddressStatus.ALLOCATED

    provider.delete_a_record("host1", "10.0.0.1")

    assert provider.get_ip_address("host1") == ""
    assert provider.address_status("10.0.0.1") is AddressStatus.FREE


def test_create_a_record_adopts_prior_reservation() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")
    reserved = provider.get_next_addr("10.0.0.0/30")

    assert provider.create_a_record("host1", reserved) is True
    assert provider.get_ip_address("host1") == reserved
    assert provider.get_next_addr("10.0.0.0/30") == "10.0.0.2"


def test_create_a_record_rebinding_releases_previous_address() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.create_a_record("host1", "10.0.0.1") is True
    assert provider.create_a_record("host1", "10.0.0.2") is True

    assert provider.get_ip_address("host1") == "10.0.0.2"
    assert provider.address_status("10.0.0.1") is AddressStatus.FREE


def test_create_a_record_is_idempotent_for_same_binding() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.create_a_record("host1", "10.0.0.1") is True
    assert provider.create_a_record("host1", "10.0.0.1") is True
    assert provider.get_next_addr("10.0.0.0/30") == "10.0.0.2"


def test_create_a_record_rejects_address_bound_to_other_hostname() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.create_a_record("host1", "10.0.0.1") is True
    assert provider.create_a_record("host2", "10.0.0.1") is False
    assert provider.get_ip_address("host2") == ""
    assert provider.get_ip_address("host1") == "10.0.0.1"


def test_create_a_record_rejects_address_outside_range() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")

    assert provider.create_a_record("host1", "192.168.0.1") is False
    assert provider.get_ip_address("host1") == ""


def test_delete_a_record_keeps_binding_to_a_different_address() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")
    provider.create_a_record("host1", "10.0.0.1")

    provider.delete_a_record("host1", "10.0.0.2")

    assert provider.get_ip_address("host1") == "10.0.0.1"


def test_delete_a_record_does_not_release_address_owned_by_other_hostname() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")
    provider.create_a_record("host1", "10.0.0.1")

    provider.delete_a_record("host2", "10.0.0.1")

    assert provider.address_status("10.0.0.1") is AddressStatus.ALLOCATED
    assert provider.get_ip_address("host1") == "10.0.0.1"


def test_release_of_bound_address_drops_binding() -> None:
    provider = StaticIPAMProvider(ip_range="10.0.0.0/30")
    provider.create_a_record("host1", "10.0.0.1")

    provider.release_addr("10.0.0.1")

    assert provider.get_ip_address("host1") == ""


@pytest.mark.parametrize("ip_range", ["", "not-a-range", "2001:db8::/64"])
def test_constructor_rejects_invalid_ranges(ip_range: str) -> None:
    with pytest.raises(ProviderConfigurationError):
        StaticIPAMProvider(ip_range=ip_range)


def test_constructor_strips_quotes_from_range() -> None:
    provider = StaticIPAMProvider(ip_range="'10.0.0.0/30'")

    assert str(provider.ip_range) == "10.0.0.0/30"
