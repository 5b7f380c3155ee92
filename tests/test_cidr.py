"""Tests for subnet CIDR allocation."""

from __future__ import annotations

import ipaddress
import itertools

import pytest

from vpcgen.cidr import (
    allocate,
    cidr_subnet,
    next_power_of_two,
    parse_base_cidr,
    partition_bits,
)
from vpcgen.errors import InvalidBaseCidrError, InvalidZoneCountError, SubnetSplitError


@pytest.mark.parametrize(
    "value,expected",
    [(1, 1), (2, 2), (3, 4), (4, 4), (5, 8), (8, 8), (9, 16), (16, 16)],
)
def test_next_power_of_two(value: int, expected: int) -> None:
    assert next_power_of_two(value) == expected


@pytest.mark.parametrize("zones,bits", [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (16, 4)])
def test_partition_bits(zones: int, bits: int) -> None:
    assert partition_bits(zones) == bits


def test_next_power_of_two_rejects_non_positive() -> None:
    with pytest.raises(ValueError):
        next_power_of_two(0)


def test_two_zone_allocation_matches_split_algorithm() -> None:
    allocation = allocate("10.0.0.0/16", 2)
    assert allocation.partition_bits == 1
    assert allocation.private_blocks == ("10.0.0.0/18", "10.0.128.0/18")
    assert allocation.public_blocks == ("10.0.64.0/19", "10.0.192.0/19")


def test_three_zone_allocation_uses_four_partitions() -> None:
    allocation = allocate("172.0.0.0/24", 3)
    assert allocation.partition_count == 4
    assert allocation.private_blocks == (
        "172.0.0.0/27",
        "172.0.0.64/27",
        "172.0.0.128/27",
    )
    assert allocation.public_blocks == (
        "172.0.0.32/28",
        "172.0.0.96/28",
        "172.0.0.160/28",
    )


def test_single_zone_uses_whole_block() -> None:
    allocation = allocate("10.1.0.0/16", 1)
    assert allocation.partition_bits == 0
    assert allocation.private_blocks == ("10.1.0.0/17",)
    assert allocation.public_blocks == ("10.1.128.0/18",)


def test_host_bits_are_masked() -> None:
    allocation = allocate("10.0.12.34/16", 1)
    assert allocation.base_cidr == "10.0.0.0/16"


@pytest.mark.parametrize("zone_count", range(1, 17))
def test_blocks_are_disjoint_and_contained(zone_count: int) -> None:
    base = ipaddress.ip_network("10.0.0.0/16")
    allocation = allocate(str(base), zone_count)

    assert len(allocation.private_blocks) == zone_count
    assert len(allocation.public_blocks) == zone_count

    blocks = [
        ipaddress.ip_network(b)
        for b in allocation.private_blocks + allocation.public_blocks
    ]
    for block in blocks:
        assert block.subnet_of(base)
    for a, b in itertools.combinations(blocks, 2):
        assert not a.overlaps(b)

    for private, public in zip(allocation.private_blocks, allocation.public_blocks):
        private_net = ipaddress.ip_network(private)
        public_net = ipaddress.ip_network(public)
        assert private_net.num_addresses == 2 * public_net.num_addresses


def test_allocation_is_deterministic() -> None:
    assert allocate("192.168.0.0/20", 5) == allocate("192.168.0.0/20", 5)


@pytest.mark.parametrize("zone_count", [0, -1])
def test_invalid_zone_count(zone_count: int) -> None:
    with pytest.raises(InvalidZoneCountError):
        allocate("10.0.0.0/16", zone_count)


@pytest.mark.parametrize(
    "base", ["", "   ", "not-a-cidr", "10.0.0.0", "10.0.0.0/33", "300.0.0.0/8", "fd00::/56"]
)
def test_invalid_base_cidr(base: str) -> None:
    with pytest.raises(InvalidBaseCidrError):
        allocate(base, 2)


def test_insufficient_space_raises_split_error() -> None:
    with pytest.raises(SubnetSplitError):
        allocate("10.0.0.0/30", 4)


def test_smallest_block_that_still_fits() -> None:
    allocation = allocate("10.0.0.0/30", 1)
    assert allocation.private_blocks == ("10.0.0.0/31",)
    assert allocation.public_blocks == ("10.0.0.2/32",)


def test_errors_are_value_errors() -> None:
    with pytest.raises(ValueError):
        allocate("10.0.0.0/31", 2)


def test_cidr_subnet_like_terraform() -> None:
    network = parse_base_cidr("10.0.0.0/16")
    assert str(cidr_subnet(network, 8, 2)) == "10.0.2.0/24"
    assert str(cidr_subnet(network, 0, 0)) == "10.0.0.0/16"
    with pytest.raises(SubnetSplitError):
        cidr_subnet(network, 2, 4)
