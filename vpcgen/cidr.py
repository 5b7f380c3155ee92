"""Subnet CIDR allocation across availability zones.

The base block is divided into ``next_power_of_two(zone_count)`` equal
partitions, one per zone (trailing partitions stay unallocated). Each zone
partition is halved: the first half becomes the private subnet, and the first
half of the second half becomes the public subnet. Private subnets are
therefore twice the size of public ones, and the last quarter of every zone
partition is left free.

Example for ``10.0.0.0/16`` and two zones::

    zone 0: 10.0.0.0/17   -> private 10.0.0.0/18,   public 10.0.64.0/19
    zone 1: 10.0.128.0/17 -> private 10.0.128.0/18, public 10.0.192.0/19
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass

from vpcgen.errors import InvalidBaseCidrError, InvalidZoneCountError, SubnetSplitError
from vpcgen.log_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SubnetAllocation:
    """Private and public subnet blocks for each zone, index-aligned.

    Attributes:
        base_cidr: Canonical base block the subnets were carved from.
        partition_bits: Extra prefix bits used for the per-zone partitions.
        private_blocks: Private subnet CIDR for zone ``i`` at index ``i``.
        public_blocks: Public subnet CIDR for zone ``i`` at index ``i``.
    """

    base_cidr: str
    partition_bits: int
    private_blocks: tuple[str, ...]
    public_blocks: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.private_blocks)

    @property
    def partition_count(self) -> int:
        return 1 << self.partition_bits


def next_power_of_two(value: int) -> int:
    """Return the smallest power of two greater than or equal to ``value``.

    ``value`` must be positive.
    """
    if value <= 0:
        raise ValueError(f"value must be positive, got {value}")
    return 1 << (value - 1).bit_length()


def partition_bits(zone_count: int) -> int:
    """Return the prefix bits needed to give ``zone_count`` zones a partition each."""
    return next_power_of_two(zone_count).bit_length() - 1


def parse_base_cidr(base_cidr: str) -> ipaddress.IPv4Network:
    """Parse the base block, masking off any host bits.

    Raises:
        InvalidBaseCidrError: If the block is empty, malformed, or IPv6.
    """
    if not isinstance(base_cidr, str) or not base_cidr.strip():
        raise InvalidBaseCidrError("base CIDR must be a non-empty string")
    if "/" not in base_cidr:
        raise InvalidBaseCidrError(
            f"base CIDR must include a prefix length: {base_cidr!r}"
        )
    try:
        network = ipaddress.ip_network(base_cidr.strip(), strict=False)
    except ValueError as exc:
        raise InvalidBaseCidrError(f"invalid base CIDR {base_cidr!r}: {exc}") from exc
    if network.version != 4:
        raise InvalidBaseCidrError(f"expected an IPv4 CIDR block, got {base_cidr!r}")
    return network


def cidr_subnet(
    network: ipaddress.IPv4Network, newbits: int, netnum: int
) -> ipaddress.IPv4Network:
    """Return sub-block ``netnum`` of ``network`` extended by ``newbits`` bits.

    Behaves like Terraform's ``cidrsubnet``.

    Raises:
        SubnetSplitError: If the new prefix exceeds the address family's
            maximum or ``netnum`` does not fit in ``newbits`` bits.
    """
    new_prefix = network.prefixlen + newbits
    if new_prefix > network.max_prefixlen:
        raise SubnetSplitError(
            f"insufficient address space to extend prefix of {network} by "
            f"{newbits} bits (would be /{new_prefix})"
        )
    if netnum < 0 or netnum >= (1 << newbits):
        raise SubnetSplitError(
            f"prefix extension of {newbits} bits does not accommodate subnet "
            f"number {netnum}"
        )
    size = 1 << (network.max_prefixlen - new_prefix)
    base = int(network.network_address) + netnum * size
    return ipaddress.IPv4Network((base, new_prefix))


def allocate(base_cidr: str, zone_count: int) -> SubnetAllocation:
    """Split ``base_cidr`` into one private and one public subnet per zone.

    Args:
        base_cidr: Base IPv4 block, e.g. ``"10.0.0.0/16"``.
        zone_count: Number of availability zones to allocate for.

    Returns:
        Index-aligned private and public blocks for each zone.

    Raises:
        InvalidZoneCountError: If ``zone_count`` is less than one.
        InvalidBaseCidrError: If ``base_cidr`` cannot be parsed.
        SubnetSplitError: If the block is too small for ``zone_count`` zones.
    """
    if isinstance(zone_count, bool) or not isinstance(zone_count, int):
        raise InvalidZoneCountError(f"zone count must be an integer, got {zone_count!r}")
    if zone_count <= 0:
        raise InvalidZoneCountError(f"zone count must be at least 1, got {zone_count}")

    network = parse_base_cidr(base_cidr)
    bits = partition_bits(zone_count)
    logger.debug(
        f"Allocating {zone_count} zones from {network} using "
        f"{1 << bits} partitions (+{bits} bits)"
    )

    private_blocks: list[str] = []
    public_blocks: list[str] = []
    for index in range(zone_count):
        zone_block = cidr_subnet(network, bits, index)
        private = cidr_subnet(zone_block, 1, 0)
        public_candidate = cidr_subnet(zone_block, 1, 1)
        public = cidr_subnet(public_candidate, 1, 0)
        private_blocks.append(str(private))
        public_blocks.append(str(public))

    logger.info(
        f"Allocated {zone_count} private/public subnet pairs from {network}"
    )
    return SubnetAllocation(
        base_cidr=str(network),
        partition_bits=bits,
        private_blocks=tuple(private_blocks),
        public_blocks=tuple(public_blocks),
    )
