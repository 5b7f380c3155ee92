"""Exception types raised while planning and provisioning a VPC.

Allocation and graph construction failures subclass ``ValueError`` so callers
that already treat bad input as a validation problem keep working. Failures
reported by the provisioning collaborator surface as ``ProvisioningError``.
"""

from __future__ import annotations


class VpcGenError(Exception):
    """Base class for all vpcgen errors."""


class InvalidBaseCidrError(VpcGenError, ValueError):
    """The base address block is empty, malformed, or not IPv4."""


class InvalidZoneCountError(VpcGenError, ValueError):
    """The requested number of availability zones is less than one."""


class SubnetSplitError(VpcGenError, ValueError):
    """The base block is too small for the requested zone count."""


class AllocationMismatchError(VpcGenError, ValueError):
    """The subnet allocation does not line up with the zone list."""


class ProvisioningError(VpcGenError, RuntimeError):
    """A resource could not be created by the provisioning collaborator.

    Attributes:
        kind: Resource kind of the failing node (e.g. ``"nat_gateway"``).
        name: Stable name of the failing node.
    """

    def __init__(self, kind: str, name: str, cause: BaseException | str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"failed to create {kind} '{name}': {cause}")
