"""VPC topology generator.

Allocates per-zone public/private subnets from a base CIDR block and derives
the resource graph (VPC, subnets, routing, NAT egress, optional private DNS
and gateway endpoints) needed to provision them.
"""

__version__ = "0.1.0"

# Core classes and utilities
from .cidr import SubnetAllocation, allocate
from .component import VpcOutputs, VpcPlan, plan_vpc, provision_vpc
from .config import VpcGenConfig, VpcSpec
from .futures import aggregate
from .topology import ResourceGraph, ResourceKind, ResourceNode, build_topology

__all__ = [
    "ResourceGraph",
    "ResourceKind",
    "ResourceNode",
    "SubnetAllocation",
    "VpcGenConfig",
    "VpcOutputs",
    "VpcPlan",
    "VpcSpec",
    "__version__",
    "aggregate",
    "allocate",
    "build_topology",
    "plan_vpc",
    "provision_vpc",
]
