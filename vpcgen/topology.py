"""Resource graph construction for a VPC component.

Turns a ``VpcSpec`` and its ``SubnetAllocation`` into an immutable
``ResourceGraph``: one node per cloud resource plus the parent and reference
edges that dictate creation order. Construction is pure; nothing here talks
to a provisioner. See ``vpcgen.provisioning`` for executing a graph.

Edges point from a dependency to its dependant, so ``B -> A`` reads "A depends
on B". A node may only refer to nodes added before it, which keeps the graph
acyclic and makes insertion order a valid creation order.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import networkx as nx

from vpcgen.errors import AllocationMismatchError
from vpcgen.log_config import get_logger
from vpcgen.naming import resource_name
from vpcgen.tags import merge_tags

if TYPE_CHECKING:  # pragma: no cover - import-time types only
    from vpcgen.cidr import SubnetAllocation
    from vpcgen.config import VpcSpec

logger = get_logger(__name__)

DEFAULT_ROUTE_CIDR = "0.0.0.0/0"
PROVIDER_DNS = "AmazonProvidedDNS"


class ResourceKind(str, Enum):
    VPC = "vpc"
    INTERNET_GATEWAY = "internet_gateway"
    PRIVATE_ZONE = "private_zone"
    DHCP_OPTIONS = "dhcp_options"
    DHCP_ASSOCIATION = "dhcp_association"
    SUBNET = "subnet"
    ROUTE_TABLE = "route_table"
    ROUTE = "route"
    ROUTE_ASSOCIATION = "route_association"
    EIP = "eip"
    NAT_GATEWAY = "nat_gateway"
    ENDPOINT = "endpoint"


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class EndpointService(str, Enum):
    S3 = "s3"
    DYNAMODB = "dynamodb"


def endpoint_service_name(region: str, service: EndpointService) -> str:
    """Return the gateway endpoint service name, e.g. ``com.amazonaws.us-west-2.s3``."""
    return f"com.amazonaws.{region}.{service.value}"


@dataclass(frozen=True, slots=True)
class Ref:
    """Placeholder for the identifier of another node, resolved at execution."""

    name: str


@dataclass(frozen=True, slots=True)
class ResourceNode:
    """A single resource in the graph.

    Attributes:
        name: Stable, graph-unique name.
        kind: Resource kind; selects the provisioning operation.
        parent: Name of the owning node, ``None`` for the root.
        attrs: Keyword inputs for the provisioning operation. ``Ref`` values
            stand for identifiers that are not known until execution.
        visibility: Public/private side for subnets and route tables.
        zone_index: Position of the node's zone in ``VpcSpec.zone_names``.
        zone_name: Zone identifier for per-zone nodes.
        service: Service for endpoint nodes.
    """

    name: str
    kind: ResourceKind
    parent: str | None = None
    attrs: Mapping[str, Any] = field(default_factory=dict, hash=False)
    visibility: Visibility | None = None
    zone_index: int | None = None
    zone_name: str | None = None
    service: EndpointService | None = None

    @property
    def references(self) -> tuple[str, ...]:
        """Names of nodes whose identifiers appear in ``attrs``, in attr order."""
        return tuple(v.name for v in self.attrs.values() if isinstance(v, Ref))

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Parent followed by referenced nodes, without duplicates."""
        seen: dict[str, None] = {}
        if self.parent is not None:
            seen[self.parent] = None
        for ref in self.references:
            seen.setdefault(ref, None)
        return tuple(seen)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view of the node for YAML/JSON output."""
        data: dict[str, Any] = {"kind": self.kind.value, "parent": self.parent}
        if self.visibility is not None:
            data["visibility"] = self.visibility.value
        if self.zone_name is not None:
            data["zone"] = self.zone_name
        if self.service is not None:
            data["service"] = self.service.value
        data["attrs"] = {
            k: ({"ref": v.name} if isinstance(v, Ref) else _plain(v))
            for k, v in self.attrs.items()
        }
        return data


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class ResourceGraph:
    """Immutable set of resource nodes and their dependency edges."""

    def __init__(self, nodes: Iterable[ResourceNode]) -> None:
        graph = nx.DiGraph()
        order: list[str] = []
        for node in nodes:
            if node.name in graph:
                raise ValueError(f"Duplicate resource name: {node.name}")
            for dep in node.dependencies:
                if dep not in graph:
                    raise ValueError(
                        f"Resource '{node.name}' depends on unknown or later "
                        f"resource '{dep}'"
                    )
            graph.add_node(node.name, node=node)
            for dep in node.dependencies:
                graph.add_edge(dep, node.name, parent=(dep == node.parent))
            order.append(node.name)
        self._graph = nx.freeze(graph)
        self._order = tuple(order)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[ResourceNode]:
        return (self.node(name) for name in self._order)

    def __contains__(self, name: object) -> bool:
        return name in self._graph

    @property
    def graph(self) -> nx.DiGraph:
        """Frozen view of the underlying networkx graph."""
        return self._graph

    def node(self, name: str) -> ResourceNode:
        try:
            return self._graph.nodes[name]["node"]
        except KeyError:
            raise KeyError(f"Unknown resource: {name}") from None

    def nodes(
        self,
        kind: ResourceKind | None = None,
        visibility: Visibility | None = None,
    ) -> list[ResourceNode]:
        """Return nodes in insertion order, optionally filtered."""
        return [
            n
            for n in self
            if (kind is None or n.kind is kind)
            and (visibility is None or n.visibility is visibility)
        ]

    def count(self, kind: ResourceKind, visibility: Visibility | None = None) -> int:
        return len(self.nodes(kind, visibility))

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Nodes that must resolve before ``name`` can be created."""
        return self.node(name).dependencies

    def dependents(self, name: str) -> list[str]:
        """Nodes that directly depend on ``name``."""
        return sorted(self._graph.successors(name), key=self._order.index)

    def children(self, name: str) -> list[str]:
        """Nodes owned by ``name`` through the parent relation."""
        return [n.name for n in self if n.parent == name]

    def edges(self) -> list[tuple[str, str]]:
        """All ``(dependency, dependant)`` pairs."""
        return list(self._graph.edges())

    def creation_order(self) -> list[str]:
        """A dependency-respecting creation order (insertion order)."""
        return list(self._order)

    def creation_waves(self) -> list[list[str]]:
        """Group nodes into waves that may be created concurrently.

        Every node in wave ``k`` only depends on nodes in waves ``< k``.
        """
        rank = {name: i for i, name in enumerate(self._order)}
        return [
            sorted(wave, key=rank.__getitem__)
            for wave in nx.topological_generations(self._graph)
        ]

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view of the graph keyed by node name."""
        return {
            "resources": {n.name: n.to_dict() for n in self},
            "edges": [[u, v] for u, v in self.edges()],
        }


class _GraphBuilder:
    """Accumulates nodes for one component before freezing them into a graph."""

    def __init__(self, component: str, tags: Mapping[str, str]) -> None:
        self.component = component
        self.tags = tags
        self.nodes: list[ResourceNode] = []

    def name(self, *parts: str, zone: str | None = None) -> str:
        return resource_name(self.component, *parts, zone=zone)

    def tagged(self, name: str, **extra: str) -> dict[str, str]:
        return merge_tags(self.tags, {"Name": name, **extra})

    def add(
        self,
        name: str,
        kind: ResourceKind,
        parent: str | None,
        **kwargs: Any,
    ) -> str:
        attrs = kwargs.pop("attrs", {})
        self.nodes.append(
            ResourceNode(
                name=name,
                kind=kind,
                parent=parent,
                attrs=MappingProxyType(dict(attrs)),
                **kwargs,
            )
        )
        return name


def build_topology(
    name: str,
    spec: VpcSpec,
    allocation: SubnetAllocation,
    region: str | None = None,
) -> ResourceGraph:
    """Build the resource graph for a VPC component.

    Args:
        name: Component name; prefixes every resource name.
        spec: VPC spec with zone list and feature flags.
        allocation: Subnet blocks from ``vpcgen.cidr.allocate``.
        region: Region used to format endpoint service names. Only required
            when an endpoint is enabled.

    Returns:
        Immutable resource graph.

    Raises:
        AllocationMismatchError: If the allocation does not have one private
            and one public block per zone.
        ValueError: If an endpoint is enabled without a region, or the
            private zone is enabled without a name.
    """
    zones = spec.zone_names
    if len(allocation.private_blocks) != len(zones) or len(
        allocation.public_blocks
    ) != len(zones):
        raise AllocationMismatchError(
            f"allocation has {len(allocation.private_blocks)} private and "
            f"{len(allocation.public_blocks)} public blocks for {len(zones)} zones"
        )
    if spec.endpoints_enabled and not region:
        raise ValueError("a region is required to create VPC endpoints")
    if spec.create_private_zone and not spec.private_zone_name:
        raise ValueError("a private zone name is required to create a private zone")

    b = _GraphBuilder(name, spec.tags)

    # VPC and internet gateway
    vpc = b.name("vpc")
    b.add(
        vpc,
        ResourceKind.VPC,
        None,
        attrs={
            "cidr_block": allocation.base_cidr,
            "enable_dns_hostnames": True,
            "enable_dns_support": True,
            "tags": b.tagged(vpc),
        },
    )
    igw = b.add(
        b.name("igw"),
        ResourceKind.INTERNET_GATEWAY,
        vpc,
        attrs={"vpc_id": Ref(vpc)},
    )

    # Private DNS
    if spec.create_private_zone:
        b.add(
            b.name("private-zone"),
            ResourceKind.PRIVATE_ZONE,
            vpc,
            attrs={"name": spec.private_zone_name, "vpc_id": Ref(vpc)},
        )
        dhcp = b.name("dhcp-options")
        b.add(
            dhcp,
            ResourceKind.DHCP_OPTIONS,
            vpc,
            attrs={
                "domain_name": spec.private_zone_name,
                "domain_name_servers": [PROVIDER_DNS],
                "tags": b.tagged(dhcp),
            },
        )
        b.add(
            b.name("dhcp-association"),
            ResourceKind.DHCP_ASSOCIATION,
            vpc,
            attrs={"vpc_id": Ref(vpc), "dhcp_options_id": Ref(dhcp)},
        )

    # Subnets
    private_subnets: list[str] = []
    public_subnets: list[str] = []
    for i, zone in enumerate(zones):
        for visibility, block, bucket in (
            (Visibility.PRIVATE, allocation.private_blocks[i], private_subnets),
            (Visibility.PUBLIC, allocation.public_blocks[i], public_subnets),
        ):
            subnet = b.name(visibility.value, "subnet", zone=zone)
            b.add(
                subnet,
                ResourceKind.SUBNET,
                vpc,
                visibility=visibility,
                zone_index=i,
                zone_name=zone,
                attrs={
                    "vpc_id": Ref(vpc),
                    "cidr_block": block,
                    "availability_zone": zone,
                    "map_public_ip_on_launch": visibility is Visibility.PUBLIC,
                    "tags": b.tagged(subnet, Zone=zone, Tier=visibility.value),
                },
            )
            bucket.append(subnet)

    # Public routing through the adopted default route table
    public_rt = b.name("public-rt")
    b.add(
        public_rt,
        ResourceKind.ROUTE_TABLE,
        vpc,
        visibility=Visibility.PUBLIC,
        attrs={"vpc_id": Ref(vpc), "tags": b.tagged(public_rt)},
    )
    b.add(
        b.name("public-default-route"),
        ResourceKind.ROUTE,
        public_rt,
        visibility=Visibility.PUBLIC,
        attrs={
            "route_table_id": Ref(public_rt),
            "destination_cidr_block": DEFAULT_ROUTE_CIDR,
            "gateway_id": Ref(igw),
        },
    )
    for i, (zone, subnet) in enumerate(zip(zones, public_subnets)):
        b.add(
            b.name("public-rta", zone=zone),
            ResourceKind.ROUTE_ASSOCIATION,
            public_rt,
            visibility=Visibility.PUBLIC,
            zone_index=i,
            zone_name=zone,
            attrs={"subnet_id": Ref(subnet), "route_table_id": Ref(public_rt)},
        )

    # Per-zone NAT egress
    for i, zone in enumerate(zones):
        private_subnet = private_subnets[i]
        eip = b.name("nat-eip", zone=zone)
        b.add(
            eip,
            ResourceKind.EIP,
            private_subnet,
            zone_index=i,
            zone_name=zone,
            attrs={"tags": b.tagged(eip)},
        )
        nat = b.name("nat-gateway", zone=zone)
        b.add(
            nat,
            ResourceKind.NAT_GATEWAY,
            public_subnets[i],
            zone_index=i,
            zone_name=zone,
            attrs={
                "allocation_id": Ref(eip),
                "subnet_id": Ref(public_subnets[i]),
                "tags": b.tagged(nat),
            },
        )
        private_rt = b.name("private-rt", zone=zone)
        b.add(
            private_rt,
            ResourceKind.ROUTE_TABLE,
            vpc,
            visibility=Visibility.PRIVATE,
            zone_index=i,
            zone_name=zone,
            attrs={"vpc_id": Ref(vpc), "tags": b.tagged(private_rt)},
        )
        b.add(
            b.name("private-default-route", zone=zone),
            ResourceKind.ROUTE,
            private_rt,
            visibility=Visibility.PRIVATE,
            zone_index=i,
            zone_name=zone,
            attrs={
                "route_table_id": Ref(private_rt),
                "destination_cidr_block": DEFAULT_ROUTE_CIDR,
                "nat_gateway_id": Ref(nat),
            },
        )
        b.add(
            b.name("private-rta", zone=zone),
            ResourceKind.ROUTE_ASSOCIATION,
            private_rt,
            visibility=Visibility.PRIVATE,
            zone_index=i,
            zone_name=zone,
            attrs={"subnet_id": Ref(private_subnet), "route_table_id": Ref(private_rt)},
        )

    # Gateway endpoints
    for enabled, service in (
        (spec.enable_s3_endpoint, EndpointService.S3),
        (spec.enable_dynamodb_endpoint, EndpointService.DYNAMODB),
    ):
        if not enabled:
            continue
        b.add(
            b.name(f"{service.value}-endpoint"),
            ResourceKind.ENDPOINT,
            vpc,
            service=service,
            attrs={
                "vpc_id": Ref(vpc),
                "service_name": endpoint_service_name(region or "", service),
            },
        )

    graph = ResourceGraph(b.nodes)
    logger.info(
        f"Built resource graph for '{name}': {len(graph)} resources across "
        f"{len(zones)} zones"
    )
    return graph
