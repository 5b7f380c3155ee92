"""VPC component facade.

``plan_vpc`` is the pure half: validate the VPC spec, allocate subnets and build
the resource graph. ``provision_vpc`` runs that plan through a provisioner
and exposes the component outputs (``vpc_id``, ``public_subnet_ids``,
``private_subnet_ids``) as futures.
"""

from __future__ import annotations

import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from vpcgen.cidr import SubnetAllocation, allocate
from vpcgen.futures import aggregate
from vpcgen.log_config import get_logger
from vpcgen.provisioning import GraphExecutor, Provisioner, RegionLookup
from vpcgen.topology import ResourceGraph, ResourceKind, Visibility, build_topology

if TYPE_CHECKING:  # pragma: no cover - import-time types only
    from vpcgen.config import VpcSpec

logger = get_logger(__name__)


@dataclass(frozen=True)
class VpcPlan:
    """Allocation and resource graph for one component."""

    name: str
    spec: VpcSpec
    allocation: SubnetAllocation
    graph: ResourceGraph

    @property
    def vpc(self) -> str:
        return self.graph.nodes(ResourceKind.VPC)[0].name

    def subnets(self, visibility: Visibility) -> list[str]:
        """Subnet node names for ``visibility``, in zone order."""
        nodes = self.graph.nodes(ResourceKind.SUBNET, visibility)
        return [n.name for n in sorted(nodes, key=lambda n: n.zone_index)]


def plan_vpc(name: str, spec: VpcSpec, region: str | None = None) -> VpcPlan:
    """Validate ``spec``, allocate its subnets and build the resource graph.

    Args:
        name: Component name used to derive resource names.
        spec: VPC spec.
        region: Region for endpoint service names.

    Returns:
        The plan; nothing is provisioned.
    """
    spec.validate()
    allocation = allocate(spec.base_cidr, spec.zone_count)
    graph = build_topology(name, spec, allocation, region=region)
    return VpcPlan(name=name, spec=spec, allocation=allocation, graph=graph)


@dataclass
class VpcOutputs:
    """Exported outputs of a provisioned VPC component.

    Attributes:
        vpc_id: Identifier of the VPC.
        public_subnet_ids: Public subnet identifiers, aligned with the zones.
        private_subnet_ids: Private subnet identifiers, aligned with the zones.
        resources: Identifier future for every node, keyed by node name.
    """

    vpc_id: Future[str]
    public_subnet_ids: Future[list[str]]
    private_subnet_ids: Future[list[str]]
    resources: dict[str, Future[str]]
    executor: GraphExecutor

    def result(self, timeout: float | None = None) -> dict[str, Any]:
        """Wait for every resource and return the exported outputs.

        Raises:
            ProvisioningError: If any resource failed.
            TimeoutError: If ``timeout`` elapses first. Pending resources are
                cancelled before the error propagates.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        everything = aggregate(list(self.resources.values()))
        try:
            everything.result(timeout=_remaining(deadline))
        except FutureTimeoutError:
            self.executor.cancel()
            raise TimeoutError(
                f"VPC outputs did not resolve within {timeout}s"
            ) from None
        return {
            "vpcId": self.vpc_id.result(),
            "publicSubnetIds": self.public_subnet_ids.result(),
            "privateSubnetIds": self.private_subnet_ids.result(),
        }


def _remaining(deadline: float | None) -> float | None:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def provision_vpc(
    name: str,
    spec: VpcSpec,
    provisioner: Provisioner,
    region_lookup: RegionLookup | None = None,
) -> VpcOutputs:
    """Plan the component and start creating its resources.

    The region is only looked up when an endpoint is enabled.

    Args:
        name: Component name.
        spec: VPC spec.
        provisioner: Backend creating the resources.
        region_lookup: Source of the current region.

    Returns:
        Output futures; call ``VpcOutputs.result()`` to wait on them.
    """
    region = None
    if spec.endpoints_enabled:
        if region_lookup is None:
            raise ValueError("a region lookup is required to create VPC endpoints")
        region = region_lookup.current_region()

    plan = plan_vpc(name, spec, region=region)
    executor = GraphExecutor(plan.graph, provisioner)
    futures = executor.start()

    logger.info(
        f"Started provisioning '{name}' ({len(plan.graph)} resources, "
        f"{spec.zone_count} zones)"
    )
    return VpcOutputs(
        vpc_id=futures[plan.vpc],
        public_subnet_ids=aggregate(
            [futures[n] for n in plan.subnets(Visibility.PUBLIC)]
        ),
        private_subnet_ids=aggregate(
            [futures[n] for n in plan.subnets(Visibility.PRIVATE)]
        ),
        resources=futures,
        executor=executor,
    )
