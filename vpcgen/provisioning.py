"""Execution of a resource graph against a provisioning collaborator.

A ``Provisioner`` creates one resource per call and hands back a future of
its identifier. ``GraphExecutor`` issues those calls in dependency order:
a node is requested as soon as every node it depends on has an identifier,
so independent branches (e.g. separate zones) proceed concurrently.

``DryRunProvisioner`` is an in-process stand-in that fabricates deterministic
identifiers on a thread pool. It is used by ``vpcgen simulate`` and in tests.
"""

from __future__ import annotations

import hashlib
import json
import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol

from vpcgen.errors import ProvisioningError
from vpcgen.futures import aggregate, outcome, settle
from vpcgen.log_config import get_logger
from vpcgen.topology import Ref, ResourceGraph, ResourceKind, ResourceNode, Visibility

logger = get_logger(__name__)


class Provisioner(Protocol):
    """Operations the executor needs from a cloud provisioning backend.

    Every operation returns a future of the created resource's identifier,
    or raises synchronously when the request itself is malformed.
    """

    def create_vpc(
        self,
        cidr_block: str,
        enable_dns_hostnames: bool,
        enable_dns_support: bool,
        tags: Mapping[str, str],
    ) -> Future[str]: ...

    def create_internet_gateway(self, vpc_id: str) -> Future[str]: ...

    def create_private_zone(self, name: str, vpc_id: str) -> Future[str]: ...

    def create_dhcp_options(
        self,
        domain_name: str,
        domain_name_servers: list[str],
        tags: Mapping[str, str],
    ) -> Future[str]: ...

    def create_dhcp_association(
        self, vpc_id: str, dhcp_options_id: str
    ) -> Future[str]: ...

    def create_subnet(
        self,
        vpc_id: str,
        cidr_block: str,
        availability_zone: str,
        map_public_ip_on_launch: bool,
        tags: Mapping[str, str],
    ) -> Future[str]: ...

    def adopt_default_route_table(
        self, vpc_id: str, tags: Mapping[str, str]
    ) -> Future[str]: ...

    def create_route(
        self,
        route_table_id: str,
        destination_cidr_block: str,
        gateway_id: str | None = None,
        nat_gateway_id: str | None = None,
    ) -> Future[str]: ...

    def create_route_association(
        self, subnet_id: str, route_table_id: str
    ) -> Future[str]: ...

    def create_eip(self, tags: Mapping[str, str]) -> Future[str]: ...

    def create_nat_gateway(
        self, allocation_id: str, subnet_id: str, tags: Mapping[str, str]
    ) -> Future[str]: ...

    def create_route_table(
        self, vpc_id: str, tags: Mapping[str, str]
    ) -> Future[str]: ...

    def create_vpc_endpoint(self, vpc_id: str, service_name: str) -> Future[str]: ...


class RegionLookup(Protocol):
    def current_region(self) -> str: ...


class StaticRegion:
    """Region lookup that always answers with a configured region."""

    def __init__(self, region: str) -> None:
        if not region:
            raise ValueError("region must be a non-empty string")
        self.region = region

    def current_region(self) -> str:
        return self.region


_OPERATIONS: dict[ResourceKind, str] = {
    ResourceKind.VPC: "create_vpc",
    ResourceKind.INTERNET_GATEWAY: "create_internet_gateway",
    ResourceKind.PRIVATE_ZONE: "create_private_zone",
    ResourceKind.DHCP_OPTIONS: "create_dhcp_options",
    ResourceKind.DHCP_ASSOCIATION: "create_dhcp_association",
    ResourceKind.SUBNET: "create_subnet",
    ResourceKind.ROUTE_TABLE: "create_route_table",
    ResourceKind.ROUTE: "create_route",
    ResourceKind.ROUTE_ASSOCIATION: "create_route_association",
    ResourceKind.EIP: "create_eip",
    ResourceKind.NAT_GATEWAY: "create_nat_gateway",
    ResourceKind.ENDPOINT: "create_vpc_endpoint",
}


def operation_for(node: ResourceNode) -> str:
    """Return the ``Provisioner`` method name that creates ``node``.

    The public route table adopts the VPC's default table instead of
    creating a new one.
    """
    if node.kind is ResourceKind.ROUTE_TABLE and node.visibility is Visibility.PUBLIC:
        return "adopt_default_route_table"
    return _OPERATIONS[node.kind]


class GraphExecutor:
    """Create every node of a graph through a provisioner, respecting edges.

    Example:
        >>> executor = GraphExecutor(graph, provisioner)
        >>> ids = executor.start()
        >>> ids["example-vpc"].result(timeout=60)
        'vpc-...'
    """

    def __init__(self, graph: ResourceGraph, provisioner: Provisioner) -> None:
        self.graph = graph
        self.provisioner = provisioner
        self._futures: dict[str, Future[str]] = {}
        self._started = False

    @property
    def futures(self) -> dict[str, Future[str]]:
        return dict(self._futures)

    def start(self) -> dict[str, Future[str]]:
        """Schedule every node and return one identifier future per node.

        Calls are issued from done-callbacks as dependencies resolve, so the
        returned futures are typically still pending.
        """
        if self._started:
            raise RuntimeError("GraphExecutor.start() may only be called once")
        self._started = True

        for name in self.graph.creation_order():
            self._futures[name] = Future()

        logger.info(f"Provisioning {len(self.graph)} resources")
        for name in self.graph.creation_order():
            node = self.graph.node(name)
            deps = [self._futures[d] for d in node.dependencies]
            aggregate(deps).add_done_callback(
                lambda ready, n=node: self._on_dependencies(n, ready)
            )
        return self.futures

    def cancel(self) -> int:
        """Cancel every node future that has not resolved yet.

        Requests already issued to the provisioner are left to it; dependants
        and aggregates of cancelled nodes fail with ``CancelledError``.

        Returns:
            Number of futures cancelled.
        """
        cancelled = sum(1 for fut in self._futures.values() if fut.cancel())
        if cancelled:
            logger.warning(f"Cancelled {cancelled} pending resources")
        return cancelled

    def _on_dependencies(self, node: ResourceNode, ready: Future[list[str]]) -> None:
        target = self._futures[node.name]
        error = outcome(ready)
        if error is not None:
            # Propagate the dependency's failure unchanged.
            settle(target, exc=error)
            return
        if target.done():
            return

        attrs = self._resolve_attrs(node)
        operation = operation_for(node)
        logger.debug(f"Requesting {operation} for '{node.name}'")
        try:
            pending = getattr(self.provisioner, operation)(**attrs)
            if not isinstance(pending, Future):
                raise TypeError(
                    f"{operation} returned {type(pending).__name__}, expected a Future"
                )
            pending.add_done_callback(lambda done: self._on_created(node, done))
        except Exception as exc:
            self._fail(node, exc)

    def _on_created(self, node: ResourceNode, done: Future[str]) -> None:
        error = outcome(done)
        if error is not None:
            self._fail(node, error)
            return
        identifier = done.result()
        if settle(self._futures[node.name], identifier):
            logger.info(f"Created {node.kind.value} '{node.name}': {identifier}")

    def _fail(self, node: ResourceNode, error: BaseException) -> None:
        if isinstance(error, ProvisioningError):
            wrapped = error
        else:
            wrapped = ProvisioningError(node.kind.value, node.name, error)
            wrapped.__cause__ = error
        if settle(self._futures[node.name], exc=wrapped):
            logger.error(str(wrapped))

    def _resolve_attrs(self, node: ResourceNode) -> dict[str, Any]:
        return {
            key: (self._futures[value.name].result() if isinstance(value, Ref) else value)
            for key, value in node.attrs.items()
        }


_ID_PREFIXES: dict[str, str] = {
    "create_vpc": "vpc",
    "create_internet_gateway": "igw",
    "create_private_zone": "Z",
    "create_dhcp_options": "dopt",
    "create_dhcp_association": "dopt-assoc",
    "create_subnet": "subnet",
    "adopt_default_route_table": "rtb",
    "create_route": "r",
    "create_route_association": "rtbassoc",
    "create_eip": "eipalloc",
    "create_nat_gateway": "nat",
    "create_route_table": "rtb",
    "create_vpc_endpoint": "vpce",
}


class DryRunProvisioner:
    """Provisioner that fabricates identifiers without touching a cloud.

    Identifiers are derived from a hash of the operation and its arguments,
    so repeated runs over the same graph produce the same identifiers. Each
    call returns immediately; the identifier is produced on a worker thread.

    Use as a context manager to shut the worker pool down.
    """

    def __init__(self, max_workers: int = 8) -> None:
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="vpcgen-dryrun"
        )
        self._lock = threading.Lock()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __enter__(self) -> DryRunProvisioner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait, cancel_futures=True)

    def _submit(self, operation: str, **kwargs: Any) -> Future[str]:
        with self._lock:
            self.calls.append((operation, kwargs))
        return self._pool.submit(self._fake_id, operation, kwargs)

    @staticmethod
    def _fake_id(operation: str, kwargs: dict[str, Any]) -> str:
        payload = json.dumps([operation, kwargs], sort_keys=True, default=str)
        digest = hashlib.sha256(payload.encode()).hexdigest()[:17]
        return f"{_ID_PREFIXES[operation]}-{digest}"

    def create_vpc(self, cidr_block, enable_dns_hostnames, enable_dns_support, tags):
        return self._submit(
            "create_vpc",
            cidr_block=cidr_block,
            enable_dns_hostnames=enable_dns_hostnames,
            enable_dns_support=enable_dns_support,
            tags=dict(tags),
        )

    def create_internet_gateway(self, vpc_id):
        return self._submit("create_internet_gateway", vpc_id=vpc_id)

    def create_private_zone(self, name, vpc_id):
        return self._submit("create_private_zone", name=name, vpc_id=vpc_id)

    def create_dhcp_options(self, domain_name, domain_name_servers, tags):
        return self._submit(
            "create_dhcp_options",
            domain_name=domain_name,
            domain_name_servers=list(domain_name_servers),
            tags=dict(tags),
        )

    def create_dhcp_association(self, vpc_id, dhcp_options_id):
        return self._submit(
            "create_dhcp_association", vpc_id=vpc_id, dhcp_options_id=dhcp_options_id
        )

    def create_subnet(
        self, vpc_id, cidr_block, availability_zone, map_public_ip_on_launch, tags
    ):
        return self._submit(
            "create_subnet",
            vpc_id=vpc_id,
            cidr_block=cidr_block,
            availability_zone=availability_zone,
            map_public_ip_on_launch=map_public_ip_on_launch,
            tags=dict(tags),
        )

    def adopt_default_route_table(self, vpc_id, tags):
        return self._submit("adopt_default_route_table", vpc_id=vpc_id, tags=dict(tags))

    def create_route(
        self, route_table_id, destination_cidr_block, gateway_id=None, nat_gateway_id=None
    ):
        if (gateway_id is None) == (nat_gateway_id is None):
            raise ValueError("a route needs exactly one of gateway_id or nat_gateway_id")
        return self._submit(
            "create_route",
            route_table_id=route_table_id,
            destination_cidr_block=destination_cidr_block,
            gateway_id=gateway_id,
            nat_gateway_id=nat_gateway_id,
        )

    def create_route_association(self, subnet_id, route_table_id):
        return self._submit(
            "create_route_association",
            subnet_id=subnet_id,
            route_table_id=route_table_id,
        )

    def create_eip(self, tags):
        return self._submit("create_eip", tags=dict(tags))

    def create_nat_gateway(self, allocation_id, subnet_id, tags):
        return self._submit(
            "create_nat_gateway",
            allocation_id=allocation_id,
            subnet_id=subnet_id,
            tags=dict(tags),
        )

    def create_route_table(self, vpc_id, tags):
        return self._submit("create_route_table", vpc_id=vpc_id, tags=dict(tags))

    def create_vpc_endpoint(self, vpc_id, service_name):
        return self._submit(
            "create_vpc_endpoint", vpc_id=vpc_id, service_name=service_name
        )
