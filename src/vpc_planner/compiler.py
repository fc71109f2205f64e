from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from itertools import islice
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import pulumi

from vpc_planner.cidr import CidrBlock, derive_equal_split, parse_cidr, validate_explicit, validate_rfc1918
from vpc_planner.config import DEFAULT_NAME, NatGatewayStrategy, NetworkConfig
from vpc_planner.errors import (
    CapacityError,
    ConfigError,
    GraphError,
    InvalidInputError,
    PlanningError,
    PlanningFailed,
)
from vpc_planner.subnet import SubnetSpec, SubnetType, assign_az_indices

DEFAULT_ROUTE = "0.0.0.0/0"


class ResourceKind(str, Enum):
    VPC = "Vpc"
    GATEWAY = "Gateway"
    ROUTE_TABLE = "RouteTable"
    ROUTE = "Route"
    EIP = "Eip"
    NAT = "Nat"
    SUBNET = "Subnet"
    ASSOCIATION = "Association"
    SECURITY_GROUP = "SecurityGroup"

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ResourceNode:
    kind: ResourceKind
    name: str
    depends_on: FrozenSet[str] = frozenset()
    properties: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))


@dataclass(frozen=True)
class NetworkPlan:
    name: str
    vpc_block: CidrBlock
    subnets: Tuple[SubnetSpec, ...]
    nat_per_az: bool
    availability_zones: Optional[Tuple[str, ...]] = None
    region: Optional[str] = None

    @property
    def public_subnets(self) -> List[SubnetSpec]:
        return SubnetSpec.get_subnets_by_type(self.subnets, SubnetType.PUBLIC)

    @property
    def private_subnets(self) -> List[SubnetSpec]:
        return SubnetSpec.get_subnets_by_type(self.subnets, SubnetType.PRIVATE)

    def private_az_indices(self) -> List[int]:
        return sorted({spec.az_index for spec in self.private_subnets})

    def nat_hosts(self) -> Dict[int, SubnetSpec]:
        """
        The public subnet hosting each NAT gateway, keyed by the AZ it serves.
        """
        if not self.nat_per_az:
            host = self.public_subnets[0]
            return {host.az_index: host}
        return {
            az: SubnetSpec.get_subnets_in_az(self.subnets, SubnetType.PUBLIC, az)[0]
            for az in self.private_az_indices()
        }

    def nat_az_for(self, az_index: int) -> int:
        if self.nat_per_az:
            return az_index
        return self.public_subnets[0].az_index


@dataclass(frozen=True)
class PlanResult:
    plan: Optional[NetworkPlan]
    errors: Tuple[PlanningError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self) -> NetworkPlan:
        if self.errors:
            raise PlanningFailed(self.errors)
        return self.plan


def compile_plan(config: NetworkConfig) -> PlanResult:
    """
    Validate a network config and lay out its subnets.

    Problems are returned on the result rather than raised, and every
    overlap and containment violation is reported, not only the first.
    """
    try:
        vpc_block = parse_cidr(config.vpc_block)
    except InvalidInputError as e:
        return PlanResult(None, (e,))

    errors: List[PlanningError] = []
    public_blocks = _parse_blocks(config.public_subnet_blocks, errors)
    private_blocks = _parse_blocks(config.private_subnet_blocks, errors)

    public_count = config.effective_public_count
    private_count = config.effective_private_count
    az_count = config.effective_az_count
    if public_count < 1:
        errors.append(ConfigError("At least one public subnet is required to host a NAT gateway"))
    if private_count < 1:
        errors.append(ConfigError("At least one private subnet is required to route through a NAT gateway"))
    if az_count < 1:
        errors.append(ConfigError(f"At least one availability zone is required, got {az_count}"))
    if errors:
        errors.extend(validate_explicit(vpc_block, (public_blocks or []) + (private_blocks or [])))
        return PlanResult(None, tuple(errors))

    try:
        public_blocks, private_blocks = _fill_missing_blocks(
            vpc_block, public_blocks, private_blocks, public_count, private_count)
    except PlanningError as e:
        return PlanResult(None, (e,))

    errors.extend(validate_explicit(vpc_block, public_blocks + private_blocks))

    subnets = (
        _subnet_specs(SubnetType.PUBLIC, public_blocks, az_count, config.public_subnet_blocks is not None)
        + _subnet_specs(SubnetType.PRIVATE, private_blocks, az_count, config.private_subnet_blocks is not None)
    )

    if config.nat_per_az:
        public_azs = {spec.az_index for spec in subnets if spec.is_public}
        for az in sorted({spec.az_index for spec in subnets if not spec.is_public} - public_azs):
            errors.append(ConfigError(
                f"Availability zone {az} has private subnets but no public subnet to host its NAT gateway; "
                f"add a public subnet or use the '{NatGatewayStrategy.SINGLE}' NAT gateway strategy"
            ))

    if errors:
        return PlanResult(None, tuple(errors))

    name = config.name or DEFAULT_NAME
    if not validate_rfc1918(vpc_block):
        pulumi.log.warn(f"VPC block {vpc_block} for {name} is outside the RFC 1918 private ranges")

    plan = NetworkPlan(
        name=name,
        vpc_block=vpc_block,
        subnets=tuple(subnets),
        nat_per_az=config.nat_per_az,
        availability_zones=tuple(config.availability_zones) if config.availability_zones else None,
        region=config.region,
    )
    pulumi.log.info(
        f"Compiled network plan {plan.name}: {vpc_block} with {len(public_blocks)} public and "
        f"{len(private_blocks)} private subnets across {az_count} AZs"
    )
    return PlanResult(plan)


def _parse_blocks(blocks: Optional[Iterable[str]], errors: List[PlanningError]) -> Optional[List[CidrBlock]]:
    if blocks is None:
        return None
    parsed = []
    for block in blocks:
        try:
            parsed.append(parse_cidr(block))
        except InvalidInputError as e:
            errors.append(e)
    return parsed


def _fill_missing_blocks(vpc_block, public_blocks, private_blocks, public_count, private_count):
    """
    Carve blocks for any role the config left without explicit blocks.

    The VPC is split evenly into enough blocks for both roles, and derived
    blocks are taken in address order, skipping any that collide with an
    explicit block.
    """
    if public_blocks is not None and private_blocks is not None:
        return public_blocks, private_blocks

    split_count = 1 << max(public_count + private_count - 1, 0).bit_length()
    taken = (public_blocks or []) + (private_blocks or [])
    available = (
        block for block in derive_equal_split(vpc_block, split_count)
        if not any(block.overlaps(other) for other in taken)
    )

    def take(count, role):
        blocks = list(islice(available, count))
        if len(blocks) < count:
            raise CapacityError(
                f"{vpc_block} has room for only {len(blocks)} more {role.value.lower()} subnets "
                f"of /{vpc_block.prefix_length + split_count.bit_length() - 1}, {count} requested"
            )
        return blocks

    if public_blocks is None:
        public_blocks = take(public_count, SubnetType.PUBLIC)
    if private_blocks is None:
        private_blocks = take(private_count, SubnetType.PRIVATE)
    return public_blocks, private_blocks


def _subnet_specs(role, blocks, az_count, explicit) -> List[SubnetSpec]:
    return [
        SubnetSpec(role=role, block=block, az_index=az_index, explicit=explicit, index=i)
        for i, (block, az_index) in enumerate(zip(blocks, assign_az_indices(len(blocks), az_count)))
    ]


def build_graph(plan: NetworkPlan) -> Dict[str, ResourceNode]:
    """
    Turn a plan into named resources with explicit dependency edges.

    Public subnets share one route table out through the internet gateway.
    Each AZ holding private subnets gets its own route table, pointed at its
    own NAT gateway, or at the single shared one when NAT is not per AZ.
    """
    graph: Dict[str, ResourceNode] = {}

    def qualify(name):
        return f"{plan.name}-{name}"

    def add(kind, name, depends_on=(), **properties):
        node = ResourceNode(kind, qualify(name), frozenset(depends_on), properties)
        graph[node.name] = node
        return node.name

    vpc = add(ResourceKind.VPC, "vpc", cidr_block=str(plan.vpc_block))
    gateway = add(ResourceKind.GATEWAY, "igw", [vpc])

    nat_hosts = plan.nat_hosts()
    eips = {az: add(ResourceKind.EIP, f"eip-{az}", az_index=az) for az in nat_hosts}

    public_route_table = add(ResourceKind.ROUTE_TABLE, "public-rt", [vpc], role=SubnetType.PUBLIC)
    private_route_tables = {
        az: add(ResourceKind.ROUTE_TABLE, f"private-rt-{az}", [vpc], role=SubnetType.PRIVATE, az_index=az)
        for az in plan.private_az_indices()
    }
    nats = {az: qualify(f"nat-{az}") for az in nat_hosts}

    add(ResourceKind.ROUTE, "public-rt-default", [public_route_table, gateway],
        destination_cidr_block=DEFAULT_ROUTE, target=gateway)
    for az, route_table in private_route_tables.items():
        nat = nats[plan.nat_az_for(az)]
        add(ResourceKind.ROUTE, f"private-rt-{az}-default", [route_table, nat],
            destination_cidr_block=DEFAULT_ROUTE, target=nat)

    for az, host in nat_hosts.items():
        add(ResourceKind.NAT, f"nat-{az}", [qualify(host.name), eips[az]], az_index=az, subnet=qualify(host.name))

    for spec in plan.subnets:
        add(ResourceKind.SUBNET, spec.name, [vpc],
            cidr_block=str(spec.block), az_index=spec.az_index, role=spec.role, explicit=spec.explicit)

    for spec in plan.subnets:
        route_table = public_route_table if spec.is_public else private_route_tables[spec.az_index]
        add(ResourceKind.ASSOCIATION, f"{spec.name}-assoc", [qualify(spec.name), route_table])

    add(ResourceKind.SECURITY_GROUP, "sg", [vpc])

    check_edges(graph)
    return graph


def check_edges(graph: Mapping[str, ResourceNode]):
    for node in graph.values():
        missing = sorted(node.depends_on - graph.keys())
        if missing:
            raise GraphError(f"{node.name} depends on unknown resources: {', '.join(missing)}")


def topological_order(graph: Mapping[str, ResourceNode]) -> List[ResourceNode]:
    """
    Kahn's algorithm. Nodes that become ready together keep graph order.
    """
    check_edges(graph)
    waiting_on = {name: len(node.depends_on) for name, node in graph.items()}
    dependents: Dict[str, List[str]] = {name: [] for name in graph}
    for name, node in graph.items():
        for dependency in node.depends_on:
            dependents[dependency].append(name)

    ready = deque(name for name, count in waiting_on.items() if count == 0)
    order = []
    while ready:
        name = ready.popleft()
        order.append(graph[name])
        for dependent in dependents[name]:
            waiting_on[dependent] -= 1
            if waiting_on[dependent] == 0:
                ready.append(dependent)

    if len(order) != len(graph):
        stuck = sorted(name for name, count in waiting_on.items() if count > 0)
        raise GraphError(f"Resource graph has a cycle through: {', '.join(stuck)}")
    return order
