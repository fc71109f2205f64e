import copy
from typing import Any, Dict, List, Mapping, Sequence

import pulumi
import pulumi_aws as aws

from vpc_planner.compiler import ResourceKind, ResourceNode, build_graph, compile_plan
from vpc_planner.config import NetworkConfig
from vpc_planner.driver import CloudResourceDriver, execute
from vpc_planner.subnet import SubnetType


class PulumiResourceDriver(CloudResourceDriver):
    """
    Declares each graph node as a pulumi_aws resource parented by `opts`.
    """

    def __init__(self, graph: Mapping[str, ResourceNode], availability_zones: Sequence[str],
                 opts: pulumi.ResourceOptions):
        self.graph = graph
        self.availability_zones = list(availability_zones)
        self.opts = opts
        self.creators = {
            ResourceKind.VPC: self.create_vpc,
            ResourceKind.GATEWAY: self.create_internet_gateway,
            ResourceKind.EIP: self.create_eip,
            ResourceKind.ROUTE_TABLE: self.create_route_table,
            ResourceKind.ROUTE: self.create_route,
            ResourceKind.NAT: self.create_nat_gateway,
            ResourceKind.SUBNET: self.create_subnet,
            ResourceKind.ASSOCIATION: self.create_route_table_association,
            ResourceKind.SECURITY_GROUP: self.create_security_group,
        }

    def create(self, node: ResourceNode, dependencies: Mapping[str, Any]) -> pulumi.CustomResource:
        opts = pulumi.ResourceOptions.merge(
            self.opts, pulumi.ResourceOptions(depends_on=list(dependencies.values())))
        return self.creators[node.kind](node, dependencies, opts)

    def dependency(self, dependencies: Mapping[str, Any], kind: ResourceKind):
        for name, handle in dependencies.items():
            if self.graph[name].kind == kind:
                return handle
        raise KeyError(f"No {kind} dependency among {', '.join(dependencies)}")

    def create_vpc(self, node, dependencies, opts) -> aws.ec2.Vpc:
        return aws.ec2.Vpc(
            node.name,
            cidr_block=node.properties["cidr_block"],
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags={"Name": node.name},
            opts=opts,
        )

    def create_internet_gateway(self, node, dependencies, opts) -> aws.ec2.InternetGateway:
        return aws.ec2.InternetGateway(
            node.name,
            vpc_id=self.dependency(dependencies, ResourceKind.VPC).id,
            tags={"Name": node.name},
            opts=opts,
        )

    def create_eip(self, node, dependencies, opts) -> aws.ec2.Eip:
        return aws.ec2.Eip(
            node.name,
            domain="vpc",
            tags={"Name": node.name},
            opts=opts,
        )

    def create_route_table(self, node, dependencies, opts) -> aws.ec2.RouteTable:
        return aws.ec2.RouteTable(
            node.name,
            vpc_id=self.dependency(dependencies, ResourceKind.VPC).id,
            tags={
                "Name": node.name,
                "SubnetType": str(node.properties["role"]),
            },
            opts=opts,
        )

    def create_route(self, node, dependencies, opts) -> aws.ec2.Route:
        target_name = node.properties["target"]
        target = dependencies[target_name]
        if self.graph[target_name].kind == ResourceKind.GATEWAY:
            target_args = {"gateway_id": target.id}
        else:
            target_args = {"nat_gateway_id": target.id}
        return aws.ec2.Route(
            node.name,
            route_table_id=self.dependency(dependencies, ResourceKind.ROUTE_TABLE).id,
            destination_cidr_block=node.properties["destination_cidr_block"],
            opts=opts,
            **target_args,
        )

    def create_nat_gateway(self, node, dependencies, opts) -> aws.ec2.NatGateway:
        return aws.ec2.NatGateway(
            node.name,
            subnet_id=self.dependency(dependencies, ResourceKind.SUBNET).id,
            allocation_id=self.dependency(dependencies, ResourceKind.EIP).id,
            tags={"Name": node.name},
            opts=opts,
        )

    def create_subnet(self, node, dependencies, opts) -> aws.ec2.Subnet:
        role = node.properties["role"]
        return aws.ec2.Subnet(
            node.name,
            vpc_id=self.dependency(dependencies, ResourceKind.VPC).id,
            cidr_block=node.properties["cidr_block"],
            availability_zone=self.availability_zones[node.properties["az_index"]],
            map_public_ip_on_launch=role == SubnetType.PUBLIC,
            tags={
                "Name": node.name,
                "SubnetType": str(role),
            },
            opts=opts,
        )

    def create_route_table_association(self, node, dependencies, opts) -> aws.ec2.RouteTableAssociation:
        return aws.ec2.RouteTableAssociation(
            node.name,
            subnet_id=self.dependency(dependencies, ResourceKind.SUBNET).id,
            route_table_id=self.dependency(dependencies, ResourceKind.ROUTE_TABLE).id,
            opts=opts,
        )

    def create_security_group(self, node, dependencies, opts) -> aws.ec2.SecurityGroup:
        return aws.ec2.SecurityGroup(
            node.name,
            vpc_id=self.dependency(dependencies, ResourceKind.VPC).id,
            description=f"Security group for {node.name}",
            tags={"Name": node.name},
            opts=opts,
        )


class NetworkComponentArgs:
    def __init__(self, config: NetworkConfig = None):
        self.config = config or NetworkConfig()


class NetworkComponent(pulumi.ComponentResource):
    public_subnets: List[aws.ec2.Subnet] = []
    private_subnets: List[aws.ec2.Subnet] = []
    nat_gateways: Dict[int, aws.ec2.NatGateway] = {}

    def __init__(self, name, args: NetworkComponentArgs, opts=None):
        self.args = args
        config = args.config
        if config.name is None:
            config = copy.copy(config)
            config.name = name
        self.plan = compile_plan(config).unwrap()
        self.graph = build_graph(self.plan)
        super().__init__("vpc_planner:network:Network", name, {}, opts)
        self.child_opts = pulumi.ResourceOptions(parent=self)
        self.invoke_opts = None
        if self.plan.region:
            self.provider = aws.Provider(f"{name}-provider", region=self.plan.region, opts=self.child_opts)
            self.child_opts = pulumi.ResourceOptions(parent=self, provider=self.provider)
            self.invoke_opts = pulumi.InvokeOptions(provider=self.provider)
        self.azs = list(self.plan.availability_zones or self.lookup_availability_zones())
        self.validate_args()
        self.create_resources()

    def lookup_availability_zones(self) -> List[str]:
        return aws.get_availability_zones(state="available", opts=self.invoke_opts).names

    def validate_args(self):
        """
        Every AZ index the plan assigned must map onto a real zone name.
        """
        needed = max(spec.az_index for spec in self.plan.subnets) + 1
        if len(self.azs) < needed:
            raise ValueError(
                f"This network needs {needed} availability zones but only {len(self.azs)} are available."
            )

    def create_resources(self):
        driver = PulumiResourceDriver(self.graph, self.azs, self.child_opts)
        self.resources = execute(self.graph, driver)

        self.vpc = self.resources_of_kind(ResourceKind.VPC)[0]
        self.internet_gateway = self.resources_of_kind(ResourceKind.GATEWAY)[0]
        self.security_group = self.resources_of_kind(ResourceKind.SECURITY_GROUP)[0]
        self.public_subnets = [self.resources[self.qualify(spec.name)] for spec in self.plan.public_subnets]
        self.private_subnets = [self.resources[self.qualify(spec.name)] for spec in self.plan.private_subnets]
        self.nat_gateways = {
            az: self.resources[self.qualify(f"nat-{az}")] for az in self.plan.nat_hosts()
        }

        self.register_outputs({
            "vpc_id": self.vpc.id,
            "public_subnet_ids": [subnet.id for subnet in self.public_subnets],
            "private_subnet_ids": [subnet.id for subnet in self.private_subnets],
        })

    def qualify(self, name: str) -> str:
        return f"{self.plan.name}-{name}"

    def resources_of_kind(self, kind: ResourceKind) -> List[pulumi.CustomResource]:
        return [self.resources[name] for name, node in self.graph.items() if node.kind == kind]
