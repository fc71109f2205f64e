"""
Network Infrastructure
Declares one VPC laid out by vpc_planner from the `network` stack config namespace
"""
import os
import sys
import pulumi

# Add parent directory to path to import vpc_planner
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
from vpc_planner.config import NetworkConfig
from vpc_planner.pulumi_driver import NetworkComponent, NetworkComponentArgs

stack = pulumi.get_stack()
project = pulumi.get_project()

config = NetworkConfig.from_pulumi_config()

network = NetworkComponent(f"{project}-{stack}", NetworkComponentArgs(config))

pulumi.export("vpc_id", network.vpc.id)
pulumi.export("vpc_cidr_block", network.vpc.cidr_block)
pulumi.export("public_subnet_ids", [subnet.id for subnet in network.public_subnets])
pulumi.export("private_subnet_ids", [subnet.id for subnet in network.private_subnets])
pulumi.export("nat_gateway_ids", [nat.id for nat in network.nat_gateways.values()])
pulumi.export("security_group_id", network.security_group.id)
