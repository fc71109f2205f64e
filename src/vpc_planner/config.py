from enum import Enum
from typing import Any, List, Mapping, Optional

import pulumi

from vpc_planner.errors import ConfigError

DEFAULT_VPC_BLOCK = "192.168.0.0/16"
DEFAULT_SUBNET_COUNT = 2
DEFAULT_AZ_COUNT = 2
DEFAULT_NAME = "main"


class NatGatewayStrategy(str, Enum):
    SINGLE = "single"
    ONE_PER_AZ = "one_per_az"

    def __str__(self):
        return self.value


class NetworkConfig:
    """
    Everything the planner needs to lay out one VPC.

    Explicit subnet blocks win over counts; a role given no blocks gets
    `*_subnet_count` blocks carved from the VPC block. `region` is not
    interpreted by the planner and is handed to the resource driver as-is.
    `name` prefixes every resource name; left unset it falls back to the
    owning component's name, or `main` outside a component.
    """

    def __init__(
        self,
        vpc_block: str = DEFAULT_VPC_BLOCK,
        public_subnet_blocks: Optional[List[str]] = None,
        private_subnet_blocks: Optional[List[str]] = None,
        public_subnet_count: int = DEFAULT_SUBNET_COUNT,
        private_subnet_count: int = DEFAULT_SUBNET_COUNT,
        availability_zones: Optional[List[str]] = None,
        az_count: int = DEFAULT_AZ_COUNT,
        nat_gateway_strategy: NatGatewayStrategy = NatGatewayStrategy.ONE_PER_AZ,
        region: Optional[str] = None,
        name: Optional[str] = None,
    ):
        self.vpc_block = vpc_block
        self.public_subnet_blocks = list(public_subnet_blocks) if public_subnet_blocks is not None else None
        self.private_subnet_blocks = list(private_subnet_blocks) if private_subnet_blocks is not None else None
        self.public_subnet_count = public_subnet_count
        self.private_subnet_count = private_subnet_count
        self.availability_zones = list(availability_zones) if availability_zones else None
        self.az_count = az_count
        self.nat_gateway_strategy = NatGatewayStrategy(nat_gateway_strategy)
        self.region = region
        self.name = name

    @property
    def nat_per_az(self) -> bool:
        return self.nat_gateway_strategy == NatGatewayStrategy.ONE_PER_AZ

    @property
    def effective_az_count(self) -> int:
        if self.availability_zones:
            return len(self.availability_zones)
        return self.az_count

    @property
    def effective_public_count(self) -> int:
        if self.public_subnet_blocks is not None:
            return len(self.public_subnet_blocks)
        return self.public_subnet_count

    @property
    def effective_private_count(self) -> int:
        if self.private_subnet_blocks is not None:
            return len(self.private_subnet_blocks)
        return self.private_subnet_count

    def __repr__(self):
        return (f"NetworkConfig(name={self.name!r}, vpc_block={self.vpc_block!r}, "
                f"public={self.public_subnet_blocks or self.public_subnet_count}, "
                f"private={self.private_subnet_blocks or self.private_subnet_count}, "
                f"nat={self.nat_gateway_strategy})")

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> "NetworkConfig":
        """
        Build a config from camelCase keys, as found in JSON files and Pulumi stack config.
        """
        unknown = set(data) - set(CONFIG_KEYS)
        if unknown:
            raise ConfigError(f"Unknown network config keys: {', '.join(sorted(unknown))}")
        kwargs = {CONFIG_KEYS[key]: value for key, value in data.items() if value is not None}
        for key in ("public_subnet_blocks", "private_subnet_blocks", "availability_zones"):
            if key in kwargs and not isinstance(kwargs[key], (list, tuple)):
                raise ConfigError(f"{key} must be a list, got {kwargs[key]!r}")
        for key in ("public_subnet_count", "private_subnet_count", "az_count"):
            if key in kwargs and (not isinstance(kwargs[key], int) or isinstance(kwargs[key], bool)):
                raise ConfigError(f"{key} must be an integer, got {kwargs[key]!r}")
        try:
            return NetworkConfig(**kwargs)
        except ValueError as e:
            raise ConfigError(f"Invalid network config: {e}") from e

    @staticmethod
    def from_pulumi_config(config: Optional[pulumi.Config] = None) -> "NetworkConfig":
        """
        Read the `network` namespace of the current stack's configuration.
        """
        config = config or pulumi.Config("network")
        data = {
            "vpcBlock": config.get("vpcBlock"),
            "publicSubnetBlocks": config.get_object("publicSubnetBlocks"),
            "privateSubnetBlocks": config.get_object("privateSubnetBlocks"),
            "publicSubnetCount": config.get_int("publicSubnetCount"),
            "privateSubnetCount": config.get_int("privateSubnetCount"),
            "availabilityZones": config.get_object("availabilityZones"),
            "azCount": config.get_int("azCount"),
            "natGatewayStrategy": config.get("natGatewayStrategy"),
            "region": config.get("region") or pulumi.Config("aws").get("region"),
            "name": config.get("name"),
        }
        return NetworkConfig.from_mapping(data)


CONFIG_KEYS = {
    "vpcBlock": "vpc_block",
    "publicSubnetBlocks": "public_subnet_blocks",
    "privateSubnetBlocks": "private_subnet_blocks",
    "publicSubnetCount": "public_subnet_count",
    "privateSubnetCount": "private_subnet_count",
    "availabilityZones": "availability_zones",
    "azCount": "az_count",
    "natGatewayStrategy": "nat_gateway_strategy",
    "region": "region",
    "name": "name",
}
