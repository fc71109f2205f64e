from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

from vpc_planner.cidr import CidrBlock


class SubnetType(str, Enum):
    """
    A type of subnet within a VPC.
    """

    PUBLIC = "Public"
    """
    A subnet whose hosts can directly communicate with the internet.
    """
    PRIVATE = "Private"
    """
    A subnet whose hosts can not directly communicate with the internet, but can initiate outbound network traffic via a NAT Gateway.
    """

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class SubnetSpec:
    role: SubnetType
    block: CidrBlock
    az_index: int
    explicit: bool
    index: int = 0

    @property
    def name(self) -> str:
        return f"{self.role.value.lower()}-{self.index}"

    @property
    def is_public(self) -> bool:
        return self.role == SubnetType.PUBLIC

    @staticmethod
    def get_subnets_by_type(specs: Sequence["SubnetSpec"], type: SubnetType) -> List["SubnetSpec"]:
        """
        Get the subnet specs with the specified type, in plan order.
        """
        return [spec for spec in specs if spec.role == type]

    @staticmethod
    def get_subnets_in_az(specs: Sequence["SubnetSpec"], type: SubnetType, az_index: int) -> List["SubnetSpec"]:
        return [spec for spec in specs if spec.role == type and spec.az_index == az_index]


def assign_az_indices(count: int, az_count: int) -> List[int]:
    """
    Round-robin AZ placement: the i-th subnet of a role lands in AZ i mod az_count.
    """
    return [i % az_count for i in range(count)]
