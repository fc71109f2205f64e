import ipaddress
from dataclasses import dataclass
from typing import List, Sequence

from vpc_planner.errors import (
    CapacityError,
    ContainmentError,
    InvalidInputError,
    OverlapError,
    PlanningError,
)

ADDRESS_BITS = 32


@dataclass(frozen=True, order=True)
class CidrBlock:
    """
    An IPv4 network held as integers so range checks never depend on how
    two blocks' masks line up.
    """

    network_address: int
    prefix_length: int

    def __post_init__(self):
        if not 0 <= self.prefix_length <= ADDRESS_BITS:
            raise InvalidInputError(f"Prefix length {self.prefix_length} is outside 0-32")
        if not 0 <= self.network_address < 1 << ADDRESS_BITS:
            raise InvalidInputError(f"Address {self.network_address} is outside the IPv4 space")
        if self.network_address & self.host_mask:
            raise InvalidInputError(
                f"{ipaddress.IPv4Address(self.network_address)}/{self.prefix_length} has host bits set"
            )

    @property
    def host_mask(self) -> int:
        return (1 << (ADDRESS_BITS - self.prefix_length)) - 1

    @property
    def num_addresses(self) -> int:
        return 1 << (ADDRESS_BITS - self.prefix_length)

    @property
    def broadcast_address(self) -> int:
        return self.network_address | self.host_mask

    def overlaps(self, other: "CidrBlock") -> bool:
        return (self.network_address <= other.broadcast_address
                and other.network_address <= self.broadcast_address)

    def contains(self, other: "CidrBlock") -> bool:
        return (self.network_address <= other.network_address
                and other.broadcast_address <= self.broadcast_address)

    def subnets(self, prefixlen_diff: int) -> List["CidrBlock"]:
        new_prefix = self.prefix_length + prefixlen_diff
        if prefixlen_diff < 0 or new_prefix > ADDRESS_BITS:
            raise CapacityError(f"Cannot extend {self} by {prefixlen_diff} bits")
        step = 1 << (ADDRESS_BITS - new_prefix)
        return [
            CidrBlock(self.network_address + i * step, new_prefix)
            for i in range(1 << prefixlen_diff)
        ]

    def __str__(self):
        return f"{ipaddress.IPv4Address(self.network_address)}/{self.prefix_length}"


def parse_cidr(text: str) -> CidrBlock:
    """
    Parse `a.b.c.d/n` strictly. Host bits must be zero.
    """
    if isinstance(text, CidrBlock):
        return text
    if not isinstance(text, str) or "/" not in text:
        raise InvalidInputError(f"Invalid CIDR block: {text!r}")
    try:
        network = ipaddress.IPv4Network(text.strip(), strict=True)
    except ValueError as e:
        raise InvalidInputError(f"Invalid CIDR block: {text!r} ({e})") from e
    return CidrBlock(int(network.network_address), network.prefixlen)


def overlaps(first: CidrBlock, second: CidrBlock) -> bool:
    return first.overlaps(second)


RFC1918_BLOCKS = (
    parse_cidr("10.0.0.0/8"),
    parse_cidr("172.16.0.0/12"),
    parse_cidr("192.168.0.0/16"),
)


def validate_rfc1918(block: CidrBlock) -> bool:
    return any(private.contains(block) for private in RFC1918_BLOCKS)


def derive_equal_split(parent: CidrBlock, count: int) -> List[CidrBlock]:
    """
    Split parent into `count` equal blocks in ascending address order.
    """
    if not isinstance(count, int) or isinstance(count, bool) or count < 1 or count & (count - 1):
        raise InvalidInputError(f"Split count must be a positive power of two, got {count}")
    bits = count.bit_length() - 1
    if parent.prefix_length + bits > ADDRESS_BITS:
        raise CapacityError(
            f"{parent} cannot be split into {count} blocks, "
            f"capacity is {parent.num_addresses}"
        )
    return parent.subnets(bits)


def validate_explicit(parent: CidrBlock, candidates: Sequence[CidrBlock]) -> List[PlanningError]:
    """
    Check every candidate against the parent and every sibling.

    Returns every violation found; an empty list means the candidates are
    disjoint and all inside the parent.
    """
    errors: List[PlanningError] = []
    for i, candidate in enumerate(candidates):
        if not parent.contains(candidate):
            errors.append(ContainmentError(candidate, parent))
        for other in candidates[i + 1:]:
            if candidate.overlaps(other):
                errors.append(OverlapError(candidate, other))
    return errors
