from typing import List, Sequence


class PlanningError(ValueError):
    """
    Base class for everything the planner reports about a network configuration.
    """


class InvalidInputError(PlanningError):
    """
    Malformed CIDR syntax or a split count that is not a positive power of two.
    """


class CapacityError(PlanningError):
    """
    A requested split needs more address space than the parent block holds.
    """


class ConfigError(PlanningError):
    """
    The configuration is structurally insufficient, e.g. no private subnets.
    """


class OverlapError(PlanningError):
    def __init__(self, first, second):
        self.first = first
        self.second = second
        self.nested = first.contains(second) or second.contains(first)
        if self.nested:
            outer, inner = (first, second) if first.contains(second) else (second, first)
            message = f"CIDR block {outer} contains {inner}"
        else:
            message = f"CIDR blocks {first} and {second} overlap"
        super().__init__(message)


class ContainmentError(PlanningError):
    def __init__(self, block, parent):
        self.block = block
        self.parent = parent
        super().__init__(f"CIDR block {block} is not contained in {parent}")


class GraphError(PlanningError):
    """
    A resource graph references a missing node or contains a cycle.
    """


class PlanningFailed(PlanningError):
    def __init__(self, errors: Sequence[PlanningError]):
        self.errors: List[PlanningError] = list(errors)
        details = "; ".join(str(error) for error in self.errors)
        super().__init__(f"Network plan has {len(self.errors)} error(s): {details}")
