from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping

from vpc_planner.compiler import ResourceNode, topological_order


class CloudResourceDriver(ABC):
    """
    Turns compiled resource nodes into real (or declared) cloud resources.

    Credentials, region selection, retries and state reconciliation belong
    to implementations; the planner only hands over nodes in an order where
    every dependency has already been created.
    """

    @abstractmethod
    def create(self, node: ResourceNode, dependencies: Mapping[str, Any]) -> Any:
        """
        Create one resource. `dependencies` maps each name in
        `node.depends_on` to the handle returned when it was created.
        """


def execute(graph: Mapping[str, ResourceNode], driver: CloudResourceDriver) -> Dict[str, Any]:
    handles: Dict[str, Any] = {}
    for node in topological_order(graph):
        dependencies = {name: handles[name] for name in sorted(node.depends_on)}
        handles[node.name] = driver.create(node, dependencies)
    return handles
