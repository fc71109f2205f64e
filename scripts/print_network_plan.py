import json
import sys

from vpc_planner.compiler import build_graph, compile_plan, topological_order
from vpc_planner.config import NetworkConfig
from vpc_planner.errors import PlanningError


def print_errors(errors):
    print(f"Network plan has {len(errors)} error(s):")
    for error in errors:
        print(f"{type(error).__name__}: {error}")


def main(config_file):
    with open(config_file, 'r') as file:
        data = json.load(file)

    try:
        config = NetworkConfig.from_mapping(data)
    except PlanningError as e:
        print_errors([e])
        sys.exit(1)

    result = compile_plan(config)

    if not result.ok:
        print_errors(result.errors)
        sys.exit(1)

    plan = result.plan
    print(f"VPC {plan.name}: {plan.vpc_block}")
    for spec in plan.subnets:
        source = "explicit" if spec.explicit else "derived"
        print(f"  {spec.name:<12} {str(spec.block):<18} az {spec.az_index} ({source})")

    print("Creation order:")
    for node in topological_order(build_graph(plan)):
        print(f"  {str(node.kind):<14} {node.name}")
    sys.exit(0)


if __name__ == "__main__":
    main(sys.argv[1])
