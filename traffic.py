import numbers
from typing import List

from models import InvalidTopologySize, TrafficAssignment


def validate_node_count(node_count: int) -> None:
    if not isinstance(node_count, numbers.Integral):
        raise InvalidTopologySize(f"node count must be an integer, got {type(node_count).__name__}")
    if node_count < 2:
        raise InvalidTopologySize(f"ring traffic needs at least 2 nodes, got {node_count}")


def build_ring_assignment(node_count: int, port: int = 443) -> TrafficAssignment:
    validate_node_count(node_count)

    # the sink index does not follow the ring; most clients address a node with no listener
    destinations = tuple((client + 1) % node_count for client in range(node_count))
    sink = node_count - 1

    return TrafficAssignment(
        node_count=node_count,
        destinations=destinations,
        sink=sink,
        port=port,
    )


def clients_addressing_sink(assignment: TrafficAssignment) -> List[int]:
    return [
        client
        for client, destination in enumerate(assignment.destinations)
        if destination == assignment.sink
    ]
