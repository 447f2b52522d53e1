"""
Node placement for ad-hoc Wi-Fi runs.

Positions are computed here rather than by the engine's grid allocator so the
same layout can be reused for the mobility model and inspected in tests.
"""

from typing import Dict, Tuple

from models import RunParameters

Position = Tuple[float, float]


def place_nodes(
    node_count: int,
    grid_width: int,
    min_x: float = 0.0,
    min_y: float = 0.0,
    delta_x: float = 5.0,
    delta_y: float = 10.0,
) -> Dict[int, Position]:
    """
    Lay nodes out row-first on a fixed-width grid.

    Args:
        node_count: Number of nodes to place (>= 1)
        grid_width: Nodes per row (>= 1)
        min_x: X coordinate of the first column
        min_y: Y coordinate of the first row
        delta_x: Horizontal spacing between columns
        delta_y: Vertical spacing between rows

    Returns:
        Mapping of node index to (x, y)

    Raises:
        ValueError: If node_count or grid_width is below 1
    """
    if node_count < 1:
        raise ValueError(f"node_count must be at least 1, got {node_count}")
    if grid_width < 1:
        raise ValueError(f"grid_width must be at least 1, got {grid_width}")

    positions = {}
    for index in range(node_count):
        column = index % grid_width
        row = index // grid_width
        positions[index] = (min_x + column * delta_x, min_y + row * delta_y)
    return positions


def place_from_parameters(params: RunParameters) -> Dict[int, Position]:
    return place_nodes(
        params.node_count,
        params.grid_width,
        params.min_x,
        params.min_y,
        params.delta_x,
        params.delta_y,
    )


def animation_positions(node_count: int, spacing: float = 10.0) -> Dict[int, Position]:
    """Positions used for the animation trace: a single row along the x axis."""
    return {index: (index * spacing, 0.0) for index in range(node_count)}
