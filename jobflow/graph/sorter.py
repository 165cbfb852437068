import logging
from collections import deque
from typing import Dict, List, Sequence

from ..errors import CycleDetectedError
from ..models.workflow import Edge, WorkflowNode

LOGGER = logging.getLogger(__name__)


def get_execution_order(
    nodes: Sequence[WorkflowNode],
    edges: Sequence[Edge],
    strict: bool = False,
) -> List[WorkflowNode]:
    """
    Kahn's algorithm. Nodes that are ready at the same time keep their input
    order, so a given graph always sorts the same way.

    Nodes on a cycle, nodes fed by an edge from an unknown node, and anything
    downstream of either never become ready and are left out of the result.
    With strict=True that raises CycleDetectedError instead.
    """
    node_map: Dict[str, WorkflowNode] = {node.id: node for node in nodes}
    in_degree: Dict[str, int] = {node.id: 0 for node in nodes}
    adjacency: Dict[str, List[str]] = {node.id: [] for node in nodes}

    for edge in edges:
        if edge.target not in node_map:
            LOGGER.warning("Ignoring edge %s -> %s: unknown target", edge.source, edge.target)
            continue
        # An edge from an unknown node still holds its target back
        in_degree[edge.target] += 1
        if edge.source in node_map:
            adjacency[edge.source].append(edge.target)

    queue = deque(node.id for node in nodes if in_degree[node.id] == 0)
    result: List[WorkflowNode] = []

    while queue:
        node_id = queue.popleft()
        result.append(node_map[node_id])

        for neighbor in adjacency[node_id]:
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    if len(result) < len(nodes):
        placed = {node.id for node in result}
        dropped = [node.id for node in nodes if node.id not in placed]
        if strict:
            raise CycleDetectedError(dropped)
        LOGGER.warning("Skipping %d node(s) that never became ready: %s", len(dropped), ", ".join(dropped))

    return result
