"""
Incomer/outgoer queries over one graph snapshot.

``GraphIndex`` precomputes adjacency once so traversal-heavy validation stays
linear in the number of edges instead of rescanning the edge list on every
neighbour lookup. Flow adjacency (edges) and containment (``parentId``) are
indexed separately.
"""

from __future__ import annotations

from collections import defaultdict, deque
from collections.abc import Collection, Iterable

from ruleflow.core.errors import GraphIntegrityError
from ruleflow.domain.enums import NodeKind
from ruleflow.domain.models import ConditionNode, Edge, FlowGraph, GraphNode, OperatorNode


class GraphIndex:
    """
    Read-only adjacency index for a ``FlowGraph``.

    Args:
        graph: Snapshot to index
        strict: When False, edges naming unknown nodes are left out of the
            index and collected in ``dangling_edges`` instead of raising.

    Raises:
        GraphIntegrityError: If two nodes share an id, or (strict mode) an
            edge references a node that is not in the snapshot.
    """

    def __init__(self, graph: FlowGraph, strict: bool = True) -> None:
        self.graph = graph
        self.dangling_edges: list[Edge] = []
        self._nodes: dict[str, GraphNode] = {}
        self._order: dict[str, int] = {}
        self._outgoing: dict[str, list[str]] = defaultdict(list)
        self._incoming: dict[str, list[str]] = defaultdict(list)
        self._children: dict[str, list[str]] = defaultdict(list)

        for position, node in enumerate(graph.nodes):
            if node.id in self._nodes:
                raise GraphIntegrityError(
                    f"Duplicate node id '{node.id}'", details={"node_id": node.id}
                )
            self._nodes[node.id] = node
            self._order[node.id] = position

        for node in graph.nodes:
            if node.parent_id:
                self._children[node.parent_id].append(node.id)

        for edge in graph.edges:
            missing = [ref for ref in (edge.source, edge.target) if ref not in self._nodes]
            if missing and not strict:
                self.dangling_edges.append(edge)
                continue
            if missing:
                raise GraphIntegrityError(
                    f"Edge '{edge.id or edge.source + '->' + edge.target}' references "
                    f"unknown node(s): {', '.join(missing)}",
                    details={"edge_id": edge.id, "missing": missing},
                )
            # Parallel edges collapse to one neighbour
            if edge.target not in self._outgoing[edge.source]:
                self._outgoing[edge.source].append(edge.target)
            if edge.source not in self._incoming[edge.target]:
                self._incoming[edge.target].append(edge.source)

    # -------------------------------------------------------------------------
    # Node lookup
    # -------------------------------------------------------------------------

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str | None) -> GraphNode | None:
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def order(self, node_id: str) -> int:
        """Position of the node in the snapshot; used for deterministic output."""
        return self._order[node_id]

    def nodes_of_kind(self, kind: NodeKind) -> list[GraphNode]:
        return [node for node in self.graph.nodes if node.type == kind]

    def children(self, parent_id: str, kind: NodeKind | None = None) -> list[GraphNode]:
        """Nodes whose ``parentId`` is ``parent_id``, in snapshot order."""
        nodes = [self._nodes[child] for child in self._children.get(parent_id, [])]
        if kind is None:
            return nodes
        return [node for node in nodes if node.type == kind]

    # -------------------------------------------------------------------------
    # Flow adjacency
    # -------------------------------------------------------------------------

    def incomers(self, node_id: str, within: Collection[str] | None = None) -> list[GraphNode]:
        """Nodes with an edge into ``node_id``, optionally restricted to ``within``."""
        return self._resolve(self._incoming.get(node_id, []), within)

    def outgoers(self, node_id: str, within: Collection[str] | None = None) -> list[GraphNode]:
        """Nodes reached by an edge out of ``node_id``, optionally restricted to ``within``."""
        return self._resolve(self._outgoing.get(node_id, []), within)

    def has_path(self, start: str, goal: str) -> bool:
        """Breadth-first reachability along edge direction."""
        if start == goal:
            return True
        seen = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in self._outgoing.get(current, []):
                if nxt == goal:
                    return True
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        return False

    def _resolve(self, ids: Iterable[str], within: Collection[str] | None) -> list[GraphNode]:
        if within is None:
            return [self._nodes[i] for i in ids]
        return [self._nodes[i] for i in ids if i in within]


# =============================================================================
# Group membership
# =============================================================================


def group_conditions(group_id: str, index: GraphIndex) -> list[ConditionNode]:
    """Condition nodes visually nested in the group."""
    return index.children(group_id, NodeKind.CONDITION)


def group_operators(group_id: str, index: GraphIndex) -> list[OperatorNode]:
    """
    Operator nodes belonging to a group.

    Both placements are legal: an operator fed by an edge out of the group
    node itself, or an operator nested in the group via ``parentId``.
    Edge-attached operators come first.
    """
    operators = [node for node in index.outgoers(group_id) if node.type == NodeKind.OPERATOR]
    seen = {node.id for node in operators}
    for child in index.children(group_id, NodeKind.OPERATOR):
        if child.id not in seen:
            operators.append(child)
            seen.add(child.id)
    return operators


# =============================================================================
# Snapshot-level helpers
# =============================================================================


def get_incomers(node_id: str, graph: FlowGraph) -> list[GraphNode]:
    """All nodes with an edge whose target is ``node_id``."""
    return GraphIndex(graph).incomers(node_id)


def get_outgoers(node_id: str, graph: FlowGraph) -> list[GraphNode]:
    """All nodes with an edge whose source is ``node_id``."""
    return GraphIndex(graph).outgoers(node_id)
