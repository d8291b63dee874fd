"""Spatial graph holding the dungeon's node positions and adjacency."""

from __future__ import annotations

import heapq
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from dungeon_constants import ENTRANCE_ID
from dungeon_errors import GraphIntegrityError, UnknownNodeError
from dungeon_geometry import Bounds, Vec3

logger = logging.getLogger(__name__)


@dataclass
class GraphNode:
    """A chamber location in the layout tree."""

    id: str
    position: Vec3
    depth: int
    parent_id: Optional[str] = None
    connections: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MstEdge:
    from_id: str
    to_id: str
    weight: float


@dataclass(frozen=True)
class GraphExport:
    """Read-only snapshot of a SpatialGraph."""

    nodes: Tuple[GraphNode, ...]
    adjacency: Mapping[str, Tuple[str, ...]]
    bounds: Optional[Bounds]
    depth_distribution: Mapping[int, int]
    edge_count: int
    connectivity_valid: bool


def prim_minimum_spanning_tree(
    positions: Mapping[str, Vec3],
    root_id: str,
    neighbors: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[MstEdge]:
    """Prim's algorithm with an O(V^2) scan, seeded at ``root_id``.

    Without ``neighbors`` every pair of nodes is a candidate edge weighted by
    Euclidean distance. Stops early when no visited node has an edge to an
    unvisited one. Ties resolve to the first pair in ``positions`` order.
    """
    if root_id not in positions:
        raise UnknownNodeError(root_id)
    order = list(positions)
    visited: Set[str] = {root_id}
    visited_order: List[str] = [root_id]
    edges: List[MstEdge] = []
    while len(visited) < len(order):
        best: Optional[MstEdge] = None
        for from_id in visited_order:
            origin = positions[from_id]
            candidates: Iterable[str] = (
                order if neighbors is None else neighbors.get(from_id, ())
            )
            for to_id in candidates:
                if to_id in visited:
                    continue
                weight = origin.distance(positions[to_id])
                if best is None or weight < best.weight:
                    best = MstEdge(from_id, to_id, weight)
        if best is None:
            break
        visited.add(best.to_id)
        visited_order.append(best.to_id)
        edges.append(best)
    return edges


class SpatialGraph:
    """Nodes keyed by id with symmetric adjacency, a depth index and running bounds."""

    def __init__(self) -> None:
        self.nodes: Dict[str, GraphNode] = {}
        self._adjacency: Dict[str, List[str]] = {}
        self._depth_index: Dict[int, List[str]] = {}
        self._bounds: Optional[Bounds] = None
        self._edge_count = 0

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    @property
    def entrance(self) -> Optional[GraphNode]:
        return self.nodes.get(ENTRANCE_ID)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    @property
    def bounds(self) -> Optional[Bounds]:
        return self._bounds

    def add_node(self, node: GraphNode) -> GraphNode:
        if node.id in self.nodes:
            raise GraphIntegrityError(f"Duplicate node id {node.id!r}")
        if node.connections:
            raise GraphIntegrityError("New nodes must be added before their connections")
        self.nodes[node.id] = node
        self._adjacency[node.id] = node.connections
        self._depth_index.setdefault(node.depth, []).append(node.id)
        self._bounds = (
            Bounds(node.position, node.position)
            if self._bounds is None
            else self._bounds.expanded_to(node.position)
        )
        return node

    def get_node(self, node_id: str) -> GraphNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def add_connection(self, a: str, b: str) -> bool:
        """Link two nodes symmetrically. Returns False when nothing changed."""
        node_a = self.get_node(a)
        node_b = self.get_node(b)
        if a == b or b in node_a.connections:
            return False
        node_a.connections.append(b)
        node_b.connections.append(a)
        self._edge_count += 1
        return True

    def connections(self, node_id: str) -> Tuple[str, ...]:
        return tuple(self.get_node(node_id).connections)

    def nodes_at_depth(self, depth: int) -> List[GraphNode]:
        return [self.nodes[node_id] for node_id in self._depth_index.get(depth, ())]

    def nodes_within_radius(self, point: Vec3, radius: float) -> List[GraphNode]:
        radius_sq = radius * radius
        return [
            node
            for node in self.nodes.values()
            if node.position.distance_squared(point) <= radius_sq
        ]

    def edges(self) -> List[Tuple[str, str]]:
        """Unique undirected edges in insertion order."""
        seen: Set[Tuple[str, str]] = set()
        result: List[Tuple[str, str]] = []
        for node_id, neighbours in self._adjacency.items():
            for other in neighbours:
                key = (node_id, other) if node_id < other else (other, node_id)
                if key in seen:
                    continue
                seen.add(key)
                result.append((node_id, other))
        return result

    # ------------------------------------------------------------------
    # Path finding and spanning trees
    # ------------------------------------------------------------------
    def shortest_path(self, start_id: str, goal_id: str) -> Optional[List[str]]:
        """A* over existing edges with Euclidean weights and heuristic."""
        self.get_node(start_id)
        goal = self.get_node(goal_id)
        if start_id == goal_id:
            return [start_id]

        counter = itertools.count()
        open_heap: List[Tuple[float, int, str]] = [
            (self.nodes[start_id].position.distance(goal.position), next(counter), start_id)
        ]
        came_from: Dict[str, str] = {}
        g_score: Dict[str, float] = {start_id: 0.0}
        closed: Set[str] = set()

        while open_heap:
            _, _, current = heapq.heappop(open_heap)
            if current == goal_id:
                return self._reconstruct_path(came_from, current)
            if current in closed:
                continue
            closed.add(current)
            current_pos = self.nodes[current].position
            for neighbour in self._adjacency[current]:
                if neighbour in closed:
                    continue
                neighbour_pos = self.nodes[neighbour].position
                tentative = g_score[current] + current_pos.distance(neighbour_pos)
                if tentative < g_score.get(neighbour, float("inf")):
                    came_from[neighbour] = current
                    g_score[neighbour] = tentative
                    f_score = tentative + neighbour_pos.distance(goal.position)
                    heapq.heappush(open_heap, (f_score, next(counter), neighbour))
        return None

    @staticmethod
    def _reconstruct_path(came_from: Mapping[str, str], current: str) -> List[str]:
        path = [current]
        while current in came_from:
            current = came_from[current]
            path.append(current)
        path.reverse()
        return path

    def path_cost(self, path: Sequence[str]) -> float:
        return sum(
            self.get_node(a).position.distance(self.get_node(b).position)
            for a, b in zip(path, path[1:])
        )

    def minimum_spanning_tree(self, existing_edges_only: bool = False) -> List[MstEdge]:
        if not self.nodes:
            return []
        root_id = ENTRANCE_ID if ENTRANCE_ID in self.nodes else next(iter(self.nodes))
        positions = {node_id: node.position for node_id, node in self.nodes.items()}
        neighbors = self._adjacency if existing_edges_only else None
        return prim_minimum_spanning_tree(positions, root_id, neighbors)

    # ------------------------------------------------------------------
    # Validation and reporting
    # ------------------------------------------------------------------
    def reachable_from_entrance(self) -> Set[str]:
        if ENTRANCE_ID not in self.nodes:
            return set()
        visited: Set[str] = {ENTRANCE_ID}
        queue = deque([ENTRANCE_ID])
        while queue:
            current = queue.popleft()
            for neighbour in self._adjacency[current]:
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append(neighbour)
        return visited

    def validate_connectivity(self) -> bool:
        if not self.nodes:
            return True
        if ENTRANCE_ID not in self.nodes:
            logger.warning("Spatial graph has no entrance node")
            return False
        return len(self.reachable_from_entrance()) == len(self.nodes)

    def unreachable_node_ids(self) -> Tuple[str, ...]:
        reachable = self.reachable_from_entrance()
        return tuple(node_id for node_id in self.nodes if node_id not in reachable)

    def depth_distribution(self) -> Dict[int, int]:
        return {depth: len(ids) for depth, ids in sorted(self._depth_index.items())}

    def stats(self) -> Dict[str, object]:
        return {
            "node_count": len(self.nodes),
            "edge_count": self._edge_count,
            "max_depth": max(self._depth_index, default=0),
            "depth_distribution": self.depth_distribution(),
            "bounds": self._bounds,
        }

    def export(self) -> GraphExport:
        return GraphExport(
            nodes=tuple(self.nodes.values()),
            adjacency={node_id: tuple(links) for node_id, links in self._adjacency.items()},
            bounds=self._bounds,
            depth_distribution=self.depth_distribution(),
            edge_count=self._edge_count,
            connectivity_valid=self.validate_connectivity(),
        )

    def debug_visualization(self) -> Dict[str, List[Dict[str, object]]]:
        """Node markers and unique edges, suitable for a debug overlay."""
        nodes = [
            {
                "id": node.id,
                "position": node.position.to_tuple(),
                "depth": node.depth,
                "label": f"{node.id} (d{node.depth})",
            }
            for node in self.nodes.values()
        ]
        edges = [
            {
                "from": self.nodes[a].position.to_tuple(),
                "to": self.nodes[b].position.to_tuple(),
                "ids": (a, b),
            }
            for a, b in self.edges()
        ]
        return {"nodes": nodes, "edges": edges}
