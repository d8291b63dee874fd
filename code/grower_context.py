"""Context object providing shared state for layout grower implementations."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from dungeon_config import DungeonConfig
from dungeon_constants import NODE_ID_PREFIX
from dungeon_geometry import Vec3
from dungeon_layout import GraphNode, SpatialGraph


@dataclass
class GrowerSeenState:
    """Tracks which graph nodes a grower has already expanded."""

    seen_nodes: Set[str] = field(default_factory=set)
    run_count: int = 0

    def note_seen(self, node_ids: Iterable[str]) -> None:
        self.seen_nodes.update(node_id for node_id in node_ids if node_id is not None)

    def register_run(self) -> None:
        self.run_count += 1


@dataclass
class GrowerContext:
    """Encapsulates shared state and helpers for grower implementations."""

    config: DungeonConfig
    graph: SpatialGraph
    rng: random.Random
    grower_seen_state: Dict[str, GrowerSeenState] = field(default_factory=dict)

    def get_grower_seen_state(self, grower_name: str) -> GrowerSeenState:
        return self.grower_seen_state.setdefault(grower_name, GrowerSeenState())

    def should_consider_growth(self, grower_name: str, nodes: Iterable[str] = ()) -> bool:
        """Return False once every dependency was already expanded by this grower."""
        node_ids = [node_id for node_id in nodes if node_id is not None]
        if not node_ids:
            return True
        seen = self.get_grower_seen_state(grower_name).seen_nodes
        return any(node_id not in seen for node_id in node_ids)

    def record_growth_seen(self, grower_name: str, nodes: Iterable[str] = ()) -> None:
        self.get_grower_seen_state(grower_name).note_seen(nodes)

    # ------------------------------------------------------------------
    # Graph helpers
    # ------------------------------------------------------------------
    @property
    def room_budget_exhausted(self) -> bool:
        return len(self.graph) >= self.config.max_rooms

    def next_node_id(self) -> str:
        return f"{NODE_ID_PREFIX}{len(self.graph)}"

    def add_child_node(self, parent: GraphNode, position: Vec3) -> GraphNode:
        node = GraphNode(
            id=self.next_node_id(),
            position=position,
            depth=parent.depth + 1,
            parent_id=parent.id,
        )
        self.graph.add_node(node)
        self.graph.add_connection(parent.id, node.id)
        return node

    def nearby_nodes(self, point: Vec3, radius: float, exclude: str | None = None) -> List[GraphNode]:
        return [
            node
            for node in self.graph.nodes_within_radius(point, radius)
            if node.id != exclude
        ]
