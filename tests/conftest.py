import random
import sys
from pathlib import Path
from typing import Callable

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
CODE_DIR = ROOT_DIR / "code"
if str(CODE_DIR) not in sys.path:
    sys.path.insert(0, str(CODE_DIR))

from dungeon_config import DungeonConfig
from dungeon_generator import DungeonGenerator, DungeonResult
from dungeon_geometry import ORIGIN, Vec3
from dungeon_layout import GraphNode, SpatialGraph
from dungeon_models import Archetype, Region, Room
from grower_context import GrowerContext
from room_builder import RoomSynthesizer
from room_templates import template_for


@pytest.fixture
def small_config() -> DungeonConfig:
    return DungeonConfig(seed=42, max_rooms=10, max_depth=3, branching_factor=2.0)


@pytest.fixture
def small_result(small_config: DungeonConfig) -> DungeonResult:
    return DungeonGenerator(small_config).generate()


@pytest.fixture
def make_context() -> Callable[..., GrowerContext]:
    def _make_context(*, seed: int = 7, max_rooms: int = 20, max_depth: int = 5, **kwargs) -> GrowerContext:
        config = DungeonConfig(seed=seed, max_rooms=max_rooms, max_depth=max_depth, **kwargs)
        return GrowerContext(config=config, graph=SpatialGraph(), rng=random.Random(seed))

    return _make_context


@pytest.fixture
def make_room() -> Callable[..., Room]:
    """Build a fully synthesized room of a given archetype at a fixed position."""

    def _make_room(
        archetype: Archetype,
        *,
        room_id: str = "node_1",
        position: Vec3 = ORIGIN,
        depth: int = 1,
        seed: int = 3,
    ) -> Room:
        node = GraphNode(id=room_id, position=position, depth=depth)
        region = Region(node=node, style=template_for(archetype).style, archetype=archetype)
        return RoomSynthesizer(random.Random(seed)).build_room(region)

    return _make_room


@pytest.fixture
def line_graph() -> SpatialGraph:
    """entrance_0 - node_1 - node_2 - node_3 along +x, plus a shortcut from entrance to node_2."""
    graph = SpatialGraph()
    graph.add_node(GraphNode(id="entrance_0", position=Vec3(0.0, 0.0, 0.0), depth=0))
    graph.add_node(GraphNode(id="node_1", position=Vec3(10.0, 0.0, 10.0), depth=1))
    graph.add_node(GraphNode(id="node_2", position=Vec3(20.0, 0.0, 0.0), depth=2))
    graph.add_node(GraphNode(id="node_3", position=Vec3(30.0, -5.0, 0.0), depth=3))
    graph.add_connection("entrance_0", "node_1")
    graph.add_connection("node_1", "node_2")
    graph.add_connection("node_2", "node_3")
    graph.add_connection("entrance_0", "node_2")
    return graph
