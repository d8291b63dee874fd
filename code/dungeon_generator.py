"""DungeonGenerator runs the pipeline: layout, regions, rooms, connections, meshes, environment."""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass
from time import perf_counter
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from connection_builder import build_room_graph, room_neighbours, synthesize_connections
from dungeon_config import AUTO_ENTRANCE, DungeonConfig, EntranceType
from dungeon_errors import GenerationIncompleteError
from dungeon_geometry import ORIGIN, Bounds
from dungeon_layout import GraphExport, SpatialGraph
from dungeon_models import Connection, EntranceDescriptor, Region, Room
from dungeon_noise import NoiseField
from environment_sim import EnvironmentReport, EnvironmentSimulator
from generation_metrics import GenerationMetrics
from grower_context import GrowerContext
from growers import run_layout_tree_grower
from mesh_builder import MeshSynthesizer, RenderGeometry
from region_classifier import classify_regions
from room_builder import blend_room_environments, synthesize_rooms
from room_templates import ENTRANCE_TEMPLATES

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

PHASES = (
    "entrance",
    "layout",
    "regions",
    "rooms",
    "connections",
    "geometry",
    "environment",
)


@dataclass(frozen=True)
class GenerationStats:
    room_count: int
    connection_count: int
    rooms_by_style: Mapping[str, int]
    connections_by_priority: Mapping[str, int]
    connections_by_style: Mapping[str, int]
    water_body_count: int
    light_source_count: int
    vertex_count: int
    index_count: int
    draw_call_count: int
    generation_time_ms: float
    phase_metrics: Optional[Dict[str, Dict[str, float | int]]] = None


@dataclass(frozen=True)
class DungeonResult:
    config: DungeonConfig
    seed: int
    entrance: EntranceDescriptor
    graph: GraphExport
    layout_stats: Mapping[str, object]
    rooms: Tuple[Room, ...]
    connections: Tuple[Connection, ...]
    geometry: RenderGeometry
    environment: EnvironmentReport
    stats: GenerationStats
    bounds: Optional[Bounds]
    connectivity_valid: bool

    def room(self, room_id: str) -> Room:
        for room in self.rooms:
            if room.id == room_id:
                return room
        raise KeyError(room_id)


def select_entrance(config: DungeonConfig, rng: random.Random) -> EntranceDescriptor:
    """Resolve the configured entrance type and roll its dimensions."""
    if config.entrance_type == AUTO_ENTRANCE:
        entrance_type = rng.choice(list(EntranceType))
    else:
        entrance_type = config.entrance_type
    template = ENTRANCE_TEMPLATES[entrance_type]
    size = {name: rng.uniform(low, high) for name, (low, high) in template.size.items()}
    return EntranceDescriptor(
        entrance_type=entrance_type,
        name=template.name,
        shape=template.shape,
        style=template.style,
        size=size,
        features=template.features,
        position=ORIGIN,
    )


class DungeonGenerator:
    """Manages the overall process of generating a dungeon."""

    def __init__(self, config: DungeonConfig) -> None:
        self.config = config
        self.seed = config.resolved_seed
        self.metrics: Optional[GenerationMetrics] = None
        self._reset()

    def _reset(self) -> None:
        self.rng = random.Random(self.seed)
        self.graph = SpatialGraph()
        self.entrance: Optional[EntranceDescriptor] = None
        self.regions: List[Region] = []
        self.rooms: List[Room] = []
        self.connections: List[Connection] = []
        self.room_graph: Optional[SpatialGraph] = None
        self.geometry: Optional[RenderGeometry] = None
        self.environment: Optional[EnvironmentReport] = None
        self.metrics = GenerationMetrics() if self.config.collect_metrics else None

    def _room_count(self) -> int:
        # Before room synthesis the layout nodes stand in for rooms.
        return len(self.rooms) if self.rooms else len(self.graph)

    def _run_phase(self, name: str, func: Callable[[], None]) -> None:
        if self.metrics is None:
            func()
            return

        rooms_before = self._room_count()
        connections_before = len(self.connections)
        start = perf_counter()
        try:
            func()
        finally:
            duration = perf_counter() - start
            self.metrics.record_phase_run(
                name,
                duration,
                self._room_count() - rooms_before,
                len(self.connections) - connections_before,
            )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    def _place_entrance(self) -> None:
        self.entrance = select_entrance(self.config, self.rng)

    def _grow_layout(self) -> None:
        context = GrowerContext(config=self.config, graph=self.graph, rng=self.rng)
        run_layout_tree_grower(context)
        if not self.graph.validate_connectivity():
            logger.warning(
                "Layout tree leaves %d nodes unreachable", len(self.graph.unreachable_node_ids())
            )

    def _classify_regions(self) -> None:
        self.regions = classify_regions(
            self.graph,
            self.config.max_depth,
            self.config.natural_cave_ratio,
            self.rng,
        )

    def _build_rooms(self) -> None:
        self.rooms = synthesize_rooms(self.regions, self.rng)

    def _connect_rooms(self) -> None:
        self.connections = synthesize_connections(self.rooms, self.rng)
        blend_room_environments(self.rooms, room_neighbours(self.connections))
        self.room_graph = build_room_graph(self.rooms, self.connections)
        if self.room_graph.validate_connectivity():
            return
        unreachable = self.room_graph.unreachable_node_ids()
        message = f"{len(unreachable)} rooms are unreachable from the entrance"
        if self.config.require_connectivity:
            raise GenerationIncompleteError(message, unreachable=unreachable)
        logger.warning(message)

    def _build_geometry(self) -> None:
        synthesizer = MeshSynthesizer(
            NoiseField(self.seed), icosphere_subdivisions=self.config.icosphere_subdivisions
        )
        self.geometry = synthesizer.build(
            self.rooms, self.connections, optimize=self.config.optimize_geometry
        )

    def _simulate_environment(self) -> None:
        self.environment = EnvironmentSimulator(self.rng).run(self.rooms, self.connections)

    # ------------------------------------------------------------------
    def generate(self, progress: Optional[ProgressCallback] = None) -> DungeonResult:
        """Run every phase in order and package the result.

        Calling ``generate`` again on the same generator repeats the run from
        the same seed and yields an identical dungeon.
        """
        self._reset()
        start = perf_counter()
        steps = (
            self._place_entrance,
            self._grow_layout,
            self._classify_regions,
            self._build_rooms,
            self._connect_rooms,
            self._build_geometry,
            self._simulate_environment,
        )
        for index, (name, step) in enumerate(zip(PHASES, steps)):
            self._run_phase(name, step)
            if progress is not None:
                progress(name, (index + 1) / len(PHASES))
        elapsed_ms = (perf_counter() - start) * 1000.0
        logger.info(
            "Generated %d rooms and %d connections in %.1f ms (seed %d)",
            len(self.rooms),
            len(self.connections),
            elapsed_ms,
            self.seed,
        )
        return self._result(elapsed_ms)

    def _result(self, elapsed_ms: float) -> DungeonResult:
        assert self.entrance is not None
        assert self.room_graph is not None
        assert self.geometry is not None
        assert self.environment is not None
        stats = GenerationStats(
            room_count=len(self.rooms),
            connection_count=len(self.connections),
            rooms_by_style=dict(Counter(room.style.value for room in self.rooms)),
            connections_by_priority=dict(
                Counter(connection.priority.value for connection in self.connections)
            ),
            connections_by_style=dict(Counter(connection.style.value for connection in self.connections)),
            water_body_count=len(self.environment.water_bodies),
            light_source_count=len(self.environment.light_sources),
            vertex_count=self.geometry.vertex_count,
            index_count=self.geometry.index_count,
            draw_call_count=self.geometry.draw_call_count,
            generation_time_ms=elapsed_ms,
            phase_metrics=self.metrics.snapshot() if self.metrics is not None else None,
        )
        graph_export = self.room_graph.export()
        return DungeonResult(
            config=self.config,
            seed=self.seed,
            entrance=self.entrance,
            graph=graph_export,
            layout_stats=self.graph.stats(),
            rooms=tuple(self.rooms),
            connections=tuple(self.connections),
            geometry=self.geometry,
            environment=self.environment,
            stats=stats,
            bounds=self.room_graph.bounds,
            connectivity_valid=graph_export.connectivity_valid,
        )


def generate_dungeon(
    config: Optional[DungeonConfig] = None,
    progress: Optional[ProgressCallback] = None,
) -> DungeonResult:
    return DungeonGenerator(config or DungeonConfig()).generate(progress)
