"""Connects rooms with primary (spanning tree) and secondary passages."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from dungeon_constants import (
    CATMULL_ROM_SUBDIVISIONS,
    CORRIDOR_TURN_OFFSET,
    PASSAGE_FEATURE_CHANCE,
    PASSAGE_FEATURE_SPACING,
    SECONDARY_BASE_PROBABILITY,
    SECONDARY_DEPTH_PENALTY,
    SECONDARY_DISTANCE_PENALTY,
    SECONDARY_FRACTION_OF_ROOMS,
    SECONDARY_MAX_DEPTH_DIFFERENCE,
    SECONDARY_MAX_DISTANCE,
    SECONDARY_SPECIAL_BONUS,
    SINGLE_TURN_CORRIDOR_MAX_LENGTH,
    STRAIGHT_CORRIDOR_MAX_LENGTH,
)
from dungeon_geometry import Vec3
from dungeon_layout import GraphNode, MstEdge, SpatialGraph, prim_minimum_spanning_tree
from dungeon_models import (
    SPECIAL_ARCHETYPES,
    Connection,
    ConnectionPriority,
    ConnectionStyle,
    Doorway,
    PassageFeature,
    RegionStyle,
    Room,
    RoomLink,
    SurfaceFinish,
    WallFace,
)

logger = logging.getLogger(__name__)

Range = Tuple[float, float]


@dataclass(frozen=True)
class PassageStyle:
    width: Range
    height: Range
    features: Tuple[str, ...]


PASSAGE_STYLES: Mapping[ConnectionStyle, PassageStyle] = {
    ConnectionStyle.NATURAL_TUNNEL: PassageStyle(
        width=(2.0, 4.0), height=(2.5, 4.0), features=("rock_formations", "water_drips")
    ),
    ConnectionStyle.CARVED_CORRIDOR: PassageStyle(
        width=(2.5, 3.5), height=(3.0, 4.0), features=("support_beams", "torch_brackets")
    ),
    ConnectionStyle.TRANSITIONAL: PassageStyle(
        width=(2.0, 3.5), height=(2.5, 3.5), features=("partial_carving", "mixed_surfaces")
    ),
}

WALL_NORMALS: Mapping[WallFace, Vec3] = {
    WallFace.NORTH: Vec3(0.0, 0.0, -1.0),
    WallFace.SOUTH: Vec3(0.0, 0.0, 1.0),
    WallFace.EAST: Vec3(1.0, 0.0, 0.0),
    WallFace.WEST: Vec3(-1.0, 0.0, 0.0),
}


@dataclass(frozen=True)
class EdgeCandidate:
    from_id: str
    to_id: str
    distance: float


# ----------------------------------------------------------------------
# Path helpers
# ----------------------------------------------------------------------


def catmull_rom(p0: Vec3, p1: Vec3, p2: Vec3, p3: Vec3, t: float) -> Vec3:
    """Uniform Catmull-Rom point between p1 (t=0) and p2 (t=1)."""
    t2 = t * t
    t3 = t2 * t
    return Vec3(
        *(
            0.5
            * (
                2.0 * b
                + (c - a) * t
                + (2.0 * a - 5.0 * b + 4.0 * c - d) * t2
                + (3.0 * b - a - 3.0 * c + d) * t3
            )
            for a, b, c, d in zip(p0, p1, p2, p3)
        )
    )


def catmull_rom_chain(points: Sequence[Vec3], subdivisions: int = CATMULL_ROM_SUBDIVISIONS) -> List[Vec3]:
    """Spline through every point; each span contributes ``subdivisions`` samples."""
    if len(points) < 2:
        return list(points)
    result: List[Vec3] = []
    last = len(points) - 1
    for index in range(last):
        p0 = points[max(0, index - 1)]
        p1 = points[index]
        p2 = points[index + 1]
        p3 = points[min(last, index + 2)]
        for step in range(subdivisions):
            result.append(catmull_rom(p0, p1, p2, p3, step / subdivisions))
    result.append(points[-1])
    return result


def path_length(path: Sequence[Vec3]) -> float:
    return sum(a.distance(b) for a, b in zip(path, path[1:]))


def point_along_path(path: Sequence[Vec3], t: float) -> Vec3:
    """Point at fraction ``t`` of the arc length."""
    total = path_length(path)
    if total == 0.0:
        return path[0]
    remaining = max(0.0, min(1.0, t)) * total
    for a, b in zip(path, path[1:]):
        segment = a.distance(b)
        if segment > 0.0 and remaining <= segment:
            return a.lerp(b, remaining / segment)
        remaining -= segment
    return path[-1]


def _random_offset(rng: random.Random, horizontal: float, vertical: float) -> Vec3:
    return Vec3(
        (rng.random() - 0.5) * horizontal,
        (rng.random() - 0.5) * vertical,
        (rng.random() - 0.5) * horizontal,
    )


def organic_path(start: Vec3, end: Vec3, rng: random.Random) -> List[Vec3]:
    distance = start.distance(end)
    segments = max(3, math.floor(distance / 5.0))
    controls = [
        start.lerp(end, i / segments) + _random_offset(rng, distance * 0.2, distance * 0.1)
        for i in range(1, segments)
    ]
    return catmull_rom_chain([start, *controls, end])


def carved_path(start: Vec3, end: Vec3, rng: random.Random) -> List[Vec3]:
    direction = end - start
    distance = direction.length()
    if distance < STRAIGHT_CORRIDOR_MAX_LENGTH:
        return [start, end]
    turns = 2 if distance > SINGLE_TURN_CORRIDOR_MAX_LENGTH else 1
    perpendicular = Vec3(-direction.z, 0.0, direction.x).normalize()
    path = [start]
    for i in range(1, turns + 1):
        base = start.lerp(end, i / (turns + 1))
        path.append(base + perpendicular.scale((rng.random() - 0.5) * CORRIDOR_TURN_OFFSET))
    path.append(end)
    return path


def transitional_path(start: Vec3, end: Vec3, rng: random.Random) -> List[Vec3]:
    distance = start.distance(end)
    segments = math.floor(distance / 6.0)
    path = [start]
    for i in range(1, segments):
        variation = 0.15 if rng.random() > 0.5 else 0.05
        base = start.lerp(end, i / segments)
        path.append(base + _random_offset(rng, distance * variation, distance * variation * 0.5))
    path.append(end)
    return path


# ----------------------------------------------------------------------
# Doorways
# ----------------------------------------------------------------------


def wall_for_direction(local: Vec3) -> WallFace:
    if abs(local.x) > abs(local.z):
        return WallFace.EAST if local.x > 0 else WallFace.WEST
    return WallFace.SOUTH if local.z > 0 else WallFace.NORTH


def doorway_for(room: Room, path: Sequence[Vec3], rng: random.Random) -> Doorway:
    """Doorway on the wall the path's first step leaves through."""
    first_step = path[1] - room.position
    wall = wall_for_direction(first_step)
    width = 2.0 + rng.random()
    height = 2.5 + rng.random() * 0.5
    half_w = room.size.footprint_width / 2.0
    half_l = room.size.footprint_length / 2.0
    if wall in (WallFace.EAST, WallFace.WEST):
        sign = 1.0 if wall is WallFace.EAST else -1.0
        along = first_step.z * half_w / abs(first_step.x)
        limit = max(0.0, half_l - width / 2.0)
        offset = Vec3(sign * half_w, 0.0, max(-limit, min(limit, along)))
    else:
        sign = 1.0 if wall is WallFace.SOUTH else -1.0
        along = first_step.x * half_l / abs(first_step.z) if first_step.z != 0.0 else 0.0
        limit = max(0.0, half_w - width / 2.0)
        offset = Vec3(max(-limit, min(limit, along)), 0.0, sign * half_l)
    return Doorway(
        room_id=room.id,
        wall=wall,
        local_offset=offset,
        facing=WALL_NORMALS[wall],
        width=width,
        height=height,
        finish=SurfaceFinish.ROUGH if room.style is RegionStyle.NATURAL else SurfaceFinish.CARVED,
    )


# ----------------------------------------------------------------------
# Synthesizer
# ----------------------------------------------------------------------


def connection_style_for(room_a: Room, room_b: Room) -> ConnectionStyle:
    if room_a.style is RegionStyle.NATURAL and room_b.style is RegionStyle.NATURAL:
        return ConnectionStyle.NATURAL_TUNNEL
    if room_a.style is RegionStyle.CONSTRUCTED and room_b.style is RegionStyle.CONSTRUCTED:
        return ConnectionStyle.CARVED_CORRIDOR
    return ConnectionStyle.TRANSITIONAL


def secondary_probability(room_a: Room, room_b: Room, distance: float) -> Optional[float]:
    """Acceptance probability for a non-tree edge, or None when the pair is out of range."""
    depth_difference = abs(room_a.depth - room_b.depth)
    if distance > SECONDARY_MAX_DISTANCE or depth_difference > SECONDARY_MAX_DEPTH_DIFFERENCE:
        return None
    special = room_a.archetype in SPECIAL_ARCHETYPES or room_b.archetype in SPECIAL_ARCHETYPES
    probability = SECONDARY_BASE_PROBABILITY
    if special:
        probability += SECONDARY_SPECIAL_BONUS
    probability -= depth_difference * SECONDARY_DEPTH_PENALTY
    probability -= distance / SECONDARY_MAX_DISTANCE * SECONDARY_DISTANCE_PENALTY
    return probability


class ConnectionSynthesizer:
    """Spanning tree for guaranteed reachability plus a capped set of shortcut loops."""

    def __init__(self, rng: random.Random) -> None:
        self.rng = rng

    def spanning_edges(self, rooms: Sequence[Room]) -> List[MstEdge]:
        if len(rooms) < 2:
            return []
        root = next((room for room in rooms if room.depth == 0), rooms[0])
        positions = {room.id: room.position for room in rooms}
        return prim_minimum_spanning_tree(positions, root.id)

    def secondary_edges(self, rooms: Sequence[Room], primary: Sequence[MstEdge]) -> List[EdgeCandidate]:
        taken: Set[frozenset] = {frozenset((edge.from_id, edge.to_id)) for edge in primary}
        accepted: List[EdgeCandidate] = []
        for i, room_a in enumerate(rooms):
            for room_b in rooms[i + 1:]:
                key = frozenset((room_a.id, room_b.id))
                if key in taken:
                    continue
                distance = room_a.position.distance(room_b.position)
                probability = secondary_probability(room_a, room_b, distance)
                if probability is None:
                    continue
                if self.rng.random() < probability:
                    accepted.append(EdgeCandidate(room_a.id, room_b.id, distance))
                    taken.add(key)
        limit = math.floor(len(rooms) * SECONDARY_FRACTION_OF_ROOMS)
        accepted.sort(key=lambda edge: edge.distance)
        return accepted[:limit]

    def synthesize_path(self, style: ConnectionStyle, start: Vec3, end: Vec3) -> List[Vec3]:
        if style is ConnectionStyle.NATURAL_TUNNEL:
            return organic_path(start, end, self.rng)
        if style is ConnectionStyle.CARVED_CORRIDOR:
            return carved_path(start, end, self.rng)
        return transitional_path(start, end, self.rng)

    def passage_features(self, style: PassageStyle, path: Sequence[Vec3], length: float) -> List[PassageFeature]:
        slots = math.floor(length / PASSAGE_FEATURE_SPACING)
        features: List[PassageFeature] = []
        for index in range(slots):
            t = (index + 1) / (slots + 1)
            for kind in style.features:
                if self.rng.random() < PASSAGE_FEATURE_CHANCE:
                    features.append(
                        PassageFeature(
                            kind=kind,
                            t=t,
                            position=point_along_path(path, t),
                            variant=self.rng.randrange(3),
                        )
                    )
        return features

    def create_connection(self, room_a: Room, room_b: Room, priority: ConnectionPriority) -> Connection:
        style = connection_style_for(room_a, room_b)
        passage = PASSAGE_STYLES[style]
        width = self.rng.uniform(*passage.width)
        height = self.rng.uniform(*passage.height)
        path = self.synthesize_path(style, room_a.position, room_b.position)
        length = path_length(path)
        features = self.passage_features(passage, path, length)
        doorway_a = doorway_for(room_a, path, self.rng)
        doorway_b = doorway_for(room_b, path[::-1], self.rng)
        connection = Connection(
            id=f"conn_{room_a.id}_{room_b.id}",
            room_ids=(room_a.id, room_b.id),
            priority=priority,
            style=style,
            path=tuple(path),
            width=width,
            height=height,
            length=length,
            features=tuple(features),
            doorways=(doorway_a, doorway_b),
        )
        room_a.links.append(RoomLink(room_b.id, connection.id, doorway_a))
        room_b.links.append(RoomLink(room_a.id, connection.id, doorway_b))
        return connection

    def connect(self, rooms: Sequence[Room]) -> List[Connection]:
        by_id: Dict[str, Room] = {room.id: room for room in rooms}
        primary = self.spanning_edges(rooms)
        secondary = self.secondary_edges(rooms, primary)
        connections = [
            self.create_connection(by_id[edge.from_id], by_id[edge.to_id], ConnectionPriority.PRIMARY)
            for edge in primary
        ]
        connections.extend(
            self.create_connection(by_id[edge.from_id], by_id[edge.to_id], ConnectionPriority.SECONDARY)
            for edge in secondary
        )
        logger.info(
            "Created %d connections (%d primary, %d secondary)",
            len(connections),
            len(primary),
            len(secondary),
        )
        return connections


def build_room_graph(rooms: Sequence[Room], connections: Sequence[Connection]) -> SpatialGraph:
    """Spatial graph whose edges are exactly the synthesized connections."""
    graph = SpatialGraph()
    for room in rooms:
        graph.add_node(GraphNode(id=room.id, position=room.position, depth=room.depth))
    for connection in connections:
        graph.add_connection(*connection.room_ids)
    return graph


def room_neighbours(connections: Sequence[Connection]) -> Dict[str, List[str]]:
    neighbours: Dict[str, List[str]] = {}
    for connection in connections:
        a, b = connection.room_ids
        neighbours.setdefault(a, []).append(b)
        neighbours.setdefault(b, []).append(a)
    return neighbours


def synthesize_connections(rooms: Sequence[Room], rng: random.Random) -> List[Connection]:
    return ConnectionSynthesizer(rng).connect(rooms)
