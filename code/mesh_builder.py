"""Turns rooms and connections into renderable triangle meshes."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from dungeon_constants import (
    CAVE_DISPLACEMENT_AMPLITUDE,
    CAVE_DISPLACEMENT_FREQUENCY,
    FLOOR_SEGMENTS,
    TUNNEL_RING_SEGMENTS,
    WALL_THICKNESS,
)
from dungeon_geometry import Vec3
from dungeon_models import Connection, ConnectionStyle, RegionStyle, Room
from dungeon_noise import NoiseField
from mesh_buffers import MeshBuffers, Transform, compute_vertex_normals, merge_buffers
from room_templates import DEEPEST_CONSTRUCTED

logger = logging.getLogger(__name__)


class Material(Enum):
    CAVE_ROCK = "cave_rock"
    CARVED_STONE = "carved_stone"
    ANCIENT_STONE = "ancient_stone"


# ----------------------------------------------------------------------
# Primitives
# ----------------------------------------------------------------------

_PHI = (1.0 + math.sqrt(5.0)) / 2.0
_ICOSAHEDRON_VERTICES = (
    (-1, _PHI, 0), (1, _PHI, 0), (-1, -_PHI, 0), (1, -_PHI, 0),
    (0, -1, _PHI), (0, 1, _PHI), (0, -1, -_PHI), (0, 1, -_PHI),
    (_PHI, 0, -1), (_PHI, 0, 1), (-_PHI, 0, -1), (-_PHI, 0, 1),
)
_ICOSAHEDRON_FACES = (
    (0, 11, 5), (0, 5, 1), (0, 1, 7), (0, 7, 10), (0, 10, 11),
    (1, 5, 9), (5, 11, 4), (11, 10, 2), (10, 7, 6), (7, 1, 8),
    (3, 9, 4), (3, 4, 2), (3, 2, 6), (3, 6, 8), (3, 8, 9),
    (4, 9, 5), (2, 4, 11), (6, 2, 10), (8, 6, 7), (9, 8, 1),
)


def icosphere(radius: float, subdivisions: int) -> MeshBuffers:
    """Unit icosahedron split ``subdivisions`` times, projected to ``radius``."""
    vertices: List[np.ndarray] = [
        np.array(v, dtype=np.float64) / np.linalg.norm(v) for v in _ICOSAHEDRON_VERTICES
    ]
    faces: List[Tuple[int, int, int]] = list(_ICOSAHEDRON_FACES)
    for _ in range(subdivisions):
        midpoint_cache: Dict[Tuple[int, int], int] = {}

        def midpoint(a: int, b: int) -> int:
            key = (a, b) if a < b else (b, a)
            index = midpoint_cache.get(key)
            if index is None:
                middle = vertices[a] + vertices[b]
                vertices.append(middle / np.linalg.norm(middle))
                index = len(vertices) - 1
                midpoint_cache[key] = index
            return index

        next_faces = []
        for a, b, c in faces:
            ab = midpoint(a, b)
            bc = midpoint(b, c)
            ca = midpoint(c, a)
            next_faces.extend(((a, ab, ca), (b, bc, ab), (c, ca, bc), (ab, bc, ca)))
        faces = next_faces

    unit = np.array(vertices)
    return MeshBuffers(positions=unit * radius, normals=unit, indices=np.array(faces))


def plane(width: float, length: float, segments_w: int, segments_l: int) -> MeshBuffers:
    """Horizontal grid centred on the origin, facing +y."""
    xs = np.linspace(-width / 2.0, width / 2.0, segments_w + 1)
    zs = np.linspace(-length / 2.0, length / 2.0, segments_l + 1)
    grid_x, grid_z = np.meshgrid(xs, zs, indexing="ij")
    positions = np.stack((grid_x.ravel(), np.zeros(grid_x.size), grid_z.ravel()), axis=1)
    normals = np.tile((0.0, 1.0, 0.0), (len(positions), 1))
    indices = []
    row = segments_l + 1
    for i in range(segments_w):
        for j in range(segments_l):
            a = i * row + j
            b = (i + 1) * row + j
            c = a + 1
            d = b + 1
            indices.append((a, c, b))
            indices.append((b, c, d))
    return MeshBuffers(positions, normals, np.array(indices))


_BOX_FACES = (
    # normal, u, v with u x v == normal
    ((1, 0, 0), (0, 1, 0), (0, 0, 1)),
    ((-1, 0, 0), (0, 0, 1), (0, 1, 0)),
    ((0, 1, 0), (0, 0, 1), (1, 0, 0)),
    ((0, -1, 0), (1, 0, 0), (0, 0, 1)),
    ((0, 0, 1), (1, 0, 0), (0, 1, 0)),
    ((0, 0, -1), (0, 1, 0), (1, 0, 0)),
)


def box(size: Tuple[float, float, float], center: Tuple[float, float, float]) -> MeshBuffers:
    """Axis-aligned box with flat-shaded faces (4 vertices per face)."""
    half = np.array(size, dtype=np.float64) / 2.0
    origin = np.array(center, dtype=np.float64)
    positions = []
    normals = []
    indices = []
    for normal, u, v in _BOX_FACES:
        n = np.array(normal, dtype=np.float64)
        u_axis = np.array(u, dtype=np.float64) * half
        v_axis = np.array(v, dtype=np.float64) * half
        face_center = origin + n * half
        base = len(positions)
        positions.extend(
            (
                face_center - u_axis - v_axis,
                face_center + u_axis - v_axis,
                face_center + u_axis + v_axis,
                face_center - u_axis + v_axis,
            )
        )
        normals.extend((n, n, n, n))
        indices.append((base, base + 1, base + 2))
        indices.append((base, base + 2, base + 3))
    return MeshBuffers(np.array(positions), np.array(normals), np.array(indices))


def tube(path: Sequence[Vec3], width: float, height: float, segments: int = TUNNEL_RING_SEGMENTS) -> MeshBuffers:
    """Elliptical tunnel swept along ``path`` with normals facing the centreline."""
    points = np.array([p.to_tuple() for p in path], dtype=np.float64)
    count = len(points)
    world_up = np.array((0.0, 1.0, 0.0))
    angles = np.linspace(0.0, math.tau, segments, endpoint=False)
    positions = []
    normals = []
    for index in range(count):
        if index < count - 1:
            tangent = points[index + 1] - points[index]
        else:
            tangent = points[index] - points[index - 1]
        tangent_length = np.linalg.norm(tangent)
        tangent = tangent / tangent_length if tangent_length > 0 else np.array((0.0, 0.0, 1.0))
        right = np.cross(tangent, world_up)
        if np.linalg.norm(right) < 1e-6:
            right = np.array((1.0, 0.0, 0.0))
        right = right / np.linalg.norm(right)
        up = np.cross(right, tangent)
        centre = points[index] + up * (height / 2.0)
        for angle in angles:
            radial = right * math.cos(angle) * (width / 2.0) + up * math.sin(angle) * (height / 2.0)
            positions.append(centre + radial)
            inward = -(right * math.cos(angle) + up * math.sin(angle))
            normals.append(inward / np.linalg.norm(inward))
    indices = []
    for index in range(count - 1):
        ring = index * segments
        next_ring = ring + segments
        for k in range(segments):
            k_next = (k + 1) % segments
            a = ring + k
            b = ring + k_next
            c = next_ring + k
            d = next_ring + k_next
            indices.append((a, b, c))
            indices.append((b, d, c))
    return MeshBuffers(np.array(positions), np.array(normals), np.array(indices))


# ----------------------------------------------------------------------
# Room and passage geometry
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class RoomGeometry:
    """Room-local parts plus the translation that places them in the world."""

    room_id: str
    material: Material
    parts: Mapping[str, MeshBuffers]
    transform: Transform

    @property
    def vertex_count(self) -> int:
        return sum(part.vertex_count for part in self.parts.values())

    @property
    def index_count(self) -> int:
        return sum(part.index_count for part in self.parts.values())

    def world_parts(self) -> List[MeshBuffers]:
        return [part.transformed(self.transform) for part in self.parts.values()]


@dataclass(frozen=True)
class PassageGeometry:
    connection_id: str
    material: Material
    mesh: MeshBuffers


@dataclass(frozen=True)
class RenderGeometry:
    rooms: Tuple[RoomGeometry, ...]
    passages: Tuple[PassageGeometry, ...]
    merged: Optional[Mapping[Material, MeshBuffers]] = None

    @property
    def vertex_count(self) -> int:
        return sum(room.vertex_count for room in self.rooms) + sum(
            passage.mesh.vertex_count for passage in self.passages
        )

    @property
    def index_count(self) -> int:
        return sum(room.index_count for room in self.rooms) + sum(
            passage.mesh.index_count for passage in self.passages
        )

    @property
    def draw_call_count(self) -> int:
        if self.merged is not None:
            return len(self.merged)
        return sum(len(room.parts) for room in self.rooms) + len(self.passages)


def material_for_room(room: Room) -> Material:
    if room.style is RegionStyle.NATURAL:
        return Material.CAVE_ROCK
    if room.archetype in DEEPEST_CONSTRUCTED:
        return Material.ANCIENT_STONE
    return Material.CARVED_STONE


def material_for_connection(connection: Connection) -> Material:
    if connection.style is ConnectionStyle.NATURAL_TUNNEL:
        return Material.CAVE_ROCK
    return Material.CARVED_STONE


class MeshSynthesizer:
    def __init__(self, noise: NoiseField, icosphere_subdivisions: int = 2) -> None:
        self.noise = noise
        self.icosphere_subdivisions = icosphere_subdivisions

    def cave_shell(self, room: Room) -> MeshBuffers:
        """Noise-displaced icosphere with the floor flattened and normals facing inward."""
        sphere = icosphere(room.size.effective_radius, self.icosphere_subdivisions)
        origin = np.array(room.position.to_tuple())
        positions = sphere.positions.astype(np.float64)
        displaced = np.empty_like(positions)
        for index, vertex in enumerate(positions):
            sample_at = (vertex + origin) * CAVE_DISPLACEMENT_FREQUENCY
            factor = 1.0 + self.noise.sample3(*sample_at) * CAVE_DISPLACEMENT_AMPLITUDE
            displaced[index] = vertex * factor
        displaced[:, 1] = np.maximum(displaced[:, 1], 0.0)
        normals = -compute_vertex_normals(displaced, sphere.indices)
        return MeshBuffers(displaced, normals, sphere.indices)

    def hall_parts(self, room: Room) -> Dict[str, MeshBuffers]:
        width = room.size.footprint_width
        length = room.size.footprint_length
        height = room.size.height
        floor = plane(width, length, FLOOR_SEGMENTS, FLOOR_SEGMENTS)
        ceiling = MeshBuffers(
            positions=floor.positions + np.array((0.0, height, 0.0)),
            normals=floor.normals * np.array((1.0, -1.0, 1.0)),
            indices=floor.indices,
        ).with_flipped_winding()
        t = WALL_THICKNESS
        return {
            "floor": floor,
            "ceiling": ceiling,
            "wall_north": box((width + t, height, t), (0.0, height / 2.0, -length / 2.0)),
            "wall_south": box((width + t, height, t), (0.0, height / 2.0, length / 2.0)),
            "wall_east": box((t, height, length - t), (width / 2.0, height / 2.0, 0.0)),
            "wall_west": box((t, height, length - t), (-width / 2.0, height / 2.0, 0.0)),
        }

    def room_geometry(self, room: Room) -> RoomGeometry:
        if room.style is RegionStyle.NATURAL:
            parts: Dict[str, MeshBuffers] = {"shell": self.cave_shell(room)}
        else:
            parts = self.hall_parts(room)
        return RoomGeometry(
            room_id=room.id,
            material=material_for_room(room),
            parts=parts,
            transform=Transform.from_offset(room.position.to_tuple()),
        )

    def passage_geometry(self, connection: Connection) -> PassageGeometry:
        return PassageGeometry(
            connection_id=connection.id,
            material=material_for_connection(connection),
            mesh=tube(connection.path, connection.width, connection.height),
        )

    def build(
        self,
        rooms: Sequence[Room],
        connections: Sequence[Connection],
        optimize: bool = True,
    ) -> RenderGeometry:
        room_geometry = tuple(self.room_geometry(room) for room in rooms)
        passages = tuple(self.passage_geometry(connection) for connection in connections)
        merged = merge_by_material(room_geometry, passages) if optimize else None
        geometry = RenderGeometry(rooms=room_geometry, passages=passages, merged=merged)
        logger.info(
            "Built geometry: %d vertices, %d indices, %d draw calls",
            geometry.vertex_count,
            geometry.index_count,
            geometry.draw_call_count,
        )
        return geometry


def merge_by_material(
    rooms: Sequence[RoomGeometry],
    passages: Sequence[PassageGeometry] = (),
) -> Dict[Material, MeshBuffers]:
    """Bake every room into world space and merge all meshes sharing a material."""
    buckets: Dict[Material, List[MeshBuffers]] = {}
    for room in rooms:
        buckets.setdefault(room.material, []).extend(room.world_parts())
    for passage in passages:
        buckets.setdefault(passage.material, []).append(passage.mesh)
    merged = {material: merge_buffers(parts) for material, parts in buckets.items()}
    logger.debug("Merged geometry into %d material buckets", len(merged))
    return merged
