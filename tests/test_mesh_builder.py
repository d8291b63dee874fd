import random

import numpy as np
import pytest

from connection_builder import ConnectionSynthesizer
from dungeon_geometry import Vec3
from dungeon_models import Archetype
from dungeon_noise import NoiseField
from mesh_buffers import compute_vertex_normals
from mesh_builder import (
    Material,
    MeshSynthesizer,
    box,
    icosphere,
    material_for_room,
    merge_by_material,
    plane,
    tube,
)


@pytest.mark.parametrize("subdivisions, vertices, triangles", [(0, 12, 20), (1, 42, 80), (2, 162, 320)])
def test_icosphere_counts_and_radius(subdivisions, vertices, triangles):
    sphere = icosphere(3.0, subdivisions)

    assert sphere.vertex_count == vertices
    assert sphere.triangle_count == triangles
    assert np.allclose(np.linalg.norm(sphere.positions, axis=1), 3.0, atol=1e-5)


def test_icosphere_winding_faces_outward():
    sphere = icosphere(1.0, 1)
    computed = compute_vertex_normals(sphere.positions, sphere.indices)

    assert np.all(np.sum(computed * sphere.positions, axis=1) > 0)


def test_plane_grid_faces_up():
    floor = plane(4.0, 6.0, 4, 3)

    assert floor.vertex_count == 5 * 4
    assert floor.triangle_count == 4 * 3 * 2
    assert np.allclose(compute_vertex_normals(floor.positions, floor.indices), [0.0, 1.0, 0.0])
    assert floor.positions[:, 0].min() == pytest.approx(-2.0)
    assert floor.positions[:, 2].max() == pytest.approx(3.0)


def test_box_winding_matches_face_normals():
    block = box((2.0, 4.0, 6.0), (1.0, 2.0, 3.0))

    assert block.vertex_count == 24
    assert block.triangle_count == 12
    assert np.allclose(compute_vertex_normals(block.positions, block.indices), block.normals)
    assert np.allclose(block.positions.min(axis=0), [0.0, 0.0, 0.0])
    assert np.allclose(block.positions.max(axis=0), [2.0, 4.0, 6.0])


def test_tube_normals_point_at_centreline():
    path = [Vec3(0, 0, 0), Vec3(0, 0, 5), Vec3(0, 0, 10)]
    tunnel = tube(path, width=3.0, height=4.0, segments=8)

    assert tunnel.vertex_count == 3 * 8
    assert tunnel.triangle_count == 2 * 8 * 2
    offsets = tunnel.positions - np.array([0.0, 2.0, 0.0])
    offsets[:, 2] = 0.0
    assert np.all(np.sum(offsets * tunnel.normals, axis=1) < 0)


@pytest.fixture
def scene(make_room):
    cave = make_room(Archetype.NATURAL_CHAMBER, room_id="entrance_0", position=Vec3(0, 0, 0), depth=0)
    hall = make_room(Archetype.GUARD_ROOM, room_id="node_1", position=Vec3(30, -5, 0), depth=1)
    vault = make_room(Archetype.ANCIENT_VAULT, room_id="node_2", position=Vec3(10, -12, 30), depth=2)
    rooms = [cave, hall, vault]
    connections = ConnectionSynthesizer(random.Random(4)).connect(rooms)
    return rooms, connections


def test_cave_shell_is_floored_and_inward_facing(scene):
    cave = scene[0][0]
    shell = MeshSynthesizer(NoiseField(1), icosphere_subdivisions=2).cave_shell(cave)

    assert shell.positions[:, 1].min() >= 0.0
    assert np.mean(np.sum(shell.normals * shell.positions, axis=1)) < 0


def test_room_materials_follow_style_and_age(scene):
    cave, hall, vault = scene[0]

    assert material_for_room(cave) is Material.CAVE_ROCK
    assert material_for_room(hall) is Material.CARVED_STONE
    assert material_for_room(vault) is Material.ANCIENT_STONE


def test_merged_buffers_account_for_every_vertex(scene):
    rooms, connections = scene
    geometry = MeshSynthesizer(NoiseField(2), icosphere_subdivisions=1).build(rooms, connections)

    assert geometry.merged is not None
    assert sum(mesh.vertex_count for mesh in geometry.merged.values()) == geometry.vertex_count
    assert sum(mesh.index_count for mesh in geometry.merged.values()) == geometry.index_count
    assert geometry.draw_call_count == len(geometry.merged) <= len(Material)
    assert len(geometry.passages) == len(connections)


def test_unmerged_draw_calls_count_each_part(scene):
    rooms, connections = scene
    geometry = MeshSynthesizer(NoiseField(2), icosphere_subdivisions=1).build(
        rooms, connections, optimize=False
    )

    assert geometry.merged is None
    hall = next(room for room in geometry.rooms if room.room_id == "node_1")
    assert set(hall.parts) == {"floor", "ceiling", "wall_north", "wall_south", "wall_east", "wall_west"}
    assert np.allclose(hall.transform.translation_part, [30.0, -5.0, 0.0])
    assert geometry.draw_call_count == 1 + 6 + 6 + len(connections)


def test_merge_places_rooms_in_world_space(scene):
    rooms, _ = scene
    synthesizer = MeshSynthesizer(NoiseField(3), icosphere_subdivisions=1)
    hall_geometry = synthesizer.room_geometry(rooms[1])

    merged = merge_by_material([hall_geometry])

    positions = merged[Material.CARVED_STONE].positions
    assert positions[:, 1].min() == pytest.approx(-5.0, abs=1e-4)
    assert positions[:, 0].mean() == pytest.approx(30.0, abs=1.0)
