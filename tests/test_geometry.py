import math

import numpy as np
import pytest

from dungeon_geometry import ORIGIN, Bounds, Vec3
from mesh_buffers import MeshBuffers, Transform, compute_vertex_normals, merge_buffers


def test_vector_arithmetic():
    a = Vec3(1.0, 2.0, 3.0)
    b = Vec3(-2.0, 0.5, 4.0)

    assert a + b == Vec3(-1.0, 2.5, 7.0)
    assert a - b == Vec3(3.0, 1.5, -1.0)
    assert a * 2.0 == Vec3(2.0, 4.0, 6.0)
    assert -a == Vec3(-1.0, -2.0, -3.0)
    assert a.dot(b) == pytest.approx(-2.0 + 1.0 + 12.0)
    assert Vec3(1.0, 0.0, 0.0).cross(Vec3(0.0, 1.0, 0.0)) == Vec3(0.0, 0.0, 1.0)


def test_normalize_handles_zero_vector():
    assert ORIGIN.normalize() == ORIGIN
    unit = Vec3(3.0, 0.0, 4.0).normalize()
    assert unit.length() == pytest.approx(1.0)
    assert unit.x == pytest.approx(0.6)


def test_distance_and_lerp():
    a = Vec3(0.0, 0.0, 0.0)
    b = Vec3(3.0, 4.0, 12.0)

    assert a.distance(b) == pytest.approx(13.0)
    assert a.lerp(b, 0.5) == Vec3(1.5, 2.0, 6.0)
    assert tuple(b) == (3.0, 4.0, 12.0)


def test_bounds_from_points():
    bounds = Bounds.from_points([Vec3(1, 2, 3), Vec3(-1, 5, 0), Vec3(4, -2, 1)])

    assert bounds is not None
    assert bounds.min == Vec3(-1, -2, 0)
    assert bounds.max == Vec3(4, 5, 3)
    assert bounds.contains(Vec3(0, 0, 1))
    assert not bounds.contains(Vec3(10, 0, 0))
    assert Bounds.from_points([]) is None


def test_transform_translation_composes():
    first = Transform.translation(1.0, 0.0, 0.0)
    second = Transform.translation(0.0, 2.0, 0.0)
    combined = second @ first

    points = combined.apply_to_points(np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]]))

    assert np.allclose(points, [[1.0, 2.0, 0.0], [2.0, 3.0, 1.0]])
    assert np.allclose(combined.translation_part, [1.0, 2.0, 0.0])


def test_translation_leaves_normals_unchanged():
    normals = np.array([[0.0, 1.0, 0.0]])

    assert np.allclose(Transform.translation(5.0, 5.0, 5.0).apply_to_normals(normals), normals)


def test_transform_rejects_wrong_shape():
    with pytest.raises(ValueError):
        Transform(np.identity(3))


def _triangle(offset: float) -> MeshBuffers:
    positions = np.array([[offset, 0.0, 0.0], [offset + 1.0, 0.0, 0.0], [offset, 0.0, 1.0]])
    normals = np.tile([0.0, 1.0, 0.0], (3, 1))
    return MeshBuffers(positions, normals, np.array([[0, 1, 2]]))


def test_merge_buffers_rebases_indices():
    merged = merge_buffers([_triangle(0.0), _triangle(5.0), _triangle(10.0)])

    assert merged.vertex_count == 9
    assert merged.index_count == 9
    assert merged.indices.tolist() == [[0, 1, 2], [3, 4, 5], [6, 7, 8]]
    assert merged.positions.dtype == np.float32
    assert merged.indices.dtype == np.uint32


def test_merge_of_nothing_is_empty():
    assert merge_buffers([]).vertex_count == 0


def test_mesh_buffers_rejects_out_of_range_index():
    with pytest.raises(ValueError):
        MeshBuffers(np.zeros((3, 3)), np.zeros((3, 3)), np.array([[0, 1, 3]]))


def test_vertex_normals_follow_winding_and_skip_degenerate_faces():
    positions = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, 1.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    indices = np.array([[0, 1, 2], [2, 3, 3]])

    normals = compute_vertex_normals(positions, indices)

    assert np.allclose(normals[0], [0.0, 1.0, 0.0])
    assert np.allclose(normals[3], [0.0, 0.0, 0.0])
    assert not np.isnan(normals).any()


def test_flipped_winding_swaps_corners():
    flipped = _triangle(0.0).with_flipped_winding()

    assert flipped.indices.tolist() == [[0, 2, 1]]
    assert math.isclose(float(flipped.normals[0][1]), 1.0)
