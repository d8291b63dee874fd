"""Geometry containers handed to the renderer: vertex/normal/index buffers and transforms."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np


@dataclass(frozen=True)
class MeshBuffers:
    """Triangle mesh. ``positions``/``normals`` are (N, 3) float32, ``indices`` (T, 3) uint32."""

    positions: np.ndarray
    normals: np.ndarray
    indices: np.ndarray

    def __post_init__(self) -> None:
        positions = np.asarray(self.positions, dtype=np.float32).reshape(-1, 3)
        normals = np.asarray(self.normals, dtype=np.float32).reshape(-1, 3)
        indices = np.asarray(self.indices, dtype=np.uint32).reshape(-1, 3)
        if positions.shape != normals.shape:
            raise ValueError("MeshBuffers positions and normals must have the same shape")
        if indices.size and int(indices.max()) >= len(positions):
            raise ValueError("MeshBuffers index refers past the end of the vertex buffer")
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "normals", normals)
        object.__setattr__(self, "indices", indices)

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def index_count(self) -> int:
        return int(self.indices.size)

    @property
    def triangle_count(self) -> int:
        return len(self.indices)

    def flat_positions(self) -> np.ndarray:
        return self.positions.reshape(-1)

    def flat_normals(self) -> np.ndarray:
        return self.normals.reshape(-1)

    def flat_indices(self) -> np.ndarray:
        return self.indices.reshape(-1)

    def transformed(self, transform: Transform) -> MeshBuffers:
        return MeshBuffers(
            positions=transform.apply_to_points(self.positions),
            normals=transform.apply_to_normals(self.normals),
            indices=self.indices,
        )

    def with_flipped_winding(self) -> MeshBuffers:
        """Swap the second and third index of each triangle."""
        return MeshBuffers(self.positions, self.normals, self.indices[:, [0, 2, 1]])

    @classmethod
    def empty(cls) -> MeshBuffers:
        return cls(np.zeros((0, 3)), np.zeros((0, 3)), np.zeros((0, 3)))


def merge_buffers(parts: Iterable[MeshBuffers]) -> MeshBuffers:
    """Concatenate buffers, re-basing each part's indices by the running vertex count."""
    positions = []
    normals = []
    indices = []
    offset = 0
    for part in parts:
        positions.append(part.positions)
        normals.append(part.normals)
        indices.append(part.indices.astype(np.int64) + offset)
        offset += part.vertex_count
    if not positions:
        return MeshBuffers.empty()
    return MeshBuffers(
        positions=np.concatenate(positions),
        normals=np.concatenate(normals),
        indices=np.concatenate(indices),
    )


def compute_vertex_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """Area-weighted vertex normals; degenerate faces contribute nothing."""
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    indices = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    normals = np.zeros_like(positions)
    if indices.size:
        a = positions[indices[:, 0]]
        b = positions[indices[:, 1]]
        c = positions[indices[:, 2]]
        face_normals = np.cross(b - a, c - a)
        for corner in range(3):
            np.add.at(normals, indices[:, corner], face_normals)
    lengths = np.linalg.norm(normals, axis=1, keepdims=True)
    np.divide(normals, lengths, out=normals, where=lengths > 0)
    return normals.astype(np.float32)


class Transform:
    """4x4 affine transform in column-vector convention."""

    def __init__(self, matrix: np.ndarray | None = None) -> None:
        self.matrix = np.identity(4) if matrix is None else np.asarray(matrix, dtype=np.float64)
        if self.matrix.shape != (4, 4):
            raise ValueError("Transform matrix must be 4x4")

    @classmethod
    def translation(cls, x: float, y: float, z: float) -> Transform:
        matrix = np.identity(4)
        matrix[:3, 3] = (x, y, z)
        return cls(matrix)

    @classmethod
    def from_offset(cls, offset: Sequence[float]) -> Transform:
        x, y, z = offset
        return cls.translation(x, y, z)

    def compose(self, other: Transform) -> Transform:
        """Transform that applies ``other`` first, then ``self``."""
        return Transform(self.matrix @ other.matrix)

    def __matmul__(self, other: Transform) -> Transform:
        return self.compose(other)

    @property
    def translation_part(self) -> np.ndarray:
        return self.matrix[:3, 3].copy()

    def apply_to_points(self, points: np.ndarray) -> np.ndarray:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return points @ self.matrix[:3, :3].T + self.matrix[:3, 3]

    def apply_to_normals(self, normals: np.ndarray) -> np.ndarray:
        normals = np.asarray(normals, dtype=np.float64).reshape(-1, 3)
        linear = self.matrix[:3, :3]
        if np.allclose(linear, np.identity(3)):
            return normals
        transformed = normals @ np.linalg.inv(linear)
        lengths = np.linalg.norm(transformed, axis=1, keepdims=True)
        np.divide(transformed, lengths, out=transformed, where=lengths > 0)
        return transformed
