"""Seeded 3D simplex noise used to deform natural cave geometry."""

from __future__ import annotations

import math
import random
from typing import List, Optional, Tuple

_F3 = 1.0 / 3.0
_G3 = 1.0 / 6.0

_GRADIENTS: Tuple[Tuple[int, int, int], ...] = (
    (1, 1, 0), (-1, 1, 0), (1, -1, 0), (-1, -1, 0),
    (1, 0, 1), (-1, 0, 1), (1, 0, -1), (-1, 0, -1),
    (0, 1, 1), (0, -1, 1), (0, 1, -1), (0, -1, -1),
)


def _build_permutation(seed: Optional[int]) -> List[int]:
    table = list(range(256))
    random.Random(seed).shuffle(table)
    return table + table


class NoiseField:
    """3D simplex noise with octave, ridged and turbulence variants.

    The permutation table is derived solely from ``seed``, so two fields built
    with the same seed return identical samples.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._perm = _build_permutation(seed)

    def _corner(self, gradient_index: int, x: float, y: float, z: float) -> float:
        t = 0.5 - x * x - y * y - z * z
        if t < 0.0:
            return 0.0
        gx, gy, gz = _GRADIENTS[gradient_index]
        t *= t
        return t * t * (gx * x + gy * y + gz * z)

    def sample3(self, x: float, y: float, z: float) -> float:
        """Return the simplex noise value at (x, y, z), in [-1, 1]."""
        s = (x + y + z) * _F3
        i = math.floor(x + s)
        j = math.floor(y + s)
        k = math.floor(z + s)
        t = (i + j + k) * _G3
        x0 = x - (i - t)
        y0 = y - (j - t)
        z0 = z - (k - t)

        if x0 >= y0:
            if y0 >= z0:
                i1, j1, k1, i2, j2, k2 = 1, 0, 0, 1, 1, 0
            elif x0 >= z0:
                i1, j1, k1, i2, j2, k2 = 1, 0, 0, 1, 0, 1
            else:
                i1, j1, k1, i2, j2, k2 = 0, 0, 1, 1, 0, 1
        else:
            if y0 < z0:
                i1, j1, k1, i2, j2, k2 = 0, 0, 1, 0, 1, 1
            elif x0 < z0:
                i1, j1, k1, i2, j2, k2 = 0, 1, 0, 0, 1, 1
            else:
                i1, j1, k1, i2, j2, k2 = 0, 1, 0, 1, 1, 0

        x1, y1, z1 = x0 - i1 + _G3, y0 - j1 + _G3, z0 - k1 + _G3
        x2, y2, z2 = x0 - i2 + 2.0 * _G3, y0 - j2 + 2.0 * _G3, z0 - k2 + 2.0 * _G3
        x3, y3, z3 = x0 - 1.0 + 3.0 * _G3, y0 - 1.0 + 3.0 * _G3, z0 - 1.0 + 3.0 * _G3

        perm = self._perm
        ii = i & 255
        jj = j & 255
        kk = k & 255
        gi0 = perm[ii + perm[jj + perm[kk]]] % 12
        gi1 = perm[ii + i1 + perm[jj + j1 + perm[kk + k1]]] % 12
        gi2 = perm[ii + i2 + perm[jj + j2 + perm[kk + k2]]] % 12
        gi3 = perm[ii + 1 + perm[jj + 1 + perm[kk + 1]]] % 12

        total = (
            self._corner(gi0, x0, y0, z0)
            + self._corner(gi1, x1, y1, z1)
            + self._corner(gi2, x2, y2, z2)
            + self._corner(gi3, x3, y3, z3)
        )
        return max(-1.0, min(1.0, 32.0 * total))

    def octave3(
        self,
        x: float,
        y: float,
        z: float,
        octaves: int,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
    ) -> float:
        """Fractal sum of ``octaves`` layers, normalized by the amplitude sum."""
        return self._fractal(x, y, z, octaves, persistence, lacunarity, lambda n: n)

    def ridged3(
        self,
        x: float,
        y: float,
        z: float,
        octaves: int = 4,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
    ) -> float:
        """Ridged multifractal in [0, 1]; sharp crests where the base noise crosses zero."""
        return self._fractal(
            x, y, z, octaves, persistence, lacunarity, lambda n: (1.0 - abs(n)) ** 2
        )

    def turbulence3(
        self,
        x: float,
        y: float,
        z: float,
        octaves: int = 4,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
    ) -> float:
        return self._fractal(x, y, z, octaves, persistence, lacunarity, abs)

    def _fractal(self, x, y, z, octaves, persistence, lacunarity, shape) -> float:
        if octaves < 1:
            raise ValueError("Noise octaves must be at least 1")
        total = 0.0
        frequency = 1.0
        amplitude = 1.0
        max_value = 0.0
        for _ in range(octaves):
            total += shape(self.sample3(x * frequency, y * frequency, z * frequency)) * amplitude
            max_value += amplitude
            amplitude *= persistence
            frequency *= lacunarity
        return total / max_value
