"""
Seeded gradient noise for terrain and climate synthesis.

Provides a Perlin-style 2D gradient noise with fractal (fbm) and ridge
variants. All functions accept scalars or NumPy arrays of coordinates and are
vectorized, so a whole map's cell centers can be sampled in one call.

Optional lattice periods make the field tile along an axis: with
``period=(p, None)`` the value at ``x`` equals the value at ``x + p``. This is
what keeps terrain continuous across a wrapped map seam.
"""

from typing import Optional, Tuple, Union

import numpy as np

from .alea_prng import AleaPRNG

ArrayLike = Union[float, np.ndarray]
Period = Optional[Tuple[Optional[int], Optional[int]]]

# Coordinates are clamped to this magnitude before lattice lookup so that
# integer conversion never overflows.
_COORD_LIMIT = 1.0e9


def _fade(t):
    """6t^5 - 15t^4 + 10t^3"""
    return t * t * t * (t * (t * 6 - 15) + 10)


def _lerp(a, b, t):
    """Linear interpolation."""
    return a + t * (b - a)


class NoiseField:
    """Seeded smooth scalar field on the plane."""

    def __init__(self, seed, salt: str = "noise"):
        """
        Build the permutation table.

        Args:
            seed: Map seed (anything AleaPRNG accepts)
            salt: Stream label, lets several independent fields share a seed
        """
        prng = AleaPRNG((seed, salt))
        permutation = list(range(256))
        prng.shuffle(permutation)
        # Duplicated for wraparound
        self._perm = np.array(permutation + permutation, dtype=np.int64)

        angles = np.arange(256, dtype=np.float64) / 256.0 * 2.0 * np.pi
        self._grad_x = np.cos(angles)
        self._grad_y = np.sin(angles)

    def _dot_grid_gradient(self, ix, iy, dx, dy):
        """Dot product of the lattice gradient at (ix, iy) with the offset."""
        h = self._perm[(self._perm[ix & 255] + iy) & 255]
        return dx * self._grad_x[h] + dy * self._grad_y[h]

    def noise2d(self, x: ArrayLike, y: ArrayLike, period: Period = None) -> ArrayLike:
        """
        Gradient noise at a point.

        Args:
            x, y: Coordinates (scalars or arrays of equal shape)
            period: Optional integer lattice period per axis

        Returns:
            Noise value(s) in [-1, 1]; a float for scalar input
        """
        scalar = np.ndim(x) == 0 and np.ndim(y) == 0
        x = np.clip(np.nan_to_num(np.asarray(x, dtype=np.float64)), -_COORD_LIMIT, _COORD_LIMIT)
        y = np.clip(np.nan_to_num(np.asarray(y, dtype=np.float64)), -_COORD_LIMIT, _COORD_LIMIT)

        x0 = np.floor(x)
        y0 = np.floor(y)
        fx = x - x0
        fy = y - y0

        ix0 = x0.astype(np.int64)
        iy0 = y0.astype(np.int64)
        ix1 = ix0 + 1
        iy1 = iy0 + 1

        period_x, period_y = period if period is not None else (None, None)
        if period_x:
            ix0 = np.mod(ix0, period_x)
            ix1 = np.mod(ix1, period_x)
        if period_y:
            iy0 = np.mod(iy0, period_y)
            iy1 = np.mod(iy1, period_y)

        sx = _fade(fx)
        sy = _fade(fy)

        n0 = self._dot_grid_gradient(ix0, iy0, fx, fy)
        n1 = self._dot_grid_gradient(ix1, iy0, fx - 1.0, fy)
        n2 = self._dot_grid_gradient(ix0, iy1, fx, fy - 1.0)
        n3 = self._dot_grid_gradient(ix1, iy1, fx - 1.0, fy - 1.0)

        value = np.clip(_lerp(_lerp(n0, n1, sx), _lerp(n2, n3, sx), sy), -1.0, 1.0)
        return float(value) if scalar else value

    def fbm(
        self,
        x: ArrayLike,
        y: ArrayLike,
        octaves: int = 6,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
        period: Period = None,
    ) -> ArrayLike:
        """
        Fractal Brownian motion: octaves of noise2d summed with decreasing
        amplitude and increasing frequency, normalized by total amplitude.

        Output stays in [-1, 1].
        """
        total = 0.0
        frequency = 1.0
        amplitude = 1.0
        max_value = 0.0

        for _ in range(max(1, octaves)):
            total = total + self.noise2d(
                np.multiply(x, frequency),
                np.multiply(y, frequency),
                period=_scale_period(period, frequency),
            ) * amplitude
            max_value += amplitude
            amplitude *= persistence
            frequency *= lacunarity

        return total / max_value if max_value > 0 else total

    def ridge_noise(
        self,
        x: ArrayLike,
        y: ArrayLike,
        octaves: int = 6,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
        period: Period = None,
    ) -> ArrayLike:
        """
        Ridged multi-octave noise, each octave folded as (1 - |n|)^2.

        Output lies in [0, 1] and peaks along sharp ridge lines.
        """
        total = 0.0
        frequency = 1.0
        amplitude = 1.0
        max_value = 0.0

        for _ in range(max(1, octaves)):
            n = 1.0 - np.abs(self.noise2d(
                np.multiply(x, frequency),
                np.multiply(y, frequency),
                period=_scale_period(period, frequency),
            ))
            total = total + n * n * amplitude
            max_value += amplitude
            amplitude *= persistence
            frequency *= lacunarity

        result = total / max_value if max_value > 0 else total
        return np.clip(result, 0.0, 1.0) if np.ndim(result) else float(min(1.0, max(0.0, result)))


def _scale_period(period: Period, frequency: float) -> Period:
    """Lattice period of an octave sampled at ``frequency``."""
    if period is None:
        return None
    return tuple(max(1, int(round(p * frequency))) if p else None for p in period)
