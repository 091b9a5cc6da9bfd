"""Parametric shapes the particle cloud morphs between."""

from enum import Enum
from typing import Callable, Dict, Optional, Union

import numpy as np

PARTICLE_COUNT = 30000

# -------------------------------------------------------------------------------
# Shape identifiers
# -------------------------------------------------------------------------------


class ShapeType(str, Enum):
    VORTEX = 'vortex'
    KOCH = 'koch'
    CARDIOID = 'cardioid'
    BUTTERFLY = 'butterfly'
    ARCHIMEDES = 'archimedes'
    CATENARY = 'catenary'
    LEMNISCATE = 'lemniscate'
    ROSE = 'rose'


def resolve_shape(shape) -> Optional[ShapeType]:
    """
    Get the ShapeType for a member, a value or a (case-insensitive) name.

    Returns None if the shape can't be resolved.

    >>> resolve_shape('rose')
    <ShapeType.ROSE: 'rose'>
    >>> resolve_shape('Koch')
    <ShapeType.KOCH: 'koch'>
    >>> resolve_shape('sphere') is None
    True
    """
    if isinstance(shape, ShapeType):
        return shape
    if isinstance(shape, str):
        key = shape.strip()
        try:
            return ShapeType(key.lower())
        except ValueError:
            return ShapeType.__members__.get(key.upper())
    return None


# -------------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------------


def spread(rng: np.random.Generator, scale: float, size: int) -> np.ndarray:
    """Uniform jitter in [-scale/2, scale/2)."""
    return (rng.random(size) - 0.5) * scale


def _stack(x, y, z) -> np.ndarray:
    return np.stack([x, y, z], axis=-1)


# -------------------------------------------------------------------------------
# Shape generators
#
# Each takes the number of particles and a random generator and returns a
# (count, 3) array of points.
# -------------------------------------------------------------------------------


def vortex_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """Logarithmic-ish spiral whose thickness tapers off toward the tail."""
    i = np.arange(count, dtype=np.float64)
    angle = i * 0.02
    radius = 5 + i * 0.0005
    x = np.cos(angle) * radius + spread(rng, 2, count)
    y = np.sin(angle) * radius + spread(rng, 2, count)
    z = spread(rng, 15, count) * (1 - i / count)
    return _stack(x, y, z)


def archimedes_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """Archimedean spiral r = a + b*theta, stretched along z into a helix."""
    a, b = 0.0, 0.2
    i = np.arange(count, dtype=np.float64)
    theta = i * 0.05
    r = a + b * theta
    x = r * np.cos(theta)
    y = r * np.sin(theta)
    z = (i / count) * 20 - 10 + spread(rng, 1, count)
    return _stack(x, y, z)


def cardioid_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """
    Heart curve:

        x = 16 sin^3(t)
        y = 13 cos(t) - 5 cos(2t) - 2 cos(3t) - cos(4t)

    scaled by 1.2, thickened with z jitter.
    """
    theta = np.arange(count, dtype=np.float64) / count * 2 * np.pi
    x = 1.2 * (16 * np.sin(theta) ** 3)
    y = 1.2 * (
        13 * np.cos(theta)
        - 5 * np.cos(2 * theta)
        - 2 * np.cos(3 * theta)
        - np.cos(4 * theta)
    )
    z = spread(rng, 4, count)
    return _stack(x, y, z)


def butterfly_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """Temple Fay's butterfly curve, swept 12 times around."""
    u = np.arange(count, dtype=np.float64) / count * 24 * np.pi
    r = (
        np.exp(np.sin(u))
        - 2 * np.cos(4 * u)
        + np.sin((2 * u - np.pi) / 24) ** 5
    )
    scale = 5
    x = scale * r * np.cos(u)
    y = scale * r * np.sin(u)
    z = r * np.cos(u / 2) * 2 + spread(rng, 1, count)
    return _stack(x, y, z)


def rose_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """Rose curve r = cos(k*theta) with a wavy z."""
    k = 4
    theta = np.arange(count, dtype=np.float64) / count * 10 * np.pi
    r = 12 * np.cos(k * theta)
    x = r * np.cos(theta)
    y = r * np.sin(theta)
    z = np.sin(theta * 5) * 3 + spread(rng, 0.5, count)
    return _stack(x, y, z)


def lemniscate_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """Lemniscate of Bernoulli (infinity sign), twisted into a 3D ribbon."""
    a = 15
    t = np.arange(count, dtype=np.float64) / count * 2 * np.pi
    denom = 1 + np.sin(t) ** 2
    x = a * np.cos(t) / denom
    y = a * np.sin(t) * np.cos(t) / denom
    z = np.sin(t * 2) * 4 + spread(rng, 1, count)
    return _stack(x, y, z)


def catenary_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """
    Catenoid: a catenary r = c*cosh(v/c) revolved around the y axis.

    Particles are laid on a grid of rings of 100 points each.
    """
    c = 2
    i = np.arange(count)
    u = (i % 100) / 100 * 2 * np.pi
    v = np.floor(i / 100) / (count / 100) * 6 - 3
    r = c * np.cosh(v / c)
    x = r * np.cos(u)
    z = r * np.sin(u)
    y = v * 4
    return _stack(x, y, z)


TETRAHEDRON_CORNERS = np.array(
    [
        [10, 10, 10],
        [-10, -10, 10],
        [-10, 10, -10],
        [10, -10, -10],
    ],
    dtype=np.float64,
)
KOCH_ITERATIONS = 15
KOCH_SCALE = 1.5


def koch_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """
    Fractal cloud standing in for a Koch snowflake.

    A true Koch curve is one dimensional, so each particle instead plays the
    chaos game on a tetrahedron: starting at the origin, it repeatedly moves
    halfway toward a randomly chosen corner. The resulting points are
    independent random samples of a Sierpinski tetrahedron.
    """
    corner_choices = rng.integers(0, len(TETRAHEDRON_CORNERS), (KOCH_ITERATIONS, count))
    points = np.zeros((count, 3))
    for choice in corner_choices:
        points = (points + TETRAHEDRON_CORNERS[choice]) / 2
    return points * KOCH_SCALE


ShapeFunc = Callable[[int, np.random.Generator], np.ndarray]

# Dictionary of available shape generators
shape_funcs: Dict[ShapeType, ShapeFunc] = {
    ShapeType.VORTEX: vortex_points,
    ShapeType.KOCH: koch_points,
    ShapeType.CARDIOID: cardioid_points,
    ShapeType.BUTTERFLY: butterfly_points,
    ShapeType.ARCHIMEDES: archimedes_points,
    ShapeType.CATENARY: catenary_points,
    ShapeType.LEMNISCATE: lemniscate_points,
    ShapeType.ROSE: rose_points,
}


# -------------------------------------------------------------------------------
# Main entry point
# -------------------------------------------------------------------------------


def generate_particles(
    shape: Union[ShapeType, str],
    count: int = PARTICLE_COUNT,
    *,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Generate the flat position buffer of a shape.

    Args:
        shape: The shape identifier (a ShapeType, its value or its name)
        count: Number of particles
        rng: Random generator used for jitter (a fresh one if not given)

    Returns:
        A float32 array of length count * 3 (x, y, z triples). Shapes that
        can't be resolved give all points at the origin.

    >>> generate_particles('rose', 10).shape
    (30,)
    >>> generate_particles('no such shape', 4).tolist()
    [0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0]
    """
    if count < 0:
        raise ValueError(f"count should be non-negative, was {count}")
    positions = np.zeros(count * 3, dtype=np.float32)
    shape_func = shape_funcs.get(resolve_shape(shape))
    if shape_func is None or count == 0:
        return positions
    if rng is None:
        rng = np.random.default_rng()
    positions[:] = shape_func(count, rng).reshape(-1)
    return positions
