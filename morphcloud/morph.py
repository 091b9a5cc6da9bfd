"""Morphing of the particle cloud between shapes, and its colors."""

import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from morphcloud.shapes import PARTICLE_COUNT, ShapeType, generate_particles
from morphcloud.util import hex_to_rgb

TRANSITION_SPEED = 0.02  # Fraction of the remaining distance covered per tick
DFLT_EPSILON = 1e-3
DFLT_COLOR_VARIATION = 0.2
DFLT_COLOR = '#4f46e5'

Color = Union[str, Tuple[float, float, float]]


# -------------------------------------------------------------------------------
# Morph engine
# -------------------------------------------------------------------------------


class MorphEngine:
    """
    Holds a current and a target position buffer and moves the former toward the
    latter, tick by tick.

    Both buffers start as copies of `initial`, so nothing moves before the first
    `set_target`.

    >>> engine = MorphEngine([0, 0, 0])
    >>> engine.set_target([10, 0, 0])
    >>> engine.tick(0.5)
    True
    >>> engine.positions.tolist()
    [5.0, 0.0, 0.0]
    """

    def __init__(self, initial: Sequence[float], *, epsilon=DFLT_EPSILON, dtype=np.float32):
        self.epsilon = epsilon
        self._current = np.array(initial, dtype=dtype).reshape(-1)
        self._target = self._current.copy()

    def __len__(self):
        return len(self._current)

    @property
    def positions(self) -> np.ndarray:
        """Read-only view of the current positions."""
        view = self._current.view()
        view.flags.writeable = False
        return view

    @property
    def target(self) -> np.ndarray:
        view = self._target.view()
        view.flags.writeable = False
        return view

    def set_target(self, buffer: Sequence[float]):
        """Replace the target buffer. Morphing toward it starts on the next tick."""
        target = np.array(buffer, dtype=self._current.dtype).reshape(-1)
        if target.shape != self._current.shape:
            raise ValueError(
                f"Target should have {len(self._current)} values, got {len(target)}"
            )
        self._target = target

    def tick(self, rate: float = TRANSITION_SPEED) -> bool:
        """
        Move every component that is more than epsilon away from its target by a
        `rate` fraction of the remaining distance.

        Returns:
            True if any component moved (i.e. the positions need re-uploading).
        """
        if not 0 < rate <= 1:
            raise ValueError(f"rate should be in (0, 1], was {rate}")
        delta = self._target - self._current
        moving = np.abs(delta) > self.epsilon
        if not moving.any():
            return False
        self._current[moving] += delta[moving] * rate
        return True

    def max_distance(self) -> float:
        if not len(self._current):
            return 0.0
        return float(np.max(np.abs(self._target - self._current)))

    def is_settled(self) -> bool:
        return self.max_distance() <= self.epsilon


# -------------------------------------------------------------------------------
# Colors
# -------------------------------------------------------------------------------


def color_variations(
    base_color: Color,
    count: int,
    *,
    rng: Optional[np.random.Generator] = None,
    max_variation: float = DFLT_COLOR_VARIATION,
) -> np.ndarray:
    """
    Per-particle colors: the base color, darkened by a small random amount
    (drawn independently for every particle and channel) to give the cloud
    some depth.

    Args:
        base_color: Hex string or RGB triple with components in [0, 1]
        count: Number of particles
        rng: Random generator (a fresh one if not given)
        max_variation: Largest amount subtracted from a channel

    Returns:
        A float32 array of length count * 3 (r, g, b triples), clamped at 0.
    """
    if isinstance(base_color, str):
        base_color = hex_to_rgb(base_color)
    if rng is None:
        rng = np.random.default_rng()
    base = np.asarray(base_color, dtype=np.float32).reshape(1, 3)
    variation = rng.random((count, 3)) * max_variation
    colors = np.maximum(0.0, base - variation)
    return colors.astype(np.float32).reshape(-1)


# -------------------------------------------------------------------------------
# Particle cloud
# -------------------------------------------------------------------------------


class ParticleCloud:
    """
    The animated cloud: a MorphEngine, its color buffer, and a slow continuous
    spin of the whole cloud.

    Meant to be wired to a sequencer, through `on_shape_selected` and
    `on_color_changed`, and ticked once per rendered frame.
    """

    def __init__(
        self,
        count: int = PARTICLE_COUNT,
        *,
        initial_shape: Union[ShapeType, str] = ShapeType.VORTEX,
        color: Color = DFLT_COLOR,
        transition_speed: float = TRANSITION_SPEED,
        rng: Optional[np.random.Generator] = None,
    ):
        self.count = count
        self.transition_speed = transition_speed
        self.rng = rng if rng is not None else np.random.default_rng()
        self.shape = initial_shape
        self.engine = MorphEngine(self._generate(initial_shape))
        self._colors = color_variations(color, count, rng=self.rng)
        self.color = color
        self.rotation = [0.0, 0.0, 0.0]
        self.elapsed = 0.0
        self.needs_update = True

    def _generate(self, shape):
        return generate_particles(shape, self.count, rng=self.rng)

    @property
    def positions(self) -> np.ndarray:
        return self.engine.positions

    @property
    def colors(self) -> np.ndarray:
        view = self._colors.view()
        view.flags.writeable = False
        return view

    def on_shape_selected(self, shape: Union[ShapeType, str]):
        self.shape = shape
        self.engine.set_target(self._generate(shape))

    def on_color_changed(self, color: Color):
        self.color = color
        self._colors = color_variations(color, self.count, rng=self.rng)

    def tick(self, dt: float = 0.0) -> bool:
        """Advance one frame. Returns True if positions changed."""
        moved = self.engine.tick(self.transition_speed)
        self.elapsed += dt
        self.rotation[1] += 0.001
        self.rotation[2] += 0.0005
        self.rotation[0] = math.sin(self.elapsed * 0.1) * 0.1
        self.needs_update = moved
        return moved
