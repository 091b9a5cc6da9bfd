"""Tests for morph.py"""

import numpy as np
import pytest

from morphcloud.morph import (
    DFLT_EPSILON,
    MorphEngine,
    ParticleCloud,
    color_variations,
)
from morphcloud.shapes import ShapeType, generate_particles


def test_morph_converges_without_overshooting():
    engine = MorphEngine([0, 0, 0])
    engine.set_target([10, 0, 0])
    distance = engine.max_distance()
    assert distance == 10
    n_ticks = 0
    while engine.tick(0.1):
        n_ticks += 1
        new_distance = engine.max_distance()
        assert new_distance < distance
        assert engine.positions[0] <= 10
        distance = new_distance
        assert n_ticks < 1000
    assert engine.is_settled()
    assert engine.max_distance() <= DFLT_EPSILON
    # Once settled, ticking does nothing
    before = engine.positions.copy()
    assert engine.tick(0.1) is False
    assert np.array_equal(engine.positions, before)


def test_converges_within_a_few_hundred_ticks_at_default_speed():
    engine = MorphEngine(generate_particles(ShapeType.VORTEX, 500, rng=np.random.default_rng(0)))
    engine.set_target(generate_particles(ShapeType.ROSE, 500, rng=np.random.default_rng(0)))
    for _ in range(600):
        if not engine.tick(0.02):
            break
    assert engine.is_settled()


def test_monotone_per_component():
    rng = np.random.default_rng(5)
    start = rng.normal(size=30) * 10
    target = rng.normal(size=30) * 10
    engine = MorphEngine(start, dtype=np.float64)
    engine.set_target(target)
    previous = np.abs(target - engine.positions)
    for _ in range(50):
        engine.tick(0.3)
        gap = np.abs(target - engine.positions)
        assert np.all(gap <= previous)
        # never crosses over to the other side of the target
        assert np.all(np.sign(target - engine.positions) * np.sign(target - start) >= 0)
        previous = gap


def test_no_motion_before_first_target():
    engine = MorphEngine(generate_particles(ShapeType.KOCH, 100))
    assert engine.is_settled()
    assert engine.tick(0.5) is False


def test_set_target_leaves_current_alone():
    engine = MorphEngine([1, 2, 3])
    engine.set_target([4, 5, 6])
    assert engine.positions.tolist() == [1, 2, 3]
    assert engine.target.tolist() == [4, 5, 6]


def test_set_target_copies_the_buffer():
    engine = MorphEngine([0, 0, 0])
    target = np.array([3.0, 3.0, 3.0])
    engine.set_target(target)
    target[:] = 100
    assert engine.target.tolist() == [3, 3, 3]


def test_rate_one_jumps_to_target():
    engine = MorphEngine([0, 0, 0, 1, 1, 1])
    engine.set_target([2, 2, 2, -1, -1, -1])
    assert engine.tick(1.0)
    assert engine.positions.tolist() == [2, 2, 2, -1, -1, -1]
    assert not engine.tick(1.0)


def test_components_within_epsilon_do_not_move():
    engine = MorphEngine([0, 0, 0], dtype=np.float64)
    engine.set_target([0.0005, 5, 0])
    engine.tick(0.5)
    assert engine.positions.tolist() == [0, 2.5, 0]


@pytest.mark.parametrize('rate', [0, -0.1, 1.5])
def test_invalid_rate(rate):
    with pytest.raises(ValueError):
        MorphEngine([0, 0, 0]).tick(rate)


def test_target_length_must_match():
    engine = MorphEngine([0, 0, 0])
    with pytest.raises(ValueError):
        engine.set_target([1, 2, 3, 4, 5, 6])


def test_buffers_are_read_only_for_consumers():
    engine = MorphEngine([0, 0, 0])
    with pytest.raises(ValueError):
        engine.positions[0] = 1.0
    with pytest.raises(ValueError):
        engine.target[0] = 1.0


def test_color_variations_are_reproducible_and_in_range():
    base = (0.31, 0.27, 0.9)
    colors = color_variations(base, 200, rng=np.random.default_rng(42))
    again = color_variations(base, 200, rng=np.random.default_rng(42))
    assert np.array_equal(colors, again)
    assert colors.shape == (600,)
    assert colors.dtype == np.float32
    assert colors.min() >= 0
    assert colors.max() <= 1
    rgb = colors.reshape(-1, 3)
    # Only darker, and by less than 0.2
    assert np.all(rgb <= np.array(base, dtype=np.float32) + 1e-6)
    assert np.all(rgb >= np.array(base, dtype=np.float32) - 0.2 - 1e-6)


def test_color_variations_clamp_at_zero():
    colors = color_variations((0.05, 0.0, 1.0), 500, rng=np.random.default_rng(0))
    rgb = colors.reshape(-1, 3)
    assert rgb.min() == 0
    assert np.all(rgb[:, 1] == 0)
    assert (rgb[:, 0] == 0).any()


def test_color_variations_from_hex():
    colors = color_variations('#ffffff', 10, rng=np.random.default_rng(0)).reshape(-1, 3)
    assert np.all(colors > 0.79)
    assert np.all(colors <= 1)


def test_color_channels_vary_independently():
    rgb = color_variations((1, 1, 1), 100, rng=np.random.default_rng(0)).reshape(-1, 3)
    assert not np.array_equal(rgb[:, 0], rgb[:, 1])


def _cloud(count=300, **kwargs):
    return ParticleCloud(count, rng=np.random.default_rng(0), **kwargs)


def test_cloud_starts_still_on_initial_shape():
    cloud = _cloud(initial_shape=ShapeType.CATENARY)
    expected = generate_particles(ShapeType.CATENARY, 300)
    assert np.array_equal(cloud.positions, expected)
    assert cloud.tick(1 / 60) is False
    assert cloud.needs_update is False


def test_cloud_morphs_to_selected_shape():
    cloud = _cloud(initial_shape=ShapeType.CATENARY, transition_speed=0.2)
    cloud.on_shape_selected(ShapeType.CARDIOID)
    assert cloud.shape == ShapeType.CARDIOID
    assert cloud.tick(1 / 60) is True
    assert cloud.needs_update is True
    for _ in range(200):
        cloud.tick(1 / 60)
    cardioid = cloud.engine.target.reshape(-1, 3)
    np.testing.assert_allclose(cloud.positions.reshape(-1, 3), cardioid, atol=DFLT_EPSILON)


def test_cloud_recolors_abruptly():
    cloud = _cloud(color='#000000')
    assert not cloud.colors.any()
    cloud.on_color_changed('#ff0000')
    rgb = cloud.colors.reshape(-1, 3)
    assert rgb.shape == (300, 3)
    assert np.all(rgb[:, 0] > 0.79)
    assert np.all(rgb[:, 1:] == 0)
    assert cloud.color == '#ff0000'


def test_cloud_spins():
    cloud = _cloud()
    for _ in range(10):
        cloud.tick(0.5)
    assert cloud.rotation[1] == pytest.approx(0.01)
    assert cloud.rotation[2] == pytest.approx(0.005)
    assert cloud.rotation[0] == pytest.approx(np.sin(0.5) * 0.1)
