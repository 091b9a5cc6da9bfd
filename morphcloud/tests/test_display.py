"""Tests for display.py"""

import math

import numpy as np
import pytest

from morphcloud.display import (
    display_features_on_image,
    draw_camera_inset,
    draw_pinch_hud,
    draw_status_message,
    project_points,
    render_particles,
    vignette,
)
from morphcloud.util import N_HAND_LANDMARKS, HandLandmark

W, H = 320, 240


def test_points_further_away_look_closer_to_center():
    positions = np.array([5.0, 0, 0, 5.0, 0, -20.0])
    pixels, visible = project_points(positions, distance=20, width=W, height=H)
    assert visible.all()
    near_offset = pixels[0, 0] - W / 2
    far_offset = pixels[1, 0] - W / 2
    assert near_offset > far_offset > 0
    assert pixels[0, 1] == pytest.approx(H / 2)


def test_y_axis_points_up_on_screen():
    pixels, _ = project_points([0, 5.0, 0], distance=20, width=W, height=H)
    assert pixels[0, 1] < H / 2


def test_points_behind_the_camera_are_not_visible():
    _, visible = project_points([0, 0, 30.0, 0, 0, 0], distance=20, width=W, height=H)
    assert visible.tolist() == [False, True]


def test_yaw_orbits_the_camera():
    # Orbiting by 90 degrees brings a point on the x axis to the center line
    pixels, _ = project_points(
        [5.0, 0, 0], distance=20, width=W, height=H, yaw=math.pi / 2
    )
    assert pixels[0, 0] == pytest.approx(W / 2, abs=1e-6)


def test_vignette_is_brightest_in_the_middle():
    mask = vignette(101, 101)
    assert mask.shape == (101, 101)
    assert mask[50, 50] == pytest.approx(1.0)
    assert mask[0, 0] < mask[50, 50]
    assert mask.min() >= 0


def test_render_particles():
    positions = np.zeros(300, dtype=np.float32)
    colors = np.tile(np.array([1.0, 0.0, 0.0], dtype=np.float32), 100)
    img = render_particles(positions, colors, distance=20, width=W, height=H)
    assert img.shape == (H, W, 3)
    assert img.dtype == np.uint8
    center = img[H // 2, W // 2]
    # Red, in BGR
    assert center[2] == 255
    assert center[0] == 0
    assert img[0, 0].sum() == 0


def test_render_empty_cloud_is_black():
    img = render_particles(np.zeros(0), np.zeros(0), distance=20, width=W, height=H)
    assert not img.any()


def test_display_features_on_image():
    img = np.zeros((H, W, 3), dtype=np.uint8)
    out = display_features_on_image(img, {'shape': 'rose', 'zoom': 1.2345})
    assert out is img
    assert img.any()
    thick = display_features_on_image(
        np.zeros((H, W, 3), dtype=np.uint8), {'shape': 'rose'}, thickness=2
    )
    assert thick.any()
    blank = np.zeros((H, W, 3), dtype=np.uint8)
    assert not display_features_on_image(blank, {}).any()


def test_draw_pinch_hud():
    img = np.zeros((H, W, 3), dtype=np.uint8)
    hand = [(0.5, 0.5, 0.0)] * N_HAND_LANDMARKS
    hand[HandLandmark.THUMB_TIP] = (0.25, 0.5, 0.0)
    hand[HandLandmark.INDEX_FINGER_TIP] = (0.75, 0.5, 0.0)
    draw_pinch_hud(img, hand)
    b, g, r = img[H // 2, W // 2]
    assert b > 0 and g > 0 and r == 0
    assert not img[10, 10].any()


def test_draw_camera_inset():
    canvas = np.zeros((H, W, 3), dtype=np.uint8)
    frame = np.full((48, 64, 3), 200, dtype=np.uint8)
    draw_camera_inset(canvas, frame, size=(64, 48), margin=10, label='gesture')
    # inside the inset, away from its border and label
    assert canvas[H - 10 - 10, 10 + 40].tolist() == [120, 120, 120]
    assert not canvas[10, W - 10].any()


def test_draw_status_message():
    canvas = np.zeros((H, W, 3), dtype=np.uint8)
    draw_status_message(canvas, "Camera not available")
    assert canvas[H // 2 :].any()
    assert not canvas[: H // 2].any()
