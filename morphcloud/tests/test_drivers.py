"""Tests for drivers.py"""

import threading

import numpy as np
import pytest

from morphcloud.drivers import (
    ACTIVE,
    ERROR,
    IDLE,
    INITIALIZING,
    GestureSession,
    TickDriver,
)
from morphcloud.hand_features import (
    CameraReadError,
    GestureProcessor,
    SensorInitError,
)
from morphcloud.util import N_HAND_LANDMARKS, HandLandmark


def open_hand(distance=0.2):
    hand = [(0.5, 0.5, 0.0)] * N_HAND_LANDMARKS
    hand[HandLandmark.THUMB_TIP] = (0.4, 0.5, 0.0)
    hand[HandLandmark.INDEX_FINGER_TIP] = (0.4 + distance, 0.5, 0.0)
    return hand


class FakeSensor:
    """Stands in for HandLandmarkSensor: scripted frames, no camera."""

    instances = []

    def __init__(self, hands=None, *, fail_init=False, fail_read_after=None, gate=None):
        self.hands = [open_hand()] if hands is None else hands
        self.fail_init = fail_init
        self.fail_read_after = fail_read_after
        self.gate = gate
        self.n_reads = 0
        self.initialized = False
        self.released = False
        FakeSensor.instances.append(self)

    def initialize(self):
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail_init:
            raise SensorInitError("no camera")
        self.initialized = True
        return self

    def read(self):
        if self.fail_read_after is not None and self.n_reads >= self.fail_read_after:
            raise CameraReadError("camera unplugged")
        self.n_reads += 1
        return np.zeros((4, 4, 3), dtype=np.uint8)

    def detect(self, img, timestamp_ms=None):
        return self.hands

    def release(self):
        self.released = True


def factory(**kwargs):
    return lambda: FakeSensor(**kwargs)


# -------------------------------------------------------------------------------
# TickDriver


def test_tick_driver_calls_callbacks_in_order():
    times = iter([0.0, 0.25, 0.75])
    calls = []
    driver = TickDriver(lambda dt: calls.append(('a', dt)), clock=lambda: next(times))
    driver.add(lambda dt: calls.append(('b', dt)))
    assert driver.tick() == 0.0
    assert driver.tick() == 0.25
    assert driver.tick() == 0.5
    assert calls == [
        ('a', 0.0), ('b', 0.0), ('a', 0.25), ('b', 0.25), ('a', 0.5), ('b', 0.5)
    ]
    assert driver.n_ticks == 3


def test_tick_driver_stops_when_told():
    count = []
    driver = TickDriver(count.append, clock=lambda: 1.0)
    n = driver.run(should_continue=lambda: len(count) < 5)
    assert n == 5
    assert count == [0.0] * 5


# -------------------------------------------------------------------------------
# GestureSession


def test_session_starts_idle():
    session = GestureSession(factory())
    assert session.state == IDLE
    assert not session.is_enabled
    assert session.step() is None
    assert session.gesture_state.zoom == 1.0


def test_synchronous_activation_and_steps():
    session = GestureSession(factory())
    session.activate(background=False)
    assert session.state == ACTIVE
    img, hands = session.step()
    assert img.shape == (4, 4, 3)
    assert len(hands) == 1
    assert session.gesture_state.zoom == pytest.approx(1.1)


def test_background_activation():
    session = GestureSession(factory())
    session.activate()
    assert session.state in (INITIALIZING, ACTIVE)
    assert session.wait_ready(5)
    assert session.step() is not None


def test_activate_twice_keeps_one_sensor():
    FakeSensor.instances.clear()
    session = GestureSession(factory())
    session.activate(background=False)
    session.activate(background=False)
    assert len(FakeSensor.instances) == 1


def test_deactivate_releases_and_stops_processing():
    session = GestureSession(factory())
    session.activate(background=False)
    sensor = session.sensor
    session.step()
    session.deactivate()
    assert sensor.released
    assert session.state == IDLE
    assert session.sensor is None
    n_reads = sensor.n_reads
    assert session.step() is None
    assert sensor.n_reads == n_reads


def test_gesture_state_survives_reactivation():
    session = GestureSession(factory(), GestureProcessor())
    session.activate(background=False)
    for _ in range(5):
        session.step()
    zoom = session.gesture_state.zoom
    assert zoom > 1.0
    session.deactivate()
    assert session.gesture_state.zoom == zoom
    session.activate(background=False)
    assert session.gesture_state.zoom == zoom


def test_frames_without_hands_keep_state():
    session = GestureSession(factory(hands=[]))
    session.activate(background=False)
    for _ in range(3):
        _, hands = session.step()
        assert hands == []
    assert session.gesture_state.zoom == 1.0


def test_failed_initialization_goes_to_error():
    session = GestureSession(factory(fail_init=True))
    session.activate(background=False)
    assert session.state == ERROR
    assert 'no camera' in session.error
    assert not session.is_enabled
    assert session.step() is None
    # Can be retried
    session.sensor_factory = factory()
    session.activate(background=False)
    assert session.state == ACTIVE
    assert session.error is None


class CrashingSensor(FakeSensor):
    def initialize(self):
        raise RuntimeError("driver crashed")


@pytest.mark.parametrize('background', [False, True])
def test_unexpected_initialization_error_goes_to_error(background):
    FakeSensor.instances.clear()
    session = GestureSession(CrashingSensor)
    session.activate(background=background)
    session.wait_ready(5)
    assert session.state == ERROR
    assert 'driver crashed' in session.error
    assert not session.is_enabled
    (sensor,) = FakeSensor.instances
    assert sensor.released
    # Recoverable by activating again
    session.sensor_factory = factory()
    session.activate(background=False)
    assert session.state == ACTIVE


def test_failing_sensor_factory_goes_to_error():
    def no_sensor():
        raise OSError("no such device")

    session = GestureSession(no_sensor)
    session.activate(background=False)
    assert session.state == ERROR
    assert 'no such device' in session.error


def test_deactivate_during_initialization_releases_the_late_sensor():
    FakeSensor.instances.clear()
    gate = threading.Event()
    session = GestureSession(factory(gate=gate))
    session.activate()
    assert session.state == INITIALIZING
    session.deactivate()
    gate.set()
    session.wait_ready(5)
    assert session.state == IDLE
    assert session.sensor is None
    (sensor,) = FakeSensor.instances
    assert sensor.initialized
    assert sensor.released


def test_camera_read_error_moves_to_error_state():
    session = GestureSession(factory(fail_read_after=2))
    session.activate(background=False)
    sensor = session.sensor
    assert session.step() is not None
    assert session.step() is not None
    assert session.step() is None
    assert session.state == ERROR
    assert 'unplugged' in session.error
    assert sensor.released
    assert session.sensor is None


def test_toggle():
    session = GestureSession(factory())
    assert session.toggle(background=False) is True
    assert session.is_active
    assert session.toggle(background=False) is False
    assert session.state == IDLE
