"""Drivers for the per-frame loops: a ticking clock and the gesture capture session."""

import threading
import time
from typing import Callable, List, Optional

from morphcloud.hand_features import (
    CameraReadError,
    GestureProcessor,
    HandLandmarkSensor,
    SensorInitError,
)

# -------------------------------------------------------------------------------
# Tick driver
# -------------------------------------------------------------------------------


class TickDriver:
    """
    Calls a set of `callback(dt)` functions every time it's ticked, `dt` being
    the time elapsed since the previous tick (0 on the first one).

    The clock is injectable so loops can be driven with synthetic time.

    >>> times = iter([10.0, 10.5, 11.5])
    >>> dts = []
    >>> driver = TickDriver(dts.append, clock=lambda: next(times))
    >>> driver.run(max_ticks=3)
    3
    >>> dts
    [0.0, 0.5, 1.0]
    """

    def __init__(self, *callbacks: Callable[[float], object], clock=time.perf_counter):
        self.callbacks: List[Callable[[float], object]] = list(callbacks)
        self.clock = clock
        self.last_time: Optional[float] = None
        self.n_ticks = 0

    def add(self, callback: Callable[[float], object]):
        self.callbacks.append(callback)
        return callback

    def tick(self) -> float:
        now = self.clock()
        dt = 0.0 if self.last_time is None else now - self.last_time
        self.last_time = now
        for callback in self.callbacks:
            callback(dt)
        self.n_ticks += 1
        return dt

    def run(
        self,
        *,
        should_continue: Callable[[], bool] = lambda: True,
        max_ticks: Optional[int] = None,
    ) -> int:
        """Tick until `should_continue()` is false or `max_ticks` is reached."""
        n = 0
        while should_continue() and (max_ticks is None or n < max_ticks):
            self.tick()
            n += 1
        return n


# -------------------------------------------------------------------------------
# Gesture session
# -------------------------------------------------------------------------------

IDLE = 'idle'
INITIALIZING = 'initializing'
ACTIVE = 'active'
ERROR = 'error'


class GestureSession:
    """
    Lifecycle of gesture mode: acquiring the sensor, feeding its frames to a
    GestureProcessor, and letting it go.

    `activate` sets the sensor up (in a background thread by default); frames
    are only processed once that succeeded. If it fails, the session goes to the
    `error` state, with the reason in `error`, and stays there until activated
    again. `deactivate` releases the sensor right away; the processor, and
    so the last gesture values, are kept.

    Args:
        sensor_factory: Makes a new sensor (with `initialize`, `read`, `detect`
            and `release` methods) for each activation
        processor: The GestureProcessor to feed (a new one if not given)
    """

    def __init__(
        self,
        sensor_factory: Callable = HandLandmarkSensor,
        processor: Optional[GestureProcessor] = None,
    ):
        self.sensor_factory = sensor_factory
        self.processor = processor if processor is not None else GestureProcessor()
        self.state = IDLE
        self.error: Optional[str] = None
        self.sensor = None
        self._generation = 0
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def gesture_state(self):
        return self.processor.state

    @property
    def is_active(self) -> bool:
        return self.state == ACTIVE

    @property
    def is_enabled(self) -> bool:
        """True when gesture mode is on (set up or being set up)."""
        return self.state in (INITIALIZING, ACTIVE)

    def activate(self, *, background: bool = True):
        """Start setting up the sensor. Does nothing if already enabled."""
        with self._lock:
            if self.is_enabled:
                return self
            self._generation += 1
            generation = self._generation
            self.state = INITIALIZING
            self.error = None
        if background:
            self._thread = threading.Thread(
                target=self._setup, args=(generation,), daemon=True
            )
            self._thread.start()
        else:
            self._setup(generation)
        return self

    def _setup(self, generation: int):
        sensor = None
        try:
            sensor = self.sensor_factory()
            sensor.initialize()
        except Exception as e:
            # Sensors other than HandLandmarkSensor may raise anything here
            if sensor is not None:
                sensor.release()
            message = str(e) if isinstance(e, SensorInitError) else repr(e)
            with self._lock:
                if generation == self._generation:
                    self.state = ERROR
                    self.error = message
            return
        with self._lock:
            if generation == self._generation:
                self.sensor = sensor
                self.state = ACTIVE
                return
        # Deactivated (or reactivated) while we were setting up
        sensor.release()

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Wait for a background setup to finish. Returns True if active."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return self.is_active

    def deactivate(self):
        """Release the sensor. No frame is processed after this returns."""
        with self._lock:
            self._generation += 1
            sensor, self.sensor = self.sensor, None
            self.state = IDLE
            self.error = None
        if sensor is not None:
            sensor.release()
        return self

    def toggle(self, *, background: bool = True) -> bool:
        if self.is_enabled:
            self.deactivate()
        else:
            self.activate(background=background)
        return self.is_enabled

    def _fail(self, message: str):
        with self._lock:
            self._generation += 1
            sensor, self.sensor = self.sensor, None
            self.state = ERROR
            self.error = message
        if sensor is not None:
            sensor.release()

    def step(self, timestamp_ms: Optional[int] = None):
        """
        Process one video frame.

        Returns:
            (img, hands) if a frame was processed, None if the session isn't
            active. A failed camera read puts the session in the error state.
        """
        sensor = self.sensor
        if self.state != ACTIVE or sensor is None:
            return None
        try:
            img = sensor.read()
        except CameraReadError as e:
            self._fail(str(e))
            return None
        hands = sensor.detect(img, timestamp_ms)
        self.processor.update(hands)
        return img, hands
