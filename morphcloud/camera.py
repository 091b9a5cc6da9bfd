"""Camera that follows the shape's base distance, the gesture zoom and rotation."""

import math
from typing import Optional, Tuple

from morphcloud.util import clamp, lerp

DFLT_CAMERA_DISTANCE = 40.0
DFLT_MIN_DISTANCE = 5.0
DFLT_MAX_DISTANCE = 100.0
DFLT_LERP_FACTOR = 0.05
DFLT_AUTO_ROTATE_SPEED = 0.5  # 0.5 means a full orbit every 2 minutes
DFLT_MAX_YAW = math.pi / 3
DFLT_MAX_PITCH = math.pi / 6


def target_distance(base_distance: float, zoom: float) -> float:
    """
    Distance the camera should settle at: zooming x2 halves the distance.

    >>> target_distance(30, 2.0)
    15.0
    """
    if zoom <= 0:
        raise ValueError(f"zoom should be positive, was {zoom}")
    return base_distance / zoom


class CameraController:
    """
    Orbit camera looking at the origin.

    Each tick, the distance eases toward `base_distance / zoom` and the
    yaw/pitch offsets ease toward the ones given by the rotation pair.
    Auto-rotation slowly spins the orbit yaw.
    """

    def __init__(
        self,
        distance: float = DFLT_CAMERA_DISTANCE,
        *,
        lerp_factor: float = DFLT_LERP_FACTOR,
        min_distance: float = DFLT_MIN_DISTANCE,
        max_distance: float = DFLT_MAX_DISTANCE,
        auto_rotate_speed: float = DFLT_AUTO_ROTATE_SPEED,
        max_yaw: float = DFLT_MAX_YAW,
        max_pitch: float = DFLT_MAX_PITCH,
    ):
        self.distance = distance
        self.lerp_factor = lerp_factor
        self.min_distance = min_distance
        self.max_distance = max_distance
        self.auto_rotate_speed = auto_rotate_speed
        self.max_yaw = max_yaw
        self.max_pitch = max_pitch

        self.orbit_yaw = 0.0
        self.yaw_offset = 0.0
        self.pitch_offset = 0.0

    @property
    def yaw(self) -> float:
        return self.orbit_yaw + self.yaw_offset

    @property
    def pitch(self) -> float:
        return self.pitch_offset

    def tick(
        self,
        dt: float,
        *,
        base_distance: float,
        zoom: float = 1.0,
        rotation: Optional[Tuple[float, float]] = None,
        auto_rotate: bool = False,
    ):
        goal = clamp(
            target_distance(base_distance, zoom), self.min_distance, self.max_distance
        )
        self.distance = lerp(self.distance, goal, self.lerp_factor)

        if rotation is not None:
            rx = clamp(rotation[0], -1.0, 1.0)
            ry = clamp(rotation[1], -1.0, 1.0)
            self.yaw_offset = lerp(self.yaw_offset, rx * self.max_yaw, self.lerp_factor)
            self.pitch_offset = lerp(
                self.pitch_offset, ry * self.max_pitch, self.lerp_factor
            )

        if auto_rotate:
            # One orbit per 60 / speed seconds
            self.orbit_yaw += self.auto_rotate_speed * 2 * math.pi / 60 * dt
        return self
