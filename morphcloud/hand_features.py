"""Hand landmark sensing, and the mapping of hand features to camera controls."""

import math
import os
import time
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from morphcloud.util import HandLandmark, clamp, model_cache_dir

# -------------------------------------------------------------------------------
# Hand landmark sensor
# -------------------------------------------------------------------------------

HAND_LANDMARKER_URL = (
    'https://storage.googleapis.com/mediapipe-models/hand_landmarker/'
    'hand_landmarker/float16/1/hand_landmarker.task'
)
hand_landmarker_path = str(model_cache_dir / 'hand_landmarker.task')


class SensorInitError(Exception):
    """Raised when the camera or the hand landmark model can't be set up."""

    pass


class CameraReadError(Exception):
    """Exception raised when camera read fails."""

    pass


def ensure_model_file(path: str = hand_landmarker_path, url: str = HAND_LANDMARKER_URL):
    """Download the model file to `path` if it's not there yet. Returns the path."""
    if not os.path.exists(path):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        print(f"Downloading hand landmarker model to {path} ...")
        # Only a complete download ever shows up at `path`
        part_path = path + '.part'
        try:
            urllib.request.urlretrieve(url, part_path)
            os.replace(part_path, path)
        finally:
            if os.path.exists(part_path):
                os.remove(part_path)
    return path


class HandLandmarkSensor:
    """
    A webcam feed paired with MediaPipe's HandLandmarker.

    Nothing is acquired at construction time: `initialize` opens the camera and
    loads the model (possibly slow, so usually called off the main thread),
    and `release` gives them back.

    Attributes:
        camera_index (int): Index of the video capture device.
        max_hands (int): Maximum number of hands to detect.
        detection_con (float): Minimum detection confidence threshold.
        track_con (float): Minimum tracking confidence threshold.
    """

    def __init__(
        self,
        camera_index=0,
        *,
        max_hands=1,
        detection_con=0.5,
        track_con=0.5,
        model_path=hand_landmarker_path,
        mirror=True,
    ):
        self.camera_index = camera_index
        self.max_hands = max_hands
        self.detection_con = detection_con
        self.track_con = track_con
        self.model_path = model_path
        self.mirror = mirror

        self.cap = None
        self.landmarker = None
        self._t0 = None

    @property
    def is_ready(self):
        return self.cap is not None and self.landmarker is not None

    def initialize(self):
        """
        Load the hand landmarker model and open the camera.

        Raises:
            SensorInitError: If anything goes wrong. Whatever was acquired is
                released first.
        """
        try:
            import mediapipe as mp

            model_path = ensure_model_file(self.model_path)
            options = mp.tasks.vision.HandLandmarkerOptions(
                base_options=mp.tasks.BaseOptions(model_asset_path=model_path),
                running_mode=mp.tasks.vision.RunningMode.VIDEO,
                num_hands=self.max_hands,
                min_hand_detection_confidence=self.detection_con,
                min_tracking_confidence=self.track_con,
            )
            self.landmarker = mp.tasks.vision.HandLandmarker.create_from_options(
                options
            )
            self.cap = cv2.VideoCapture(self.camera_index)
            if not self.cap.isOpened():
                raise SensorInitError(
                    f"Could not open video capture device {self.camera_index}"
                )
        except SensorInitError:
            self.release()
            raise
        except Exception as e:
            self.release()
            raise SensorInitError(
                f"Could not initialize hand landmark sensor: {e}"
            ) from e
        self._t0 = time.monotonic()
        return self

    def read(self) -> np.ndarray:
        """
        Read a frame from the camera, flipped horizontally if `mirror`.

        Raises:
            CameraReadError: If the camera isn't open or the read fails
        """
        if self.cap is None:
            raise CameraReadError("Camera is not open")
        success, img = self.cap.read()
        if not success:
            raise CameraReadError("Failed to read from camera")
        if self.mirror:
            # Flip image horizontally for a more natural interaction
            img = cv2.flip(img, 1)
        return img

    def detect(self, img: np.ndarray, timestamp_ms: Optional[int] = None) -> list:
        """
        Detect hands in a BGR image.

        Returns:
            list: One list of (normalized) landmarks per detected hand.
        """
        if self.landmarker is None:
            return []
        import mediapipe as mp

        if timestamp_ms is None:
            timestamp_ms = int((time.monotonic() - self._t0) * 1000)
        img_rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(
            image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(img_rgb)
        )
        result = self.landmarker.detect_for_video(mp_image, timestamp_ms)
        return list(result.hand_landmarks or [])

    def release(self):
        """Release the camera and close the model. Safe to call repeatedly."""
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None


# -------------------------------------------------------------------------------
# Hand feature extraction helpers
# -------------------------------------------------------------------------------

Point2D = Tuple[float, float]


def landmark_xy(landmark) -> Point2D:
    """
    Get the (x, y) of a landmark, be it a MediaPipe landmark or a sequence.

    >>> landmark_xy((0.25, 0.5, -0.1))
    (0.25, 0.5)
    """
    if hasattr(landmark, 'x'):
        return (float(landmark.x), float(landmark.y))
    return (float(landmark[0]), float(landmark[1]))


def calculate_euclidean_distance(point1, point2):
    """
    Calculate the Euclidean distance between two 2D points.

    >>> calculate_euclidean_distance((0, 0), (3, 4))
    5.0
    """
    return math.hypot(point1[0] - point2[0], point1[1] - point2[1])


def identity(x):
    """Identity function."""
    return x


class RangeMapper:
    """
    A callable class that maps values from one range to another.
    Precomputes scaling factors for better performance.

    >>> mapper = RangeMapper((0, 1), (100, 200))
    >>> mapper(0.5)
    150.0
    >>> mapper(-0.1)  # Below range
    100
    >>> mapper(1.5)   # Above range
    200
    """

    def __init__(
        self,
        value_range: Tuple[float, float],
        target_range: Tuple[float, float],
        *,
        ingress=identity,
        egress=identity,
    ):
        """
        Initialize the range mapper with source and target ranges.

        Args:
            value_range: The range of the input value (min, max)
            target_range: The range to map to (min, max)
        """
        self.value_min, self.value_max = value_range
        self.target_min, self.target_max = target_range

        self._value_span = self.value_max - self.value_min
        self._target_span = self.target_max - self.target_min
        self._scale_factor = self._target_span / self._value_span
        self.ingress = ingress
        self.egress = egress

    def __call__(self, value: float) -> float:
        """
        Map a value from the source range to the target range, clamping values
        outside the source range to its ends.
        """
        value = self.ingress(value)
        if value <= self.value_min:
            output = self.target_min
        elif value >= self.value_max:
            output = self.target_max
        else:
            output = self.target_min + (value - self.value_min) * self._scale_factor

        return self.egress(output)


def exponential_smoothing(previous: float, value: float, weight: float) -> float:
    """
    One step of exponential smoothing: `weight` of the previous value, the rest
    of the new one.

    >>> round(exponential_smoothing(1.0, 2.0, 0.9), 6)
    1.1
    """
    return weight * previous + (1 - weight) * value


# -------------------------------------------------------------------------------
# Gesture features
# -------------------------------------------------------------------------------

# Thumb-index distance (normalized image units) considered closed / fully open
DFLT_PINCH_DISTANCE_RANGE = (0.05, 0.25)
DFLT_ZOOM_RANGE = (0.5, 2.5)
DFLT_PINCH_THRESHOLD = 0.1

# Weight kept from the previous smoothed value on each update
SMOOTHING_WEIGHT = 0.9

zoom_mapper = RangeMapper(DFLT_PINCH_DISTANCE_RANGE, DFLT_ZOOM_RANGE, egress=float)


def thumb_index_distance(hand) -> float:
    return calculate_euclidean_distance(
        landmark_xy(hand[HandLandmark.THUMB_TIP]),
        landmark_xy(hand[HandLandmark.INDEX_FINGER_TIP]),
    )


def zoom_from_distance(distance: float) -> float:
    """
    Map a thumb-index distance to a zoom factor: closed fingers give 0.5,
    fully open ones 2.5.

    >>> zoom_from_distance(0.05), round(zoom_from_distance(0.15), 6), zoom_from_distance(0.25)
    (0.5, 1.5, 2.5)
    >>> zoom_from_distance(0.01), zoom_from_distance(0.9)
    (0.5, 2.5)
    """
    return zoom_mapper(distance)


def palm_center(hand) -> Point2D:
    """Palm center, estimated as the middle of the wrist and the middle finger base."""
    wx, wy = landmark_xy(hand[HandLandmark.WRIST])
    mx, my = landmark_xy(hand[HandLandmark.MIDDLE_FINGER_MCP])
    return ((wx + mx) / 2, (wy + my) / 2)


def rotation_offset(center: Point2D) -> Point2D:
    """
    Offset of a point from the center of the frame, each axis in [-1, 1].

    >>> rotation_offset((0.5, 0.5))
    (0.0, 0.0)
    >>> rotation_offset((1.0, 0.25))
    (1.0, -0.5)
    """
    cx, cy = center
    return (clamp((cx - 0.5) * 2, -1.0, 1.0), clamp((cy - 0.5) * 2, -1.0, 1.0))


def single_hand_gesture_features(hand) -> Dict[str, Any]:
    """
    Extracts the features used to steer the camera from one hand's landmarks.

    Args:
        hand: Sequence of 21 landmarks (MediaPipe landmarks or (x, y[, z]) tuples)

    Returns:
        dict: Dictionary of extracted features
    """
    distance = thumb_index_distance(hand)
    center = palm_center(hand)
    return {
        'thumb_index_distance': distance,
        'is_pinching': distance < DFLT_PINCH_THRESHOLD,
        'target_zoom': zoom_from_distance(distance),
        'palm_center': center,
        'rotation_offset': rotation_offset(center),
    }


def gesture_features(hands: Sequence) -> Dict[str, Any]:
    """Features of the first detected hand, or an empty dict if there's none."""
    if not hands:
        return {}
    return single_hand_gesture_features(hands[0])


# Dictionary of available gesture feature extractors
gesture_feature_funcs: Dict[str, Callable[[Sequence], Dict[str, Any]]] = {
    'gesture_features': gesture_features,
}


# -------------------------------------------------------------------------------
# Gesture state
# -------------------------------------------------------------------------------


@dataclass
class GestureState:
    """Smoothed camera controls derived from the hand."""

    zoom: float = 1.0
    rotation: Tuple[float, float] = (0.0, 0.0)


class GestureProcessor:
    """
    Turns per-frame hand landmarks into smoothed zoom and rotation values.

    Frames without a hand leave the state untouched, so the last values stick
    around until a hand shows up again.

    >>> processor = GestureProcessor()
    >>> open_hand = [(0.5, 0.5)] * 21
    >>> open_hand[4], open_hand[8] = (0.3, 0.5), (0.55, 0.5)
    >>> round(processor.update([open_hand]).zoom, 6)
    1.15
    >>> round(processor.update([]).zoom, 6)
    1.15
    """

    def __init__(self, feature_func=gesture_features, state: Optional[GestureState] = None):
        self.feature_func = feature_func
        self.state = state if state is not None else GestureState()
        self.features: Dict[str, Any] = {}
        self.n_updates = 0

    def features_of(self, hands: Sequence) -> Dict[str, Any]:
        return self.feature_func(hands)

    def update(self, hands: Sequence) -> GestureState:
        """
        Fold one frame's detected hands into the state.

        Args:
            hands: Detected hands (zero or one; extra hands are ignored)

        Returns:
            The (possibly unchanged) state
        """
        features = self.features_of(hands)
        if not features:
            return self.state
        self.features = features
        w = SMOOTHING_WEIGHT
        zoom = exponential_smoothing(self.state.zoom, features['target_zoom'], w)
        (rx, ry), (tx, ty) = self.state.rotation, features['rotation_offset']
        self.state = GestureState(
            zoom=zoom,
            rotation=(
                exponential_smoothing(rx, tx, w),
                exponential_smoothing(ry, ty, w),
            ),
        )
        self.n_updates += 1
        return self.state
