"""Utility functions for running the morphcloud scripts."""

import json
import time
from functools import partial
from typing import Any, Callable, Dict, Optional, TypeVar, Union

import cv2
import numpy as np

from morphcloud.camera import CameraController
from morphcloud.display import (
    display_features_on_image,
    draw_camera_inset,
    draw_status_message,
    render_particles,
)
from morphcloud.drivers import ERROR, INITIALIZING, GestureSession, TickDriver
from morphcloud.hand_features import (
    GestureProcessor,
    HandLandmarkSensor,
    gesture_feature_funcs,
)
from morphcloud.morph import TRANSITION_SPEED, ParticleCloud
from morphcloud.sequencer import AUTO_SWITCH_INTERVAL, SHAPE_SEQUENCE, PlaybackSequencer
from morphcloud.shapes import PARTICLE_COUNT, ShapeType, resolve_shape, shape_funcs
from morphcloud.util import format_dict_values, return_none as do_nothing

# -------------------------------------------------------------------------------
# Object resolution
# -------------------------------------------------------------------------------

T = TypeVar('T')


def resolve_object(
    obj: Union[str, T],
    *,
    object_map: Dict[str, T],
    expected_type: type = None,
    error_message: str = None,
) -> T:
    """
    Get a component (feature extractor, shape...) from its registered name, or
    pass it through if it's given directly.

    Args:
        obj: A name registered in `object_map`, or the component itself
        object_map: Registry of named components
        expected_type: If given, the type any given component must have
        error_message: Message overriding the default ones of the errors

    Raises:
        ValueError: If obj is a name missing from object_map
        TypeError: If obj (or what it names) is not an expected_type

    >>> resolve_object('a', object_map={'a': 1})
    1
    >>> resolve_object(2, object_map={'a': 1}, expected_type=int)
    2
    """
    if isinstance(obj, str) and not isinstance(obj, expected_type or ()):
        if obj not in object_map:
            known = ', '.join(map(str, object_map))
            raise ValueError(error_message or f"Unknown name {obj!r} (known: {known})")
        obj = object_map[obj]
    if expected_type is not None and not isinstance(obj, expected_type):
        raise TypeError(
            error_message or f"Expected a {expected_type.__name__}, got {type(obj)}"
        )
    return obj


resolve_gesture_features = partial(resolve_object, object_map=gesture_feature_funcs)


def resolve_shape_type(shape: Union[str, ShapeType]) -> ShapeType:
    """
    Get the ShapeType named by `shape` (value or name, any case).

    >>> resolve_shape_type('Rose')
    <ShapeType.ROSE: 'rose'>
    """
    resolved = resolve_shape(shape)
    if resolved is None:
        known = ', '.join(s.value for s in ShapeType)
        raise ValueError(f"Unknown shape {shape!r} (known: {known})")
    return resolved


# -------------------------------------------------------------------------------
# Logging utilities
# -------------------------------------------------------------------------------


def print_json_if_possible(x):
    """Prints the input (as json, if it can be serialized) and adds a newline."""
    try:
        x = json.dumps(x, default=str)
    except (TypeError, ValueError):
        pass
    print(x)
    print()


# -------------------------------------------------------------------------------
# Keyboard handling functions
# -------------------------------------------------------------------------------

ESCAPE_KEY_ASCII = 27
BREAK_KEYS = {ESCAPE_KEY_ASCII, ord('q')}
TOGGLE_PLAY_KEY = ord(' ')
TOGGLE_GESTURE_KEY = ord('g')
NEXT_SHAPE_KEY = ord('n')
PREVIOUS_SHAPE_KEY = ord('p')
SHAPE_KEYS = {ord(str(i + 1)): i for i in range(9)}


class KeyboardBreakSignal(Exception):
    """Exception raised when a break key is pressed."""

    pass


def read_keyboard(wait_time: int = 1) -> int:
    """
    Read keyboard input with the specified wait time.

    Args:
        wait_time: Time to wait for keyboard input in milliseconds

    Returns:
        The key code, or 255 if no key was pressed
    """
    return cv2.waitKey(wait_time) & 0xFF


def keyboard_feature_vector(key_code: int) -> Dict[str, Any]:
    """
    Convert a key code into a feature vector with keyboard information.

    Args:
        key_code: The key code from cv2.waitKey

    Returns:
        Dictionary containing keyboard features

    Raises:
        KeyboardBreakSignal: If a key that signals program termination is pressed
    """
    keyboard_fv = {
        'key_code': key_code,
        'key_pressed': 0 < key_code < 255,
        'is_escape': key_code == ESCAPE_KEY_ASCII,
        'timestamp': time.time(),
    }

    if keyboard_fv['key_code'] in BREAK_KEYS:
        raise KeyboardBreakSignal(f"Break key pressed: {key_code}")

    return keyboard_fv


def handle_key(
    key_code: int,
    *,
    sequencer: PlaybackSequencer,
    session: GestureSession,
) -> Optional[str]:
    """
    Apply a key press to the sequencer or the gesture session.

    Returns:
        The name of the action taken, or None if the key isn't bound.
    """
    if key_code == TOGGLE_PLAY_KEY:
        sequencer.toggle_play()
        return 'toggle_play'
    if key_code == TOGGLE_GESTURE_KEY:
        session.toggle()
        return 'toggle_gesture'
    if key_code == NEXT_SHAPE_KEY:
        sequencer.next()
        return 'next'
    if key_code == PREVIOUS_SHAPE_KEY:
        sequencer.previous()
        return 'previous'
    if key_code in SHAPE_KEYS and SHAPE_KEYS[key_code] < len(sequencer.sequence):
        sequencer.select(sequencer.sequence[SHAPE_KEYS[key_code]].shape)
        return 'select'
    return None


# -------------------------------------------------------------------------------
# Main run function
# -------------------------------------------------------------------------------

DFLT_GESTURE_FEATURES = 'gesture_features'
DFLT_WINDOW_NAME = 'morphcloud'
DFLT_WIDTH = 960
DFLT_HEIGHT = 720


def gesture_status(session: GestureSession) -> Optional[str]:
    if session.state == INITIALIZING:
        return "Initializing hand tracking model..."
    if session.state == ERROR:
        return f"Gesture control unavailable: {session.error}"
    return None


def run_morphcloud(
    *,
    count: int = PARTICLE_COUNT,
    initial_shape: Union[str, ShapeType] = ShapeType.VORTEX,
    transition_speed: float = TRANSITION_SPEED,
    interval: float = AUTO_SWITCH_INTERVAL,
    gesture: bool = False,
    gesture_features: Union[str, Callable] = DFLT_GESTURE_FEATURES,
    camera_index: int = 0,
    width: int = DFLT_WIDTH,
    height: int = DFLT_HEIGHT,
    window_name: str = DFLT_WINDOW_NAME,
    seed: Optional[int] = None,
    log_gesture_features: Optional[Callable] = None,
    log_playback: Optional[Callable] = None,
    show_info: bool = True,
):
    """
    Run the morphing particle cloud, with optional hand gesture camera control.

    Args:
        count: Number of particles
        initial_shape: Shape to start from
        transition_speed: Fraction of the remaining distance covered per frame
        interval: Seconds between automatic shape switches
        gesture: Whether to start with gesture control on
        gesture_features: Gesture feature extraction function or name
        camera_index: Index of the video capture device
        width, height: Size of the window
        window_name: Title for the display window
        seed: Seed of the random generator (for reproducible jitter)
        log_gesture_features: Function to log gesture features (or None to disable)
        log_playback: Function to log playback changes (or None to disable)
        show_info: Whether to draw the info panel
    """
    gesture_features = resolve_gesture_features(gesture_features)
    initial_shape = resolve_shape_type(initial_shape)
    log_gesture_features = log_gesture_features or do_nothing
    log_playback = log_playback or do_nothing

    rng = np.random.default_rng(seed)
    sequencer = PlaybackSequencer(SHAPE_SEQUENCE, interval=interval)
    start_index = sequencer.index_of(initial_shape)
    sequencer.state.index = max(start_index, 0)
    config = sequencer.current

    cloud = ParticleCloud(
        count,
        initial_shape=config.shape,
        color=config.color,
        transition_speed=transition_speed,
        rng=rng,
    )
    camera = CameraController(config.camera_z)

    def on_shape_selected(shape):
        cloud.on_shape_selected(shape)
        log_playback(
            {'shape': shape.value, **format_dict_values(vars(sequencer.state))}
        )

    sequencer.on_shape_selected = on_shape_selected
    sequencer.on_color_changed = cloud.on_color_changed

    session = GestureSession(
        partial(HandLandmarkSensor, camera_index),
        GestureProcessor(gesture_features),
    )
    if gesture:
        session.activate()

    def tick_camera(dt):
        state = session.gesture_state
        camera.tick(
            dt,
            base_distance=sequencer.current.camera_z,
            zoom=state.zoom,
            rotation=state.rotation,
            auto_rotate=sequencer.auto_advancing,
        )

    driver = TickDriver(sequencer.tick, cloud.tick, tick_camera)
    print(
        f"\nMorphing {count} particles through: "
        f"{', '.join(c.shape.value for c in sequencer.sequence)}\n"
        "Keys: space=play/pause, n/p=next/previous, 1-8=shape, "
        "g=gesture control, esc/q=quit\n"
    )

    last_error = None
    try:
        while True:
            try:
                key_code = read_keyboard()
                keyboard_feature_vector(key_code)
                handle_key(key_code, sequencer=sequencer, session=session)

                # Capture and render share this loop: while gesture mode is on,
                # the camera's blocking read caps the frame rate at its own.
                frame = session.step()
                if frame is not None and session.processor.features:
                    log_gesture_features(
                        format_dict_values(session.processor.features)
                    )
                if session.error and session.error != last_error:
                    print(f"Gesture control error: {session.error}")
                last_error = session.error

                driver.tick()

                img = render_particles(
                    cloud.positions,
                    cloud.colors,
                    distance=camera.distance,
                    width=width,
                    height=height,
                    yaw=camera.yaw,
                    pitch=camera.pitch,
                    rotation=cloud.rotation,
                )
                if show_info:
                    state = session.gesture_state
                    display_features_on_image(
                        img,
                        {
                            'shape': sequencer.current.shape.value,
                            'playing': sequencer.state.is_playing,
                            'gesture': session.state,
                            'zoom': state.zoom,
                        },
                    )
                if frame is not None:
                    frame_img, hands = frame
                    draw_camera_inset(img, frame_img, hands, label='HAND TRACKING')
                else:
                    status = gesture_status(session)
                    if status:
                        draw_status_message(img, status)

                cv2.imshow(window_name, img)

            except KeyboardBreakSignal:
                break
    finally:
        session.deactivate()
        cv2.destroyAllWindows()


def morphcloud_cli(
    # Particles
    count: int = PARTICLE_COUNT,
    initial_shape: str = ShapeType.VORTEX.value,
    transition_speed: float = TRANSITION_SPEED,
    interval: float = AUTO_SWITCH_INTERVAL,
    seed: int = None,
    # Gesture control
    gesture: bool = False,
    camera_index: int = 0,
    # Logging options
    log_gesture_features: bool = False,
    log_playback: bool = False,
    # Display options
    width: int = DFLT_WIDTH,
    height: int = DFLT_HEIGHT,
    window_name: str = DFLT_WINDOW_NAME,
    no_info: bool = False,
    # List available components
    list_shapes: bool = False,
):
    """
    Run the morphcloud application with the specified parameters.

    Args:
        count: Number of particles
        initial_shape: Name of the shape to start from
        transition_speed: Fraction of the remaining distance covered per frame
        interval: Seconds between automatic shape switches
        seed: Random seed
        gesture: Start with hand gesture control on
        camera_index: Index of the video capture device
        log_gesture_features: Whether to log gesture features
        log_playback: Whether to log shape changes
        width: Window width
        height: Window height
        window_name: Title for the display window
        no_info: Don't draw the info panel
        list_shapes: List available shapes and exit
    """
    if seed is not None:
        seed = int(seed)

    if list_shapes:
        print("Available shapes:")
        for shape in shape_funcs:
            print(f"  - {shape.value}")
        return

    run_morphcloud(
        count=count,
        initial_shape=initial_shape,
        transition_speed=transition_speed,
        interval=interval,
        gesture=gesture,
        camera_index=camera_index,
        width=width,
        height=height,
        window_name=window_name,
        seed=seed,
        log_gesture_features=print_json_if_possible if log_gesture_features else None,
        log_playback=print_json_if_possible if log_playback else None,
        show_info=not no_info,
    )
