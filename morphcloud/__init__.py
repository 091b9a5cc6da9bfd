"""
A cloud of particles that morphs between mathematical curves and surfaces,
with a camera you steer with your hand.

Thirty thousand particles flow, one shape after the other, through a vortex,
a fractal "Koch" cloud, a heart (cardioid), a butterfly curve, an Archimedean
spiral, a catenoid, a lemniscate and a rose curve. Each switch gives the
particles a new target; they then glide toward it, covering a small fraction
of the remaining distance at every frame.

With gesture control on, the webcam feed goes through MediaPipe's hand
landmarker: pinching or opening the thumb and index finger zooms the camera
out or in, and moving the palm around the frame orbits it.

Here's a bit about what's in here:

* shapes: the parametric point generators (`generate_particles`)
* morph: the morph engine and the particle cloud (positions, colors, spin)
* hand_features: the hand sensor and the gesture-to-zoom/rotation mapping
* sequencer: which shape is showing, and when to switch
* camera: the orbit camera following the shape and the gestures
* drivers: the tick driver and the gesture session lifecycle
* display: OpenCV rendering of the cloud and the HUD
* script_utils: the main loop (`run_morphcloud`) and its CLI

Run it with `python bin/morphcloud_cli.py` (`--gesture` to start with gesture
control on, `--help` for more).
"""

from morphcloud.shapes import PARTICLE_COUNT, ShapeType, generate_particles, shape_funcs
from morphcloud.morph import MorphEngine, ParticleCloud, color_variations
from morphcloud.hand_features import (
    GestureProcessor,
    GestureState,
    HandLandmarkSensor,
    SensorInitError,
)
from morphcloud.sequencer import SHAPE_SEQUENCE, PlaybackSequencer, PlaybackState
from morphcloud.camera import CameraController
from morphcloud.drivers import GestureSession, TickDriver
