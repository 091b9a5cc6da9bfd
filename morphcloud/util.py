"""Utils for morphcloud."""

import tempfile
from pathlib import Path
from typing import Tuple

pkg_name = 'morphcloud'

# Where downloaded model files (e.g. hand_landmarker.task) are kept
model_cache_dir = Path(tempfile.gettempdir()) / 'morphcloud_models'


def return_none(*args, **kwargs):
    """
    An empty function that returns None no matter the arguments.
    Often used as a "do nothing" general callback function.
    """
    return None


# --------------------------------------------------------------------------------------
# Constants


class HandLandmark:
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_FINGER_MCP = 5
    INDEX_FINGER_PIP = 6
    INDEX_FINGER_DIP = 7
    INDEX_FINGER_TIP = 8
    MIDDLE_FINGER_MCP = 9
    MIDDLE_FINGER_PIP = 10
    MIDDLE_FINGER_DIP = 11
    MIDDLE_FINGER_TIP = 12
    RING_FINGER_MCP = 13
    RING_FINGER_PIP = 14
    RING_FINGER_DIP = 15
    RING_FINGER_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


N_HAND_LANDMARKS = 21


# --------------------------------------------------------------------------------------
# Numeric utils


def clamp(value, min_value, max_value):
    """
    Clamp value to the [min_value, max_value] interval.

    >>> clamp(3, 0, 1)
    1
    >>> clamp(-0.5, -1, 1)
    -0.5
    """
    return max(min_value, min(max_value, value))


def lerp(a, b, t):
    """
    Linear interpolation from a to b.

    >>> lerp(10, 20, 0.05)
    10.5
    """
    return a + (b - a) * t


# --------------------------------------------------------------------------------------
# Color utils

RGB = Tuple[float, float, float]


def hex_to_rgb(color: str) -> RGB:
    """
    Convert a hex color string into an RGB triple of floats in [0, 1].

    >>> hex_to_rgb('#ff0000')
    (1.0, 0.0, 0.0)
    >>> hex_to_rgb('00ff00')
    (0.0, 1.0, 0.0)
    >>> hex_to_rgb('#fff')
    (1.0, 1.0, 1.0)
    """
    digits = color.strip().lstrip('#')
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)
    if len(digits) != 6:
        raise ValueError(f"Not a hex color: {color!r}")
    try:
        r, g, b = (int(digits[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Not a hex color: {color!r}")
    return (r / 255, g / 255, b / 255)


def rgb_to_bgr255(rgb: RGB) -> Tuple[int, int, int]:
    """
    Convert a [0, 1] RGB triple to an OpenCV (BGR, 0-255) color.

    >>> rgb_to_bgr255((1.0, 0.5, 0.0))
    (0, 128, 255)
    """
    r, g, b = (int(round(clamp(c, 0.0, 1.0) * 255)) for c in rgb)
    return (b, g, r)


# --------------------------------------------------------------------------------------
# String utils


def format_float(value, ndigits=4):
    return f"{value:.{ndigits}f}"


def format_dict_values(d: dict, ndigits=2) -> dict:
    """
    Format the float values of a dict (and of tuples in it) for display.

    >>> format_dict_values({'zoom': 1.23456, 'shape': 'rose', 'rotation': (0.1, -0.25)})
    {'zoom': '1.23', 'shape': 'rose', 'rotation': '(0.10, -0.25)'}
    """

    def _format(v):
        if isinstance(v, float):
            return format_float(v, ndigits)
        if isinstance(v, tuple) and all(isinstance(x, float) for x in v):
            return '(' + ', '.join(format_float(x, ndigits) for x in v) + ')'
        return v

    return {k: _format(v) for k, v in d.items()}
