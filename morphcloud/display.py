"""Display utilities: drawing the particle cloud and the gesture HUD with OpenCV."""

import math
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from morphcloud.hand_features import landmark_xy
from morphcloud.util import HandLandmark

# -------------------------------------------------------------------------------
# Types
# -------------------------------------------------------------------------------

Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]  # BGR or BGRA

DFLT_FOV = 60  # vertical field of view, in degrees
DFLT_POINT_INTENSITY = 0.35
DFLT_GLOW_SIGMA = 3.0
DFLT_GLOW_INTENSITY = 1.5
HUD_COLOR = (255, 255, 0)  # Cyan in BGR

# -------------------------------------------------------------------------------
# Projection
# -------------------------------------------------------------------------------


def _rotation_x(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[1, 0, 0], [0, c, -s], [0, s, c]])


def _rotation_y(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, 0, s], [0, 1, 0], [-s, 0, c]])


def _rotation_z(a):
    c, s = math.cos(a), math.sin(a)
    return np.array([[c, -s, 0], [s, c, 0], [0, 0, 1]])


def project_points(
    positions: np.ndarray,
    *,
    distance: float,
    width: int,
    height: int,
    yaw: float = 0.0,
    pitch: float = 0.0,
    rotation: Sequence[float] = (0.0, 0.0, 0.0),
    fov: float = DFLT_FOV,
    near: float = 0.1,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Project a flat position buffer onto the image plane of an orbit camera
    `distance` away from the origin and looking at it.

    Args:
        positions: Flat (x, y, z, x, y, z, ...) buffer
        distance: Camera distance to the origin
        width, height: Image size, in pixels
        yaw, pitch: Orbit angles of the camera, in radians
        rotation: (x, y, z) Euler angles of the cloud itself
        fov: Vertical field of view, in degrees

    Returns:
        (pixels, visible): an (n, 2) float array of pixel coordinates and a
        boolean mask of the points in front of the camera.

    >>> pixels, visible = project_points(np.zeros(3), distance=10, width=640, height=480)
    >>> pixels.tolist(), visible.tolist()
    ([[320.0, 240.0]], [True])
    """
    points = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    rx, ry, rz = rotation
    model = _rotation_x(rx) @ _rotation_y(ry) @ _rotation_z(rz)
    view = _rotation_x(pitch) @ _rotation_y(-yaw)
    cam = points @ (view @ model).T
    depth = distance - cam[:, 2]  # distance along the viewing direction
    visible = depth > near
    focal = (height / 2) / math.tan(math.radians(fov) / 2)
    safe_depth = np.where(visible, depth, 1.0)
    u = width / 2 + focal * cam[:, 0] / safe_depth
    v = height / 2 - focal * cam[:, 1] / safe_depth
    return np.stack([u, v], axis=-1), visible


def vignette(height: int, width: int, *, offset=0.1, darkness=1.1) -> np.ndarray:
    """Multiplicative (height, width) mask darkening the borders of an image."""
    y = np.linspace(-1.0, 1.0, height, dtype=np.float32)[:, None]
    x = np.linspace(-1.0, 1.0, width, dtype=np.float32)[None, :]
    r = np.sqrt(x * x + y * y) / math.sqrt(2)
    return np.clip(1.0 - darkness * np.clip(r - offset, 0.0, None), 0.0, 1.0)


def render_particles(
    positions: np.ndarray,
    colors: np.ndarray,
    *,
    distance: float,
    width: int = 960,
    height: int = 720,
    yaw: float = 0.0,
    pitch: float = 0.0,
    rotation: Sequence[float] = (0.0, 0.0, 0.0),
    fov: float = DFLT_FOV,
    point_intensity: float = DFLT_POINT_INTENSITY,
    glow_sigma: float = DFLT_GLOW_SIGMA,
    glow_intensity: float = DFLT_GLOW_INTENSITY,
    use_vignette: bool = True,
) -> np.ndarray:
    """
    Render the cloud as additively blended, glowing dots on black.

    Args:
        positions: Flat position buffer
        colors: Flat RGB buffer (components in [0, 1]), same length as positions
        distance, yaw, pitch, rotation, fov: See `project_points`
        point_intensity: How much light each particle adds to its pixel
        glow_sigma: Blur radius of the glow (0 to disable it)
        glow_intensity: Strength of the glow added on top of the points

    Returns:
        img: A (height, width, 3) uint8 BGR image
    """
    pixels, visible = project_points(
        positions,
        distance=distance,
        width=width,
        height=height,
        yaw=yaw,
        pitch=pitch,
        rotation=rotation,
        fov=fov,
    )
    rgb = np.asarray(colors, dtype=np.float32).reshape(-1, 3)
    cols = np.floor(pixels[:, 0]).astype(np.int64)
    rows = np.floor(pixels[:, 1]).astype(np.int64)
    keep = visible & (cols >= 0) & (cols < width) & (rows >= 0) & (rows < height)

    canvas = np.zeros((height, width, 3), dtype=np.float32)
    # OpenCV wants BGR
    np.add.at(canvas, (rows[keep], cols[keep]), rgb[keep][:, ::-1] * point_intensity)

    if glow_sigma > 0 and glow_intensity > 0:
        glow = cv2.GaussianBlur(canvas, (0, 0), glow_sigma)
        canvas = canvas + glow * glow_intensity
    if use_vignette:
        canvas *= vignette(height, width)[:, :, None]
    return (np.clip(canvas, 0.0, 1.0) * 255).astype(np.uint8)


# -------------------------------------------------------------------------------
# Screen drawing functions
# -------------------------------------------------------------------------------


def display_features_on_image(
    img: np.ndarray,
    features: dict,
    *,
    font=cv2.FONT_HERSHEY_SIMPLEX,
    font_scale: float = 0.6,
    color: Color = (255, 255, 255),
    thickness: int = 1,
    float_format: str = ".2f",
    x_pos=20,
    y_pos=30,
    y_increment=26,
    bg_color: Color = (40, 40, 40, 128),  # Dark grey, semi-transparent (BGR + alpha)
):
    """
    Display features (e.g. shape name, zoom) on the image with a
    semi-transparent background.

    Args:
        img: The image to draw on
        features: Dictionary of features to display
        font: Font type to use
        font_scale: Size of the font
        color: Text color in BGR format
        thickness: Line thickness of text
        float_format: Format string for float values
        x_pos: Starting x position for text
        y_pos: Starting y position for text
        y_increment: Vertical space between lines
        bg_color: Background color (BGR + alpha) where alpha is 0-255
    """
    if not features:
        return img

    overlay = img.copy()

    if len(bg_color) == 4:
        bg_rgb = bg_color[:3]
        alpha = bg_color[3] / 255.0
    else:
        bg_rgb = bg_color
        alpha = 0.5

    def _text(key, value):
        if isinstance(value, float):
            value = f"{value:{float_format}}"
        return f"{key}: {value}"

    lines = [_text(key, value) for key, value in features.items()]

    padding = 5
    for idx, text in enumerate(lines):
        (text_width, text_height), _ = cv2.getTextSize(
            text, font, font_scale, thickness
        )
        cv2.rectangle(
            overlay,
            (x_pos - padding, y_pos + idx * y_increment - text_height - padding),
            (x_pos + text_width + padding, y_pos + idx * y_increment + padding),
            bg_rgb,
            -1,
        )

    cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)

    for idx, text in enumerate(lines):
        cv2.putText(
            img,
            text,
            (x_pos, y_pos + idx * y_increment),
            font,
            font_scale,
            color,
            thickness,
            cv2.LINE_AA,
        )

    return img


def draw_pinch_hud(img: np.ndarray, hand, *, color: Color = HUD_COLOR, radius=4):
    """
    Draw the line between the thumb and index finger tips, the two landmarks
    the zoom is computed from.

    Args:
        img: The image the (normalized) landmarks refer to
        hand: Sequence of hand landmarks

    Returns:
        img: The image with the HUD drawn
    """
    h, w = img.shape[:2]
    tips = []
    for idx in (HandLandmark.THUMB_TIP, HandLandmark.INDEX_FINGER_TIP):
        x, y = landmark_xy(hand[idx])
        tips.append((int(x * w), int(y * h)))
    cv2.line(img, tips[0], tips[1], color, 2, cv2.LINE_AA)
    for tip in tips:
        cv2.circle(img, tip, radius, color, -1, cv2.LINE_AA)
    return img


def draw_camera_inset(
    canvas: np.ndarray,
    frame: np.ndarray,
    hands: Optional[Sequence] = None,
    *,
    size: Tuple[int, int] = (192, 144),
    margin: int = 24,
    opacity: float = 0.6,
    label: Optional[str] = None,
):
    """
    Paste a small view of the camera frame (with the pinch HUD) in the
    bottom-left corner of the canvas.
    """
    inset_w, inset_h = size
    ch, cw = canvas.shape[:2]
    inset_w, inset_h = min(inset_w, cw - margin), min(inset_h, ch - margin)
    if inset_w <= 0 or inset_h <= 0:
        return canvas
    inset = cv2.resize(frame, (inset_w, inset_h))
    inset = cv2.convertScaleAbs(inset, alpha=opacity)
    if hands:
        draw_pinch_hud(inset, hands[0])
    if label:
        cv2.putText(
            inset, label, (6, 14), cv2.FONT_HERSHEY_SIMPLEX, 0.35, (0, 220, 0), 1
        )
    top, left = ch - margin - inset_h, margin
    canvas[top : top + inset_h, left : left + inset_w] = inset
    cv2.rectangle(
        canvas, (left, top), (left + inset_w - 1, top + inset_h - 1), (90, 90, 90), 1
    )
    return canvas


def draw_status_message(canvas: np.ndarray, message: str, *, margin: int = 24, color: Color = (80, 80, 255)):
    """Write a one-line status (e.g. a sensor error) in the bottom-left corner."""
    h = canvas.shape[0]
    cv2.putText(
        canvas,
        message,
        (margin, h - margin),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        color,
        1,
        cv2.LINE_AA,
    )
    return canvas
