"""
Overlay Drawing
Renders classifier debug geometry and status text onto BGR preview frames.
Purely observational, nothing here feeds back into classification.
"""

import cv2
import numpy as np

from .types import DebugGeometry

FACE_COLOR = (221, 255, 0)
EYE_COLOR = (0, 255, 0)
CENTROID_COLOR = (0, 0, 255)
TEXT_COLOR = (255, 255, 255)
TEXT_SHADOW = (0, 0, 0)


def draw_debug_geometry(frame: np.ndarray, geometry: DebugGeometry) -> np.ndarray:
    """
    Draw face/eye rectangles and the pupil centroid in place

    Args:
        frame: BGR image in the same (unmirrored) coordinates as the geometry
        geometry: DebugGeometry from FrameClassifier.classify()

    Returns:
        The same frame, for chaining
    """
    if geometry.face is not None:
        p1, p2 = geometry.face.corners()
        cv2.rectangle(frame, p1, p2, FACE_COLOR, 3)

    for eye in geometry.eyes:
        p1, p2 = eye.corners()
        cv2.rectangle(frame, p1, p2, EYE_COLOR, 2)

    if geometry.centroid is not None:
        cv2.circle(frame, geometry.centroid, 3, CENTROID_COLOR, -1)

    return frame


def draw_status(frame: np.ndarray, eye_status: str, link_status: str) -> np.ndarray:
    """Write the two status lines in the top-left corner"""
    for row, text in enumerate((f"Eye: {eye_status}", f"BT: {link_status}")):
        origin = (10, 25 + row * 25)
        cv2.putText(frame, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.6, TEXT_SHADOW, 3, cv2.LINE_AA)
        cv2.putText(frame, text, origin, cv2.FONT_HERSHEY_SIMPLEX, 0.6, TEXT_COLOR, 1, cv2.LINE_AA)
    return frame


def render_preview(
        frame: np.ndarray,
        geometry: DebugGeometry,
        eye_status: str,
        link_status: str,
        mirror: bool = True
) -> np.ndarray:
    """
    Build the frame shown to the user

    Geometry is drawn before flipping so it stays aligned with the face;
    text is drawn after so it stays readable.

    Args:
        frame: BGR capture frame (not modified)
        geometry: Overlay primitives for this tick
        eye_status: Current direction / error text
        link_status: Current link status text
        mirror: Flip horizontally (selfie view)

    Returns:
        New BGR image
    """
    preview = draw_debug_geometry(frame.copy(), geometry)
    if mirror:
        preview = cv2.flip(preview, 1)
    return draw_status(preview, eye_status, link_status)
