"""
Frame Classifier
One grayscale frame + detector output -> Direction and overlay geometry
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import VisionConfig
from .detector import DetectorAdapter
from .gaze import GazeEstimator
from .types import DebugGeometry, Direction, Rect

logger = logging.getLogger(__name__)


def _crop(image: np.ndarray, rect: Rect) -> np.ndarray:
    return image[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width]


class FrameClassifier:
    """
    Stateless per-tick classifier.

    Decision order:
      1. no face               -> NO_FACE (eye detector not called)
      2. fewer than two eyes   -> EYES_NOT_RESOLVED
      3. left eye flattened    -> BLINK
      4. otherwise             -> GazeEstimator on the left eye crop

    "Left eye" is the leftmost eye in screen space, not the anatomical left.
    """

    def __init__(self, config: Optional[VisionConfig] = None, estimator: Optional[GazeEstimator] = None):
        self.config = config or VisionConfig()
        self.estimator = estimator or GazeEstimator(self.config)

    def select_face(self, face_rects: Sequence[Rect]) -> Rect:
        """Pick the operative face according to config.face_selection."""
        if self.config.face_selection == 'largest':
            return max(face_rects, key=lambda r: r.area)
        return face_rects[0]

    @staticmethod
    def select_eyes(eye_rects: Sequence[Rect]) -> List[Rect]:
        """Two leftmost eyes by x, as [left, right]."""
        return sorted(eye_rects, key=lambda r: r.x)[:2]

    @staticmethod
    def _clip(rect: Rect, width: int, height: int) -> Rect:
        x0, y0 = max(rect.x, 0), max(rect.y, 0)
        x1 = min(rect.x + rect.width, width)
        y1 = min(rect.y + rect.height, height)
        if x1 <= x0 or y1 <= y0:
            raise ValueError(f"Face {rect} lies outside the {width}x{height} frame")
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def classify(
        self,
        gray: np.ndarray,
        face_rects: Sequence[Rect],
        eye_detector: DetectorAdapter,
    ) -> Tuple[Direction, DebugGeometry]:
        """
        Classify one frame.

        Args:
            gray:         Grayscale uint8 frame
            face_rects:   Faces reported by the detector for this frame
            eye_detector: Adapter whose detect_eyes() runs on the face region

        Raises:
            ValueError: if the face or eye region is empty after clipping

        Returns:
            (direction, geometry) with geometry in frame coordinates
        """
        if not face_rects:
            return Direction.NO_FACE, DebugGeometry()

        height, width = gray.shape[:2]
        face = self._clip(self.select_face(face_rects), width, height)
        face_region = _crop(gray, face)

        eye_rects = eye_detector.detect_eyes(face_region)
        if len(eye_rects) < 2:
            logger.debug(f"Face found, {len(eye_rects)} eye(s) resolved")
            return Direction.EYES_NOT_RESOLVED, DebugGeometry(face=face)

        left_eye, right_eye = self.select_eyes(eye_rects)
        eyes = (left_eye.offset(face.x, face.y), right_eye.offset(face.x, face.y))

        if left_eye.aspect_ratio < self.config.blink_ratio_threshold:
            return Direction.BLINK, DebugGeometry(face=face, eyes=eyes)

        eye_region = _crop(face_region, left_eye)
        if eye_region.size == 0:
            raise ValueError(f"Eye {left_eye} lies outside the face region")

        sample = self.estimator.measure(eye_region)
        if sample is None:
            return Direction.CENTER, DebugGeometry(face=face, eyes=eyes)

        centroid = (int(round(eyes[0].x + sample.centroid_x)), eyes[0].y + eyes[0].height // 2)
        direction = self.estimator.classify_ratio(sample.ratio)
        logger.debug(f"Gaze ratio {sample.ratio:.3f} -> {direction}")
        return direction, DebugGeometry(face=face, eyes=eyes, centroid=centroid)
