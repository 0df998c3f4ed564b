"""
Gaze Estimator
Pupil centroid from a grayscale eye crop, mapped to a lateral direction.

Pipeline per crop:
    equalizeHist -> inverted binary threshold -> morphological close/open
    -> image moments -> normalised horizontal centroid -> threshold bands
"""

import logging
from typing import Optional

import cv2
import numpy as np

from .config import VisionConfig
from .types import Direction, GazeSample

logger = logging.getLogger(__name__)


class GazeEstimator:
    """
    Horizontal gaze classifier for a single eye crop.

    With mirror_view enabled (the preview is flipped for the user) a low
    ratio maps to LEFT and a high ratio to RIGHT; without it the mapping is
    inverted so the label always refers to the subject's side.
    """

    def __init__(self, config: Optional[VisionConfig] = None):
        self.config = config or VisionConfig()
        k = self.config.morph_kernel_size
        self._kernel = np.ones((k, k), dtype=np.uint8)

        if self.config.mirror_view:
            self._low_label, self._high_label = Direction.LEFT, Direction.RIGHT
        else:
            self._low_label, self._high_label = Direction.RIGHT, Direction.LEFT

    def binarize(self, eye_region: np.ndarray) -> np.ndarray:
        """
        Segment the dark pupil/iris as foreground.

        Args:
            eye_region: Grayscale uint8 eye crop

        Returns:
            Binary uint8 mask (255 = pupil)
        """
        equalized = cv2.equalizeHist(eye_region)
        _, binary = cv2.threshold(
            equalized, self.config.pupil_threshold, 255, cv2.THRESH_BINARY_INV
        )
        binary = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, self._kernel)
        binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, self._kernel)
        return binary

    def measure(self, eye_region: np.ndarray) -> Optional[GazeSample]:
        """
        Locate the pupil centroid.

        Args:
            eye_region: Grayscale uint8 eye crop

        Returns:
            GazeSample, or None if the foreground mass is below min_pupil_mass
        """
        if eye_region.size == 0:
            raise ValueError("Empty eye region")

        binary = self.binarize(eye_region)
        m = cv2.moments(binary, binaryImage=True)

        if m['m00'] < self.config.min_pupil_mass:
            logger.debug(f"Pupil mass too low ({m['m00']:.0f} < {self.config.min_pupil_mass:.0f})")
            return None

        return GazeSample(centroid_x=m['m10'] / m['m00'], eye_width=eye_region.shape[1])

    def classify_ratio(self, ratio: float) -> Direction:
        """Map a gaze ratio onto LEFT / CENTER / RIGHT."""
        if ratio < self.config.gaze_threshold_low:
            return self._low_label
        if ratio > self.config.gaze_threshold_high:
            return self._high_label
        return Direction.CENTER

    def estimate(self, eye_region: np.ndarray) -> Direction:
        """
        Classify gaze direction for one eye crop.

        Args:
            eye_region: Grayscale uint8 eye crop

        Returns:
            Direction.LEFT, Direction.RIGHT or Direction.CENTER
        """
        sample = self.measure(eye_region)
        if sample is None:
            return Direction.CENTER
        return self.classify_ratio(sample.ratio)
