"""
Detector Adapters
Face and eye localisation backends used by the frame classifier.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import List, Optional

import cv2
import numpy as np

from .config import VisionConfig
from .types import Rect

logger = logging.getLogger(__name__)


class DetectorUnavailableError(RuntimeError):
    """Raised when a detector backend cannot be initialised."""


class DetectorAdapter(ABC):
    """
    Face/eye detection capability.

    Both methods take a grayscale uint8 image and return candidate
    rectangles in that image's coordinates. No ordering is guaranteed and
    either may return an empty list.
    """

    @abstractmethod
    def detect_faces(self, gray: np.ndarray) -> List[Rect]:
        ...

    @abstractmethod
    def detect_eyes(self, gray_region: np.ndarray) -> List[Rect]:
        ...


class HaarCascadeDetector(DetectorAdapter):
    """OpenCV Haar cascade backend (frontal face + eye cascades)."""

    def __init__(self, config: Optional[VisionConfig] = None):
        """
        Load both cascades.

        Args:
            config: VisionConfig with cascade paths and detectMultiScale parameters

        Raises:
            DetectorUnavailableError: if a cascade file is missing or fails to load
        """
        self.config = config or VisionConfig()
        self.face_cascade = self._load(self.config.face_cascade_path)
        self.eye_cascade = self._load(self.config.eye_cascade_path)
        logger.info("✓ Haar cascades loaded")

    @staticmethod
    def _load(path: str) -> cv2.CascadeClassifier:
        if not os.path.isfile(path):
            logger.error(f"✗ Cascade file not found: {path}")
            raise DetectorUnavailableError(f"Cascade file not found: {path}")

        try:
            cascade = cv2.CascadeClassifier(path)
        except (cv2.error, SystemError) as e:
            logger.error(f"✗ Failed to parse cascade {path}: {e}")
            raise DetectorUnavailableError(f"Failed to load cascade: {path}") from e

        if cascade.empty():
            logger.error(f"✗ Failed to load cascade: {path}")
            raise DetectorUnavailableError(f"Failed to load cascade: {path}")

        logger.debug(f"Loaded cascade {os.path.basename(path)}")
        return cascade

    def detect_faces(self, gray: np.ndarray) -> List[Rect]:
        found = self.face_cascade.detectMultiScale(
            gray,
            scaleFactor=self.config.scale_factor,
            minNeighbors=self.config.min_neighbors,
            minSize=self.config.face_min_size,
        )
        return [Rect.from_sequence(r) for r in found]

    def detect_eyes(self, gray_region: np.ndarray) -> List[Rect]:
        found = self.eye_cascade.detectMultiScale(
            gray_region,
            scaleFactor=self.config.scale_factor,
            minNeighbors=self.config.min_neighbors,
            minSize=self.config.eye_min_size,
        )
        return [Rect.from_sequence(r) for r in found]

    def __repr__(self):
        return f"<HaarCascadeDetector(scale={self.config.scale_factor}, neighbors={self.config.min_neighbors})>"
