"""
Vision Configuration
Detector parameters, blink and gaze thresholds for the frame classifier
"""

import os
from dataclasses import dataclass
from typing import Tuple

import cv2


FACE_SELECTION_POLICIES = ('first', 'largest')


def _default_cascade(name: str) -> str:
    return os.path.join(cv2.data.haarcascades, name)


@dataclass
class VisionConfig:
    """Frame classifier configuration"""

    # Haar cascade files (bundled with opencv-python)
    face_cascade_path: str = _default_cascade('haarcascade_frontalface_default.xml')
    eye_cascade_path: str = _default_cascade('haarcascade_eye.xml')

    # detectMultiScale parameters
    scale_factor: float = 1.1
    min_neighbors: int = 4
    face_min_size: Tuple[int, int] = (30, 30)
    eye_min_size: Tuple[int, int] = (15, 15)

    # Face selection: 'first' keeps detector order, 'largest' ranks by area
    face_selection: str = 'first'

    # Blink detection (eye height / eye width)
    blink_ratio_threshold: float = 0.35

    # Pupil segmentation
    pupil_threshold: int = 60       # Inverted binary threshold, dark pupil -> foreground
    morph_kernel_size: int = 3      # Square structuring element for close/open
    min_pupil_mass: float = 100.0   # Minimum m00 of the binarised crop

    # Gaze ratio bands
    gaze_threshold_low: float = 0.35
    gaze_threshold_high: float = 0.65

    # Preview is shown horizontally flipped to the user
    mirror_view: bool = True

    def __post_init__(self):
        """Validate thresholds so the gaze bands never overlap."""
        if not 0.0 < self.gaze_threshold_low < 0.5 < self.gaze_threshold_high < 1.0:
            raise ValueError(
                f"Gaze thresholds must satisfy 0 < low < 0.5 < high < 1, "
                f"got low={self.gaze_threshold_low}, high={self.gaze_threshold_high}"
            )
        # Dead zone is centred on 0.5 so LEFT and RIGHT are equally reachable
        margin_low = 0.5 - self.gaze_threshold_low
        margin_high = self.gaze_threshold_high - 0.5
        if abs(margin_low - margin_high) > 1e-9:
            raise ValueError(
                f"Gaze thresholds must be symmetric around 0.5, "
                f"got low={self.gaze_threshold_low}, high={self.gaze_threshold_high}"
            )
        if self.face_selection not in FACE_SELECTION_POLICIES:
            raise ValueError(
                f"Unknown face selection policy '{self.face_selection}', "
                f"expected one of {FACE_SELECTION_POLICIES}"
            )
        if self.morph_kernel_size < 1:
            raise ValueError("morph_kernel_size must be >= 1")
        if not 0 <= self.pupil_threshold <= 255:
            raise ValueError("pupil_threshold must be in [0, 255]")

    @classmethod
    def for_mirrored_preview(cls) -> 'VisionConfig':
        """Configuration for a selfie-style preview (default deployment)"""
        return cls(mirror_view=True)

    @classmethod
    def for_raw_preview(cls) -> 'VisionConfig':
        """Configuration when the preview is shown unflipped"""
        return cls(mirror_view=False)
