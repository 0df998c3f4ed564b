"""
Vision Module for gaze_link
Per-frame face/eye localisation, blink test and gaze direction

Architecture:
- DetectorAdapter:     Face/eye detection capability (HaarCascadeDetector by default)
- FrameClassifier:     Frame + detector output -> Direction + DebugGeometry
- GazeEstimator:       Eye crop -> LEFT / CENTER / RIGHT
- VisionConfig:        Thresholds and detector parameters
- overlay:             Drawing helpers for the preview window

Usage:
    config = VisionConfig.for_mirrored_preview()
    detector = HaarCascadeDetector(config)
    classifier = FrameClassifier(config)
    direction, geometry = classifier.classify(gray, detector.detect_faces(gray), detector)
"""

from .config import VisionConfig
from .types import Rect, Direction, GazeSample, DebugGeometry
from .detector import DetectorAdapter, HaarCascadeDetector, DetectorUnavailableError
from .gaze import GazeEstimator
from .classifier import FrameClassifier
from .overlay import draw_debug_geometry, draw_status, render_preview

__all__ = [
    'VisionConfig',
    'Rect',
    'Direction',
    'GazeSample',
    'DebugGeometry',
    'DetectorAdapter',
    'HaarCascadeDetector',
    'DetectorUnavailableError',
    'GazeEstimator',
    'FrameClassifier',
    'draw_debug_geometry',
    'draw_status',
    'render_preview',
]
