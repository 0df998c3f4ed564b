"""
gaze_link
Webcam gaze direction -> debounced commands over a BLE UART link

Components:
- vision:      Face/eye detection, blink test, gaze direction
- coordinator: Tick clock and dispatch debouncer
- link:        Connection state machine and transport backends
- pipeline:    GazePipeline wiring all of the above into one tick

All directions are one of LEFT, RIGHT, CENTER, BLINK (transmitted) or
NO FACE / NO EYES (never transmitted).
"""

from .vision import (
    VisionConfig,
    Rect,
    Direction,
    DebugGeometry,
    DetectorAdapter,
    HaarCascadeDetector,
    DetectorUnavailableError,
    FrameClassifier,
    GazeEstimator,
)
from .coordinator import TickClock, DispatchDebouncer, DebounceState
from .link import LinkConfig, LinkSession, LinkState, SerialTransport, TransportError
from .pipeline import GazePipeline, TickResult

__all__ = [
    # Vision
    'VisionConfig',
    'Rect',
    'Direction',
    'DebugGeometry',
    'DetectorAdapter',
    'HaarCascadeDetector',
    'DetectorUnavailableError',
    'FrameClassifier',
    'GazeEstimator',

    # Dispatch
    'TickClock',
    'DispatchDebouncer',
    'DebounceState',

    # Link
    'LinkConfig',
    'LinkSession',
    'LinkState',
    'SerialTransport',
    'TransportError',

    # Pipeline
    'GazePipeline',
    'TickResult',
]

__version__ = '1.0.0'
