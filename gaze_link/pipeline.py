"""
gaze_link - Gaze Pipeline
==========================
Central module that owns one tick of the frame loop end to end.

Usage in run.py:
    pipeline = GazePipeline(vision_config, link_config)
    pipeline.start()                 # loads the detector, fatal if unavailable
    pipeline.toggle_connection()     # connect in the background
    while capturing:
        result = pipeline.process_frame(frame)
    pipeline.stop()

Per tick:
    frame -> grayscale -> detect_faces -> FrameClassifier -> Direction
          -> DispatchDebouncer (only while the link is connected)
          -> LinkSession.send(payload)

Failure policy:
    Detector initialisation failure propagates out of start(); nothing ticks.
    Any exception inside a tick is logged and the tick degrades to NO_FACE
    with no dispatch. Link failures never reach the frame loop.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from gaze_link.coordinator.clock import TickClock
from gaze_link.coordinator.dispatcher import DispatchDebouncer
from gaze_link.link.config import LinkConfig
from gaze_link.link.session import LinkSession
from gaze_link.link.transport import SerialTransport, Transport
from gaze_link.vision.classifier import FrameClassifier
from gaze_link.vision.config import VisionConfig
from gaze_link.vision.detector import DetectorAdapter, HaarCascadeDetector
from gaze_link.vision.types import DebugGeometry, Direction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickResult:
    """Outcome of one processed frame."""
    direction: Direction
    geometry: DebugGeometry
    sent: Optional[bytes] = None
    error: Optional[str] = None


class GazePipeline:
    """
    Owns the classifier, dispatcher and link for a single capture session.

    Responsibilities:
      - Load the detector backend on start()
      - Classify each frame and keep the eye status string current
      - Feed directions to the debouncer while the link is connected
      - Reset dispatch state on every link connect or disconnect
      - Report component state via get_status()
    """

    def __init__(
        self,
        vision_config: Optional[VisionConfig] = None,
        link_config: Optional[LinkConfig] = None,
        transport: Optional[Transport] = None,
        detector: Optional[DetectorAdapter] = None,
        clock: Optional[TickClock] = None,
    ):
        """
        Args:
            vision_config : Classifier thresholds and detector parameters
            link_config   : Link identifiers, settle delay, serial settings
            transport     : Transport backend, defaults to SerialTransport
            detector      : Detector backend, defaults to HaarCascadeDetector
                            (created in start())
            clock         : Stamps each tick and tracks the frame rate
        """
        self.vision_config = vision_config or VisionConfig()
        self.link_config = link_config or LinkConfig()
        self.clock = clock or TickClock()

        self.detector = detector
        self.classifier = FrameClassifier(self.vision_config)
        self.debouncer = DispatchDebouncer(self.link_config.settle_delay_ms)
        self.link = LinkSession(transport or SerialTransport(self.link_config), self.link_config)
        self.link.add_disconnect_listener(self.debouncer.reset)

        self.is_running = False
        self.eye_status = 'Idle'
        self.tick_count = 0
        self.error_count = 0
        self._frame_shape: Optional[Tuple[int, ...]] = None
        self._was_connected = False

        logger.info("GazePipeline created")

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def start(self):
        """
        Load the detector backend and allow ticking.

        Raises:
            DetectorUnavailableError if the detector cannot be initialised.
        """
        if self.is_running:
            logger.warning("Pipeline already running")
            return

        self.eye_status = 'Loading cascade files...'
        if self.detector is None:
            try:
                self.detector = HaarCascadeDetector(self.vision_config)
            except Exception as e:
                self.eye_status = 'Error: Failed to load classifiers'
                logger.error(f"✗ Detector unavailable: {e}")
                raise

        self._frame_shape = None
        self.tick_count = 0
        self.clock.reset()
        self.error_count = 0
        self.is_running = True
        self.eye_status = 'Processing...'
        logger.info(f"✓ Pipeline started (detector={self.detector!r})")

    def stop(self):
        """Close the link and stop accepting frames."""
        logger.info("Stopping gaze pipeline...")
        self.link.close()
        self.is_running = False
        fps = self.clock.fps
        rate = f" ({fps:.1f} fps)" if fps else ""
        logger.info(f"✓ Gaze pipeline stopped after {self.tick_count} ticks{rate}")

    def process_frame(self, frame: np.ndarray) -> TickResult:
        """
        Run one tick: classify the frame and dispatch if a change has settled.

        Args:
            frame: BGR, BGRA or grayscale uint8 image

        Raises:
            RuntimeError if called before start().

        Returns:
            TickResult with the direction, overlay geometry and any sent payload.
        """
        if not self.is_running:
            raise RuntimeError("Call start() before process_frame()")

        now = self.clock.tick()
        self.tick_count += 1
        error = None

        try:
            gray = self._to_gray(frame)
            faces = self.detector.detect_faces(gray)
            direction, geometry = self.classifier.classify(gray, faces, self.detector)
            self.eye_status = direction.value
        except Exception as e:
            self.error_count += 1
            error = str(e)
            logger.error(f"Processing error: {e}", exc_info=True)
            direction, geometry = Direction.NO_FACE, DebugGeometry()
            self.eye_status = f"Error: {e}"

        sent = self._dispatch(direction, now)
        return TickResult(direction=direction, geometry=geometry, sent=sent, error=error)

    def connect(self) -> bool:
        """Connect on the calling thread (blocking)."""
        return self.link.connect()

    def disconnect(self) -> bool:
        return self.link.disconnect()

    def toggle_connection(self):
        """Connect in the background when idle, disconnect when connected."""
        self.link.toggle()

    @property
    def link_status(self) -> str:
        return self.link.status

    def get_status(self) -> dict:
        """
        Return a summary of pipeline state for logging / UI display.
        """
        return {
            'is_running' : self.is_running,
            'eye_status' : self.eye_status,
            'link_status': self.link.status,
            'ticks'      : self.tick_count,
            'errors'     : self.error_count,
            'dispatch'   : self.debouncer.get_status(),
            'link'       : self.link.get_status(),
            'clock'      : self.clock.get_stats(),
        }

    # -----------------------------------------------------------------------
    # Private
    # -----------------------------------------------------------------------

    def _to_gray(self, frame: np.ndarray) -> np.ndarray:
        if frame is None or frame.size == 0:
            raise ValueError("Empty frame")

        if self._frame_shape is None:
            self._frame_shape = frame.shape
            logger.info(f"Frame size fixed at {frame.shape[1]}x{frame.shape[0]}")
        elif frame.shape != self._frame_shape:
            raise ValueError(f"Frame shape changed from {self._frame_shape} to {frame.shape}")

        if frame.ndim == 2:
            return frame
        if frame.shape[2] == 4:
            return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

    def _dispatch(self, direction: Direction, now: float) -> Optional[bytes]:
        connected = self.link.is_connected

        # Fresh dispatch state for every new connection
        if connected and not self._was_connected:
            self.debouncer.reset()
        self._was_connected = connected

        if not connected:
            return None

        payload = self.debouncer.on_direction(direction, now)
        if payload is None:
            return None
        if self.link.send(payload):
            return payload

        self.debouncer.rollback(Direction.from_payload(payload))
        return None

    # -----------------------------------------------------------------------
    # Dunder helpers
    # -----------------------------------------------------------------------

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    def __repr__(self):
        return (
            f"<GazePipeline("
            f"running={self.is_running}, "
            f"link={self.link.state.value}, "
            f"ticks={self.tick_count})>"
        )
