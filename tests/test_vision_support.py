"""
Rect / Direction types, Haar detector loading, overlay drawing and the tick clock.
"""

import cv2
import numpy as np
import pytest

from gaze_link.coordinator.clock import TickClock
from gaze_link.vision.config import VisionConfig
from gaze_link.vision.detector import DetectorUnavailableError, HaarCascadeDetector
from gaze_link.vision.overlay import EYE_COLOR, FACE_COLOR, draw_debug_geometry, render_preview
from gaze_link.vision.types import DebugGeometry, Direction, GazeSample, Rect

from conftest import ManualClock


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@pytest.mark.parametrize('w, h', [(0, 10), (10, 0), (-5, 5)])
def test_rect_requires_positive_size(w, h):
    with pytest.raises(ValueError):
        Rect(0, 0, w, h)


def test_rect_from_numpy_row():
    rect = Rect.from_sequence(np.array([3, 4, 30, 20], dtype=np.int32))
    assert rect == Rect(3, 4, 30, 20)
    assert isinstance(rect.x, int)
    assert rect.aspect_ratio == pytest.approx(20 / 30)


def test_rect_offset_and_corners():
    rect = Rect(5, 5, 10, 20).offset(100, 50)
    assert rect.corners() == ((105, 55), (115, 75))


@pytest.mark.parametrize('direction', [Direction.LEFT, Direction.RIGHT, Direction.CENTER, Direction.BLINK])
def test_payload_is_ascii_label(direction):
    payload = direction.to_payload()
    assert payload == direction.value.encode('ascii')
    assert Direction.from_payload(payload) is direction


@pytest.mark.parametrize('direction', [Direction.NO_FACE, Direction.EYES_NOT_RESOLVED])
def test_non_dispatchable_labels_never_encode(direction):
    assert not direction.is_dispatchable
    with pytest.raises(ValueError):
        direction.to_payload()


def test_no_face_payload_rejected():
    with pytest.raises(ValueError):
        Direction.from_payload(b'NO FACE')


def test_gaze_sample_ratio_clamped():
    assert GazeSample(centroid_x=15.0, eye_width=30).ratio == 0.5
    assert GazeSample(centroid_x=31.0, eye_width=30).ratio == 1.0


# ---------------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------------

def test_bundled_cascades_load():
    detector = HaarCascadeDetector(VisionConfig())
    blank = np.zeros((120, 160), dtype=np.uint8)
    assert detector.detect_faces(blank) == []
    assert detector.detect_eyes(blank) == []


def test_missing_eye_cascade_raises(tmp_path):
    config = VisionConfig(eye_cascade_path=str(tmp_path / 'eye.xml'))
    with pytest.raises(DetectorUnavailableError):
        HaarCascadeDetector(config)


def test_corrupt_cascade_raises(tmp_path):
    bogus = tmp_path / 'face.xml'
    bogus.write_text('<opencv_storage></opencv_storage>')
    with pytest.raises(DetectorUnavailableError):
        HaarCascadeDetector(VisionConfig(face_cascade_path=str(bogus)))


def test_cascade_parser_system_error_is_wrapped(tmp_path, monkeypatch):
    cascade = tmp_path / 'face.xml'
    cascade.write_text('<opencv_storage>')

    def broken(path):
        raise SystemError('CascadeClassifier returned a result with an exception set')

    monkeypatch.setattr(cv2, 'CascadeClassifier', broken)
    with pytest.raises(DetectorUnavailableError) as info:
        HaarCascadeDetector(VisionConfig(face_cascade_path=str(cascade)))
    assert isinstance(info.value.__cause__, SystemError)


# ---------------------------------------------------------------------------
# Overlay
# ---------------------------------------------------------------------------

GEOMETRY = DebugGeometry(
    face=Rect(20, 100, 100, 80),
    eyes=(Rect(40, 120, 20, 10), Rect(80, 120, 20, 10)),
    centroid=(50, 125),
)


def test_draw_debug_geometry_colours():
    frame = np.zeros((240, 320, 3), dtype=np.uint8)
    draw_debug_geometry(frame, GEOMETRY)
    assert tuple(frame[100, 20]) == FACE_COLOR
    assert tuple(frame[120, 40]) == EYE_COLOR


def test_empty_geometry_draws_nothing():
    frame = np.zeros((240, 320, 3), dtype=np.uint8)
    draw_debug_geometry(frame, DebugGeometry())
    assert not frame.any()


def test_render_preview_mirrors_geometry_not_input():
    frame = np.zeros((240, 320, 3), dtype=np.uint8)
    preview = render_preview(frame, GEOMETRY, 'LEFT', 'Disconnected', mirror=True)

    assert not frame.any()
    assert preview.shape == frame.shape
    assert tuple(preview[100, 320 - 1 - 20]) == FACE_COLOR


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

def test_clock_tracks_tick_rate():
    clock = ManualClock(start=5.0)
    assert clock.tick() == 5.0
    assert clock.fps is None

    clock.advance(0.05)
    clock.tick()
    assert clock.fps == pytest.approx(20.0)

    clock.advance(0.1)
    clock.tick()
    # moving average: 0.05 + 0.1 * (0.1 - 0.05)
    assert clock.fps == pytest.approx(1 / 0.055)
    assert clock.get_stats()['ticks'] == 3
    assert clock.get_stats()['last_interval'] == pytest.approx(0.1)


def test_clock_now_does_not_count_ticks():
    clock = ManualClock(start=1.0)
    assert clock.now() == 1.0
    assert clock.get_stats()['ticks'] == 0


def test_clock_reset():
    clock = ManualClock()
    clock.tick()
    clock.advance(0.1)
    clock.tick()
    clock.reset()
    assert clock.get_stats() == {'ticks': 0, 'last_interval': None, 'fps': None}


def test_clock_rejects_bad_smoothing():
    with pytest.raises(ValueError):
        TickClock(smoothing=0.0)
