"""
Shared fixtures: synthetic eye crops, scripted detector, in-memory transport.
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gaze_link.coordinator.clock import TickClock
from gaze_link.link.transport import (
    Characteristic,
    CharacteristicNotFoundError,
    ConnectError,
    Device,
    DeviceNotFoundError,
    Transport,
    TransportError,
)
from gaze_link.vision.detector import DetectorAdapter

BACKGROUND = 200
PUPIL = 20


def make_eye(width=60, height=40, center_x=None, blob_w=8, blob_h=20):
    """Bright eye crop with a dark rectangular pupil centred at center_x."""
    eye = np.full((height, width), BACKGROUND, dtype=np.uint8)
    if center_x is None:
        return eye
    x0 = int(round(center_x - blob_w / 2))
    y0 = (height - blob_h) // 2
    eye[y0:y0 + blob_h, x0:x0 + blob_w] = PUPIL
    return eye


class ScriptedDetector(DetectorAdapter):
    """Returns fixed rectangles and records how it was called."""

    def __init__(self, faces=(), eyes=()):
        self.faces = list(faces)
        self.eyes = list(eyes)
        self.face_calls = 0
        self.eye_calls = 0
        self.eye_region_shapes = []

    def detect_faces(self, gray):
        self.face_calls += 1
        return list(self.faces)

    def detect_eyes(self, gray_region):
        self.eye_calls += 1
        self.eye_region_shapes.append(gray_region.shape)
        return list(self.eyes)


class RecordingCharacteristic(Characteristic):

    def __init__(self):
        self.written = []
        self.fail = False

    def write(self, payload):
        if self.fail:
            raise TransportError("characteristic gone stale")
        self.written.append(payload)


class FakeTransport(Transport):
    """
    In-memory transport.

    fail_at: None, 'request', 'connect' or 'characteristic'
    """

    def __init__(self, fail_at=None):
        self.fail_at = fail_at
        self.characteristic = RecordingCharacteristic()
        self.on_disconnect = None
        self.opened = []
        self.closed = []

    def request_device(self, service_id):
        if self.fail_at == 'request':
            raise DeviceNotFoundError("No device selected")
        return Device(address='AA:BB', name='HMSoft')

    def connect(self, device, on_disconnect):
        if self.fail_at == 'connect':
            raise ConnectError("GATT connect failed")
        self.on_disconnect = on_disconnect
        session = object()
        self.opened.append(session)
        return session

    def get_characteristic(self, session, service_id, characteristic_id):
        if self.fail_at == 'characteristic':
            raise CharacteristicNotFoundError(f"Characteristic {characteristic_id:#06x} not found")
        return self.characteristic

    def close(self, session):
        self.closed.append(session)

    def drop(self):
        """Simulate an unsolicited disconnect from the device side."""
        self.on_disconnect()


class ManualClock(TickClock):
    """TickClock driven by the test."""

    def __init__(self, start=0.0):
        super().__init__()
        self.t = start

    def _read(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return ManualClock()
