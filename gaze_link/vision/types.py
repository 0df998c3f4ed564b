"""
Vision Types
Rectangles, direction labels and debug geometry shared by the classifier,
the dispatcher and the link
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in pixel coordinates, origin top-left."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Rect must have positive size, got {self.width}x{self.height}")

    @classmethod
    def from_sequence(cls, values: Sequence) -> 'Rect':
        """
        Build a Rect from an (x, y, w, h) sequence such as a row returned
        by cv2.CascadeClassifier.detectMultiScale().

        Args:
            values: Four numbers (x, y, width, height)

        Returns:
            Rect with integer fields
        """
        x, y, w, h = values
        return cls(int(x), int(y), int(w), int(h))

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def aspect_ratio(self) -> float:
        """Height over width. Small values mean a flattened (closed) eye."""
        return self.height / self.width

    def offset(self, dx: int, dy: int) -> 'Rect':
        """Translate by (dx, dy), e.g. from face-region to frame coordinates."""
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def corners(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """Top-left and bottom-right points, as cv2.rectangle expects."""
        return (self.x, self.y), (self.x + self.width, self.y + self.height)


class Direction(Enum):
    """Discrete output of one classification tick. Value is the wire label."""

    NO_FACE = 'NO FACE'
    EYES_NOT_RESOLVED = 'NO EYES'
    BLINK = 'BLINK'
    LEFT = 'LEFT'
    RIGHT = 'RIGHT'
    CENTER = 'CENTER'

    @property
    def is_dispatchable(self) -> bool:
        """Only these labels are ever transmitted to the receiver."""
        return self in _DISPATCHABLE

    def to_payload(self) -> bytes:
        """
        Encode the direction for the outbound characteristic.

        Raises:
            ValueError: for labels that are never transmitted

        Returns:
            ASCII bytes of the label, e.g. b'LEFT'
        """
        if not self.is_dispatchable:
            raise ValueError(f"{self.value!r} is never transmitted")
        return self.value.encode('ascii')

    @classmethod
    def from_payload(cls, payload: bytes) -> 'Direction':
        """Decode bytes written by to_payload()."""
        direction = cls(payload.decode('ascii'))
        if not direction.is_dispatchable:
            raise ValueError(f"{payload!r} is not a transmittable direction")
        return direction

    def __str__(self):
        return self.value


_DISPATCHABLE = frozenset({Direction.BLINK, Direction.LEFT, Direction.RIGHT, Direction.CENTER})


@dataclass(frozen=True)
class GazeSample:
    """Pupil centroid measured inside one eye crop."""

    centroid_x: float
    eye_width: int

    @property
    def ratio(self) -> float:
        """Normalised horizontal pupil position in [0, 1]."""
        return min(max(self.centroid_x / self.eye_width, 0.0), 1.0)


@dataclass(frozen=True)
class DebugGeometry:
    """Overlay primitives for one tick, in frame coordinates."""

    face: Optional[Rect] = None
    eyes: Tuple[Rect, ...] = ()
    centroid: Optional[Tuple[int, int]] = None
