"""
Dispatch Debouncer
Decides which per-frame directions are worth transmitting, and when.

Rules:
- NO_FACE / EYES_NOT_RESOLVED carry no information: they never send, never
  clear last_sent and never disturb a pending candidate.
- Only a direction different from last_sent becomes a candidate.
- A candidate is sent once it has stayed the latest observation for the
  whole settle delay. A different observation re-arms the timer for the new
  candidate; an observation equal to last_sent drops the candidate.
- last_sent changes only when a send commits. A commit the link fails to
  deliver is rolled back so the same direction is tried again.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ..vision.types import Direction

logger = logging.getLogger(__name__)


class SettleTimer:
    """
    Fire-once deadline, evaluated at tick boundaries.

    Re-arming supersedes the previous deadline; nothing blocks while armed.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self.deadline: Optional[float] = None

    @property
    def armed(self) -> bool:
        return self.deadline is not None

    def arm(self, now: float):
        self.deadline = now + self.delay

    def cancel(self):
        self.deadline = None

    def due(self, now: float) -> bool:
        return self.deadline is not None and now >= self.deadline


@dataclass
class DebounceState:
    """Mutable dispatcher state, reset on every link disconnect."""

    last_sent: Optional[Direction] = None
    candidate: Optional[Direction] = None
    pending_since: Optional[float] = None

    def clear(self):
        self.last_sent = None
        self.candidate = None
        self.pending_since = None


class DispatchDebouncer:
    """
    Change-detection and settle-delay filter in front of the link.

    Feed it one direction per tick with on_direction(); it returns the
    payload to send on the tick a candidate commits, otherwise None.
    """

    def __init__(self, settle_delay_ms: float = 100):
        """
        Args:
            settle_delay_ms: Time a candidate must remain the latest
                             observation before it is sent
        """
        if settle_delay_ms < 0:
            raise ValueError("settle_delay_ms must be >= 0")

        self.settle_delay_ms = settle_delay_ms
        self.state = DebounceState()
        self.timer = SettleTimer(settle_delay_ms / 1000.0)
        self.sent_count = 0
        self._lock = threading.RLock()
        # (previous last_sent, committed direction) awaiting delivery
        self._unconfirmed: Optional[tuple] = None

    def on_direction(self, direction: Direction, now: float) -> Optional[bytes]:
        """
        Record one tick's direction.

        Args:
            direction: Classifier output for this tick
            now:       Monotonic timestamp in seconds

        Returns:
            Payload bytes to transmit, or None
        """
        with self._lock:
            # A deadline that elapsed before this observation fires first
            payload = self.poll(now)

            if direction.is_dispatchable:
                self._observe(direction, now)

            if payload is None:
                payload = self.poll(now)
            return payload

    def poll(self, now: float) -> Optional[bytes]:
        """
        Commit the pending candidate if its settle delay has elapsed.

        Returns:
            Payload bytes to transmit, or None
        """
        with self._lock:
            if not self.timer.due(now):
                return None

            candidate = self.state.candidate
            self.timer.cancel()
            self.state.candidate = None
            self.state.pending_since = None

            if candidate is None or candidate == self.state.last_sent:
                return None

            self._unconfirmed = (self.state.last_sent, candidate)
            self.state.last_sent = candidate
            self.sent_count += 1

        logger.debug(f"Committed {candidate} after settle delay")
        return candidate.to_payload()

    def reset(self):
        """Drop all state so the next connection starts clean."""
        with self._lock:
            self.timer.cancel()
            self.state.clear()
            self._unconfirmed = None
        logger.info("Dispatch state reset")

    def rollback(self, direction: Direction) -> bool:
        """
        Undo the last commit after the link failed to deliver it.

        last_sent returns to its previous value, so the next observation of
        the same direction becomes a fresh candidate and is sent once it
        settles again.

        Returns:
            True if the commit of direction was undone.
        """
        with self._lock:
            if self._unconfirmed is None:
                return False
            previous, committed = self._unconfirmed
            if committed != direction or self.state.last_sent != committed:
                return False

            self._unconfirmed = None
            self.state.last_sent = previous
            self.sent_count -= 1

        logger.warning(f"Rolled back {direction}, last sent is {previous}")
        return True

    @property
    def last_sent(self) -> Optional[Direction]:
        return self.state.last_sent

    @property
    def pending(self) -> Optional[Direction]:
        return self.state.candidate

    def _observe(self, direction: Direction, now: float):
        if direction == self.state.last_sent:
            if self.state.candidate is not None:
                logger.debug(f"Candidate {self.state.candidate} superseded by {direction}")
            self.timer.cancel()
            self.state.candidate = None
            self.state.pending_since = None
            return

        if direction == self.state.candidate:
            return

        self.state.candidate = direction
        self.state.pending_since = now
        self.timer.arm(now)

    def get_status(self) -> dict:
        return {
            'last_sent': self.state.last_sent.value if self.state.last_sent else None,
            'pending': self.state.candidate.value if self.state.candidate else None,
            'sent_count': self.sent_count,
        }

    def __repr__(self):
        return f"<DispatchDebouncer(last_sent={self.state.last_sent}, pending={self.state.candidate})>"
