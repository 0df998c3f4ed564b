"""
Tick Clock
Monotonic time source for frame ticks and settle-delay deadlines
"""

import threading
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)


class TickClock:
    """
    Frame-loop clock

    Stamps every tick with time.monotonic() seconds and keeps a smoothed
    frame rate, so the settle delay can be judged against how often the
    classifier actually runs.
    """

    def __init__(self, smoothing: float = 0.1):
        """
        Args:
            smoothing: Weight of the newest interval in the moving average (0, 1]
        """
        if not 0.0 < smoothing <= 1.0:
            raise ValueError("smoothing must be in (0, 1]")

        self.smoothing = smoothing
        self._lock = threading.Lock()
        self._last_tick: Optional[float] = None
        self._last_interval: Optional[float] = None
        self._avg_interval: Optional[float] = None
        self._tick_count = 0

        logger.info("Tick clock initialized")

    def now(self) -> float:
        """Current monotonic time in seconds."""
        return self._read()

    def tick(self) -> float:
        """
        Mark the start of a frame tick.

        Returns:
            float: Timestamp of this tick in seconds
        """
        current = self._read()
        with self._lock:
            if self._last_tick is not None:
                interval = current - self._last_tick
                self._last_interval = interval
                if self._avg_interval is None:
                    self._avg_interval = interval
                else:
                    self._avg_interval += self.smoothing * (interval - self._avg_interval)
            self._last_tick = current
            self._tick_count += 1
        return current

    @property
    def fps(self) -> Optional[float]:
        """Smoothed ticks per second, None until two ticks have been seen."""
        with self._lock:
            if not self._avg_interval:
                return None
            return 1.0 / self._avg_interval

    def _read(self) -> float:
        return time.monotonic()

    def reset(self):
        """Forget tick history"""
        with self._lock:
            self._last_tick = None
            self._last_interval = None
            self._avg_interval = None
            self._tick_count = 0
        logger.info("Tick clock reset")

    def get_stats(self) -> dict:
        """
        Get clock statistics

        Returns:
            dict: Tick count, last interval and smoothed frame rate
        """
        fps = self.fps
        with self._lock:
            return {
                'ticks': self._tick_count,
                'last_interval': self._last_interval,
                'fps': round(fps, 1) if fps is not None else None,
            }

    def __repr__(self):
        return f"<TickClock(ticks={self._tick_count})>"
