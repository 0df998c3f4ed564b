"""
gaze_link Dispatch Coordinator
Decides when classified directions are transmitted, against a shared tick clock
"""

from .clock import TickClock
from .dispatcher import DispatchDebouncer, DebounceState, SettleTimer

__all__ = [
    'TickClock',
    'DispatchDebouncer',
    'DebounceState',
    'SettleTimer',
]
