"""
Link Session
Connection lifecycle state machine for the single outbound characteristic

States:
    DISCONNECTED --connect()-----------------------------> REQUESTING
    REQUESTING   --device chosen-------------------------> CONNECTING
    CONNECTING   --service + characteristic resolved-----> CONNECTED
    REQUESTING / CONNECTING --any failure----------------> DISCONNECTED
    CONNECTED    --disconnect() or transport drop--------> DISCONNECTED

Sends outside CONNECTED are silent no-ops. Every transition into
DISCONNECTED drops the characteristic handle.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, List, Optional

from .config import LinkConfig
from .transport import Characteristic, Device, Transport, TransportError

logger = logging.getLogger(__name__)


class LinkState(Enum):
    DISCONNECTED = 'disconnected'
    REQUESTING = 'requesting'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


class LinkSession:
    """
    Owns the transport session and characteristic handle.

    State and handle swaps happen under one lock so a transport disconnect
    arriving on another thread can never race a send.
    """

    def __init__(self, transport: Transport, config: Optional[LinkConfig] = None):
        """
        Args:
            transport: Transport backend (SerialTransport in production)
            config:    LinkConfig with service/characteristic identifiers
        """
        self.transport = transport
        self.config = config or LinkConfig()

        self._lock = threading.RLock()
        self._state = LinkState.DISCONNECTED
        self._device: Optional[Device] = None
        self._session: Any = None
        self._characteristic: Optional[Characteristic] = None

        # Bumped on every new connection or local close so that
        # late callbacks from an old transport session are ignored
        self._generation = 0
        self._dropped_while_connecting = False

        self._listeners: List[Callable[[], None]] = []
        self._connect_thread: Optional[threading.Thread] = None

        self.status = 'Disconnected'
        self.sent_count = 0
        self.failed_writes = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> LinkState:
        with self._lock:
            return self._state

    @property
    def is_connected(self) -> bool:
        return self.state is LinkState.CONNECTED

    @property
    def characteristic(self) -> Optional[Characteristic]:
        with self._lock:
            return self._characteristic

    def add_disconnect_listener(self, listener: Callable[[], None]):
        """Register a callback run whenever a CONNECTED link goes DISCONNECTED."""
        self._listeners.append(listener)

    def connect(self) -> bool:
        """
        Run the full connect sequence on the calling thread.

        Failures at any step return the session to DISCONNECTED with an
        "Error: ..." status. No retry is attempted.

        Returns:
            True if the link ended up CONNECTED.
        """
        with self._lock:
            if self._state is not LinkState.DISCONNECTED:
                logger.warning(f"Connect ignored, link is {self._state.value}")
                return False
            self._generation += 1
            generation = self._generation
            self._dropped_while_connecting = False
            self._set_state(LinkState.REQUESTING, 'Requesting device...')

        session = None
        try:
            device = self.transport.request_device(self.config.service_id)

            with self._lock:
                self._device = device
                self._set_state(LinkState.CONNECTING, 'Connecting...')

            session = self.transport.connect(
                device, on_disconnect=lambda: self._on_transport_disconnect(generation)
            )

            with self._lock:
                self.status = 'Getting characteristic...'
            characteristic = self.transport.get_characteristic(
                session, self.config.service_id, self.config.characteristic_id
            )

            with self._lock:
                if self._dropped_while_connecting:
                    raise TransportError("Device disconnected during setup")
                self._session = session
                self._characteristic = characteristic
                self._set_state(LinkState.CONNECTED, f"Connected: {device.name}")

            logger.info(f"✓ Link connected to {device.name} ({device.address})")
            return True

        except Exception as e:
            if isinstance(e, TransportError):
                logger.error(f"✗ Link connect failed: {e}")
            else:
                logger.error(f"✗ Link connect failed: {e}", exc_info=True)

            if session is not None:
                self._close_quietly(session)

            with self._lock:
                self._enter_disconnected(f"Error: {e}")
            return False

    def connect_async(self) -> Optional[threading.Thread]:
        """
        Start connect() on a background thread so the frame loop keeps ticking.

        Returns:
            The started thread, or None if a connect is already running or
            the link is not DISCONNECTED.
        """
        if self.state is not LinkState.DISCONNECTED:
            logger.warning(f"Connect ignored, link is {self.state.value}")
            return None
        if self._connect_thread and self._connect_thread.is_alive():
            logger.warning("Connect already in progress")
            return None

        self._connect_thread = threading.Thread(
            target=self.connect,
            name="Link-Connect-Thread",
            daemon=True,
        )
        self._connect_thread.start()
        return self._connect_thread

    def disconnect(self) -> bool:
        """
        Close the link on user request.

        Returns:
            True if a CONNECTED link was closed.
        """
        with self._lock:
            if self._state is not LinkState.CONNECTED:
                logger.warning(f"Disconnect ignored, link is {self._state.value}")
                return False
            session = self._session
            self._generation += 1
            self._enter_disconnected('Disconnected')

        self._close_quietly(session)
        logger.info("✓ Link disconnected by user")
        self._notify_disconnect()
        return True

    def toggle(self):
        """Connect when idle, disconnect when connected, otherwise ignore."""
        state = self.state
        if state is LinkState.DISCONNECTED:
            self.connect_async()
        elif state is LinkState.CONNECTED:
            self.disconnect()
        else:
            logger.info(f"Toggle ignored while {state.value}")

    def send(self, payload: bytes) -> bool:
        """
        Write bytes to the characteristic if connected.

        Write failures are logged and do not change the link state.

        Returns:
            True if the write succeeded.
        """
        with self._lock:
            if self._state is not LinkState.CONNECTED or self._characteristic is None:
                logger.debug(f"Send of {payload!r} skipped, link is {self._state.value}")
                return False

            try:
                self._characteristic.write(payload)
            except TransportError as e:
                self.failed_writes += 1
                logger.error(f"Failed to send {payload!r}: {e}")
                return False

            self.sent_count += 1

        logger.info(f"Sent: {payload.decode('ascii', errors='replace')}")
        return True

    def close(self):
        """Release any open connection (used on shutdown)."""
        if self._connect_thread and self._connect_thread.is_alive():
            self._connect_thread.join(timeout=5)
        if self.is_connected:
            self.disconnect()

    def get_status(self) -> dict:
        with self._lock:
            return {
                'state': self._state.value,
                'status': self.status,
                'device': self._device.name if self._device else None,
                'sent_count': self.sent_count,
                'failed_writes': self.failed_writes,
            }

    # ------------------------------------------------------------------
    # Private
    # ------------------------------------------------------------------

    def _set_state(self, state: LinkState, status: str):
        logger.debug(f"Link {self._state.value} -> {state.value}")
        self._state = state
        self.status = status

    def _enter_disconnected(self, status: str):
        self._session = None
        self._characteristic = None
        self._device = None
        self._set_state(LinkState.DISCONNECTED, status)

    def _on_transport_disconnect(self, generation: int):
        with self._lock:
            if generation != self._generation:
                return
            if self._state in (LinkState.REQUESTING, LinkState.CONNECTING):
                self._dropped_while_connecting = True
                return
            if self._state is not LinkState.CONNECTED:
                return
            session = self._session
            self._generation += 1
            self._enter_disconnected('Disconnected')

        logger.warning("Link dropped by transport")
        self._close_quietly(session)
        self._notify_disconnect()

    def _notify_disconnect(self):
        for listener in self._listeners:
            try:
                listener()
            except Exception as e:
                logger.error(f"Disconnect listener failed: {e}", exc_info=True)

    def _close_quietly(self, session: Any):
        try:
            self.transport.close(session)
        except Exception as e:
            logger.warning(f"Error closing transport session: {e}")

    def __repr__(self):
        return f"<LinkSession(state={self._state.value}, sent={self.sent_count})>"
