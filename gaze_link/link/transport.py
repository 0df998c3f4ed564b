"""
Link Transport
Boundary to the wireless hardware, plus a pyserial backend for HM-10 style
BLE UART bridges (service 0xFFE0 / characteristic 0xFFE1).
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import serial
from serial.tools import list_ports

from .config import LinkConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TransportError(Exception):
    """Base class for transport failures."""


class DeviceNotFoundError(TransportError):
    """No device was chosen or discovered."""


class ConnectError(TransportError):
    """The chosen device could not be connected."""


class CharacteristicNotFoundError(TransportError):
    """Service or characteristic missing on the connected device."""


# ---------------------------------------------------------------------------
# Boundary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Device:
    """A device selected for connection."""
    address: str
    name: str


class Characteristic(ABC):
    """Writable outbound characteristic."""

    @abstractmethod
    def write(self, payload: bytes):
        """Write bytes; raises TransportError on failure."""


class Transport(ABC):
    """
    Wireless transport capability.

    connect() receives an on_disconnect callback, invoked at most once per
    connection when the link drops without a local close().
    """

    @abstractmethod
    def request_device(self, service_id: int) -> Device:
        ...

    @abstractmethod
    def connect(self, device: Device, on_disconnect: Callable[[], None]) -> Any:
        ...

    @abstractmethod
    def get_characteristic(self, session: Any, service_id: int, characteristic_id: int) -> Characteristic:
        ...

    @abstractmethod
    def close(self, session: Any):
        ...


# ---------------------------------------------------------------------------
# pyserial backend
# ---------------------------------------------------------------------------

HM10_SERVICE_ID = 0xFFE0
HM10_CHARACTERISTIC_ID = 0xFFE1


class SerialSession:
    """Open serial port plus the watcher thread that reports drops."""

    def __init__(self, port: serial.Serial, on_disconnect: Callable[[], None], watch_interval: float):
        self.port = port
        self.on_disconnect = on_disconnect
        self.watch_interval = watch_interval
        self.stop_event = threading.Event()
        self.watch_thread: Optional[threading.Thread] = None

    def start_watch(self):
        self.watch_thread = threading.Thread(
            target=self._watch_loop,
            name="Link-Watch-Thread",
            daemon=True,
        )
        self.watch_thread.start()

    def _watch_loop(self):
        while not self.stop_event.is_set():
            try:
                waiting = self.port.in_waiting
                if waiting:
                    data = self.port.read(waiting)
                    logger.debug(f"Receiver said: {data!r}")
            except (serial.SerialException, OSError) as e:
                if self.stop_event.is_set():
                    return
                logger.warning(f"Serial link dropped: {e}")
                self.stop_event.set()
                self.on_disconnect()
                return
            self.stop_event.wait(self.watch_interval)

    def close(self):
        self.stop_event.set()
        if self.watch_thread and self.watch_thread.is_alive() \
                and self.watch_thread is not threading.current_thread():
            self.watch_thread.join(timeout=2)
        try:
            self.port.close()
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Error closing serial port: {e}")


class SerialCharacteristic(Characteristic):
    """The HM-10 transparent UART characteristic, written through the port."""

    def __init__(self, session: SerialSession):
        self.session = session

    def write(self, payload: bytes):
        port = self.session.port
        if not port.is_open:
            raise TransportError("Serial port is closed")
        try:
            port.write(payload)
            port.flush()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write failed: {e}") from e


class SerialTransport(Transport):
    """
    BLE link through an HM-10 style serial bridge.

    The bridge exposes exactly one service/characteristic pair; bytes
    written to the serial port are forwarded to the characteristic.
    """

    def __init__(self, config: Optional[LinkConfig] = None):
        self.config = config or LinkConfig()

    def request_device(self, service_id: int) -> Device:
        """
        Pick the serial bridge to use.

        Args:
            service_id: Service the device must expose

        Raises:
            DeviceNotFoundError: if no port is configured or discovered

        Returns:
            Device for the chosen port
        """
        if service_id != HM10_SERVICE_ID:
            raise DeviceNotFoundError(f"No bridge exposes service {service_id:#06x}")

        if self.config.port:
            return Device(address=self.config.port, name=self.config.port)

        hint = self.config.device_hint.lower()
        for info in list_ports.comports():
            text = f"{info.description or ''} {info.manufacturer or ''}".lower()
            if not hint or hint in text:
                logger.info(f"Discovered serial bridge {info.device} ({info.description})")
                return Device(address=info.device, name=info.description or info.device)

        raise DeviceNotFoundError("No device selected")

    def connect(self, device: Device, on_disconnect: Callable[[], None]) -> SerialSession:
        try:
            port = serial.Serial(
                device.address,
                self.config.baudrate,
                timeout=0.05,
                write_timeout=self.config.write_timeout,
            )
        except (serial.SerialException, OSError) as e:
            raise ConnectError(f"Could not open {device.address}: {e}") from e

        session = SerialSession(port, on_disconnect, self.config.watch_interval)
        session.start_watch()
        return session

    def get_characteristic(self, session: SerialSession, service_id: int, characteristic_id: int) -> Characteristic:
        if service_id != HM10_SERVICE_ID:
            raise CharacteristicNotFoundError(f"Service {service_id:#06x} not found")
        if characteristic_id != HM10_CHARACTERISTIC_ID:
            raise CharacteristicNotFoundError(f"Characteristic {characteristic_id:#06x} not found")
        return SerialCharacteristic(session)

    def close(self, session: SerialSession):
        session.close()

    def __repr__(self):
        return f"<SerialTransport(port={self.config.port or 'auto'}, baud={self.config.baudrate})>"
