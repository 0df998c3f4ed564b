"""
Link Module for gaze_link
Outbound wireless link carrying direction commands to the receiver

Architecture:
- LinkSession:      Connection state machine, owns the characteristic handle
- Transport:        Hardware boundary (SerialTransport for HM-10 style bridges)
- LinkConfig:       Identifiers and serial settings

Usage:
    session = LinkSession(SerialTransport(config), config)
    session.add_disconnect_listener(debouncer.reset)
    session.connect_async()
    session.send(b'LEFT')
    session.disconnect()
"""

from .config import LinkConfig
from .session import LinkSession, LinkState
from .transport import (
    Transport,
    Device,
    Characteristic,
    SerialTransport,
    TransportError,
    DeviceNotFoundError,
    ConnectError,
    CharacteristicNotFoundError,
)

__all__ = [
    'LinkConfig',
    'LinkSession',
    'LinkState',
    'Transport',
    'Device',
    'Characteristic',
    'SerialTransport',
    'TransportError',
    'DeviceNotFoundError',
    'ConnectError',
    'CharacteristicNotFoundError',
]
