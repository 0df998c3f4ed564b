"""
Link Configuration
Identifiers and serial settings for the outbound BLE UART link
"""

from dataclasses import dataclass


@dataclass
class LinkConfig:
    """Outbound link configuration - HM-10 style BLE UART bridge"""

    # GATT identifiers exposed by the receiver (16-bit UUIDs)
    service_id: int = 0xFFE0
    characteristic_id: int = 0xFFE1

    # Dispatch
    settle_delay_ms: int = 100     # Candidate must hold this long before sending

    # Serial bridge settings
    port: str = ''                 # Empty = auto-discover
    device_hint: str = ''          # Substring matched against port description
    baudrate: int = 9600
    write_timeout: float = 1.0     # seconds
    watch_interval: float = 0.25   # Disconnect watcher poll period (seconds)

    def __post_init__(self):
        for name in ('service_id', 'characteristic_id'):
            value = getattr(self, name)
            if not 0 <= value <= 0xFFFF:
                raise ValueError(f"{name} must be a 16-bit identifier, got {value:#x}")
        if self.settle_delay_ms < 0:
            raise ValueError("settle_delay_ms must be >= 0")

    @classmethod
    def for_port(cls, port: str, baudrate: int = 9600) -> 'LinkConfig':
        """Configuration pinned to a known serial port"""
        return cls(port=port, baudrate=baudrate)
