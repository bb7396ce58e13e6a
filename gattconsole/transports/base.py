"""Radio capability interface."""

from __future__ import annotations

from typing import Protocol

from gattconsole.core.model import CharacteristicRef, DeviceRef, ServiceRef


class Radio(Protocol):
    """Requests the session issues against the BLE stack.

    Every method except ``write_value`` returns immediately; completions are
    posted later as hardware events.
    """

    def start_scan(self) -> None: ...

    def stop_scan(self) -> None: ...

    def connect(self, device: DeviceRef) -> None: ...

    def disconnect(self, device: DeviceRef) -> None: ...

    def discover_services(self, device: DeviceRef) -> None: ...

    def discover_characteristics(self, device: DeviceRef, service: ServiceRef) -> None: ...

    def read_value(self, device: DeviceRef, characteristic: CharacteristicRef) -> None: ...

    def set_notify(self, device: DeviceRef, characteristic: CharacteristicRef, enabled: bool) -> None: ...

    def write_value(self, device: DeviceRef, characteristic: CharacteristicRef, payload: bytes) -> None:
        """Write with response, blocking until the stack confirms.

        Raises ``TransportError`` when the write fails.
        """
