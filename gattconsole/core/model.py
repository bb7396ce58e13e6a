"""Core data models shared by the session, radio, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class OutputFormat(str, Enum):
    RAW = "raw"
    HEX = "hex"


@dataclass(frozen=True)
class DeviceRef:
    identity: str
    name: str | None = None
    rssi: int | None = None

    @property
    def label(self) -> str:
        return self.name or self.identity


@dataclass(frozen=True)
class ServiceRef:
    uuid: str
    description: str
    handle: int


@dataclass(frozen=True)
class CharacteristicRef:
    uuid: str
    description: str
    handle: int
    properties: tuple[str, ...] = ()

    @property
    def can_read(self) -> bool:
        return "read" in self.properties

    @property
    def can_write(self) -> bool:
        return "write" in self.properties or "write-without-response" in self.properties

    @property
    def can_notify(self) -> bool:
        return "notify" in self.properties or "indicate" in self.properties


@dataclass(frozen=True)
class NoDevice:
    connecting: DeviceRef | None = None


@dataclass(frozen=True)
class DeviceSelected:
    device: DeviceRef


@dataclass(frozen=True)
class ServiceSelected:
    device: DeviceRef
    service: ServiceRef


@dataclass(frozen=True)
class CharacteristicSelected:
    device: DeviceRef
    service: ServiceRef
    characteristic: CharacteristicRef
    output_format: OutputFormat = OutputFormat.RAW


Depth = Union[NoDevice, DeviceSelected, ServiceSelected, CharacteristicSelected]


@dataclass
class Session:
    """The single mutable aggregate owned by a console.

    Selections live only in ``depth``; the lists are the current discovery
    snapshots, numbered from 1.
    """

    depth: Depth = field(default_factory=NoDevice)
    devices: list[DeviceRef] = field(default_factory=list)
    services: list[ServiceRef] = field(default_factory=list)
    characteristics: list[CharacteristicRef] = field(default_factory=list)
    scanning: bool = False
    powered_on: bool = False

    @property
    def device(self) -> DeviceRef | None:
        if isinstance(self.depth, NoDevice):
            return None
        return self.depth.device

    @property
    def service(self) -> ServiceRef | None:
        if isinstance(self.depth, (ServiceSelected, CharacteristicSelected)):
            return self.depth.service
        return None

    @property
    def characteristic(self) -> CharacteristicRef | None:
        if isinstance(self.depth, CharacteristicSelected):
            return self.depth.characteristic
        return None

    @property
    def output_format(self) -> OutputFormat:
        if isinstance(self.depth, CharacteristicSelected):
            return self.depth.output_format
        return OutputFormat.RAW

    @property
    def target(self) -> DeviceRef | None:
        """The connected device, or the pending connect target."""
        if isinstance(self.depth, NoDevice):
            return self.depth.connecting
        return self.depth.device
