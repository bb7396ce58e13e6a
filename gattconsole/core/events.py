"""Hardware events and the ordered channel that carries them to the session."""

from __future__ import annotations

import queue
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Union

from gattconsole.core.model import CharacteristicRef, ServiceRef


@dataclass(frozen=True)
class PowerStateChanged:
    powered_on: bool
    state: str = ""


@dataclass(frozen=True)
class DeviceAdvertised:
    identity: str
    local_name: str = ""
    name: str | None = None
    rssi: int | None = None


@dataclass(frozen=True)
class Connected:
    identity: str


@dataclass(frozen=True)
class ConnectFailed:
    identity: str
    reason: str = ""


@dataclass(frozen=True)
class Disconnected:
    identity: str


@dataclass(frozen=True)
class ServicesDiscovered:
    identity: str
    services: tuple[ServiceRef, ...]


@dataclass(frozen=True)
class CharacteristicsDiscovered:
    identity: str
    service_handle: int
    characteristics: tuple[CharacteristicRef, ...]


@dataclass(frozen=True)
class ValueUpdated:
    identity: str
    characteristic_handle: int
    data: bytes


@dataclass(frozen=True)
class ServicesInvalidated:
    identity: str


HardwareEvent = Union[
    PowerStateChanged,
    DeviceAdvertised,
    Connected,
    ConnectFailed,
    Disconnected,
    ServicesDiscovered,
    CharacteristicsDiscovered,
    ValueUpdated,
    ServicesInvalidated,
]

_CLOSED = object()


class EventChannel:
    """FIFO of hardware events with a single consumer.

    Producers may post from any thread. Iterating yields events in posting
    order until ``close()`` is called.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()

    def post(self, event: HardwareEvent) -> None:
        self._queue.put(event)

    def close(self) -> None:
        self._queue.put(_CLOSED)

    def drain(self) -> list[HardwareEvent]:
        """Return every event currently queued without blocking."""
        events: list[HardwareEvent] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return events
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return events
            events.append(item)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[HardwareEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
