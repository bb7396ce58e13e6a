from __future__ import annotations

import asyncio
from itertools import islice
from types import SimpleNamespace

import pytest
from bleak.exc import BleakError

from gattconsole.core.errors import TransportConnectError, TransportSendError
from gattconsole.core.events import (
    CharacteristicsDiscovered,
    ConnectFailed,
    Connected,
    DeviceAdvertised,
    Disconnected,
    EventChannel,
    PowerStateChanged,
    ServicesDiscovered,
    ValueUpdated,
)
from gattconsole.core.model import CharacteristicRef, DeviceRef, ServiceRef
from gattconsole.transports import ble_gatt

ADDRESS = "AA:BB:CC:00:11:22"
CHAR = CharacteristicRef(uuid="2a19", description="Battery Level", handle=11, properties=("read", "notify"))


class FakeServices:
    def __init__(self) -> None:
        self.char = SimpleNamespace(
            uuid="00002a19-0000-1000-8000-00805f9b34fb",
            description="Battery Level",
            handle=11,
            properties=["read", "notify"],
        )
        self.service = SimpleNamespace(
            uuid="0000180f-0000-1000-8000-00805f9b34fb",
            description="Battery Service",
            handle=10,
            characteristics=[self.char],
        )

    def __iter__(self):
        return iter([self.service])

    def get_service(self, handle: int):
        return self.service if handle == self.service.handle else None


class FakeBleakClient:
    fail_connect = False
    fail_write = False

    def __init__(self, target, disconnected_callback=None, **kwargs) -> None:
        self.address = getattr(target, "address", target)
        self.kwargs = kwargs
        self.is_connected = False
        self.services = FakeServices()
        self.writes: list[tuple[int, bytes, bool]] = []
        self._disconnected_callback = disconnected_callback

    async def connect(self) -> None:
        if FakeBleakClient.fail_connect:
            raise BleakError("Device with address AA:BB:CC:00:11:22 was not found")
        self.is_connected = True

    async def disconnect(self) -> None:
        self.is_connected = False
        if self._disconnected_callback is not None:
            self._disconnected_callback(self)

    async def read_gatt_char(self, handle: int) -> bytearray:
        return bytearray(b"\x5a")

    async def write_gatt_char(self, handle: int, data: bytes, response: bool = False) -> None:
        if FakeBleakClient.fail_write:
            raise BleakError("ATT error 0x03")
        self.writes.append((handle, data, response))


@pytest.fixture
def radio(monkeypatch: pytest.MonkeyPatch):
    FakeBleakClient.fail_connect = False
    FakeBleakClient.fail_write = False
    monkeypatch.setattr(ble_gatt, "BleakClient", FakeBleakClient)
    channel = EventChannel()
    radio = ble_gatt.BleakRadio(channel, adapter="hci0")
    yield radio, channel
    radio.close()


def _take(channel: EventChannel, count: int) -> list:
    return list(islice(channel, count))


def test_detection_posts_advertisement() -> None:
    channel = EventChannel()
    radio = ble_gatt.BleakRadio(channel)
    device = SimpleNamespace(address=ADDRESS, name=None)
    advertisement = SimpleNamespace(local_name="Sensor", rssi=-48)

    radio._on_detection(device, advertisement)

    assert channel.drain() == [DeviceAdvertised(identity=ADDRESS, local_name="Sensor", name=None, rssi=-48)]


def test_requests_before_start_raise() -> None:
    radio = ble_gatt.BleakRadio(EventChannel())
    with pytest.raises(TransportConnectError):
        radio.write_value(DeviceRef(identity=ADDRESS), CHAR, b"x\r")


def test_connect_discover_read_write_disconnect(radio) -> None:
    radio, channel = radio
    device = DeviceRef(identity=ADDRESS, name="Sensor")
    radio.start()
    assert _take(channel, 1) == [PowerStateChanged(powered_on=True, state="powered on")]

    radio.connect(device)
    assert _take(channel, 1) == [Connected(identity=ADDRESS)]

    radio.discover_services(device)
    [services] = _take(channel, 1)
    assert isinstance(services, ServicesDiscovered)
    assert services.services == (
        ServiceRef(uuid="0000180f-0000-1000-8000-00805f9b34fb", description="Battery Service", handle=10),
    )

    radio.discover_characteristics(device, services.services[0])
    [characteristics] = _take(channel, 1)
    assert isinstance(characteristics, CharacteristicsDiscovered)
    assert characteristics.characteristics[0].handle == 11
    assert characteristics.characteristics[0].properties == ("read", "notify")

    radio.read_value(device, CHAR)
    assert _take(channel, 1) == [ValueUpdated(identity=ADDRESS, characteristic_handle=11, data=b"\x5a")]

    radio.write_value(device, CHAR, b"hello\r")
    client = radio._clients[ADDRESS]
    assert client.writes == [(11, b"hello\r", True)]
    assert client.kwargs == {"adapter": "hci0"}

    FakeBleakClient.fail_write = True
    with pytest.raises(TransportSendError):
        radio.write_value(device, CHAR, b"hello\r")

    radio.disconnect(device)
    assert _take(channel, 1) == [Disconnected(identity=ADDRESS)]
    assert channel.drain() == []


def test_connect_failure_posts_event(radio) -> None:
    radio, channel = radio
    FakeBleakClient.fail_connect = True
    radio.start()
    radio.connect(DeviceRef(identity=ADDRESS))

    events = _take(channel, 2)
    assert isinstance(events[1], ConnectFailed)
    assert events[1].identity == ADDRESS
    assert "was not found" in events[1].reason


def test_disconnect_without_client_still_reports(radio) -> None:
    radio, channel = radio
    radio.start()
    radio.disconnect(DeviceRef(identity=ADDRESS))
    assert _take(channel, 2)[1] == Disconnected(identity=ADDRESS)


class GatedBleakClient(FakeBleakClient):
    gate: asyncio.Event | None = None
    created: list["GatedBleakClient"] = []

    def __init__(self, target, disconnected_callback=None, **kwargs) -> None:
        super().__init__(target, disconnected_callback, **kwargs)
        GatedBleakClient.created.append(self)

    async def connect(self) -> None:
        await GatedBleakClient.gate.wait()
        self.is_connected = True


def test_overlapping_connects_keep_only_the_latest_client(monkeypatch: pytest.MonkeyPatch) -> None:
    GatedBleakClient.created = []
    monkeypatch.setattr(ble_gatt, "BleakClient", GatedBleakClient)
    channel = EventChannel()
    radio = ble_gatt.BleakRadio(channel)

    async def scenario() -> None:
        GatedBleakClient.gate = asyncio.Event()
        first = asyncio.create_task(radio._connect(ADDRESS))
        second = asyncio.create_task(radio._connect(ADDRESS))
        while len(GatedBleakClient.created) < 2:
            await asyncio.sleep(0)
        GatedBleakClient.gate.set()
        await asyncio.gather(first, second)

    asyncio.run(scenario())

    older, newer = GatedBleakClient.created
    assert channel.drain() == [Connected(identity=ADDRESS)]
    assert radio._clients[ADDRESS] is newer
    assert newer.is_connected is True
    assert older.is_connected is False
