"""BLE GATT radio implementation on top of bleak."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine
from concurrent.futures import Future
from typing import Any

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from gattconsole.core.errors import TransportConnectError, TransportError, TransportSendError
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

LOGGER = logging.getLogger(__name__)


class BleakRadio:
    """Radio whose bleak calls all run on one private asyncio loop thread.

    Completions and callbacks are posted to ``channel`` in the order the loop
    observes them. bleak reports no service-changed indication, so this radio
    never posts ``ServicesInvalidated``.
    """

    def __init__(self, channel: EventChannel, *, adapter: str | None = None) -> None:
        self._channel = channel
        self._backend_kwargs: dict[str, Any] = {"adapter": adapter} if adapter else {}
        self._loop = asyncio.new_event_loop()
        self._thread: threading.Thread | None = None
        self._scanner: BleakScanner | None = None
        self._scanning = False
        self._seen: dict[str, BLEDevice] = {}
        self._clients: dict[str, BleakClient] = {}

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run_loop, name="gattconsole-radio", daemon=True)
        self._thread.start()
        self._channel.post(PowerStateChanged(powered_on=True, state="powered on"))

    def close(self) -> None:
        if self._thread is None:
            return
        try:
            self._submit(self._shutdown()).result()
        except (BleakError, TransportError, OSError) as exc:
            LOGGER.warning("BLE shutdown incomplete: %s", exc)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._thread = None
        self._loop.close()

    def start_scan(self) -> None:
        self._fire(self._start_scan(), "scan start")

    def stop_scan(self) -> None:
        self._fire(self._stop_scan(), "scan stop")

    def connect(self, device: DeviceRef) -> None:
        self._fire(self._connect(device.identity), f"connect to {device.identity}")

    def disconnect(self, device: DeviceRef) -> None:
        self._fire(self._disconnect(device.identity), f"disconnect from {device.identity}")

    def discover_services(self, device: DeviceRef) -> None:
        self._fire(self._discover_services(device.identity), "service discovery")

    def discover_characteristics(self, device: DeviceRef, service: ServiceRef) -> None:
        self._fire(
            self._discover_characteristics(device.identity, service.handle),
            f"characteristic discovery for {service.uuid}",
        )

    def read_value(self, device: DeviceRef, characteristic: CharacteristicRef) -> None:
        self._fire(self._read(device.identity, characteristic.handle), f"read of {characteristic.uuid}")

    def set_notify(self, device: DeviceRef, characteristic: CharacteristicRef, enabled: bool) -> None:
        self._fire(
            self._set_notify(device.identity, characteristic.handle, enabled),
            f"notify={enabled} on {characteristic.uuid}",
        )

    def write_value(self, device: DeviceRef, characteristic: CharacteristicRef, payload: bytes) -> None:
        future = self._submit(self._write(device.identity, characteristic.handle, payload))
        try:
            future.result()
        except TransportError:
            raise
        except Exception as exc:
            raise TransportSendError(f"BLE GATT write failed: {exc}") from exc

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _submit(self, coro: Coroutine[Any, Any, Any]) -> Future[Any]:
        if self._thread is None:
            coro.close()
            raise TransportConnectError("BLE radio is not started")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def _fire(self, coro: Coroutine[Any, Any, Any], what: str) -> None:
        future = self._submit(coro)
        future.add_done_callback(lambda done: _log_failure(done, what))

    def _client(self, identity: str) -> BleakClient:
        client = self._clients.get(identity)
        if client is None or not client.is_connected:
            raise TransportConnectError(f"BLE device {identity} is not connected")
        return client

    def _on_detection(self, device: BLEDevice, advertisement: AdvertisementData) -> None:
        self._seen[device.address] = device
        self._channel.post(
            DeviceAdvertised(
                identity=device.address,
                local_name=advertisement.local_name or "",
                name=device.name,
                rssi=advertisement.rssi,
            )
        )

    def _on_disconnected(self, client: BleakClient) -> None:
        if self._clients.get(client.address) is client:
            del self._clients[client.address]
            self._channel.post(Disconnected(identity=client.address))

    async def _start_scan(self) -> None:
        if self._scanning:
            return
        if self._scanner is None:
            self._scanner = BleakScanner(detection_callback=self._on_detection, **self._backend_kwargs)
        try:
            await self._scanner.start()
        except (BleakError, OSError) as exc:
            self._scanner = None
            self._channel.post(PowerStateChanged(powered_on=False, state=str(exc)))
            return
        self._scanning = True

    async def _stop_scan(self) -> None:
        if not self._scanning or self._scanner is None:
            return
        self._scanning = False
        await self._scanner.stop()

    async def _connect(self, identity: str) -> None:
        target: BLEDevice | str = self._seen.get(identity, identity)
        client = BleakClient(target, disconnected_callback=self._on_disconnected, **self._backend_kwargs)
        self._clients[identity] = client
        try:
            await client.connect()
        except (BleakError, TimeoutError, OSError) as exc:
            if self._clients.get(identity) is not client:
                LOGGER.info("Superseded connection to %s failed: %s", identity, exc)
                return
            del self._clients[identity]
            self._channel.post(ConnectFailed(identity=identity, reason=str(exc)))
            return
        if self._clients.get(identity) is not client:
            LOGGER.info("Dropping superseded connection to %s", identity)
            await client.disconnect()
            return
        self._channel.post(Connected(identity=identity))

    async def _disconnect(self, identity: str) -> None:
        client = self._clients.get(identity)
        if client is not None:
            await client.disconnect()
        # Some backends skip the disconnected callback on a local disconnect.
        if client is None:
            self._channel.post(Disconnected(identity=identity))
        elif self._clients.get(identity) is client:
            del self._clients[identity]
            self._channel.post(Disconnected(identity=identity))

    async def _discover_services(self, identity: str) -> None:
        client = self._client(identity)
        services = tuple(
            ServiceRef(uuid=service.uuid, description=service.description, handle=service.handle)
            for service in client.services
        )
        self._channel.post(ServicesDiscovered(identity=identity, services=services))

    async def _discover_characteristics(self, identity: str, service_handle: int) -> None:
        client = self._client(identity)
        service = client.services.get_service(service_handle)
        characteristics: tuple[CharacteristicRef, ...] = ()
        if service is not None:
            characteristics = tuple(
                CharacteristicRef(
                    uuid=char.uuid,
                    description=char.description,
                    handle=char.handle,
                    properties=tuple(char.properties),
                )
                for char in service.characteristics
            )
        self._channel.post(
            CharacteristicsDiscovered(
                identity=identity,
                service_handle=service_handle,
                characteristics=characteristics,
            )
        )

    async def _read(self, identity: str, handle: int) -> None:
        data = await self._client(identity).read_gatt_char(handle)
        self._channel.post(ValueUpdated(identity=identity, characteristic_handle=handle, data=bytes(data)))

    async def _set_notify(self, identity: str, handle: int, enabled: bool) -> None:
        client = self._client(identity)
        if not enabled:
            await client.stop_notify(handle)
            return

        def _notify_handler(_: Any, data: bytearray) -> None:
            self._channel.post(ValueUpdated(identity=identity, characteristic_handle=handle, data=bytes(data)))

        await client.start_notify(handle, _notify_handler)

    async def _write(self, identity: str, handle: int, payload: bytes) -> None:
        await self._client(identity).write_gatt_char(handle, payload, response=True)

    async def _shutdown(self) -> None:
        await self._stop_scan()
        for identity, client in list(self._clients.items()):
            try:
                await client.disconnect()
            except BleakError as exc:
                LOGGER.warning("Disconnect from %s failed: %s", identity, exc)
        self._clients.clear()


def _log_failure(future: Future[Any], what: str) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        LOGGER.warning("BLE %s failed: %s", what, exc)
