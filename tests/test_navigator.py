from __future__ import annotations

import copy

import pytest

from fakes import BATTERY, CHARACTERISTICS, DEVICE_ID, OTHER_ID, SERVICES, UART, UART_RX, UART_TX, Bench
from gattconsole.core import navigator
from gattconsole.core.errors import OutOfRangeError
from gattconsole.core.events import CharacteristicsDiscovered, Connected, ServicesDiscovered
from gattconsole.core.model import (
    CharacteristicSelected,
    DeviceSelected,
    NoDevice,
    OutputFormat,
    ServiceSelected,
)


def test_connected_triggers_service_discovery_without_selecting_device(bench: Bench) -> None:
    bench.power_on()
    bench.advertise()
    bench.input("1")
    bench.clear_calls()

    bench.event(Connected(identity=DEVICE_ID))

    assert bench.radio.calls == [("discover_services", DEVICE_ID)]
    assert isinstance(bench.session.depth, NoDevice)
    assert bench.session.services == []
    assert f"connected to [{DEVICE_ID}] - Sensor" in bench.display.lines


def test_services_discovered_selects_device_and_enumerates(bench: Bench) -> None:
    bench.to_device()

    assert isinstance(bench.session.depth, DeviceSelected)
    assert bench.session.device is not None
    assert bench.session.device.identity == DEVICE_ID
    assert bench.session.services == list(SERVICES)
    assert f"1: {BATTERY.uuid} - Battery Service" in bench.display.lines
    assert f"2: {UART.uuid} - Nordic UART Service" in bench.display.lines


def test_empty_service_list_is_reported_not_an_error(bench: Bench) -> None:
    bench.to_device(services=())
    assert isinstance(bench.session.depth, DeviceSelected)
    assert bench.session.services == []
    assert "no services" in bench.display.lines
    assert bench.display.errors == []


def test_service_discovery_replaces_list(bench: Bench) -> None:
    bench.to_device()
    bench.display.lines.clear()

    bench.event(ServicesDiscovered(identity=DEVICE_ID, services=(UART,)))

    assert bench.session.services == [UART]
    assert bench.display.lines == [f"1: {UART.uuid} - Nordic UART Service"]


def test_services_for_stale_device_are_ignored(bench: Bench) -> None:
    bench.to_device()
    before = copy.deepcopy(bench.session)

    bench.event(ServicesDiscovered(identity=OTHER_ID, services=(UART,)))

    assert bench.session == before


def test_select_service_clears_characteristics_and_discovers(bench: Bench) -> None:
    bench.to_service()
    bench.input("\x1b")
    bench.event(ServicesDiscovered(identity=DEVICE_ID, services=SERVICES))
    bench.clear_calls()

    service = navigator.select_service(bench.session, 1, bench.console.context)

    assert service == BATTERY
    assert bench.session.depth == ServiceSelected(device=bench.session.device, service=BATTERY)
    assert bench.session.characteristics == []
    assert bench.radio.calls == [("discover_characteristics", DEVICE_ID, BATTERY.handle)]


@pytest.mark.parametrize("index", [0, 3, -2])
def test_select_service_out_of_range(bench: Bench, index: int) -> None:
    bench.to_device()
    before = copy.deepcopy(bench.session)
    bench.clear_calls()

    with pytest.raises(OutOfRangeError, match=f"wrong service #{index}"):
        navigator.select_service(bench.session, index, bench.console.context)

    assert bench.session == before
    assert bench.radio.calls == []


def test_characteristics_discovered_enumerates_with_properties(bench: Bench) -> None:
    bench.to_service()

    assert isinstance(bench.session.depth, ServiceSelected)
    assert bench.session.characteristics == list(CHARACTERISTICS)
    assert f"1: {UART_RX.uuid} - Nordic UART RX (write, write-without-response)" in bench.display.lines
    assert f"2: {UART_TX.uuid} - Nordic UART TX (notify)" in bench.display.lines


def test_empty_characteristic_list(bench: Bench) -> None:
    bench.to_service(characteristics=())
    assert bench.session.characteristics == []
    assert "no characteristics" in bench.display.lines


def test_characteristics_for_unselected_service_are_ignored(bench: Bench) -> None:
    bench.to_service()
    before = copy.deepcopy(bench.session)

    bench.event(
        CharacteristicsDiscovered(
            identity=DEVICE_ID,
            service_handle=BATTERY.handle,
            characteristics=(UART_TX,),
        )
    )

    assert bench.session == before


def test_select_characteristic_reads_before_subscribing(bench: Bench) -> None:
    bench.to_service()
    bench.clear_calls()

    bench.input("2")

    assert bench.radio.calls == [("read", UART_TX.handle), ("notify", UART_TX.handle, True)]
    depth = bench.session.depth
    assert isinstance(depth, CharacteristicSelected)
    assert depth.characteristic == UART_TX
    assert depth.output_format is OutputFormat.RAW


@pytest.mark.parametrize("line", ["2h", "2H", " 2h "])
def test_select_characteristic_with_hex_marker(bench: Bench, line: str) -> None:
    bench.to_characteristic(line)
    assert bench.session.output_format is OutputFormat.HEX
    assert bench.session.characteristic == UART_TX


@pytest.mark.parametrize("line", ["0", "3", "3h", "h", "x"])
def test_select_characteristic_out_of_range(bench: Bench, line: str) -> None:
    bench.to_service()
    before = copy.deepcopy(bench.session)
    bench.clear_calls()

    bench.input(line)

    assert bench.session == before
    assert bench.radio.calls == []
    assert bench.display.errors[-1].startswith("wrong characteristic #")
