"""GATT service and characteristic navigation."""

from __future__ import annotations

import logging

from gattconsole.core.context import SessionContext
from gattconsole.core.errors import MissingSelectionError, OutOfRangeError
from gattconsole.core.events import CharacteristicsDiscovered, ServicesDiscovered
from gattconsole.core.model import (
    CharacteristicRef,
    CharacteristicSelected,
    DeviceSelected,
    OutputFormat,
    ServiceRef,
    ServiceSelected,
    Session,
)

LOGGER = logging.getLogger(__name__)


def _describe_properties(characteristic: CharacteristicRef) -> str:
    if not characteristic.properties:
        return ""
    return f" ({', '.join(characteristic.properties)})"


def discover_services(session: Session, ctx: SessionContext) -> None:
    device = session.target
    if device is None:
        raise MissingSelectionError("no device selected")
    session.services.clear()
    session.characteristics.clear()
    ctx.display.line("discovering services")
    ctx.radio.discover_services(device)


def discover_characteristics(session: Session, service: ServiceRef, ctx: SessionContext) -> None:
    device = session.device
    if device is None:
        raise MissingSelectionError("no device selected")
    session.characteristics.clear()
    ctx.display.line("discovering characteristics")
    ctx.radio.discover_characteristics(device, service)


def on_services_discovered(session: Session, event: ServicesDiscovered, ctx: SessionContext) -> bool:
    device = session.target
    if device is None or device.identity != event.identity:
        LOGGER.debug("Ignoring services for stale device %s", event.identity)
        return False

    session.services[:] = event.services
    session.characteristics.clear()
    session.depth = DeviceSelected(device=device)

    if not session.services:
        ctx.display.line("no services")
        return True
    for idx, service in enumerate(session.services, start=1):
        ctx.display.line(f"{idx}: {service.uuid} - {service.description}")
    return True


def on_characteristics_discovered(
    session: Session,
    event: CharacteristicsDiscovered,
    ctx: SessionContext,
) -> bool:
    service = session.service
    device = session.device
    if (
        device is None
        or service is None
        or device.identity != event.identity
        or service.handle != event.service_handle
    ):
        LOGGER.debug("Ignoring characteristics for stale service handle %s", event.service_handle)
        return False

    session.characteristics[:] = event.characteristics
    session.depth = ServiceSelected(device=device, service=service)

    if not session.characteristics:
        ctx.display.line("no characteristics")
        return True
    for idx, characteristic in enumerate(session.characteristics, start=1):
        ctx.display.line(
            f"{idx}: {characteristic.uuid} - {characteristic.description}"
            f"{_describe_properties(characteristic)}"
        )
    return True


def select_service(session: Session, index: int, ctx: SessionContext) -> ServiceRef:
    if not isinstance(session.depth, DeviceSelected):
        raise MissingSelectionError("no device selected")
    if not 1 <= index <= len(session.services):
        raise OutOfRangeError("service", index, len(session.services))

    service = session.services[index - 1]
    session.depth = ServiceSelected(device=session.depth.device, service=service)
    discover_characteristics(session, service, ctx)
    return service


def select_characteristic(
    session: Session,
    index: int,
    output_format: OutputFormat,
    ctx: SessionContext,
) -> CharacteristicRef:
    """Select a characteristic, then read it and subscribe to it, in that order."""
    depth = session.depth
    if not isinstance(depth, ServiceSelected):
        raise MissingSelectionError("no service selected")
    if not 1 <= index <= len(session.characteristics):
        raise OutOfRangeError("characteristic", index, len(session.characteristics))

    characteristic = session.characteristics[index - 1]
    session.depth = CharacteristicSelected(
        device=depth.device,
        service=depth.service,
        characteristic=characteristic,
        output_format=output_format,
    )
    ctx.display.line(f"communicating with characteristic {characteristic.uuid} ({output_format.value})")
    ctx.radio.read_value(depth.device, characteristic)
    ctx.radio.set_notify(depth.device, characteristic, True)
    return characteristic


def clear_characteristic(session: Session, ctx: SessionContext) -> None:
    """Drop the characteristic selection and rediscover the service's characteristics."""
    depth = session.depth
    if not isinstance(depth, CharacteristicSelected):
        return
    if depth.characteristic.can_notify:
        ctx.radio.set_notify(depth.device, depth.characteristic, False)
    session.depth = ServiceSelected(device=depth.device, service=depth.service)
    discover_characteristics(session, depth.service, ctx)


def clear_service(session: Session, ctx: SessionContext) -> None:
    """Drop the service selection and rediscover the device's services."""
    depth = session.depth
    if not isinstance(depth, ServiceSelected):
        return
    session.depth = DeviceSelected(device=depth.device)
    discover_services(session, ctx)

