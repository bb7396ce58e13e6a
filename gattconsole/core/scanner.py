"""Advertisement collection and connect requests."""

from __future__ import annotations

import logging

from gattconsole.core.context import SessionContext
from gattconsole.core.errors import MissingSelectionError, OutOfRangeError
from gattconsole.core.events import DeviceAdvertised
from gattconsole.core.model import DeviceRef, NoDevice, Session

LOGGER = logging.getLogger(__name__)


def start_scanning(session: Session, ctx: SessionContext) -> None:
    session.scanning = True
    ctx.display.line("searching for devices")
    ctx.radio.start_scan()


def stop_scanning(session: Session, ctx: SessionContext) -> None:
    if not session.scanning:
        return
    session.scanning = False
    ctx.radio.stop_scan()


def on_advertisement(session: Session, event: DeviceAdvertised, ctx: SessionContext) -> DeviceRef | None:
    if not event.local_name:
        return None
    if any(device.identity == event.identity for device in session.devices):
        return None

    device = DeviceRef(
        identity=event.identity,
        name=event.name or event.local_name,
        rssi=event.rssi,
    )
    session.devices.append(device)
    rssi = "?" if device.rssi is None else device.rssi
    ctx.display.line(f"{len(session.devices)}: [{rssi}] {device.label}")
    return device


def connect(session: Session, index: int, ctx: SessionContext) -> DeviceRef:
    """Start connecting to the device listed at ``index`` (1-based)."""
    if not 1 <= index <= len(session.devices):
        raise OutOfRangeError("device", index, len(session.devices))
    if not isinstance(session.depth, NoDevice):
        raise MissingSelectionError("already connected; unwind to disconnect first")
    if session.depth.connecting is not None:
        raise MissingSelectionError(f"already connecting to {session.depth.connecting.label}")

    device = session.devices[index - 1]
    stop_scanning(session, ctx)
    session.depth = NoDevice(connecting=device)
    ctx.display.line(f"connecting to #{index} [{device.identity}] - {device.name or ''}")
    LOGGER.debug("Connect requested for %s", device.identity)
    ctx.radio.connect(device)
    return device
