"""Payload encoding, writes, and inbound value decoding."""

from __future__ import annotations

import logging

from gattconsole.core.context import SessionContext
from gattconsole.core.errors import TransportError
from gattconsole.core.events import ValueUpdated
from gattconsole.core.model import CharacteristicSelected, OutputFormat, Session

LOGGER = logging.getLogger(__name__)

LINE_TERMINATOR = "\r"


def encode_payload(text: str) -> bytes | None:
    """Encode ``text`` plus a carriage return as 7-bit ASCII, or None if it has other code points."""
    try:
        return (text + LINE_TERMINATOR).encode("ascii")
    except UnicodeEncodeError:
        return None


def decode_value(data: bytes, output_format: OutputFormat) -> str:
    if output_format is OutputFormat.HEX:
        return data.hex()
    try:
        return data.decode("ascii")
    except UnicodeDecodeError:
        return ""


def send(session: Session, text: str, ctx: SessionContext) -> bool:
    depth = session.depth
    if not isinstance(depth, CharacteristicSelected):
        LOGGER.debug("Dropping payload; no characteristic selected")
        return False

    payload = encode_payload(text)
    if payload is None:
        LOGGER.warning("Dropping payload with non-ASCII characters: %r", text)
        return False

    try:
        ctx.radio.write_value(depth.device, depth.characteristic, payload)
    except TransportError as exc:
        LOGGER.warning("Write to %s failed: %s", depth.characteristic.uuid, exc)
        ctx.display.error(f"write failed: {exc}")
        return False
    return True


def refresh(session: Session, ctx: SessionContext) -> bool:
    depth = session.depth
    if not isinstance(depth, CharacteristicSelected):
        return False
    ctx.radio.read_value(depth.device, depth.characteristic)
    return True


def on_value_updated(session: Session, event: ValueUpdated, ctx: SessionContext) -> str:
    characteristic = session.characteristic
    if characteristic is not None and characteristic.handle != event.characteristic_handle:
        LOGGER.debug("Value from unselected characteristic handle %s", event.characteristic_handle)
    text = decode_value(event.data, session.output_format)
    ctx.display.value(f"{ctx.settings.value_prefix}{text}")
    return text
