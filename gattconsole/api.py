"""Stable public API for building tooling on top of gattconsole.

This module is the supported integration surface for third-party callers
(alternative frontends, scripted sessions, tests against other radios). Avoid
importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from gattconsole.core.context import ConsoleSettings
from gattconsole.core.display import Display
from gattconsole.core.errors import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    GattConsoleError,
    MissingSelectionError,
    OutOfRangeError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    ValidationError,
)
from gattconsole.core.events import EventChannel, HardwareEvent
from gattconsole.core.model import (
    CharacteristicRef,
    CharacteristicSelected,
    DeviceRef,
    DeviceSelected,
    NoDevice,
    OutputFormat,
    ServiceRef,
    ServiceSelected,
    Session,
)
from gattconsole.core.session import Console
from gattconsole.transports.base import Radio
from gattconsole.transports.ble_gatt import BleakRadio

__all__ = [
    "GattConsoleError",
    "ValidationError",
    "OutOfRangeError",
    "MissingSelectionError",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "CharacteristicRef",
    "CharacteristicSelected",
    "DeviceRef",
    "DeviceSelected",
    "NoDevice",
    "OutputFormat",
    "ServiceRef",
    "ServiceSelected",
    "Session",
    "EventChannel",
    "HardwareEvent",
    "Console",
    "ConsoleSettings",
    "Display",
    "Radio",
    "BleakRadio",
    "open_console",
]


def open_console(
    radio: Radio,
    display: Display,
    *,
    settings: ConsoleSettings | None = None,
) -> Console:
    """Create a console with a fresh session bound to ``radio`` and ``display``."""
    return Console(radio, display, settings=settings)
