"""Collaborators and settings threaded through every session operation."""

from __future__ import annotations

from dataclasses import dataclass, field

from gattconsole.core.display import Display
from gattconsole.transports.base import Radio

UNWIND_KEY = "\x1b"
REFRESH_KEY = "\x12"
HEX_MARKER = "h"
VALUE_PREFIX = "<<"


@dataclass(frozen=True)
class ConsoleSettings:
    unwind_key: str = UNWIND_KEY
    refresh_key: str = REFRESH_KEY
    hex_marker: str = HEX_MARKER
    value_prefix: str = VALUE_PREFIX


@dataclass(frozen=True)
class SessionContext:
    radio: Radio
    display: Display
    settings: ConsoleSettings = field(default_factory=ConsoleSettings)
