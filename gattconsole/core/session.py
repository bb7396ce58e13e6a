"""Session state machine: input interpretation and hardware event handling.

Every operation takes the ``Session`` it mutates explicitly. ``Console`` wraps a
session with the lock that serializes user input against hardware events.
"""

from __future__ import annotations

import logging
import re
import threading

from gattconsole.core import io_channel, navigator, scanner
from gattconsole.core.context import ConsoleSettings, SessionContext
from gattconsole.core.display import Display
from gattconsole.core.errors import GattConsoleError, ValidationError
from gattconsole.core.events import (
    CharacteristicsDiscovered,
    ConnectFailed,
    Connected,
    DeviceAdvertised,
    Disconnected,
    EventChannel,
    HardwareEvent,
    PowerStateChanged,
    ServicesDiscovered,
    ServicesInvalidated,
    ValueUpdated,
)
from gattconsole.core.model import (
    CharacteristicSelected,
    DeviceRef,
    DeviceSelected,
    NoDevice,
    OutputFormat,
    ServiceSelected,
    Session,
)
from gattconsole.transports.base import Radio

_INDEX_RE = re.compile(r"[+-]?[0-9]+")
LOGGER = logging.getLogger(__name__)


def parse_index(text: str) -> int:
    """Parse a 1-based list index; anything non-numeric becomes 0."""
    stripped = text.strip()
    if not _INDEX_RE.fullmatch(stripped):
        return 0
    return int(stripped)


def parse_characteristic_selection(text: str, hex_marker: str) -> tuple[int, OutputFormat]:
    stripped = text.strip()
    if stripped and stripped[-1].lower() == hex_marker.lower():
        return parse_index(stripped[:-1]), OutputFormat.HEX
    return parse_index(stripped), OutputFormat.RAW


def reset(session: Session, ctx: SessionContext) -> None:
    """Clear every list and selection, then scan again if the radio is on."""
    session.depth = NoDevice()
    session.devices.clear()
    session.services.clear()
    session.characteristics.clear()
    if session.powered_on:
        scanner.start_scanning(session, ctx)
    else:
        session.scanning = False


def unwind(session: Session, ctx: SessionContext) -> None:
    depth = session.depth
    if isinstance(depth, CharacteristicSelected):
        navigator.clear_characteristic(session, ctx)
    elif isinstance(depth, ServiceSelected):
        navigator.clear_service(session, ctx)
    elif isinstance(depth, DeviceSelected):
        ctx.display.line(f"disconnecting from [{depth.device.identity}] - {depth.device.name or ''}")
        ctx.radio.disconnect(depth.device)
    else:
        reset(session, ctx)


def handle_input(session: Session, line: str, ctx: SessionContext) -> None:
    settings = ctx.settings
    if line == settings.unwind_key:
        unwind(session, ctx)
        return
    if line == settings.refresh_key:
        io_channel.refresh(session, ctx)
        return

    depth = session.depth
    try:
        if isinstance(depth, NoDevice):
            scanner.connect(session, parse_index(line), ctx)
        elif isinstance(depth, DeviceSelected):
            navigator.select_service(session, parse_index(line), ctx)
        elif isinstance(depth, ServiceSelected):
            index, output_format = parse_characteristic_selection(line, settings.hex_marker)
            navigator.select_characteristic(session, index, output_format, ctx)
        else:
            io_channel.send(session, line, ctx)
    except ValidationError as exc:
        LOGGER.info("Rejected input %r: %s", line, exc)
        ctx.display.error(str(exc))


def _is_current(session: Session, identity: str) -> bool:
    target = session.target
    return target is not None and target.identity == identity


def _on_power_state(session: Session, event: PowerStateChanged, ctx: SessionContext) -> None:
    session.powered_on = event.powered_on
    if event.powered_on:
        if isinstance(session.depth, NoDevice) and session.depth.connecting is None:
            scanner.start_scanning(session, ctx)
        return
    ctx.display.line(f"bluetooth is not available ({event.state})")
    reset(session, ctx)


def _on_connected(session: Session, event: Connected, ctx: SessionContext) -> None:
    depth = session.depth
    if not isinstance(depth, NoDevice) or depth.connecting is None or depth.connecting.identity != event.identity:
        LOGGER.info("Disconnecting stale connection to %s", event.identity)
        ctx.radio.disconnect(DeviceRef(identity=event.identity))
        return
    device = depth.connecting
    ctx.display.line(f"connected to [{device.identity}] - {device.name or ''}")
    navigator.discover_services(session, ctx)


def _on_lifecycle_end(session: Session, event: ConnectFailed | Disconnected, ctx: SessionContext) -> None:
    if not _is_current(session, event.identity):
        LOGGER.debug("Ignoring %s for stale device %s", type(event).__name__, event.identity)
        return
    if isinstance(event, ConnectFailed):
        ctx.display.error(f"failed to connect to [{event.identity}] {event.reason}".rstrip())
    else:
        ctx.display.line(f"disconnected from [{event.identity}]")
    reset(session, ctx)


def _on_services_invalidated(session: Session, event: ServicesInvalidated, ctx: SessionContext) -> None:
    target = session.target
    if target is None:
        reset(session, ctx)
        return
    if target.identity != event.identity:
        LOGGER.debug("Ignoring service change for stale device %s", event.identity)
        return
    ctx.display.line("services changed, disconnecting")
    ctx.radio.disconnect(target)


def handle_event(session: Session, event: HardwareEvent, ctx: SessionContext) -> None:
    if isinstance(event, PowerStateChanged):
        _on_power_state(session, event, ctx)
    elif isinstance(event, DeviceAdvertised):
        scanner.on_advertisement(session, event, ctx)
    elif isinstance(event, Connected):
        _on_connected(session, event, ctx)
    elif isinstance(event, (ConnectFailed, Disconnected)):
        _on_lifecycle_end(session, event, ctx)
    elif isinstance(event, ServicesInvalidated):
        _on_services_invalidated(session, event, ctx)
    elif isinstance(event, ServicesDiscovered):
        navigator.on_services_discovered(session, event, ctx)
    elif isinstance(event, CharacteristicsDiscovered):
        navigator.on_characteristics_discovered(session, event, ctx)
    elif isinstance(event, ValueUpdated):
        io_channel.on_value_updated(session, event, ctx)
    else:
        LOGGER.warning("Unhandled hardware event %r", event)


class Console:
    """A session guarded by one lock, fed by user lines and hardware events."""

    def __init__(
        self,
        radio: Radio,
        display: Display,
        *,
        settings: ConsoleSettings | None = None,
        session: Session | None = None,
    ) -> None:
        self.session = session or Session()
        self.context = SessionContext(radio=radio, display=display, settings=settings or ConsoleSettings())
        self._lock = threading.RLock()

    def handle_input(self, line: str) -> None:
        with self._lock:
            handle_input(self.session, line, self.context)

    def handle_event(self, event: HardwareEvent) -> None:
        with self._lock:
            handle_event(self.session, event, self.context)

    def pump(self, channel: EventChannel) -> int:
        """Handle every event already queued on ``channel``."""
        events = channel.drain()
        for event in events:
            self.handle_event(event)
        return len(events)

    def dispatch(self, channel: EventChannel) -> None:
        """Handle events from ``channel`` until it is closed."""
        for event in channel:
            try:
                self.handle_event(event)
            except GattConsoleError as exc:
                LOGGER.error("Failed to handle %s: %s", type(event).__name__, exc)
            except Exception:
                LOGGER.exception("Unexpected error handling %s", type(event).__name__)

    def start_dispatcher(self, channel: EventChannel) -> threading.Thread:
        thread = threading.Thread(
            target=self.dispatch,
            args=(channel,),
            name="gattconsole-events",
            daemon=True,
        )
        thread.start()
        return thread
