"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from gattconsole.core.config import ConsoleConfig, load_config, normalize_log_level
from gattconsole.core.errors import GattConsoleError
from gattconsole.core.events import EventChannel
from gattconsole.core.session import Console
from gattconsole.transports.ble_gatt import BleakRadio

app = typer.Typer(help="Interactive Bluetooth LE GATT console")


class EchoDisplay:
    def line(self, text: str) -> None:
        typer.echo(text)

    def value(self, text: str) -> None:
        typer.echo(text)

    def error(self, text: str) -> None:
        typer.echo(text, err=True)


def _caret(key: str) -> str:
    code = ord(key)
    if code < 0x20 or code == 0x7F:
        return "^" + chr(code ^ 0x40)
    return key


def _load(config_path: Path | None, log_level: str | None) -> ConsoleConfig:
    config = load_config(config_path)
    level = normalize_log_level(log_level) if log_level else config.log_level
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


@app.command("run")
def run_console(
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file"),
    adapter: str | None = typer.Option(None, "--adapter", help="Bluetooth adapter, e.g. hci0"),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
) -> None:
    """Scan, connect, and exchange data with a BLE peripheral, one line at a time."""
    try:
        config = _load(config_path, log_level)
    except GattConsoleError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    settings = config.settings
    channel = EventChannel()
    radio = BleakRadio(channel, adapter=adapter or config.adapter)
    console = Console(radio, EchoDisplay(), settings=settings)
    dispatcher = console.start_dispatcher(channel)

    typer.echo(
        f"{_caret(settings.unwind_key)} + Enter goes back, "
        f"{_caret(settings.refresh_key)} + Enter re-reads, "
        f"'<n>{settings.hex_marker}' selects a characteristic in hex"
    )
    radio.start()
    try:
        for line in typer.get_text_stream("stdin"):
            console.handle_input(line.rstrip("\r\n"))
    except KeyboardInterrupt:
        typer.echo("")
    finally:
        channel.close()
        dispatcher.join()
        radio.close()


@app.command("show-config")
def show_config(
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file"),
) -> None:
    """Print the resolved configuration."""
    try:
        config = load_config(config_path)
    except GattConsoleError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    settings = config.settings
    typer.echo(f"source: {config.source or '<defaults>'}")
    typer.echo(f"unwind_key: {_caret(settings.unwind_key)}")
    typer.echo(f"refresh_key: {_caret(settings.refresh_key)}")
    typer.echo(f"hex_marker: {settings.hex_marker}")
    typer.echo(f"value_prefix: {settings.value_prefix}")
    typer.echo(f"adapter: {config.adapter or '<default>'}")
    typer.echo(f"log_level: {config.log_level}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
