"""Typer CLI entrypoint."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from irhvac.core.catalog import catalog_protocols
from irhvac.core.codecs import ENCODINGS, send_code
from irhvac.core.errors import IrhvacError, RegistryError
from irhvac.core.model import DEFAULT_PORT, CustomProfile
from irhvac.core.service import ControllerService
from irhvac.server import run as run_server
from irhvac.transports.ac_encoder import load_encoder_factory
from irhvac.transports.dry_run import LoggingAcEncoder, LoggingSender
from irhvac.transports.tcp_client import ControllerClient

app = typer.Typer(help="Infrared HVAC controller with a line-delimited JSON socket protocol")

_CONFIG_HELP = "Configuration file (JSON or YAML); defaults to $IRHVAC_CONFIG or ~/.config/irhvac/config.yaml"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_service(config: Path | None) -> ControllerService:
    # Management commands never transmit, so they run against dry-run outputs.
    return ControllerService.from_file(
        config,
        sender_factory=LoggingSender,
        encoder_factory=LoggingAcEncoder,
    )


def _parse_temp_codes(values: list[str]) -> dict[int, str]:
    temps: dict[int, str] = {}
    for value in values:
        temp, sep, code = value.partition("=")
        if not sep or not code.strip():
            raise RegistryError(f"Temperature code '{value}' must look like TEMP=CODE")
        try:
            temps[int(temp)] = code.strip()
        except ValueError:
            raise RegistryError(f"Temperature '{temp}' is not an integer") from None
    return temps


@app.command("serve")
def serve(
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
    host: str | None = typer.Option(None, "--host", help="Listen address (overrides config)"),
    port: int | None = typer.Option(None, "--port", help="Listen port (overrides config)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log IR output instead of driving GPIOs"),
    ac_encoder: str | None = typer.Option(
        None, "--ac-encoder", help="Catalog encoder factory as 'module:callable'"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the controller and accept sessions until interrupted."""
    _setup_logging(verbose)
    try:
        kwargs = {}
        if dry_run:
            kwargs["sender_factory"] = LoggingSender
            kwargs["encoder_factory"] = LoggingAcEncoder
        if ac_encoder:
            kwargs["encoder_factory"] = load_encoder_factory(ac_encoder)
        service = ControllerService.from_file(config, **kwargs)
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    run_server(service, host, port)


@app.command("list")
def list_config(
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """List configured channels and devices."""
    try:
        service = _build_service(config)
        current = service.config
        typer.echo(f"Listening on {current.host}:{current.port}")
        if not current.channels:
            typer.echo("No channels configured")
        for index, channel in enumerate(current.channels):
            typer.echo(f"channel {index}: GPIO {channel.gpio}")
        if not current.devices:
            typer.echo("No devices configured")
        for index, device in enumerate(current.devices):
            typer.echo(
                f"device {index}: id={device.id} protocol={device.protocol} "
                f"channel={device.channel} model={device.model}"
            )
            if device.is_custom:
                custom = device.custom
                temps = ", ".join(str(t) for t in custom.temps) or "-"
                off = "yes" if custom.off_code else "no"
                typer.echo(f"  encoding={custom.encoding or '-'} off={off} temps: {temps}")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("protocols")
def list_protocols() -> None:
    """List catalog AC protocols accepted for devices (plus CUSTOM)."""
    for name in catalog_protocols():
        typer.echo(name)


@app.command("add-channel")
def add_channel(
    gpios: list[int] = typer.Argument(..., help="GPIO numbers"),
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Add transmission channels."""
    try:
        added = _build_service(config).add_channels(gpios)
        typer.echo(f"Added {added} channel(s)")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("remove-channel")
def remove_channel(
    index: int,
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Remove a transmission channel by index."""
    try:
        _build_service(config).remove_channel(index)
        typer.echo(f"Removed channel {index}")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("add-device")
def add_device(
    protocol: str,
    channel: int = typer.Option(0, "--channel", help="Channel index"),
    model: int = typer.Option(-1, "--model", help="Protocol-specific model number"),
    device_id: str | None = typer.Option(None, "--id", help="Explicit device id (default: next free 1-99)"),
    encoding: str | None = typer.Option(None, "--encoding", help=f"CUSTOM only: {', '.join(ENCODINGS)}"),
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Register a device using a catalog protocol or CUSTOM codes."""
    try:
        custom = CustomProfile(encoding=encoding) if encoding else None
        device = _build_service(config).add_device(
            protocol,
            channel,
            model,
            device_id=device_id,
            custom=custom,
        )
        typer.echo(f"Added device {device.id} ({device.protocol}) on channel {device.channel}")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("update-device")
def update_device(
    index: int,
    protocol: str,
    channel: int = typer.Option(0, "--channel", help="Channel index"),
    model: int = typer.Option(-1, "--model", help="Protocol-specific model number"),
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Change a device's protocol, channel, and model; its state resets."""
    try:
        device = _build_service(config).update_device(index, protocol, channel, model)
        typer.echo(f"Updated device {device.id} ({device.protocol}) on channel {device.channel}")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("remove-device")
def remove_device(
    index: int,
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Remove a device by index."""
    try:
        device = _build_service(config).remove_device(index)
        typer.echo(f"Removed device {device.id}")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("set-codes")
def set_codes(
    device_id: str,
    encoding: str | None = typer.Option(None, "--encoding", help=f"One of {', '.join(ENCODINGS)}"),
    off: str | None = typer.Option(None, "--off", help="Raw code sent for power off"),
    temp: list[str] = typer.Option([], "--temp", help="TEMP=CODE, repeatable"),
    config: Path | None = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Set raw codes for a CUSTOM device."""
    try:
        device = _build_service(config).set_custom_codes(
            device_id,
            encoding=encoding,
            off_code=off,
            temps=_parse_temp_codes(temp),
        )
        typer.echo(f"Device {device.id}: {len(device.custom.temps)} temperature code(s)")
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("decode")
def decode(
    encoding: str,
    code: str,
    repeats: int = typer.Option(0, "--repeats", help="Pronto repeat count when no R<n> prefix"),
) -> None:
    """Decode a raw code and print the resulting pulse train."""
    sender = LoggingSender()
    if not send_code(sender, encoding, code, repeats):
        typer.echo(f"Error: could not decode {encoding} code", err=True)
        raise typer.Exit(code=1)
    train = sender.pulse_train()
    typer.echo(f"frequency={train.frequency}")
    typer.echo(" ".join(str(d) for d in train.durations))


@app.command("send")
def send_command(
    command: str = typer.Argument(..., help='JSON command, e.g. \'{"cmd":"get_all"}\''),
    host: str = typer.Option("127.0.0.1", "--host", help="Controller address"),
    port: int = typer.Option(DEFAULT_PORT, "--port", help="Controller port"),
    timeout: float = typer.Option(3.0, "--timeout", help="Seconds to wait for a response"),
) -> None:
    """Send one JSON command to a running controller and print the response."""
    try:
        doc = json.loads(command)
    except ValueError as exc:
        typer.echo(f"Error: invalid JSON command: {exc}", err=True)
        raise typer.Exit(code=1) from None
    try:
        _, response = ControllerClient(host, port, timeout_s=timeout).request(doc)
    except IrhvacError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    typer.echo(json.dumps(response))
    if isinstance(response, dict) and response.get("ok") is False:
        raise typer.Exit(code=1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
