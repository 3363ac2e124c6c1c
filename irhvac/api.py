"""Stable public API for building tooling on top of irhvac.

This module is the supported integration surface for third-party callers
(sensor pollers, keypad bridges, home-automation glue). Avoid importing from
internal modules unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from irhvac.core.config_store import default_config_path, load_config
from irhvac.core.errors import (
    CodecError,
    CommandError,
    ConfigLoadError,
    ConfigValidationError,
    IrhvacError,
    RegistryError,
    TransportConnectError,
    TransportError,
    TransportSendError,
)
from irhvac.core.model import (
    AcCommand,
    ChannelConfig,
    ControllerConfig,
    CustomProfile,
    DeviceConfig,
    DeviceState,
)
from irhvac.core.service import ControllerService
from irhvac.transports.base import AcEncoder, EncoderFactory, RawSender, SenderFactory

__all__ = [
    "IrhvacError",
    "CodecError",
    "CommandError",
    "ConfigLoadError",
    "ConfigValidationError",
    "RegistryError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "AcCommand",
    "AcEncoder",
    "ChannelConfig",
    "ControllerConfig",
    "CustomProfile",
    "DeviceConfig",
    "DeviceState",
    "RawSender",
    "Client",
]


class Client:
    """Public client for driving an in-process controller.

    A `Client` wraps the command engine, device registry, and management
    operations behind a stable API. Commands go through the same path as
    wire commands, so state changes are broadcast to connected sessions.
    """

    def __init__(
        self,
        config: ControllerConfig | None = None,
        *,
        config_path: Path | None = None,
        sender_factory: SenderFactory | None = None,
        encoder_factory: EncoderFactory | None = None,
    ) -> None:
        self._service = ControllerService(
            config,
            config_path=config_path,
            sender_factory=sender_factory,
            encoder_factory=encoder_factory,
        )

    @classmethod
    def from_file(
        cls,
        path: Path | None = None,
        *,
        sender_factory: SenderFactory | None = None,
        encoder_factory: EncoderFactory | None = None,
    ) -> Client:
        path = path or default_config_path()
        return cls(
            load_config(path),
            config_path=path,
            sender_factory=sender_factory,
            encoder_factory=encoder_factory,
        )

    @property
    def config(self) -> ControllerConfig:
        return self._service.config

    def command(self, doc: Mapping[str, Any]) -> Any:
        """Run one wire-format command and return its wire-format response."""
        return self._service.execute(dict(doc))

    def get_state(self, device_id: str) -> Any:
        return self._service.execute({"cmd": "get", "id": device_id})

    def get_all_states(self) -> list[dict[str, Any]]:
        return self._service.snapshots()

    def send(self, device_id: str, **fields: Any) -> Any:
        return self._service.execute({**fields, "cmd": "send", "id": device_id})

    def send_raw(self, code: str, *, encoding: str = "pronto", channel: int = 0) -> Any:
        return self._service.execute({"cmd": "raw", "emitter": channel, "encoding": encoding, "code": code})

    def report_current_temp(self, device_id: str, value: float) -> dict[str, Any]:
        return self._service.report_current_temp(device_id, value)

    def press_button(self, device_id: str, button: str) -> Any:
        return self._service.press_button(device_id, button)

    def add_channels(self, *gpios: int) -> int:
        return self._service.add_channels(gpios)

    def remove_channel(self, index: int) -> None:
        self._service.remove_channel(index)

    def add_device(
        self,
        protocol: str,
        *,
        channel: int = 0,
        model: int = -1,
        device_id: str | None = None,
        custom: CustomProfile | None = None,
    ) -> DeviceConfig:
        return self._service.add_device(protocol, channel, model, device_id=device_id, custom=custom)

    def update_device(self, index: int, protocol: str, *, channel: int = 0, model: int = -1) -> DeviceConfig:
        return self._service.update_device(index, protocol, channel, model)

    def set_custom_codes(
        self,
        device_id: str,
        *,
        encoding: str | None = None,
        off_code: str | None = None,
        temps: Mapping[int, str] | None = None,
    ) -> DeviceConfig:
        return self._service.set_custom_codes(device_id, encoding=encoding, off_code=off_code, temps=temps)

    def remove_device(self, index: int) -> DeviceConfig:
        return self._service.remove_device(index)

    def close(self) -> None:
        self._service.close()
