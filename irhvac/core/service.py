"""Service layer owning all controller state; used by the server, CLI, and API."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from irhvac.core.channels import ChannelTable
from irhvac.core.config_store import default_config_path, load_config, save_config
from irhvac.core.engine import CommandEngine
from irhvac.core.keypad import KeypadGateway
from irhvac.core.model import (
    MAX_LINE_BYTES,
    MAX_SESSIONS,
    ControllerConfig,
    CustomProfile,
    DeviceConfig,
)
from irhvac.core.registry import Registry
from irhvac.core.sessions import LineFrontEnd, SessionId, SessionTable
from irhvac.core.state import StateStore
from irhvac.transports.ac_encoder import UnavailableAcEncoder
from irhvac.transports.base import Connection, EncoderFactory, SenderFactory
from irhvac.transports.pigpio_ir import PigpioSender

LOGGER = logging.getLogger(__name__)


class ControllerService:
    """Context object tying registry, state, channels, engine, and sessions together.

    One re-entrant lock guards every command and management operation, so a
    configuration edit never interleaves with an in-flight send even when
    callers run on different threads.
    """

    def __init__(
        self,
        config: ControllerConfig | None = None,
        *,
        config_path: Path | None = None,
        sender_factory: SenderFactory | None = None,
        encoder_factory: EncoderFactory | None = None,
        max_sessions: int = MAX_SESSIONS,
        max_line_bytes: int = MAX_LINE_BYTES,
    ) -> None:
        config = config or ControllerConfig()
        self.config_path = config_path
        self.host = config.host
        self.port = config.port
        self.lock = threading.RLock()
        self.registry = Registry(config.channels, config.devices)
        self.states = StateStore()
        self.channels = ChannelTable(
            sender_factory or PigpioSender,
            encoder_factory or UnavailableAcEncoder,
        )
        self.channels.rebuild(self.registry.channels)
        self.sessions = SessionTable(max_sessions=max_sessions, max_line_bytes=max_line_bytes)
        self.engine = CommandEngine(self.registry, self.states, self.channels, notifier=self._broadcast)
        self.frontend = LineFrontEnd(self.sessions, self.execute, self.snapshots)

    @classmethod
    def from_file(cls, path: Path | None = None, **kwargs: Any) -> ControllerService:
        path = path or default_config_path()
        return cls(load_config(path), config_path=path, **kwargs)

    @property
    def config(self) -> ControllerConfig:
        with self.lock:
            return ControllerConfig(
                host=self.host,
                port=self.port,
                channels=tuple(self.registry.channels),
                devices=tuple(self.registry.devices),
            )

    def _broadcast(self, state: dict[str, Any], origin: SessionId | None) -> None:
        self.sessions.broadcast(state, exclude=origin)

    def _persist(self) -> None:
        if self.config_path is not None:
            save_config(self.config, self.config_path)

    def close(self) -> None:
        with self.lock:
            self.channels.close()

    # Commands

    def execute(self, doc: Any, origin: SessionId | None = None) -> Any:
        with self.lock:
            return self.engine.execute(doc, origin)

    def snapshots(self) -> list[dict[str, Any]]:
        with self.lock:
            return self.engine.all_snapshots()

    def report_current_temp(self, device_id: str, value: float) -> dict[str, Any]:
        with self.lock:
            return self.engine.report_current_temp(device_id, value)

    def press_button(self, device_id: str, button: str) -> Any:
        with self.lock:
            return KeypadGateway(self.execute).press(device_id, button)

    # Sessions

    def connect(self, connection: Connection) -> SessionId | None:
        with self.lock:
            return self.frontend.connect(connection)

    def receive(self, slot: SessionId, data: bytes) -> None:
        with self.lock:
            self.frontend.receive(slot, data)

    def disconnect(self, slot: SessionId, connection: Connection | None = None) -> None:
        with self.lock:
            self.frontend.disconnect(slot, connection)

    # Management

    def list_devices(self) -> list[DeviceConfig]:
        with self.lock:
            return list(self.registry.devices)

    def add_channels(self, gpios: Iterable[int]) -> int:
        with self.lock:
            added = self.registry.add_channels(gpios)
            self.channels.rebuild(self.registry.channels)
            self._persist()
            LOGGER.info("Channels added: %d", added)
            return added

    def remove_channel(self, index: int) -> None:
        with self.lock:
            self.registry.remove_channel(index)
            # Devices keep pointing at the same GPIO; the removed one becomes invalid.
            for device_index, device in enumerate(self.registry.devices):
                if device.channel == index:
                    self.registry.devices[device_index] = replace(device, channel=-1)
                    self.states.reset(device_index)
                elif device.channel > index:
                    self.registry.devices[device_index] = replace(device, channel=device.channel - 1)
            self.channels.rebuild(self.registry.channels)
            self._persist()
            LOGGER.info("Channel %d removed", index)

    def add_device(
        self,
        protocol: str,
        channel: int,
        model: int = -1,
        *,
        device_id: str | None = None,
        custom: CustomProfile | None = None,
    ) -> DeviceConfig:
        with self.lock:
            device = self.registry.add_device(
                protocol,
                channel,
                model,
                device_id=device_id,
                custom=custom,
            )
            self.states.reset(len(self.registry.devices) - 1)
            self._persist()
            LOGGER.info("Device added id=%s protocol=%s", device.id, device.protocol)
            return device

    def update_device(self, index: int, protocol: str, channel: int, model: int = -1) -> DeviceConfig:
        with self.lock:
            device = self.registry.update_device(index, protocol, channel, model)
            self.states.reset(index)
            self._persist()
            LOGGER.info("Device %s updated", device.id)
            return device

    def set_custom_codes(
        self,
        device_id: str,
        *,
        encoding: str | None = None,
        off_code: str | None = None,
        temps: Mapping[int, str] | None = None,
    ) -> DeviceConfig:
        with self.lock:
            device = self.registry.set_custom_codes(
                device_id,
                encoding=encoding,
                off_code=off_code,
                temps=temps,
            )
            self._persist()
            return device

    def remove_device(self, index: int) -> DeviceConfig:
        with self.lock:
            device = self.registry.remove_device(index)
            # Indices shift down; wipe every slot so no state follows the wrong device.
            self.states.reset_all()
            self._persist()
            LOGGER.info("Device %s removed", device.id)
            return device
