"""Channel and device tables plus the management operations that edit them."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace

from irhvac.core.catalog import is_supported, normalize_protocol
from irhvac.core.codecs import ENCODINGS
from irhvac.core.errors import RegistryError
from irhvac.core.model import (
    CUSTOM_PROTOCOL,
    MAX_CHANNELS,
    MAX_CUSTOM_TEMPS,
    MAX_DEVICE_ID,
    MAX_DEVICES,
    CatalogProfile,
    ChannelConfig,
    CustomProfile,
    DeviceConfig,
)

LOGGER = logging.getLogger(__name__)


def build_profile(protocol: str, custom: CustomProfile | None = None) -> CustomProfile | CatalogProfile:
    if protocol == CUSTOM_PROTOCOL:
        return custom or CustomProfile()
    return CatalogProfile(protocol=protocol)


def check_protocol(protocol: str) -> str:
    normalized = normalize_protocol(protocol)
    if not normalized:
        raise RegistryError("Missing protocol")
    if normalized != CUSTOM_PROTOCOL and not is_supported(normalized):
        raise RegistryError(f"Unsupported protocol '{protocol}'")
    return normalized


def check_custom_profile(profile: CustomProfile) -> CustomProfile:
    if profile.encoding and profile.encoding not in ENCODINGS:
        allowed = ", ".join(ENCODINGS)
        raise RegistryError(f"Unknown encoding '{profile.encoding}'. Allowed: {allowed}")
    if len(profile.temps) > MAX_CUSTOM_TEMPS:
        raise RegistryError(f"At most {MAX_CUSTOM_TEMPS} temperature codes per device")
    return profile


class Registry:
    def __init__(
        self,
        channels: Iterable[ChannelConfig] = (),
        devices: Iterable[DeviceConfig] = (),
    ) -> None:
        self.channels: list[ChannelConfig] = list(channels)
        self.devices: list[DeviceConfig] = list(devices)

    def find_index(self, device_id: str) -> int:
        for index, device in enumerate(self.devices):
            if device.id == device_id:
                return index
        return -1

    def channel_valid(self, index: int) -> bool:
        return 0 <= index < len(self.channels)

    def next_device_id(self) -> str | None:
        used = {int(d.id) for d in self.devices if d.id.isdigit()}
        for candidate in range(1, MAX_DEVICE_ID + 1):
            if candidate not in used:
                return str(candidate)
        return None

    def _device_index(self, index: int) -> DeviceConfig:
        if index < 0 or index >= len(self.devices):
            raise RegistryError(f"Invalid device index {index}")
        return self.devices[index]

    def add_channels(self, gpios: Iterable[int]) -> int:
        added = 0
        for gpio in gpios:
            if len(self.channels) >= MAX_CHANNELS:
                LOGGER.warning("Channel table full (%d); ignoring remaining GPIOs", MAX_CHANNELS)
                break
            if gpio <= 0:
                continue
            self.channels.append(ChannelConfig(gpio=gpio))
            added += 1
        if added == 0:
            raise RegistryError("No valid GPIOs")
        return added

    def remove_channel(self, index: int) -> ChannelConfig:
        if not self.channel_valid(index):
            raise RegistryError(f"Invalid channel index {index}")
        return self.channels.pop(index)

    def add_device(
        self,
        protocol: str,
        channel: int,
        model: int = -1,
        *,
        device_id: str | None = None,
        custom: CustomProfile | None = None,
    ) -> DeviceConfig:
        if not self.channels:
            raise RegistryError("Add a channel first")
        if len(self.devices) >= MAX_DEVICES:
            raise RegistryError(f"Too many devices (max {MAX_DEVICES})")
        normalized = check_protocol(protocol)
        if not self.channel_valid(channel):
            raise RegistryError(f"Invalid channel index {channel}")
        if device_id is None:
            device_id = self.next_device_id()
            if device_id is None:
                raise RegistryError(f"No device IDs left (1-{MAX_DEVICE_ID})")
        elif not device_id:
            raise RegistryError("Device id must not be empty")
        elif self.find_index(device_id) >= 0:
            raise RegistryError(f"Device id '{device_id}' already exists")
        if custom is not None:
            check_custom_profile(custom)

        device = DeviceConfig(
            id=device_id,
            protocol=normalized,
            channel=channel,
            model=model,
            profile=build_profile(normalized, custom),
        )
        self.devices.append(device)
        return device

    def update_device(self, index: int, protocol: str, channel: int, model: int = -1) -> DeviceConfig:
        current = self._device_index(index)
        if not self.channels:
            raise RegistryError("Add a channel first")
        normalized = check_protocol(protocol)
        if not self.channel_valid(channel):
            raise RegistryError(f"Invalid channel index {channel}")
        keep = current.profile if isinstance(current.profile, CustomProfile) else None
        updated = replace(
            current,
            protocol=normalized,
            channel=channel,
            model=model,
            profile=build_profile(normalized, keep),
        )
        self.devices[index] = updated
        return updated

    def set_custom_codes(
        self,
        device_id: str,
        *,
        encoding: str | None = None,
        off_code: str | None = None,
        temps: Mapping[int, str] | None = None,
    ) -> DeviceConfig:
        index = self.find_index(device_id)
        if index < 0:
            raise RegistryError(f"Unknown device '{device_id}'")
        current = self.devices[index]
        if not current.is_custom:
            raise RegistryError(f"Device '{device_id}' uses catalog protocol {current.protocol}")
        profile = current.custom
        merged = dict(profile.temps)
        if temps:
            merged.update(temps)
        profile = check_custom_profile(
            CustomProfile(
                encoding=profile.encoding if encoding is None else encoding,
                off_code=profile.off_code if off_code is None else off_code,
                temps=merged,
            )
        )
        updated = replace(current, profile=profile)
        self.devices[index] = updated
        return updated

    def remove_device(self, index: int) -> DeviceConfig:
        self._device_index(index)
        return self.devices.pop(index)
