"""Runtime transmission channels bound to the configured GPIO outputs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from irhvac.core.model import ChannelConfig
from irhvac.transports.base import AcEncoder, EncoderFactory, RawSender, SenderFactory

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransmissionChannel:
    gpio: int
    raw: RawSender
    ac: AcEncoder


class ChannelTable:
    """Owns the capability instances for every configured channel.

    The table is rebuilt wholesale whenever the channel list changes: every
    previous sender/encoder is closed before new ones are created.
    """

    def __init__(self, sender_factory: SenderFactory, encoder_factory: EncoderFactory) -> None:
        self._sender_factory = sender_factory
        self._encoder_factory = encoder_factory
        self._channels: list[TransmissionChannel] = []

    def __len__(self) -> int:
        return len(self._channels)

    def get(self, index: int) -> TransmissionChannel | None:
        if index < 0 or index >= len(self._channels):
            return None
        return self._channels[index]

    def close(self) -> None:
        for channel in self._channels:
            channel.raw.close()
            channel.ac.close()
        self._channels = []

    def rebuild(self, configs: Iterable[ChannelConfig]) -> None:
        self.close()
        for config in configs:
            self._channels.append(
                TransmissionChannel(
                    gpio=config.gpio,
                    raw=self._sender_factory(config.gpio),
                    ac=self._encoder_factory(config.gpio),
                )
            )
        LOGGER.info("Channels configured: %d", len(self._channels))
