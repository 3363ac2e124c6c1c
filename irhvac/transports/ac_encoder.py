"""Selection of the catalog AC encoder implementation."""

from __future__ import annotations

import importlib
import logging

from irhvac.core.errors import TransportConnectError
from irhvac.core.model import AcCommand
from irhvac.transports.base import EncoderFactory

LOGGER = logging.getLogger(__name__)


class UnavailableAcEncoder:
    """Placeholder used when no catalog encoder is installed; every send fails."""

    def __init__(self, gpio: int = 0) -> None:
        self.gpio = gpio

    def send_ac(self, command: AcCommand) -> bool:
        LOGGER.error(
            "No catalog AC encoder configured; cannot send %s on GPIO %d",
            command.protocol,
            self.gpio,
        )
        return False

    def close(self) -> None:
        pass


def load_encoder_factory(reference: str) -> EncoderFactory:
    """Resolve a ``package.module:callable`` reference to an encoder factory."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise TransportConnectError(f"Encoder reference '{reference}' must look like 'module:factory'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise TransportConnectError(f"Could not import encoder module '{module_name}': {exc}") from exc
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise TransportConnectError(f"Encoder module '{module_name}' has no callable '{attr}'")
    return factory
