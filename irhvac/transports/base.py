"""Transport interfaces consumed by the controller core."""

from __future__ import annotations

from typing import Protocol

from irhvac.core.model import AcCommand


class RawSender(Protocol):
    def enable(self, frequency_hz: int) -> None:
        """Enable the output at the given carrier frequency."""

    def mark(self, duration_us: int) -> None:
        """Emit carrier for duration_us (callers split values above 65535)."""

    def space(self, duration_us: int) -> None:
        """Hold the output idle for duration_us; 0 just turns it off."""

    def flush(self) -> None:
        """Transmit anything buffered since the last enable()."""

    def close(self) -> None:
        """Release the underlying output."""


class AcEncoder(Protocol):
    def send_ac(self, command: AcCommand) -> bool:
        """Encode command for its catalog protocol and transmit it."""

    def close(self) -> None:
        """Release the underlying output."""


class SenderFactory(Protocol):
    def __call__(self, gpio: int) -> RawSender: ...


class EncoderFactory(Protocol):
    def __call__(self, gpio: int) -> AcEncoder: ...


class Connection(Protocol):
    @property
    def connected(self) -> bool: ...

    def write(self, data: bytes) -> None:
        """Queue bytes for the remote peer."""

    def close(self) -> None:
        """Drop the connection."""
