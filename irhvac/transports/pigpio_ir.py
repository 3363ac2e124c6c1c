"""Raspberry Pi IR output built from pigpio waveforms."""

from __future__ import annotations

import logging
import time
from typing import Any

from irhvac.core.errors import TransportConnectError, TransportSendError

LOGGER = logging.getLogger(__name__)

_BUSY_POLL_S = 0.002


class PigpioSender:
    """Buffers one pulse train per enable() and plays it as a pigpio wave chain.

    The pigpio daemon connection is opened on first use so that building a
    channel table never needs the hardware.
    """

    def __init__(self, gpio: int, *, host: str | None = None, port: int | None = None) -> None:
        self.gpio = gpio
        self._host = host
        self._port = port
        self._pi: Any = None
        self._frequency = 38000
        self._pulses: list[tuple[bool, int]] = []

    def _connect(self) -> Any:
        if self._pi is not None:
            return self._pi
        try:
            import pigpio  # type: ignore
        except Exception as exc:  # pragma: no cover - import failure path
            raise TransportConnectError(
                "IR output requires 'pigpio'. Install dependency and retry."
            ) from exc

        kwargs = {}
        if self._host:
            kwargs["host"] = self._host
        if self._port:
            kwargs["port"] = self._port
        pi = pigpio.pi(**kwargs)
        if not pi.connected:
            raise TransportConnectError(f"Could not connect to pigpio daemon for GPIO {self.gpio}")
        pi.set_mode(self.gpio, pigpio.OUTPUT)
        self._pi = pi
        return pi

    def enable(self, frequency_hz: int) -> None:
        self._frequency = frequency_hz if frequency_hz > 0 else 38000
        self._pulses = []

    def mark(self, duration_us: int) -> None:
        if duration_us <= 0:
            return
        if self._pulses and self._pulses[-1][0]:
            self._pulses[-1] = (True, self._pulses[-1][1] + duration_us)
        else:
            self._pulses.append((True, duration_us))

    def space(self, duration_us: int) -> None:
        if duration_us <= 0:
            return
        if self._pulses and not self._pulses[-1][0]:
            self._pulses[-1] = (False, self._pulses[-1][1] + duration_us)
        else:
            self._pulses.append((False, duration_us))

    def _carrier(self, pigpio: Any, micros: int) -> list[Any]:
        wf = []
        cycle = 1_000_000.0 / self._frequency
        cycles = int(round(micros / cycle))
        on = int(round(cycle / 2.0))
        sofar = 0
        for c in range(cycles):
            target = int(round((c + 1) * cycle))
            sofar += on
            off = target - sofar
            sofar += off
            wf.append(pigpio.pulse(1 << self.gpio, 0, on))
            wf.append(pigpio.pulse(0, 1 << self.gpio, off))
        return wf

    def flush(self) -> None:
        if not self._pulses:
            return
        pi = self._connect()
        import pigpio  # type: ignore

        marks: dict[int, int] = {}
        spaces: dict[int, int] = {}
        chain: list[int] = []
        try:
            pi.wave_add_new()
            for is_mark, duration in self._pulses:
                if is_mark:
                    if duration not in marks:
                        pi.wave_add_generic(self._carrier(pigpio, duration))
                        marks[duration] = pi.wave_create()
                    chain.append(marks[duration])
                else:
                    if duration not in spaces:
                        pi.wave_add_generic([pigpio.pulse(0, 0, duration)])
                        spaces[duration] = pi.wave_create()
                    chain.append(spaces[duration])

            pi.wave_chain(chain)
            while pi.wave_tx_busy():
                time.sleep(_BUSY_POLL_S)
        except pigpio.error as exc:
            raise TransportSendError(f"pigpio wave transmit failed on GPIO {self.gpio}: {exc}") from exc
        finally:
            for wave_id in list(marks.values()) + list(spaces.values()):
                pi.wave_delete(wave_id)
            self._pulses = []
        LOGGER.debug("GPIO %d sent %d pulses at %d Hz", self.gpio, len(chain), self._frequency)

    def close(self) -> None:
        if self._pi is not None and self._pi.connected:
            self._pi.stop()
        self._pi = None
