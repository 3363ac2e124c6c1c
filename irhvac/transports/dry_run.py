"""Outputs that record and log instead of driving hardware."""

from __future__ import annotations

import logging

from irhvac.core.model import AcCommand, PulseTrain

LOGGER = logging.getLogger(__name__)


class LoggingSender:
    def __init__(self, gpio: int = 0) -> None:
        self.gpio = gpio
        self.calls: list[tuple[str, int]] = []
        self.flushes = 0
        self.closed = False

    def enable(self, frequency_hz: int) -> None:
        self.calls.append(("enable", frequency_hz))

    def mark(self, duration_us: int) -> None:
        self.calls.append(("mark", duration_us))

    def space(self, duration_us: int) -> None:
        self.calls.append(("space", duration_us))

    def flush(self) -> None:
        self.flushes += 1
        train = self.pulse_train()
        LOGGER.info(
            "GPIO %d (dry-run): %d Hz, %d durations",
            self.gpio,
            train.frequency,
            len(train.durations),
        )

    def close(self) -> None:
        self.closed = True

    def pulse_train(self) -> PulseTrain:
        """Collapse the recorded calls since the last enable() into mark/space durations."""
        frequency = 0
        durations: list[int] = []
        last: str | None = None
        for kind, value in self.calls:
            if kind == "enable":
                frequency = value
                durations = []
                last = None
                continue
            if value == 0:
                continue
            if kind == last:
                durations[-1] += value
            else:
                durations.append(value)
                last = kind
        return PulseTrain(frequency=frequency, durations=tuple(durations))


class LoggingAcEncoder:
    def __init__(self, gpio: int = 0, *, result: bool = True) -> None:
        self.gpio = gpio
        self.result = result
        self.commands: list[AcCommand] = []
        self.closed = False

    def send_ac(self, command: AcCommand) -> bool:
        self.commands.append(command)
        LOGGER.info("GPIO %d (dry-run): %s", self.gpio, command)
        return self.result

    def close(self) -> None:
        self.closed = True
