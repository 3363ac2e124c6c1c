"""Per-device runtime state and change detection."""

from __future__ import annotations

from typing import Any

from irhvac.core.model import DeviceState

# Absorbs float round-trip noise between stored and recomputed temperatures.
TEMPERATURE_TOLERANCE = 0.05

DEFAULT_STATE = DeviceState()
INITIAL_STATE = DeviceState(initialized=True)


def temperature_changed(a: float, b: float, tolerance: float = TEMPERATURE_TOLERANCE) -> bool:
    return a > b + tolerance or b > a + tolerance


def states_differ(
    previous: DeviceState,
    current: DeviceState,
    tolerance: float = TEMPERATURE_TOLERANCE,
) -> bool:
    if previous.initialized != current.initialized:
        return True
    if not previous.initialized:
        return False
    if (
        previous.power != current.power
        or previous.mode != current.mode
        or previous.fan != current.fan
        or previous.light != current.light
    ):
        return True
    return temperature_changed(previous.setpoint, current.setpoint, tolerance) or temperature_changed(
        previous.current_temp, current.current_temp, tolerance
    )


def snapshot(device_id: str, state: DeviceState) -> dict[str, Any]:
    return {
        "type": "state",
        "id": device_id,
        "power": "on" if state.power else "off",
        "mode": state.mode,
        "setpoint": state.setpoint,
        "current_temp": state.current_temp,
        "fan": state.fan,
        "light": "on" if state.light else "off",
    }


class StateStore:
    """One DeviceState slot per registry index."""

    def __init__(self) -> None:
        self._states: list[DeviceState] = []

    def __len__(self) -> int:
        return len(self._states)

    def _grow(self, index: int) -> None:
        if index < 0:
            raise IndexError(f"Invalid device index {index}")
        while len(self._states) <= index:
            self._states.append(DEFAULT_STATE)

    def get(self, index: int) -> DeviceState:
        self._grow(index)
        return self._states[index]

    def ensure_initialized(self, index: int) -> DeviceState:
        self._grow(index)
        if not self._states[index].initialized:
            self._states[index] = INITIAL_STATE
        return self._states[index]

    def commit(self, index: int, state: DeviceState) -> None:
        self._grow(index)
        self._states[index] = state

    def reset(self, index: int) -> None:
        self._grow(index)
        self._states[index] = DEFAULT_STATE

    def reset_all(self) -> None:
        self._states = [DEFAULT_STATE for _ in self._states]
