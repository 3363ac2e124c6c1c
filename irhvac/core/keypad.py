"""Keypad gateway adapter: remote button events become ordinary `send` commands."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from irhvac.core.model import FAN_SPEEDS

BUTTONS = ("power", "temp_up", "temp_down", "mode", "fan", "light")

MIN_SETPOINT = 16
MAX_SETPOINT = 30

MODE_CYCLE = ("auto", "cool", "heat", "dry", "fan")


def _next(cycle: tuple[str, ...], current: str) -> str:
    if current not in cycle:
        return cycle[0]
    return cycle[(cycle.index(current) + 1) % len(cycle)]


def button_command(device_id: str, button: str, state: Mapping[str, Any]) -> dict[str, Any]:
    """Build the `send` command for `button` given the device's current snapshot."""
    if button not in BUTTONS:
        raise ValueError(f"Unknown button '{button}'")

    power_on = state.get("power") == "on"
    mode = state.get("mode", "auto")
    setpoint = int(round(float(state.get("setpoint", 24))))
    command: dict[str, Any] = {
        "cmd": "send",
        "id": device_id,
        "power": "on" if power_on else "off",
        "mode": mode if mode != "off" else "auto",
        "temp": setpoint,
        "fan": state.get("fan", "auto"),
    }

    if button == "power":
        command["power"] = "off" if power_on else "on"
    elif button == "temp_up":
        command["temp"] = min(MAX_SETPOINT, setpoint + 1)
        command["power"] = "on"
    elif button == "temp_down":
        command["temp"] = max(MIN_SETPOINT, setpoint - 1)
        command["power"] = "on"
    elif button == "mode":
        command["mode"] = _next(MODE_CYCLE, command["mode"])
        command["power"] = "on"
    elif button == "fan":
        command["fan"] = _next(FAN_SPEEDS, command["fan"])
        command["power"] = "on"
    elif button == "light":
        command["light"] = state.get("light") != "on"
    return command


class KeypadGateway:
    """Feeds button presses through the command engine like any other client."""

    def __init__(self, execute: Callable[[Any], Any]) -> None:
        self._execute = execute

    def press(self, device_id: str, button: str) -> Any:
        state = self._execute({"cmd": "get", "id": device_id})
        if not isinstance(state, Mapping) or state.get("type") != "state":
            return state
        return self._execute(button_command(device_id, button, state))
