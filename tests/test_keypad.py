from __future__ import annotations

import pytest

from irhvac.core.keypad import KeypadGateway, button_command

STATE = {
    "type": "state",
    "id": "1",
    "power": "on",
    "mode": "cool",
    "setpoint": 30.0,
    "current_temp": 26.0,
    "fan": "max",
    "light": "off",
}


def test_power_toggles() -> None:
    assert button_command("1", "power", STATE)["power"] == "off"
    assert button_command("1", "power", {**STATE, "power": "off"})["power"] == "on"


def test_temperature_is_clamped() -> None:
    assert button_command("1", "temp_up", STATE)["temp"] == 30
    assert button_command("1", "temp_down", STATE)["temp"] == 29
    assert button_command("1", "temp_down", {**STATE, "setpoint": 16})["temp"] == 16


def test_mode_and_fan_cycle() -> None:
    assert button_command("1", "mode", STATE)["mode"] == "heat"
    assert button_command("1", "mode", {**STATE, "mode": "fan"})["mode"] == "auto"
    assert button_command("1", "fan", STATE)["fan"] == "auto"


def test_light_toggles() -> None:
    assert button_command("1", "light", STATE)["light"] is True


def test_unknown_button() -> None:
    with pytest.raises(ValueError):
        button_command("1", "eject", STATE)


def test_gateway_reads_state_then_sends() -> None:
    calls: list[dict] = []

    def execute(doc):
        calls.append(doc)
        if doc["cmd"] == "get":
            return STATE
        return {"ok": True}

    assert KeypadGateway(execute).press("1", "temp_down") == {"ok": True}
    assert calls[0] == {"cmd": "get", "id": "1"}
    assert calls[1]["cmd"] == "send"
    assert calls[1]["temp"] == 29


def test_gateway_passes_errors_through() -> None:
    def execute(doc):
        return {"ok": False, "error": "unknown_id"}

    assert KeypadGateway(execute).press("9", "power") == {"ok": False, "error": "unknown_id"}
