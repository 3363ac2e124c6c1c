from __future__ import annotations

from pathlib import Path

from irhvac.api import Client, CustomProfile
from irhvac.transports.dry_run import LoggingAcEncoder, LoggingSender


def _client(path: Path | None = None) -> Client:
    return Client(config_path=path, sender_factory=LoggingSender, encoder_factory=LoggingAcEncoder)


def test_public_client_custom_device() -> None:
    client = _client()
    client.add_channels(17)
    client.add_device(
        "CUSTOM",
        device_id="c1",
        custom=CustomProfile(encoding="gc", off_code="38000,1,1,10,10"),
    )
    client.set_custom_codes("c1", temps={22: "38000,1,1,20,20"})

    state = client.send("c1", power="on", temp=22, mode="heat")
    assert state["setpoint"] == 22.0
    assert state["mode"] == "heat"
    assert client.get_state("c1") == state
    assert client.get_all_states() == [state]

    assert client.send("c1", power="off")["power"] == "off"


def test_public_client_raw_and_errors() -> None:
    client = _client()
    client.add_channels(17)
    assert client.send_raw("38000,1,1,10,10", encoding="gc") == {"ok": True}
    assert client.send_raw("38000,1,1,10,10", encoding="gc", channel=2) == {"ok": False, "error": "invalid_emitter"}
    assert client.command({"cmd": "frobnicate"}) == {"ok": False, "error": "unknown_cmd"}


def test_public_client_buttons_and_sensor() -> None:
    client = _client()
    client.add_channels(17)
    client.add_device("GREE")

    assert client.press_button("1", "power")["power"] == "on"
    assert client.report_current_temp("1", 27.0)["current_temp"] == 27.0
    assert client.get_state("1")["current_temp"] == 27.0


def test_public_client_from_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    client = _client(path)
    client.add_channels(17, 18)
    client.add_device("DAIKIN", channel=1, model=3)
    client.close()

    reopened = Client.from_file(path, sender_factory=LoggingSender, encoder_factory=LoggingAcEncoder)
    assert [c.gpio for c in reopened.config.channels] == [17, 18]
    device = reopened.config.devices[0]
    assert (device.protocol, device.channel, device.model) == ("DAIKIN", 1, 3)

    reopened.update_device(0, "GREE")
    reopened.remove_channel(1)
    reopened.remove_device(0)
    assert Client.from_file(path).config.devices == ()
